import json
import unittest
from datetime import date, timedelta

from dailybrief.briefs.brief_validation import brief_word_count
from dailybrief.briefs.generator import NarrativeGenerator
from dailybrief.errors import BriefGenerationError, NoCandidatesError, UserNotFoundError
from dailybrief.pipeline.orchestrator import DigestOrchestrator, GenerateOptions, format_brief_date
from dailybrief.ranking.ranker import RelevanceRanker
from dailybrief.ranking.semantic_dedup import SemanticDeduplicator
from dailybrief.storage.interfaces import DIGEST_FAILED, DIGEST_READY

from fakes import (
    NOW,
    FakeEmbedder,
    FakeIngestion,
    FakeNotifier,
    FakeTextGenerator,
    InMemoryArticleRepo,
    InMemoryDigestStore,
    InMemoryProfileStore,
    echo_brief,
)

WORDS = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel"]
TODAY = date(2026, 3, 10)


class Harness:
    def __init__(self, *, articles=8, respond=None, notifier=None, ingestion_fail=False, enrich=False,
                 candidate_cap=15, created_ago=timedelta(hours=2)):
        self.repo = InMemoryArticleRepo()
        self.profiles = InMemoryProfileStore()
        self.digests = InMemoryDigestStore()
        for word in WORDS[:articles]:
            self.repo.add(f"AI {word} update", f"https://example.com/{word}?utm_source=rss",
                          content=f"Body about {word}.", topics=["AI/ML"], created_at=NOW - created_ago,
                          source_name="Example Wire")
        self.embedder = FakeEmbedder(WORDS + ["ai"])
        self.text = FakeTextGenerator(respond or echo_brief())
        self.ingestion = FakeIngestion(self.repo, fail=ingestion_fail)
        self.notifier = notifier
        self.orchestrator = DigestOrchestrator(
            profiles=self.profiles,
            digests=self.digests,
            articles=self.repo,
            ingestion=self.ingestion,
            ranker=RelevanceRanker(self.repo, self.profiles, self.embedder, per_topic_cap=10),
            deduplicator=SemanticDeduplicator(self.embedder),
            generator=NarrativeGenerator(self.text),
            notifier=notifier,
            candidate_cap=candidate_cap,
            enrich_candidates=enrich,
            clock=lambda: NOW,
        )


class TestSingleUser(unittest.TestCase):
    def test_happy_path_persists_ready_digest(self):
        notifier = FakeNotifier()
        h = Harness(notifier=notifier)
        h.profiles.add_user(1)

        digest_id = h.orchestrator.generate_digest_for_user(1)

        digest = h.digests.get_digest(digest_id)
        self.assertEqual(digest.status, DIGEST_READY)
        self.assertEqual(digest.digest_date, TODAY)
        self.assertEqual(digest.narrative_thread, "Chips and models.")
        items = h.digests.get_digest_items(digest_id)
        self.assertEqual(len(items), 8)
        self.assertEqual([i.position for i in items], list(range(1, 9)))
        self.assertEqual(digest.total_word_count, brief_word_count(items))

        stored_urls = {a.id: a.url for a in h.repo.articles}
        for item in items:
            self.assertIn(item.article_id, stored_urls)
            self.assertIn(stored_urls[item.article_id], [l["url"] for l in item.source_links])

        self.assertEqual(notifier.sent, [("user1@example.com", "User 1", "Tuesday, March 10, 2026", 8)])

    def test_second_call_same_day_reuses_digest(self):
        h = Harness()
        h.profiles.add_user(1)

        first = h.orchestrator.generate_digest_for_user(1)
        second = h.orchestrator.generate_digest_for_user(1)

        self.assertEqual(first, second)
        self.assertEqual(len(h.text.calls), 1)
        self.assertEqual(h.digests.create_calls, 1)
        self.assertEqual(len(h.embedder.calls), 3)

    def test_no_candidates_marks_failed(self):
        h = Harness(articles=0)
        h.profiles.add_user(1)

        with self.assertRaises(NoCandidatesError):
            h.orchestrator.generate_digest_for_user(1)

        digest = h.digests.find_digest(1, TODAY)
        self.assertEqual(digest.status, DIGEST_FAILED)
        self.assertEqual(digest.error_message, "No articles available for ranking")
        self.assertEqual(h.digests.get_digest_items(digest.id), [])
        self.assertEqual(h.text.calls, [])

    def test_failed_digest_is_not_regenerated_same_day(self):
        h = Harness(articles=0)
        h.profiles.add_user(1)
        with self.assertRaises(NoCandidatesError):
            h.orchestrator.generate_digest_for_user(1)

        digest_id = h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.digests.get_digest(digest_id).status, DIGEST_FAILED)
        self.assertEqual(h.digests.create_calls, 1)

    def test_generation_failure_marks_failed(self):
        h = Harness(respond=lambda s, u: "Sorry, I can't help with that.")
        h.profiles.add_user(1)

        with self.assertRaises(BriefGenerationError):
            h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.digests.find_digest(1, TODAY).status, DIGEST_FAILED)

    def test_unknown_user_creates_nothing(self):
        h = Harness()
        with self.assertRaises(UserNotFoundError):
            h.orchestrator.generate_digest_for_user(42)
        h.profiles.add_user(7, with_profile=False)
        with self.assertRaises(UserNotFoundError):
            h.orchestrator.generate_digest_for_user(7)
        self.assertEqual(h.digests.create_calls, 0)
        self.assertEqual(h.digests.digests, {})

    def test_candidate_cap_bounds_prompt(self):
        h = Harness(candidate_cap=5)
        h.profiles.add_user(1)
        digest_id = h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.text.calls[0][1].count("    URL: "), 5)
        self.assertEqual(len(h.digests.get_digest_items(digest_id)), 5)

    def test_unmatched_items_dropped_and_renumbered(self):
        echo = echo_brief()

        def respond(system, user):
            body = json.loads(echo(system, user))
            body["items"].insert(1, {"position": 2, "title": "A story nobody wrote", "summary": "Made up.",
                                     "why_it_matters": "It isn't real.", "relevance_score": 0.99,
                                     "source_links": [{"url": "https://invented.example/x"}]})
            for i, item in enumerate(body["items"], 1):
                item["position"] = i
            return json.dumps(body)

        h = Harness(respond=respond)
        h.profiles.add_user(1)
        digest_id = h.orchestrator.generate_digest_for_user(1)

        items = h.digests.get_digest_items(digest_id)
        self.assertEqual(len(items), 8)
        self.assertNotIn("A story nobody wrote", [i.title for i in items])
        self.assertEqual([i.position for i in items], list(range(1, 9)))
        self.assertEqual(h.digests.get_digest(digest_id).total_word_count, brief_word_count(items))


class TestIngestionThrottle(unittest.TestCase):
    def test_stale_store_triggers_ingestion_with_user_interests(self):
        h = Harness()
        h.profiles.add_user(1, interests=["AI/ML", "Climate"])
        h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.ingestion.runs, [["AI/ML", "Climate"]])

    def test_recent_ingestion_skipped(self):
        h = Harness(created_ago=timedelta(minutes=5))
        h.profiles.add_user(1)
        with self.assertLogs("dailybrief.pipeline.orchestrator", level="INFO") as logs:
            h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.ingestion.runs, [])
        self.assertTrue(any("skipping ingestion" in line for line in logs.output))

    def test_force_ingestion(self):
        h = Harness(created_ago=timedelta(minutes=5))
        h.profiles.add_user(1)
        h.orchestrator.generate_digest_for_user(1, GenerateOptions(force_ingestion=True))
        self.assertEqual(len(h.ingestion.runs), 1)

    def test_skip_ingestion(self):
        h = Harness()
        h.profiles.add_user(1)
        h.orchestrator.generate_digest_for_user(1, GenerateOptions(skip_ingestion=True))
        self.assertEqual(h.ingestion.runs, [])

    def test_ingestion_failure_fails_single_user_run(self):
        h = Harness(ingestion_fail=True)
        h.profiles.add_user(1)
        with self.assertRaises(RuntimeError):
            h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.digests.find_digest(1, TODAY).status, DIGEST_FAILED)


class TestEnrichment(unittest.TestCase):
    def test_enriched_text_reaches_prompt(self):
        h = Harness(enrich=True, candidate_cap=3)
        h.profiles.add_user(1)
        h.orchestrator.generate_digest_for_user(1)

        self.assertEqual(len(h.ingestion.enriched), 1)
        self.assertEqual(len(h.ingestion.enriched[0]), 3)
        prompt = h.text.calls[0][1]
        for article_id in h.ingestion.enriched[0]:
            self.assertIn(f"Content: Full text for article {article_id}.", prompt)

    def test_enrichment_off_by_default(self):
        h = Harness()
        h.profiles.add_user(1)
        h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.ingestion.enriched, [])
        self.assertIn("Content: Body about", h.text.calls[0][1])


class TestNotification(unittest.TestCase):
    def test_notification_failure_keeps_digest_ready(self):
        h = Harness(notifier=FakeNotifier(fail=True))
        h.profiles.add_user(1)
        digest_id = h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(h.digests.get_digest(digest_id).status, DIGEST_READY)

    def test_email_disabled_sends_nothing(self):
        notifier = FakeNotifier()
        h = Harness(notifier=notifier)
        h.profiles.add_user(1, email_enabled=False)
        h.orchestrator.generate_digest_for_user(1)
        self.assertEqual(notifier.sent, [])


class TestBatch(unittest.TestCase):
    def test_batch_ingests_once_and_isolates_failures(self):
        h = Harness()
        h.profiles.add_user(1, interests=["AI/ML", "Climate"])
        h.profiles.add_user(2, interests=["Climate", "Healthcare"])
        h.profiles.add_user(3, onboarded=False)
        h.profiles.add_user(4, with_profile=False)

        with self.assertLogs("dailybrief.pipeline.orchestrator", level="ERROR") as logs:
            h.orchestrator.generate_digests_for_all_users()

        self.assertEqual(h.ingestion.runs, [["AI/ML", "Climate", "Healthcare"]])
        self.assertEqual(h.digests.find_digest(1, TODAY).status, DIGEST_READY)
        self.assertEqual(h.digests.find_digest(2, TODAY).status, DIGEST_READY)
        self.assertIsNone(h.digests.find_digest(3, TODAY))
        self.assertIsNone(h.digests.find_digest(4, TODAY))
        self.assertTrue(any("user4@example.com" in line for line in logs.output))

    def test_batch_continues_after_ingestion_failure(self):
        h = Harness(ingestion_fail=True)
        h.profiles.add_user(1)
        with self.assertLogs("dailybrief.pipeline.orchestrator", level="ERROR") as logs:
            h.orchestrator.generate_digests_for_all_users()
        self.assertEqual(len(h.ingestion.runs), 1)
        self.assertEqual(h.digests.find_digest(1, TODAY).status, DIGEST_READY)
        self.assertTrue(any("ingestion failed" in line for line in logs.output))

    def test_no_eligible_users(self):
        h = Harness()
        h.profiles.add_user(1, onboarded=False)
        h.orchestrator.generate_digests_for_all_users()
        self.assertEqual(h.ingestion.runs, [])


class TestFormatting(unittest.TestCase):
    def test_brief_date(self):
        self.assertEqual(format_brief_date(date(2026, 3, 1)), "Sunday, March 1, 2026")


if __name__ == "__main__":
    unittest.main()
