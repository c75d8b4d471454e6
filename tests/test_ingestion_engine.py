import unittest
from datetime import datetime, timedelta, timezone

from dailybrief.extraction.fulltext import FulltextResult
from dailybrief.ingestion.article_types import ArticleCandidate
from dailybrief.ingestion.engine import IngestionEngine, deduplicate_candidates, filter_recent
from dailybrief.ingestion.normalize import content_fingerprint
from dailybrief.ingestion.sources import FeedSource

from fakes import InMemoryArticleRepo


NOW = datetime.now(timezone.utc)


def cand(url, title, body="", published_at=None, topic="Technology"):
    return ArticleCandidate(
        url=url,
        title=title,
        raw_content=body,
        source_name="Example",
        published_at=published_at,
        topics=[topic],
        content_hash=content_fingerprint(title, body),
    )


SOURCES = [FeedSource(f"Feed {i}", f"https://feeds.example.com/{i}", "Technology", 2) for i in range(10)]


class TestDedup(unittest.TestCase):
    def test_query_string_variants_collapse(self):
        items = [
            cand("https://example.com/a?utm_source=x", "Story A", "one"),
            cand("https://example.com/a?ref=home", "Story A (updated)", "two"),
        ]
        out = deduplicate_candidates(items)
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].url, "https://example.com/a?utm_source=x")

    def test_fingerprint_collapses_cross_posted_story(self):
        items = [
            cand("https://a.example.com/x", "Same story", "same body"),
            cand("https://b.example.com/y", "same story", "Same body"),
        ]
        self.assertEqual(len(deduplicate_candidates(items)), 1)

    def test_items_without_url_or_title_dropped(self):
        self.assertEqual(deduplicate_candidates([cand("", "t"), cand("https://x.com/a", "")]), [])


class TestRecency(unittest.TestCase):
    def test_old_dropped_undated_kept(self):
        now = datetime(2026, 3, 10, tzinfo=timezone.utc)
        items = [
            cand("https://x.com/new", "new", published_at=now - timedelta(hours=2)),
            cand("https://x.com/old", "old", published_at=now - timedelta(hours=49)),
            cand("https://x.com/undated", "undated"),
            cand("https://x.com/naive", "naive", published_at=datetime(2026, 3, 9, 12, 0)),
        ]
        kept = [i.title for i in filter_recent(items, freshness_hours=48, now=now)]
        self.assertEqual(kept, ["new", "undated", "naive"])


class TestIngestionEngine(unittest.TestCase):
    def test_failing_feed_is_isolated(self):
        calls = []

        def fetcher(source, *, timeout, max_items):
            calls.append(source.name)
            if source.name == "Feed 3":
                raise TimeoutError("feed timed out")
            return [cand(f"https://example.com/{source.name.replace(' ', '-')}", f"Story from {source.name}",
                         published_at=NOW)]

        repo = InMemoryArticleRepo(clock=lambda: NOW)
        engine = IngestionEngine(repo, fetcher=fetcher, sources=SOURCES, batch_size=4)
        stored = engine.run()

        self.assertEqual(len(calls), 10)
        self.assertEqual(stored, 9)
        self.assertEqual(len(repo.articles), 9)
        self.assertEqual(repo.articles[0].title, "Story from Feed 0")

    def test_same_story_via_query_variants_stored_once(self):
        def fetcher(source, *, timeout, max_items):
            return [cand(f"https://example.com/story?src={source.name}", "Big story", f"body {source.name}")]

        repo = InMemoryArticleRepo(clock=lambda: NOW)
        engine = IngestionEngine(repo, fetcher=fetcher, sources=SOURCES[:3])
        self.assertEqual(engine.run(), 1)
        self.assertEqual(len(repo.articles), 1)

        # A second run finds nothing new.
        self.assertEqual(engine.run(), 0)

    def test_interests_select_sources(self):
        sources = [
            FeedSource("Health", "https://h.example.com/rss", "Healthcare", 4),
            FeedSource("Tech", "https://t.example.com/rss", "Technology", 2),
            FeedSource("World", "https://w.example.com/rss", "General", 1),
        ]
        fetched = []

        def fetcher(source, *, timeout, max_items):
            fetched.append(source.name)
            return []

        engine = IngestionEngine(InMemoryArticleRepo(), fetcher=fetcher, sources=sources)
        self.assertEqual(engine.run(["Healthcare"]), 0)
        self.assertEqual(sorted(fetched), ["Health", "World"])

    def test_total_network_failure_returns_zero(self):
        def fetcher(source, *, timeout, max_items):
            raise OSError("network unreachable")

        repo = InMemoryArticleRepo()
        engine = IngestionEngine(repo, fetcher=fetcher, sources=SOURCES)
        self.assertEqual(engine.run(), 0)
        self.assertEqual(repo.upsert_calls, 0)


class TestEnrichment(unittest.TestCase):
    def setUp(self):
        self.repo = InMemoryArticleRepo()
        self.short = self.repo.add("Short", "https://example.com/short", content="snippet")
        self.long = self.repo.add("Long", "https://example.com/long", content="x" * 600)
        self.failing = self.repo.add("Failing", "https://example.com/fail", content="keep me")

    def test_enrich_only_short_and_keep_snippet_on_failure(self):
        requested = []

        def extractor(url, *, timeout):
            requested.append(url)
            if url.endswith("fail"):
                return FulltextResult(text=None, status="error", error="http_500")
            return FulltextResult(text="Full article text.", status="ok")

        engine = IngestionEngine(self.repo, extractor=extractor)
        updated = engine.enrich([self.short.id, self.long.id, self.failing.id])

        self.assertEqual(updated, 1)
        self.assertEqual(requested, ["https://example.com/short", "https://example.com/fail"])
        by_id = {a.id: a for a in self.repo.articles}
        self.assertEqual(by_id[self.short.id].raw_content, "Full article text.")
        self.assertEqual(by_id[self.failing.id].raw_content, "keep me")

    def test_extractor_exception_is_swallowed(self):
        def extractor(url, *, timeout):
            raise RuntimeError("boom")

        engine = IngestionEngine(self.repo, extractor=extractor)
        self.assertEqual(engine.enrich([self.short.id]), 0)


if __name__ == "__main__":
    unittest.main()
