"""Per-user, per-day digest generation.

State machine: ``generating -> ready`` on success, ``generating -> failed`` when
any stage raises. An existing digest for (user, today) short-circuits before
any work is done, so overlapping scheduled runs never generate twice.

Pipeline per user:
1. Ingest (shared across users; throttled, or skipped in batch mode)
2. Rank recent articles for the user
3. Semantic dedup
4. Cap candidates, optionally enrich their text
5. Generate the narrative brief
6. Tie items back to stored articles and persist them, marking the digest ready
7. Notify (best effort)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from dailybrief.briefs.brief_validation import brief_word_count
from dailybrief.briefs.generator import NarrativeGenerator
from dailybrief.briefs.prompt import ArticlePayload
from dailybrief.contracts.daily_brief import BriefItem, GeneratedBrief
from dailybrief.errors import BriefGenerationError, NoCandidatesError, UserNotFoundError
from dailybrief.ingestion.engine import IngestionEngine
from dailybrief.notifications.email_notifier import Notifier
from dailybrief.profiles.profile_types import UserAccount, UserProfile
from dailybrief.ranking.ranker import RankedArticle, RelevanceRanker, build_profile_payload
from dailybrief.ranking.semantic_dedup import SemanticDeduplicator
from dailybrief.storage.interfaces import ArticleRepository, DigestItemRecord, DigestStore, ProfileStore

logger = logging.getLogger(__name__)

CONTENT_CHARS = 2000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GenerateOptions:
    skip_ingestion: bool = False
    force_ingestion: bool = False


def format_brief_date(d: date) -> str:
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


class DigestOrchestrator:
    def __init__(
        self,
        *,
        profiles: ProfileStore,
        digests: DigestStore,
        articles: ArticleRepository,
        ingestion: IngestionEngine,
        ranker: RelevanceRanker,
        deduplicator: SemanticDeduplicator,
        generator: NarrativeGenerator,
        notifier: Optional[Notifier] = None,
        candidate_cap: int = 15,
        ingestion_min_interval_minutes: int = 30,
        enrich_candidates: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.profiles = profiles
        self.digests = digests
        self.articles = articles
        self.ingestion = ingestion
        self.ranker = ranker
        self.deduplicator = deduplicator
        self.generator = generator
        self.notifier = notifier
        self.candidate_cap = candidate_cap
        self.ingestion_min_interval = timedelta(minutes=ingestion_min_interval_minutes)
        self.enrich_candidates = enrich_candidates
        self.clock = clock

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def generate_digest_for_user(self, user_id: int, options: Optional[GenerateOptions] = None) -> int:
        """Generate (or reuse) today's digest for one user; return the digest id.

        Pipeline failures mark the digest ``failed`` and re-raise.
        """
        options = options or GenerateOptions()
        start_time = time.time()
        logger.info(f"[pipeline] starting brief generation for user {user_id}")

        user = self.profiles.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        profile = self.profiles.get_profile(user_id)
        if profile is None:
            raise UserNotFoundError(f"Preferences not found for user {user_id}")

        today = self.clock().date()
        existing = self.digests.find_digest(user_id, today)
        if existing is not None:
            logger.info(f"[pipeline] reusing existing digest {existing.id} for user {user_id} ({today})")
            return existing.id

        digest_id, created = self.digests.create_digest(user_id, today)
        if not created:
            logger.info(f"[pipeline] digest {digest_id} for user {user_id} was created by a concurrent run")
            return digest_id

        try:
            brief, records = self._run_pipeline(user, profile, options, today)
            self.digests.complete_digest(
                digest_id,
                records,
                self._persisted_word_count(brief, records),
                narrative_thread=brief.narrative_thread,
                opening=brief.opening,
                closing=brief.closing,
            )
        except Exception as e:
            logger.error(f"[pipeline] failed for user {user_id}: {e}")
            self.digests.mark_failed(digest_id, str(e))
            raise

        self._notify(user, today, records)

        elapsed = time.time() - start_time
        logger.info(f"[pipeline] brief {digest_id} ready for user {user_id} in {elapsed:.1f}s ({len(records)} items)")
        return digest_id

    def generate_digests_for_all_users(self) -> None:
        """Batch run: one shared ingestion, then each eligible user in turn."""
        users = self.profiles.list_eligible_users()
        logger.info(f"[pipeline] generating briefs for {len(users)} users")
        if not users:
            return

        interests: Dict[str, None] = {}
        for profile in self.profiles.get_profiles([u.id for u in users]):
            for interest in profile.interests:
                if interest:
                    interests.setdefault(interest, None)

        try:
            self.ingestion.run(list(interests))
        except Exception as e:
            logger.error(f"[pipeline] ingestion failed before batch run: {e}")

        ok = 0
        for user in users:
            try:
                self.generate_digest_for_user(user.id, GenerateOptions(skip_ingestion=True))
                ok += 1
            except Exception as e:
                logger.error(f"[pipeline] skipping user {user.email}: {e}")
        logger.info(f"[pipeline] batch finished: {ok}/{len(users)} users succeeded")

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _should_ingest(self, options: GenerateOptions) -> bool:
        if options.skip_ingestion:
            return False
        if options.force_ingestion:
            return True
        latest = self.articles.latest_created_at()
        if latest is None:
            return True
        if latest.tzinfo is None:
            latest = latest.replace(tzinfo=timezone.utc)
        return self.clock() - latest > self.ingestion_min_interval

    def _run_pipeline(
        self, user: UserAccount, profile: UserProfile, options: GenerateOptions, today: date
    ) -> Tuple[GeneratedBrief, List[DigestItemRecord]]:
        if self._should_ingest(options):
            self.ingestion.run(profile.interests)
        elif not options.skip_ingestion:
            logger.info("[pipeline] skipping ingestion (recently ingested)")

        ranked = self.ranker.rank(user.id)
        if not ranked:
            raise NoCandidatesError("No articles available for ranking")

        candidates = self.deduplicator.dedup(ranked)[: self.candidate_cap]
        contents = self._candidate_contents(candidates)

        today_str = today.isoformat()
        payloads = [
            ArticlePayload(
                index=i,
                title=a.title,
                source_url=a.url,
                source_name=a.source_name or "Unknown",
                published_at=a.published_at.isoformat() if a.published_at else today_str,
                content=contents.get(a.id, a.raw_content)[:CONTENT_CHARS],
            )
            for i, a in enumerate(candidates, 1)
        ]

        brief = self.generator.generate(build_profile_payload(profile), payloads, today_str)
        records = self._tie_to_articles(brief.items, [p.source_url for p in payloads])
        if not records:
            raise BriefGenerationError("no generated item could be matched to a stored article")
        return brief, records

    def _candidate_contents(self, candidates: Sequence[RankedArticle]) -> Dict[int, str]:
        """Article text per candidate id, refreshed after optional enrichment."""
        if not self.enrich_candidates:
            return {}
        ids = [a.id for a in candidates]
        try:
            self.ingestion.enrich(ids)
            return {a.id: a.raw_content for a in self.articles.get_articles(ids)}
        except Exception as e:
            logger.warning(f"[pipeline] enrichment failed, using stored snippets: {e}")
            return {}

    def _tie_to_articles(self, items: Sequence[BriefItem], urls: Sequence[str]) -> List[DigestItemRecord]:
        """Map each item to the stored article of its first resolvable link; drop the rest."""
        id_by_url = self.articles.article_ids_by_url(urls)
        records: List[DigestItemRecord] = []
        for item in items:
            article_id = next((id_by_url[link.url] for link in item.source_links if link.url in id_by_url), None)
            if article_id is None:
                logger.warning(f"[pipeline] dropping item without a stored source: '{item.title[:60]}'")
                continue
            records.append(DigestItemRecord.from_brief_item(item, article_id=article_id, position=len(records) + 1))
        return records

    @staticmethod
    def _persisted_word_count(brief: GeneratedBrief, records: Sequence[DigestItemRecord]) -> int:
        if len(records) == len(brief.items):
            return brief.total_word_count
        return brief_word_count(records, brief.opening, brief.closing)

    def _notify(self, user: UserAccount, today: date, records: Sequence[DigestItemRecord]) -> None:
        if self.notifier is None or not user.email_brief_enabled:
            return
        try:
            self.notifier.send_brief(user.email, user.name or user.email, format_brief_date(today), records)
        except Exception as e:
            logger.error(f"[pipeline] failed to send brief email to {user.email}: {e}")
