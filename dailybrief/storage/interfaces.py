"""Repository interfaces the pipeline components depend on.

Components receive these explicitly; Postgres implementations live next to
this module and tests substitute in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dailybrief.contracts.daily_brief import BriefItem
from dailybrief.ingestion.article_types import ArticleCandidate, StoredArticle
from dailybrief.profiles.profile_types import UserAccount, UserProfile


DIGEST_GENERATING = "generating"
DIGEST_READY = "ready"
DIGEST_FAILED = "failed"


@dataclass(frozen=True)
class Digest:
    id: int
    user_id: int
    digest_date: date
    status: str
    total_word_count: Optional[int] = None
    generated_at: Optional[datetime] = None
    error_message: Optional[str] = None
    narrative_thread: Optional[str] = None
    opening: Optional[str] = None
    closing: Optional[str] = None


@dataclass(frozen=True)
class DigestItemRecord:
    """A digest item tied to the stored article it was generated from."""

    article_id: int
    position: int
    title: str
    summary: str
    why_it_matters: str
    relevance_score: float
    topics: List[str] = field(default_factory=list)
    source_links: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_brief_item(cls, item: BriefItem, *, article_id: int, position: int) -> "DigestItemRecord":
        return cls(
            article_id=article_id,
            position=position,
            title=item.title,
            summary=item.summary,
            why_it_matters=item.why_it_matters,
            relevance_score=item.relevance_score,
            topics=list(item.topics),
            source_links=[link.to_dict() for link in item.source_links],
        )


class ArticleRepository:
    """Shared, append-mostly candidate article store."""

    def upsert_articles(self, items: Sequence[ArticleCandidate]) -> int:
        """Insert articles not yet stored (keyed by canonical URL); return the new count."""
        raise NotImplementedError

    def latest_created_at(self) -> Optional[datetime]:
        raise NotImplementedError

    def get_recent_articles(self, *, since_hours: int = 48, limit: int = 100) -> List[StoredArticle]:
        raise NotImplementedError

    def get_articles(self, article_ids: Iterable[int]) -> List[StoredArticle]:
        raise NotImplementedError

    def update_article_content(self, article_id: int, raw_content: str) -> None:
        raise NotImplementedError

    def article_ids_by_url(self, urls: Iterable[str]) -> Dict[str, int]:
        """Map exact stored source URLs to article ids."""
        raise NotImplementedError


class DigestStore:
    """Per-user-per-day digest records and their items."""

    def find_digest(self, user_id: int, digest_date: date) -> Optional[Digest]:
        raise NotImplementedError

    def create_digest(self, user_id: int, digest_date: date) -> Tuple[int, bool]:
        """Create a ``generating`` digest.

        Returns (digest_id, created). When another run won the race for the same
        (user, date), returns the existing id with ``created=False``.
        """
        raise NotImplementedError

    def complete_digest(
        self,
        digest_id: int,
        items: Sequence[DigestItemRecord],
        total_word_count: int,
        *,
        narrative_thread: Optional[str] = None,
        opening: Optional[str] = None,
        closing: Optional[str] = None,
    ) -> None:
        """Persist items and mark the digest ``ready`` in one step.

        Only a digest still in ``generating`` can be completed.
        """
        raise NotImplementedError

    def mark_failed(self, digest_id: int, error_message: Optional[str] = None) -> None:
        raise NotImplementedError

    def get_digest(self, digest_id: int) -> Optional[Digest]:
        raise NotImplementedError

    def get_digest_items(self, digest_id: int) -> List[DigestItemRecord]:
        raise NotImplementedError


class ProfileStore:
    """Read-only access to users and their stored preferences."""

    def get_user(self, user_id: int) -> Optional[UserAccount]:
        raise NotImplementedError

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        raise NotImplementedError

    def list_eligible_users(self) -> List[UserAccount]:
        """Users who completed onboarding."""
        raise NotImplementedError

    def get_profiles(self, user_ids: Iterable[int]) -> List[UserProfile]:
        raise NotImplementedError
