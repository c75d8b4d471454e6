"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class ArticleCandidate:
    """Normalized candidate article (pre-fulltext).

    ``url`` is the link exactly as the feed gave it; it is what gets cited in
    briefs. Dedup keys are derived from it (see ``url_utils.normalize_url``).
    """

    url: str
    title: str
    raw_content: str = ""
    source_name: str = "Unknown"
    source_tier: Optional[int] = None
    published_at: Optional[datetime] = None
    topics: List[str] = field(default_factory=list)
    content_hash: str = ""


@dataclass(frozen=True)
class StoredArticle:
    """A candidate article as persisted in the article store."""

    id: int
    url: str
    title: str
    raw_content: str = ""
    source_name: str = "Unknown"
    source_tier: Optional[int] = None
    published_at: Optional[datetime] = None
    topics: List[str] = field(default_factory=list)
    content_hash: str = ""
    created_at: Optional[datetime] = None

    @property
    def primary_topic(self) -> Optional[str]:
        return self.topics[0] if self.topics else None
