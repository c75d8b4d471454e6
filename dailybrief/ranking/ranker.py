"""Relevance ranking of recent articles against a user profile.

Steps:
1. Load the profile and recent articles (last 48h)
2. Embed the profile text, then all article texts in one batched call
3. Score by cosine similarity and sort descending
4. Greedy diversity pass: at most ``per_topic_cap`` per primary topic
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from dailybrief.embeddings.service import EmbeddingService
from dailybrief.embeddings.similarity import similarity_to
from dailybrief.ingestion.article_types import StoredArticle
from dailybrief.ingestion.sources import GENERAL_CATEGORY
from dailybrief.profiles.profile_types import ProfilePayload, UserProfile
from dailybrief.storage.interfaces import ArticleRepository, ProfileStore

logger = logging.getLogger(__name__)

BACKGROUND_CHARS = 1000
SNIPPET_CHARS = 200
MAX_EMBED_CHARS = 8000


@dataclass(frozen=True)
class RankedArticle:
    id: int
    url: str
    title: str
    raw_content: str
    source_name: str
    published_at: Optional[datetime]
    topics: List[str] = field(default_factory=list)
    similarity: float = 0.0

    @property
    def primary_topic(self) -> str:
        return self.topics[0] if self.topics else GENERAL_CATEGORY

    @classmethod
    def from_stored(cls, article: StoredArticle, similarity: float) -> "RankedArticle":
        return cls(
            id=article.id,
            url=article.url,
            title=article.title,
            raw_content=article.raw_content or "",
            source_name=article.source_name or "Unknown",
            published_at=article.published_at,
            topics=list(article.topics or []),
            similarity=similarity,
        )


def build_profile_text(profile: UserProfile) -> str:
    """Compact profile text used for the profile embedding."""
    background = profile.background
    lines = [
        f"Role: {profile.role_title or 'Professional'} ({profile.seniority or 'unknown level'})",
        f"Industries: {', '.join(profile.industries)}",
        f"Interests: {', '.join(profile.interests)}",
        f"Goals: {'. '.join(profile.ordered_goals)}",
        f"Background: {background[:BACKGROUND_CHARS]}" if background else "",
    ]
    return "\n".join(line for line in lines if line)


def build_profile_payload(profile: UserProfile) -> ProfilePayload:
    return ProfilePayload(
        interests=list(profile.interests),
        goals=profile.ordered_goals,
        role_title=profile.role_title or "Professional",
        seniority=profile.seniority or "IC",
        industries=list(profile.industries),
        geography=profile.geography or "Global",
        professional_background=profile.background or "Not provided",
    )


def candidate_text(title: str, content: Optional[str]) -> str:
    return f"{title}. {(content or '')[:SNIPPET_CHARS]}"[:MAX_EMBED_CHARS]


def diversify(scored: Sequence[RankedArticle], *, top_n: int, per_topic_cap: int) -> List[RankedArticle]:
    """Admit in order while the primary topic is under its cap; stop at ``top_n``."""
    topic_counts: Dict[str, int] = {}
    diverse: List[RankedArticle] = []
    for article in scored:
        if len(diverse) >= top_n:
            break
        topic = article.primary_topic
        count = topic_counts.get(topic, 0)
        if count >= per_topic_cap:
            continue
        topic_counts[topic] = count + 1
        diverse.append(article)
    return diverse


class RelevanceRanker:
    def __init__(
        self,
        articles: ArticleRepository,
        profiles: ProfileStore,
        embedder: EmbeddingService,
        *,
        top_n: int = 20,
        per_topic_cap: int = 3,
        lookback_hours: int = 48,
        candidate_limit: int = 100,
    ):
        self.articles = articles
        self.profiles = profiles
        self.embedder = embedder
        self.top_n = top_n
        self.per_topic_cap = per_topic_cap
        self.lookback_hours = lookback_hours
        self.candidate_limit = candidate_limit

    def rank(self, user_id: int) -> List[RankedArticle]:
        profile = self.profiles.get_profile(user_id)
        if profile is None:
            logger.error(f"[rank] no preferences found for user {user_id}")
            return []

        recent = self.articles.get_recent_articles(since_hours=self.lookback_hours, limit=self.candidate_limit)
        if not recent:
            logger.warning("[rank] no recent articles found")
            return []

        logger.info(f"[rank] ranking {len(recent)} articles for user {user_id}")
        profile_vec = self.embedder.embed_one(build_profile_text(profile))
        vectors = self.embedder.embed([candidate_text(a.title, a.raw_content) for a in recent])
        sims = similarity_to(profile_vec, vectors)

        scored = [RankedArticle.from_stored(a, s) for a, s in zip(recent, sims)]
        scored.sort(key=lambda r: r.similarity, reverse=True)

        diverse = diversify(scored, top_n=self.top_n, per_topic_cap=self.per_topic_cap)
        logger.info(f"[rank] selected {len(diverse)} diverse candidates")
        return diverse
