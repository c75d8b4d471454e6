"""Postgres article repository (psycopg + plain SQL)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import psycopg

from dailybrief.ingestion.article_types import ArticleCandidate, StoredArticle
from dailybrief.ingestion.url_utils import normalize_url
from dailybrief.storage.interfaces import ArticleRepository

logger = logging.getLogger(__name__)

_ARTICLE_COLUMNS = (
    "id, source_url, title, raw_content, source_name, source_tier, published_at, topics, content_hash, created_at"
)


def _row_to_article(row) -> StoredArticle:
    (aid, source_url, title, raw_content, source_name, source_tier, published_at, topics, content_hash, created_at) = row
    return StoredArticle(
        id=int(aid),
        url=source_url,
        title=title,
        raw_content=raw_content or "",
        source_name=source_name or "Unknown",
        source_tier=int(source_tier) if source_tier is not None else None,
        published_at=published_at,
        topics=list(topics or []),
        content_hash=content_hash or "",
        created_at=created_at,
    )


class PostgresRepo(ArticleRepository):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def upsert_articles(self, items: Sequence[ArticleCandidate]) -> int:
        """Insert articles keyed by canonical URL; existing rows are left untouched.

        Returns the number of rows actually inserted.
        """
        if not items:
            return 0
        inserted = 0

        with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                for it in items:
                    try:
                        cur.execute(
                            """
                            INSERT INTO articles (
                              source_url, canonical_url, title, raw_content, source_name, source_tier,
                              published_at, topics, content_hash
                            )
                            VALUES (
                              %(source_url)s, %(canonical_url)s, %(title)s, %(raw_content)s, %(source_name)s,
                              %(source_tier)s, %(published_at)s, %(topics)s, %(content_hash)s
                            )
                            ON CONFLICT DO NOTHING
                            RETURNING id
                            """,
                            {
                                "source_url": it.url,
                                "canonical_url": normalize_url(it.url),
                                "title": it.title,
                                "raw_content": it.raw_content,
                                "source_name": it.source_name,
                                "source_tier": it.source_tier,
                                "published_at": it.published_at,
                                "topics": list(it.topics),
                                "content_hash": it.content_hash or None,
                            },
                        )
                    except psycopg.errors.UniqueViolation:
                        # Lost a race with a concurrent ingestion; the row already exists.
                        continue
                    if cur.fetchone() is not None:
                        inserted += 1
        return inserted

    def latest_created_at(self) -> Optional[datetime]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT max(created_at) FROM articles")
                row = cur.fetchone()
        return row[0] if row else None

    def get_recent_articles(self, *, since_hours: int = 48, limit: int = 100) -> List[StoredArticle]:
        """Most recent articles by publish time (ingest time when undated)."""
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_ARTICLE_COLUMNS}
                    FROM articles
                    WHERE COALESCE(published_at, created_at) >= now() - (%s * interval '1 hour')
                    ORDER BY COALESCE(published_at, created_at) DESC, id DESC
                    LIMIT %s
                    """,
                    (int(since_hours), int(limit)),
                )
                rows = cur.fetchall()
        return [_row_to_article(r) for r in rows]

    def get_articles(self, article_ids: Iterable[int]) -> List[StoredArticle]:
        ids = [int(i) for i in article_ids]
        if not ids:
            return []
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_ARTICLE_COLUMNS} FROM articles WHERE id = ANY(%s)", (ids,))
                rows = cur.fetchall()
        by_id = {a.id: a for a in (_row_to_article(r) for r in rows)}
        return [by_id[i] for i in ids if i in by_id]

    def update_article_content(self, article_id: int, raw_content: str) -> None:
        with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE articles SET raw_content = %s, updated_at = now() WHERE id = %s",
                    (raw_content, int(article_id)),
                )

    def article_ids_by_url(self, urls: Iterable[str]) -> Dict[str, int]:
        url_list = [u for u in urls if u]
        if not url_list:
            return {}
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT source_url, id FROM articles WHERE source_url = ANY(%s)", (url_list,))
                rows = cur.fetchall()
        return {url: int(aid) for url, aid in rows}
