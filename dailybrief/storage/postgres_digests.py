"""Postgres-backed digest store and read-only profile store."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

import psycopg
from psycopg.types.json import Jsonb

from dailybrief.errors import DailyBriefError
from dailybrief.profiles.profile_types import UserAccount, UserProfile, goals_from_json
from dailybrief.storage.interfaces import (
    DIGEST_FAILED,
    DIGEST_GENERATING,
    DIGEST_READY,
    Digest,
    DigestItemRecord,
    DigestStore,
    ProfileStore,
)

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 2000

_DIGEST_COLUMNS = (
    "id, user_id, digest_date, status, total_word_count, generated_at, error_message, "
    "narrative_thread, opening, closing"
)


def _row_to_digest(row) -> Digest:
    (did, user_id, digest_date, status, total_words, generated_at, error_message, thread, opening, closing) = row
    return Digest(
        id=int(did),
        user_id=int(user_id),
        digest_date=digest_date,
        status=status,
        total_word_count=int(total_words) if total_words is not None else None,
        generated_at=generated_at,
        error_message=error_message,
        narrative_thread=thread,
        opening=opening,
        closing=closing,
    )


class PostgresDigestStore(DigestStore):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def find_digest(self, user_id: int, digest_date: date) -> Optional[Digest]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_DIGEST_COLUMNS} FROM digests WHERE user_id = %s AND digest_date = %s",
                    (int(user_id), digest_date),
                )
                row = cur.fetchone()
        return _row_to_digest(row) if row else None

    def create_digest(self, user_id: int, digest_date: date) -> Tuple[int, bool]:
        with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO digests (user_id, digest_date, status)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (user_id, digest_date) DO NOTHING
                    RETURNING id
                    """,
                    (int(user_id), digest_date, DIGEST_GENERATING),
                )
                row = cur.fetchone()
                if row is not None:
                    return int(row[0]), True
                cur.execute(
                    "SELECT id FROM digests WHERE user_id = %s AND digest_date = %s",
                    (int(user_id), digest_date),
                )
                existing = cur.fetchone()
        if existing is None:
            raise DailyBriefError(f"could not create or find digest for user {user_id} on {digest_date}")
        return int(existing[0]), False

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
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE digests
                        SET status = %s, total_word_count = %s, narrative_thread = %s, opening = %s, closing = %s,
                            generated_at = now(), updated_at = now()
                        WHERE id = %s AND status = %s
                        """,
                        (
                            DIGEST_READY,
                            int(total_word_count),
                            narrative_thread,
                            opening,
                            closing,
                            int(digest_id),
                            DIGEST_GENERATING,
                        ),
                    )
                    if cur.rowcount == 0:
                        raise DailyBriefError(f"digest {digest_id} is no longer generating")
                    cur.executemany(
                        """
                        INSERT INTO digest_items (
                          digest_id, article_id, position, title, summary, why_it_matters,
                          relevance_score, topics, source_links
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                        """,
                        [
                            (
                                int(digest_id),
                                it.article_id,
                                it.position,
                                it.title,
                                it.summary,
                                it.why_it_matters,
                                it.relevance_score,
                                list(it.topics),
                                Jsonb(list(it.source_links)),
                            )
                            for it in items
                        ],
                    )

    def mark_failed(self, digest_id: int, error_message: Optional[str] = None) -> None:
        with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE digests
                    SET status = %s, error_message = %s, updated_at = now()
                    WHERE id = %s AND status = %s
                    """,
                    (DIGEST_FAILED, (error_message or "")[:MAX_ERROR_CHARS] or None, int(digest_id), DIGEST_GENERATING),
                )

    def get_digest(self, digest_id: int) -> Optional[Digest]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_DIGEST_COLUMNS} FROM digests WHERE id = %s", (int(digest_id),))
                row = cur.fetchone()
        return _row_to_digest(row) if row else None

    def get_digest_items(self, digest_id: int) -> List[DigestItemRecord]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT article_id, position, title, summary, why_it_matters, relevance_score, topics, source_links
                    FROM digest_items
                    WHERE digest_id = %s
                    ORDER BY position
                    """,
                    (int(digest_id),),
                )
                rows = cur.fetchall()
        out: List[DigestItemRecord] = []
        for (article_id, position, title, summary, why, score, topics, links) in rows:
            out.append(
                DigestItemRecord(
                    article_id=int(article_id),
                    position=int(position),
                    title=title,
                    summary=summary or "",
                    why_it_matters=why or "",
                    relevance_score=float(score) if score is not None else 0.0,
                    topics=list(topics or []),
                    source_links=list(links or []),
                )
            )
        return out


_USER_COLUMNS = "id, email, name, onboarding_completed, email_brief_enabled"
_PROFILE_COLUMNS = (
    "user_id, interests, goals, role_title, seniority, industries, geography, linkedin_text, resume_text"
)


def _row_to_user(row) -> UserAccount:
    (uid, email, name, onboarded, email_enabled) = row
    return UserAccount(
        id=int(uid),
        email=email,
        name=name or "",
        onboarding_completed=bool(onboarded),
        email_brief_enabled=bool(email_enabled),
    )


def _row_to_profile(row) -> UserProfile:
    (uid, interests, goals, role_title, seniority, industries, geography, linkedin_text, resume_text) = row
    return UserProfile(
        user_id=int(uid),
        interests=list(interests or []),
        goals=goals_from_json(goals),
        role_title=role_title,
        seniority=seniority,
        industries=list(industries or []),
        geography=geography,
        linkedin_text=linkedin_text,
        resume_text=resume_text,
    )


class PostgresProfileStore(ProfileStore):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def get_user(self, user_id: int) -> Optional[UserAccount]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s", (int(user_id),))
                row = cur.fetchone()
        return _row_to_user(row) if row else None

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_PROFILE_COLUMNS} FROM user_preferences WHERE user_id = %s", (int(user_id),))
                row = cur.fetchone()
        return _row_to_profile(row) if row else None

    def list_eligible_users(self) -> List[UserAccount]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE onboarding_completed ORDER BY id")
                rows = cur.fetchall()
        return [_row_to_user(r) for r in rows]

    def get_profiles(self, user_ids: Iterable[int]) -> List[UserProfile]:
        ids = [int(i) for i in user_ids]
        if not ids:
            return []
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_PROFILE_COLUMNS} FROM user_preferences WHERE user_id = ANY(%s) ORDER BY user_id",
                    (ids,),
                )
                rows = cur.fetchall()
        return [_row_to_profile(r) for r in rows]
