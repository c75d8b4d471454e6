"""Postgres schema management for dailybrief.

Schema creation is idempotent (CREATE IF NOT EXISTS) so the worker can run it
on every start.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Users (owned by the auth/onboarding flow; read-only here)
    """
    CREATE TABLE IF NOT EXISTS users (
      id BIGSERIAL PRIMARY KEY,
      email TEXT NOT NULL UNIQUE,
      name TEXT NOT NULL DEFAULT '',
      timezone TEXT DEFAULT 'America/New_York',
      onboarding_completed BOOLEAN NOT NULL DEFAULT FALSE,
      email_brief_enabled BOOLEAN NOT NULL DEFAULT TRUE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_preferences (
      id BIGSERIAL PRIMARY KEY,
      user_id BIGINT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
      interests TEXT[] NOT NULL DEFAULT '{}',
      goals JSONB NOT NULL DEFAULT '[]'::jsonb,
      role_title TEXT,
      seniority TEXT,
      industries TEXT[] NOT NULL DEFAULT '{}',
      geography TEXT,
      linkedin_text TEXT,
      resume_text TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    # Candidate articles (shared across users, append-mostly)
    """
    CREATE TABLE IF NOT EXISTS articles (
      id BIGSERIAL PRIMARY KEY,
      source_url TEXT NOT NULL,
      canonical_url TEXT NOT NULL UNIQUE,
      title TEXT NOT NULL,
      raw_content TEXT,
      source_name TEXT,
      source_tier INTEGER,
      published_at TIMESTAMPTZ,
      topics TEXT[] NOT NULL DEFAULT '{}',
      content_hash TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_articles_source_url ON articles (source_url);",
    "CREATE INDEX IF NOT EXISTS idx_articles_created_at ON articles (created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles (published_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_articles_content_hash ON articles (content_hash) WHERE content_hash IS NOT NULL;",
    # Digests (one per user per day)
    """
    CREATE TABLE IF NOT EXISTS digests (
      id BIGSERIAL PRIMARY KEY,
      user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      digest_date DATE NOT NULL,
      status TEXT NOT NULL DEFAULT 'generating'
        CHECK (status IN ('generating', 'ready', 'failed')),
      total_word_count INTEGER,
      narrative_thread TEXT,
      opening TEXT,
      closing TEXT,
      error_message TEXT,
      generated_at TIMESTAMPTZ,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (user_id, digest_date)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_digests_status ON digests (status);",
    """
    CREATE TABLE IF NOT EXISTS digest_items (
      id BIGSERIAL PRIMARY KEY,
      digest_id BIGINT NOT NULL REFERENCES digests(id) ON DELETE CASCADE,
      article_id BIGINT NOT NULL REFERENCES articles(id),
      position INTEGER NOT NULL CHECK (position >= 1),
      title TEXT NOT NULL,
      summary TEXT NOT NULL DEFAULT '',
      why_it_matters TEXT NOT NULL DEFAULT '',
      relevance_score REAL,
      topics TEXT[] NOT NULL DEFAULT '{}',
      source_links JSONB NOT NULL DEFAULT '[]'::jsonb,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (digest_id, position)
    );
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
