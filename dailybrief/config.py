"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_PG_DSN = "dbname=dailybrief user=dailybrief password=dailybrief host=localhost port=5432"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Configuration for the worker and the pipeline components."""

    openai_api_key: str

    # Generation (defaults to the OpenAI key; base URL allows OpenRouter et al.)
    generation_api_key: str = ""
    generation_base_url: str = ""
    generation_model: str = "gpt-4o"
    embedding_model: str = "text-embedding-3-small"

    # Database
    pg_dsn: str = DEFAULT_PG_DSN

    # Timeouts (seconds)
    feed_timeout: float = 10.0
    extraction_timeout: float = 8.0
    generation_timeout: float = 120.0

    # Ingestion
    ingest_batch_size: int = 8
    max_items_per_source: int = 20
    freshness_hours: int = 48
    ingestion_min_interval_minutes: int = 30

    # Ranking / dedup
    rank_top_n: int = 20
    topic_cap: int = 3
    dedup_threshold: float = 0.92

    # Generation constraints
    generation_candidate_cap: int = 15
    word_budget: int = 900
    min_items: int = 6
    max_items: int = 10
    enrich_candidates: bool = False
    include_narration: bool = False

    # Email notifications
    email_enabled: bool = False
    email_smtp_server: str = "smtp.gmail.com"
    email_smtp_port: int = 587
    email_from: str = ""
    email_password: str = ""

    app_url: str = "http://localhost:3000"
    daily_run_time: str = "05:30"

    @classmethod
    def from_env(cls) -> "Config":
        """Load and validate configuration from environment variables."""
        config = cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            generation_api_key=os.getenv("GENERATION_API_KEY", "").strip(),
            generation_base_url=os.getenv("GENERATION_BASE_URL", "").strip(),
            generation_model=os.getenv("GENERATION_MODEL", "gpt-4o"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            pg_dsn=os.getenv("PG_DSN", DEFAULT_PG_DSN),
            feed_timeout=float(os.getenv("FEED_TIMEOUT", "10")),
            extraction_timeout=float(os.getenv("EXTRACTION_TIMEOUT", "8")),
            generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "120")),
            ingest_batch_size=int(os.getenv("INGEST_BATCH_SIZE", "8")),
            max_items_per_source=int(os.getenv("MAX_ITEMS_PER_SOURCE", "20")),
            freshness_hours=int(os.getenv("FRESHNESS_HOURS", "48")),
            ingestion_min_interval_minutes=int(os.getenv("INGESTION_MIN_INTERVAL_MINUTES", "30")),
            rank_top_n=int(os.getenv("RANK_TOP_N", "20")),
            topic_cap=int(os.getenv("TOPIC_CAP", "3")),
            dedup_threshold=float(os.getenv("DEDUP_THRESHOLD", "0.92")),
            generation_candidate_cap=int(os.getenv("GENERATION_CANDIDATE_CAP", "15")),
            word_budget=int(os.getenv("WORD_BUDGET", "900")),
            min_items=int(os.getenv("MIN_ITEMS", "6")),
            max_items=int(os.getenv("MAX_ITEMS", "10")),
            enrich_candidates=_env_bool("ENRICH_CANDIDATES"),
            include_narration=_env_bool("INCLUDE_NARRATION"),
            email_enabled=_env_bool("EMAIL_ENABLED"),
            email_smtp_server=os.getenv("EMAIL_SMTP_SERVER", "smtp.gmail.com"),
            email_smtp_port=int(os.getenv("EMAIL_SMTP_PORT", "587")),
            email_from=os.getenv("EMAIL_FROM", ""),
            email_password=os.getenv("EMAIL_PASSWORD", ""),
            app_url=os.getenv("APP_URL", "http://localhost:3000"),
            daily_run_time=os.getenv("DAILY_RUN_TIME", "05:30"),
        )
        config._validate()
        return config

    @property
    def effective_generation_api_key(self) -> str:
        return self.generation_api_key or self.openai_api_key

    def _validate(self) -> None:
        """Validate configuration values."""
        errors = []

        if not self.openai_api_key:
            errors.append("OPENAI_API_KEY is required")
        if not self.pg_dsn.strip():
            errors.append("PG_DSN is required")

        if self.email_enabled:
            if not all([self.email_from, self.email_password]):
                errors.append("Email enabled but missing credentials (EMAIL_FROM, EMAIL_PASSWORD)")
            elif "@" not in self.email_from:
                errors.append("Invalid EMAIL_FROM address")
            if self.email_smtp_port not in [25, 465, 587]:
                errors.append("Invalid SMTP port (should be 25, 465, or 587)")

        for name in ("feed_timeout", "extraction_timeout", "generation_timeout"):
            if getattr(self, name) <= 0:
                errors.append(f"{name.upper()} must be positive")

        if self.ingest_batch_size < 1:
            errors.append("INGEST_BATCH_SIZE must be at least 1")
        if self.max_items_per_source < 1:
            errors.append("MAX_ITEMS_PER_SOURCE must be at least 1")
        if self.rank_top_n < 1 or self.topic_cap < 1:
            errors.append("RANK_TOP_N and TOPIC_CAP must be at least 1")
        if not 0.0 < self.dedup_threshold <= 1.0:
            errors.append("DEDUP_THRESHOLD should be in (0, 1]")
        if self.min_items < 1 or self.min_items > self.max_items:
            errors.append("MIN_ITEMS must be between 1 and MAX_ITEMS")
        if self.word_budget < 1:
            errors.append("WORD_BUDGET must be positive")
        if not re.fullmatch(r"\d{2}:\d{2}", self.daily_run_time or ""):
            errors.append("DAILY_RUN_TIME should look like HH:MM")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ValueError(error_msg)

        logger.info(
            f"Configuration validated. generation_model={self.generation_model} "
            f"embedding_model={self.embedding_model} email={'on' if self.email_enabled else 'off'}"
        )
