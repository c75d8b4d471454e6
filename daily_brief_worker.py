#!/usr/bin/env python3
"""Daily brief worker.

Commands:
- init-db                 create/upgrade the Postgres schema
- ingest [--interest X]   run one ingestion pass
- user USER_ID            generate today's brief for one user
- all                     generate today's briefs for every onboarded user
- scheduled               run ``all`` every day at DAILY_RUN_TIME (daemon)
- show DIGEST_ID          print a stored digest as JSON
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict
from typing import List, Optional

import schedule
from dotenv import load_dotenv

from dailybrief.briefs.generation import OpenAITextGenerator
from dailybrief.briefs.generator import NarrativeGenerator
from dailybrief.config import Config
from dailybrief.embeddings.service import OpenAIEmbeddingService
from dailybrief.ingestion.engine import IngestionEngine
from dailybrief.notifications.email_notifier import EmailNotifier
from dailybrief.pipeline.orchestrator import DigestOrchestrator, GenerateOptions
from dailybrief.ranking.ranker import RelevanceRanker
from dailybrief.ranking.semantic_dedup import SemanticDeduplicator
from dailybrief.storage.postgres_digests import PostgresDigestStore, PostgresProfileStore
from dailybrief.storage.postgres_repo import PostgresRepo
from dailybrief.storage.postgres_schema import ensure_postgres_schema

logger = logging.getLogger("daily_brief_worker")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_ingestion(config: Config, repo: PostgresRepo) -> IngestionEngine:
    return IngestionEngine(
        repo,
        batch_size=config.ingest_batch_size,
        max_items_per_source=config.max_items_per_source,
        freshness_hours=config.freshness_hours,
        feed_timeout=config.feed_timeout,
        extraction_timeout=config.extraction_timeout,
    )


def build_orchestrator(config: Config) -> DigestOrchestrator:
    repo = PostgresRepo(config.pg_dsn)
    profiles = PostgresProfileStore(config.pg_dsn)
    embedder = OpenAIEmbeddingService(config.openai_api_key, model=config.embedding_model)
    text_generator = OpenAITextGenerator(
        config.effective_generation_api_key,
        model=config.generation_model,
        base_url=config.generation_base_url or None,
        timeout=config.generation_timeout,
    )
    notifier = None
    if config.email_enabled:
        notifier = EmailNotifier(
            smtp_server=config.email_smtp_server,
            smtp_port=config.email_smtp_port,
            sender=config.email_from,
            password=config.email_password,
            app_url=config.app_url,
        )

    return DigestOrchestrator(
        profiles=profiles,
        digests=PostgresDigestStore(config.pg_dsn),
        articles=repo,
        ingestion=build_ingestion(config, repo),
        ranker=RelevanceRanker(
            repo,
            profiles,
            embedder,
            top_n=config.rank_top_n,
            per_topic_cap=config.topic_cap,
            lookback_hours=config.freshness_hours,
        ),
        deduplicator=SemanticDeduplicator(embedder, threshold=config.dedup_threshold),
        generator=NarrativeGenerator(
            text_generator,
            word_budget=config.word_budget,
            min_items=config.min_items,
            max_items=config.max_items,
            include_narration=config.include_narration,
        ),
        notifier=notifier,
        candidate_cap=config.generation_candidate_cap,
        ingestion_min_interval_minutes=config.ingestion_min_interval_minutes,
        enrich_candidates=config.enrich_candidates,
    )


def cmd_init_db(config: Config, args: argparse.Namespace) -> int:
    ensure_postgres_schema(config.pg_dsn)
    logger.info("Postgres schema is up to date")
    return 0


def cmd_ingest(config: Config, args: argparse.Namespace) -> int:
    ensure_postgres_schema(config.pg_dsn)
    stored = build_ingestion(config, PostgresRepo(config.pg_dsn)).run(args.interest or None)
    print(f"[ingest] stored={stored}")
    return 0


def cmd_user(config: Config, args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator(config)
    options = GenerateOptions(skip_ingestion=args.skip_ingestion, force_ingestion=args.force_ingestion)
    try:
        digest_id = orchestrator.generate_digest_for_user(args.user_id, options)
    except Exception as e:
        logger.error(f"Brief generation failed for user {args.user_id}: {e}")
        return 1
    print(f"[user] digest_id={digest_id}")
    return 0


def cmd_all(config: Config, args: argparse.Namespace) -> int:
    build_orchestrator(config).generate_digests_for_all_users()
    return 0


def cmd_scheduled(config: Config, args: argparse.Namespace) -> int:
    ensure_postgres_schema(config.pg_dsn)
    orchestrator = build_orchestrator(config)

    def run_batch() -> None:
        try:
            orchestrator.generate_digests_for_all_users()
        except Exception as e:
            logger.error(f"Scheduled batch failed: {e}")

    schedule.every().day.at(config.daily_run_time).do(run_batch)
    logger.info(f"Scheduled daily briefs at {config.daily_run_time}")
    while True:
        schedule.run_pending()
        time.sleep(30)


def cmd_show(config: Config, args: argparse.Namespace) -> int:
    store = PostgresDigestStore(config.pg_dsn)
    digest = store.get_digest(args.digest_id)
    if digest is None:
        print(f"Digest {args.digest_id} not found", file=sys.stderr)
        return 1
    payload = asdict(digest)
    payload["items"] = [asdict(it) for it in store.get_digest_items(args.digest_id)]
    print(json.dumps(payload, indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Personalized daily brief worker")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    parser.add_argument("--log-file", default=None, help="Optional log file in addition to stdout")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create or upgrade the Postgres schema").set_defaults(func=cmd_init_db)

    p_ingest = sub.add_parser("ingest", help="Run one ingestion pass")
    p_ingest.add_argument("--interest", action="append", help="Limit sources to an interest (repeatable)")
    p_ingest.set_defaults(func=cmd_ingest)

    p_user = sub.add_parser("user", help="Generate today's brief for one user")
    p_user.add_argument("user_id", type=int)
    group = p_user.add_mutually_exclusive_group()
    group.add_argument("--skip-ingestion", action="store_true", help="Do not ingest before ranking")
    group.add_argument("--force-ingestion", action="store_true", help="Ingest even if articles are fresh")
    p_user.set_defaults(func=cmd_user)

    sub.add_parser("all", help="Generate today's briefs for every onboarded user").set_defaults(func=cmd_all)
    sub.add_parser("scheduled", help="Run the batch daily at DAILY_RUN_TIME").set_defaults(func=cmd_scheduled)

    p_show = sub.add_parser("show", help="Print a stored digest as JSON")
    p_show.add_argument("digest_id", type=int)
    p_show.set_defaults(func=cmd_show)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    try:
        config = Config.from_env()
    except ValueError as e:
        logger.error(str(e))
        return 2
    return args.func(config, args)


if __name__ == "__main__":
    sys.exit(main())
