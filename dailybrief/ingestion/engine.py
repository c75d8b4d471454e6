"""Ingestion engine: fetch → normalize → dedup → recency filter → persist.

Feeds are fetched in small fixed-size concurrent batches. A feed that times
out or errors contributes zero candidates; it never aborts the run.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from dailybrief.extraction.fulltext import FulltextResult, fetch_and_extract
from dailybrief.ingestion.article_types import ArticleCandidate
from dailybrief.ingestion.ingestors import MAX_ITEMS_PER_SOURCE, fetch_feed
from dailybrief.ingestion.sources import RSS_SOURCES, FeedSource, select_sources
from dailybrief.ingestion.url_utils import normalize_url
from dailybrief.storage.interfaces import ArticleRepository

logger = logging.getLogger(__name__)

FeedFetcher = Callable[..., List[ArticleCandidate]]
Extractor = Callable[..., FulltextResult]

# Stored text at or below this length is considered a snippet worth enriching.
SHORT_CONTENT_CHARS = 500


def deduplicate_candidates(items: Iterable[ArticleCandidate]) -> List[ArticleCandidate]:
    """Collapse by normalized URL, then by content fingerprint. First seen wins."""
    seen_urls = set()
    seen_hashes = set()
    out: List[ArticleCandidate] = []
    for it in items:
        if not it.url or not it.title:
            continue
        key = normalize_url(it.url)
        if key in seen_urls:
            continue
        if it.content_hash and it.content_hash in seen_hashes:
            continue
        seen_urls.add(key)
        if it.content_hash:
            seen_hashes.add(it.content_hash)
        out.append(it)
    return out


def filter_recent(
    items: Iterable[ArticleCandidate],
    *,
    freshness_hours: int = 48,
    now: Optional[datetime] = None,
) -> List[ArticleCandidate]:
    """Drop candidates older than the freshness window; undated ones are kept."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=freshness_hours)
    out: List[ArticleCandidate] = []
    for it in items:
        published = it.published_at
        if published is None:
            out.append(it)
            continue
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        if published > cutoff:
            out.append(it)
    return out


class IngestionEngine:
    def __init__(
        self,
        repo: ArticleRepository,
        *,
        fetcher: FeedFetcher = fetch_feed,
        extractor: Extractor = fetch_and_extract,
        sources: Sequence[FeedSource] = RSS_SOURCES,
        batch_size: int = 8,
        max_items_per_source: int = MAX_ITEMS_PER_SOURCE,
        freshness_hours: int = 48,
        feed_timeout: float = 10.0,
        extraction_timeout: float = 8.0,
    ):
        self.repo = repo
        self.fetcher = fetcher
        self.extractor = extractor
        self.sources = list(sources)
        self.batch_size = max(1, batch_size)
        self.max_items_per_source = max_items_per_source
        self.freshness_hours = freshness_hours
        self.feed_timeout = feed_timeout
        self.extraction_timeout = extraction_timeout

    def _fetch_one(self, source: FeedSource) -> List[ArticleCandidate]:
        try:
            return self.fetcher(source, timeout=self.feed_timeout, max_items=self.max_items_per_source)
        except Exception as e:
            logger.warning(f"[ingest] source {source.name} failed: {e}")
            return []

    def fetch_all(self, sources: Sequence[FeedSource]) -> List[ArticleCandidate]:
        """Fetch sources in fixed-size batches; output keeps catalog order."""
        items: List[ArticleCandidate] = []
        for start in range(0, len(sources), self.batch_size):
            batch = list(sources[start : start + self.batch_size])
            results: List[List[ArticleCandidate]] = [[] for _ in batch]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                future_map = {executor.submit(self._fetch_one, s): idx for idx, s in enumerate(batch)}
                for future in as_completed(future_map):
                    idx = future_map[future]
                    try:
                        results[idx] = future.result()
                    except Exception as e:
                        logger.warning(f"[ingest] source {batch[idx].name} failed: {e}")
            for chunk in results:
                items.extend(chunk)
        return items

    def run(self, interests: Optional[Iterable[str]] = None) -> int:
        """Run one ingestion pass; return the number of newly stored articles."""
        interests = [i for i in (interests or []) if i]
        sources = select_sources(interests, self.sources)
        logger.info(f"[ingest] fetching {len(sources)} sources (interests={len(interests)})")

        raw = self.fetch_all(sources)
        logger.info(f"[ingest] fetched {len(raw)} raw articles")

        unique = deduplicate_candidates(raw)
        logger.info(f"[ingest] {len(unique)} unique articles after dedup")

        recent = filter_recent(unique, freshness_hours=self.freshness_hours)
        logger.info(f"[ingest] {len(recent)} articles within {self.freshness_hours}h window")

        if not recent:
            return 0
        try:
            stored = self.repo.upsert_articles(recent)
        except Exception as e:
            logger.error(f"[ingest] failed to store articles: {e}")
            return 0
        logger.info(f"[ingest] stored {stored} new articles")
        return stored

    def enrich(self, article_ids: Iterable[int]) -> int:
        """Replace short stored snippets with extracted full text where possible."""
        updated = 0
        for article in self.repo.get_articles(list(article_ids)):
            if len(article.raw_content or "") > SHORT_CONTENT_CHARS:
                continue
            try:
                res = self.extractor(article.url, timeout=self.extraction_timeout)
            except Exception as e:
                logger.warning(f"[enrich] extraction raised for {article.url}: {e}")
                continue
            if not res.ok:
                logger.info(f"[enrich] keeping snippet for {article.url} ({res.status})")
                continue
            self.repo.update_article_content(article.id, res.text)
            updated += 1
        logger.info(f"[enrich] updated={updated}")
        return updated
