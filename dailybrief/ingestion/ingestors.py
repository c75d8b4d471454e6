"""RSS ingestion for a single catalog source.

Normalizes feed entries into ArticleCandidate for downstream dedup/ranking.
Full-text extraction is handled later (see ``extraction.fulltext``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, List, Optional

import feedparser
import requests

from dailybrief.ingestion.article_types import ArticleCandidate
from dailybrief.ingestion.normalize import content_fingerprint, strip_html, truncate_to_tokens
from dailybrief.ingestion.sources import FeedSource

logger = logging.getLogger(__name__)

USER_AGENT = "DailyBrief/1.0 (RSS Reader)"
MAX_ITEMS_PER_SOURCE = 20
SNIPPET_TOKEN_BUDGET = 500


def _entry_get(entry: Any, key: str) -> Any:
    value = getattr(entry, key, None)
    if value is None and isinstance(entry, dict):
        value = entry.get(key)
    return value


def _parse_dt(entry: Any) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        st = _entry_get(entry, key)
        if st:
            try:
                return datetime(*st[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    for key in ("published", "updated"):
        s = _entry_get(entry, key)
        if not s:
            continue
        try:
            parsed = parsedate_to_datetime(str(s))
        except (TypeError, ValueError):
            try:
                parsed = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
            except ValueError:
                continue
        # Normalize naive to UTC
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _entry_content(entry: Any) -> str:
    summary = _entry_get(entry, "summary")
    if isinstance(summary, str) and summary.strip():
        return strip_html(summary)
    content = _entry_get(entry, "content")
    if isinstance(content, list) and content:
        first = content[0]
        value = first.get("value") if isinstance(first, dict) else getattr(first, "value", None)
        if isinstance(value, str):
            return strip_html(value)
    description = _entry_get(entry, "description")
    return strip_html(description) if isinstance(description, str) else ""


def parse_feed_entries(
    parsed: Any,
    source: FeedSource,
    *,
    max_items: int = MAX_ITEMS_PER_SOURCE,
) -> List[ArticleCandidate]:
    """Normalize already-parsed feed entries for ``source``."""
    out: List[ArticleCandidate] = []
    for entry in (getattr(parsed, "entries", None) or [])[: max(0, max_items)]:
        url = _entry_get(entry, "link") or _entry_get(entry, "id") or ""
        title = _entry_get(entry, "title") or ""
        url = str(url).strip()
        title = strip_html(str(title))
        if not url or not title:
            continue
        content = _entry_content(entry)
        out.append(
            ArticleCandidate(
                url=url,
                title=title,
                raw_content=truncate_to_tokens(content, SNIPPET_TOKEN_BUDGET),
                source_name=source.name,
                source_tier=source.tier,
                published_at=_parse_dt(entry),
                topics=[source.category],
                content_hash=content_fingerprint(title, content),
            )
        )
    return out


def fetch_feed(
    source: FeedSource,
    *,
    timeout: float = 10.0,
    max_items: int = MAX_ITEMS_PER_SOURCE,
) -> List[ArticleCandidate]:
    """Fetch and parse one feed. Returns [] on any failure."""
    try:
        resp = requests.get(source.url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        resp.raise_for_status()
        parsed = feedparser.parse(resp.content)
    except Exception as e:
        logger.warning(f"Failed to fetch feed {source.name}: {e}")
        return []
    if getattr(parsed, "bozo", False) and not parsed.entries:
        logger.warning(f"Feed {source.name} could not be parsed: {parsed.get('bozo_exception')}")
        return []
    return parse_feed_entries(parsed, source, max_items=max_items)
