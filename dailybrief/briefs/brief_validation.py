"""Parse and validate generator output into a GeneratedBrief.

Rules enforced here, in order:
- Every source link must exactly match a URL from the input candidates
  (duplicates collapsed). Items left with no links get one repair attempt via
  ``repair_source_links``; if that fails the item is kept without links.
- Relevance scores are clamped into [0, 1] (missing or unparseable -> 0.5).
- Items are ordered by their reported position and capped at ``max_items``.
- Length trim: while over ``word_budget`` and above ``min_items``, drop the
  lowest-relevance item. This is a deliberate two-phase sort: a stable sort by
  relevance picks the victims, then survivors go back to position order. Ties
  drop the later-positioned item first.
- Positions are always renumbered densely from 1.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from dailybrief.briefs.link_repair import repair_source_links
from dailybrief.briefs.prompt import ArticlePayload
from dailybrief.contracts.daily_brief import BriefItem, GeneratedBrief, SourceLink, validate_daily_brief_payload
from dailybrief.errors import BriefGenerationError

logger = logging.getLogger(__name__)

DEFAULT_RELEVANCE = 0.5

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    s = (text or "").strip()
    if s.startswith("```"):
        s = _FENCE_OPEN_RE.sub("", s)
        s = _FENCE_CLOSE_RE.sub("", s)
    return s.strip()


def parse_generation_output(text: str) -> Dict[str, Any]:
    """Decode the model's text into a dict that passes the Daily Brief schema."""
    body = strip_code_fences(text)
    if not body:
        raise BriefGenerationError("generation returned an empty response")
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        logger.error(f"[generate] invalid JSON response: {body[:500]}")
        raise BriefGenerationError(f"generation returned invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise BriefGenerationError(f"generation returned {type(parsed).__name__}, expected a JSON object")
    errors = validate_daily_brief_payload(parsed)
    if errors:
        raise BriefGenerationError("generation output failed schema validation: " + "; ".join(errors[:5]))
    return parsed


def word_count(text: Optional[str]) -> int:
    return len((text or "").split())


def brief_word_count(
    items: Sequence[BriefItem], opening: Optional[str] = None, closing: Optional[str] = None
) -> int:
    total = sum(word_count(i.title) + word_count(i.summary) + word_count(i.why_it_matters) for i in items)
    return total + word_count(opening) + word_count(closing)


def _clamp_relevance(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_RELEVANCE
    try:
        score = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RELEVANCE
    if math.isnan(score):
        return DEFAULT_RELEVANCE
    return min(1.0, max(0.0, score))


def _reported_position(value: Any, fallback: int) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        num = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(num):
        return fallback
    pos = int(num)
    return pos if pos > 0 else fallback


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _clean_topics(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [t.strip() for t in value if isinstance(t, str) and t.strip()]


def filter_source_links(raw_links: Any, articles_by_url: Dict[str, ArticlePayload]) -> List[SourceLink]:
    """Keep links whose URL is an exact input URL; collapse duplicates."""
    if not isinstance(raw_links, list):
        return []
    links: List[SourceLink] = []
    seen = set()
    for link in raw_links:
        if not isinstance(link, dict):
            continue
        url = link.get("url")
        if not isinstance(url, str) or url not in articles_by_url or url in seen:
            continue
        seen.add(url)
        label = _clean_text(link.get("label")) or articles_by_url[url].source_name
        links.append(SourceLink(url=url, label=label))
    return links


def _trim_to_budget(
    items: List[BriefItem],
    *,
    word_budget: int,
    min_items: int,
    opening: Optional[str],
    closing: Optional[str],
) -> List[BriefItem]:
    if brief_word_count(items, opening, closing) <= word_budget or len(items) <= min_items:
        return items

    by_relevance = sorted(items, key=lambda i: i.relevance_score, reverse=True)
    while len(by_relevance) > min_items and brief_word_count(by_relevance, opening, closing) > word_budget:
        dropped = by_relevance.pop()
        logger.info(f"[generate] trimmed item '{dropped.title[:60]}' (relevance {dropped.relevance_score:.2f})")
    return sorted(by_relevance, key=lambda i: i.position)


def validate_brief(
    raw: Dict[str, Any],
    articles: Sequence[ArticlePayload],
    today: str,
    *,
    word_budget: int = 900,
    min_items: int = 6,
    max_items: int = 10,
    include_narration: bool = False,
) -> GeneratedBrief:
    articles_by_url: Dict[str, ArticlePayload] = {}
    for a in articles:
        articles_by_url.setdefault(a.source_url, a)

    items: List[BriefItem] = []
    repaired = 0
    unlinked = 0
    for index, item in enumerate(raw.get("items") or []):
        if not isinstance(item, dict):
            continue
        title = _clean_text(item.get("title")) or "Untitled"
        links = filter_source_links(item.get("source_links"), articles_by_url)
        if not links:
            links = repair_source_links(title, articles)
            if links:
                repaired += 1
            else:
                unlinked += 1
        items.append(
            BriefItem(
                position=_reported_position(item.get("position"), index + 1),
                title=title,
                summary=_clean_text(item.get("summary")),
                why_it_matters=_clean_text(item.get("why_it_matters")),
                relevance_score=_clamp_relevance(item.get("relevance_score")),
                topics=_clean_topics(item.get("topics")),
                source_links=links,
            )
        )

    if repaired or unlinked:
        logger.info(f"[generate] link repair: {repaired} repaired, {unlinked} left without links")

    items.sort(key=lambda i: i.position)
    if len(items) > max_items:
        items = items[:max_items]
    # Reported positions may repeat; the trim restores order from these.
    items = [replace(item, position=i) for i, item in enumerate(items, 1)]

    opening = (_clean_text(raw.get("opening")) or None) if include_narration else None
    closing = (_clean_text(raw.get("closing")) or None) if include_narration else None

    items = _trim_to_budget(items, word_budget=word_budget, min_items=min_items, opening=opening, closing=closing)
    items = [replace(item, position=i) for i, item in enumerate(items, 1)]

    return GeneratedBrief(
        brief_date=today,
        total_word_count=brief_word_count(items, opening, closing),
        items=items,
        narrative_thread=_clean_text(raw.get("narrative_thread")) or None,
        opening=opening,
        closing=closing,
    )
