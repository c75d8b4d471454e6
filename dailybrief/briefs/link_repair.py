"""Best-effort provenance repair for brief items that lost their links.

When every link on an item was rejected, look for the candidate whose title
matches the item's title on a short lowercase prefix (either direction). This
is a heuristic; it will miss paraphrased titles and that is acceptable.
"""

from __future__ import annotations

from typing import List, Sequence

from dailybrief.briefs.prompt import ArticlePayload
from dailybrief.contracts.daily_brief import SourceLink

TITLE_PREFIX_CHARS = 30


def _prefix(text: str) -> str:
    return (text or "").lower().strip()[:TITLE_PREFIX_CHARS]


def repair_source_links(title: str, articles: Sequence[ArticlePayload]) -> List[SourceLink]:
    """Return a single link to the first candidate whose title prefix matches, else []."""
    item_title = (title or "").lower().strip()
    item_prefix = _prefix(title)
    if not item_prefix:
        return []
    for a in articles:
        cand_prefix = _prefix(a.title)
        if not cand_prefix:
            continue
        if item_prefix in (a.title or "").lower() or cand_prefix in item_title:
            return [SourceLink(url=a.source_url, label=a.source_name)]
    return []
