"""Near-duplicate suppression over ranked candidates.

Greedy single pass in ranking order: each surviving article removes every
later article whose cosine similarity meets the threshold, so the more
relevant member of a near-duplicate pair always survives. O(n^2), fine for
the tens of post-ranking candidates.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from dailybrief.embeddings.service import EmbeddingService
from dailybrief.embeddings.similarity import pairwise_similarity
from dailybrief.ranking.ranker import RankedArticle, candidate_text

logger = logging.getLogger(__name__)


class SemanticDeduplicator:
    def __init__(self, embedder: EmbeddingService, *, threshold: float = 0.92):
        self.embedder = embedder
        self.threshold = threshold

    def dedup(self, ranked: Sequence[RankedArticle]) -> List[RankedArticle]:
        if len(ranked) <= 1:
            return list(ranked)

        vectors = self.embedder.embed([candidate_text(a.title, a.raw_content) for a in ranked])
        sims = pairwise_similarity(vectors)

        removed = set()
        kept: List[RankedArticle] = []
        for i, article in enumerate(ranked):
            if i in removed:
                continue
            kept.append(article)
            for j in range(i + 1, len(ranked)):
                if j not in removed and sims[i, j] >= self.threshold:
                    removed.add(j)

        if removed:
            logger.info(f"[dedup] collapsed {len(removed)} near-duplicates ({len(kept)} kept)")
        return kept
