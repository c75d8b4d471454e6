"""Vector similarity helpers."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    a_vec = np.asarray(a, dtype=np.float32)
    b_vec = np.asarray(b, dtype=np.float32)
    denom = np.linalg.norm(a_vec) * np.linalg.norm(b_vec)
    if denom == 0:
        return 0.0
    return float(np.dot(a_vec, b_vec) / denom)


def similarity_to(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> List[float]:
    """Cosine similarity of every row in ``vectors`` to ``query``."""
    if not vectors:
        return []
    m = np.asarray(vectors, dtype=np.float32)
    q = np.asarray(query, dtype=np.float32)
    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    dots = m @ q
    sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
    return [float(s) for s in sims]


def pairwise_similarity(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Full cosine similarity matrix; zero vectors score 0 against everything."""
    m = np.asarray(vectors, dtype=np.float32)
    norms = np.linalg.norm(m, axis=1, keepdims=True)
    unit = np.divide(m, norms, out=np.zeros_like(m), where=norms != 0)
    return unit @ unit.T
