"""Embedding service boundary.

Responses are validated here into plain ``List[List[float]]`` so nothing
downstream ever sees the SDK's response objects.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dailybrief.errors import EmbeddingError

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 8000


class EmbeddingService:
    """Turns a batch of texts into one fixed-dimension vector per text."""

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        raise NotImplementedError

    def embed_one(self, text: str) -> List[float]:
        return self.embed([text])[0]


def validate_embedding_response(data, expected: int) -> List[List[float]]:
    """Coerce a raw embedding response into vectors; raise EmbeddingError on shape problems."""
    if not isinstance(data, list) or len(data) != expected:
        got = len(data) if isinstance(data, list) else type(data).__name__
        raise EmbeddingError(f"expected {expected} embeddings, got {got}")
    vectors: List[List[float]] = []
    dim: Optional[int] = None
    for i, vec in enumerate(data):
        if not isinstance(vec, (list, tuple)) or not vec:
            raise EmbeddingError(f"embedding {i} is empty or not a list")
        try:
            floats = [float(x) for x in vec]
        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"embedding {i} has non-numeric values: {e}") from e
        if dim is None:
            dim = len(floats)
        elif len(floats) != dim:
            raise EmbeddingError(f"embedding {i} has dimension {len(floats)}, expected {dim}")
        vectors.append(floats)
    return vectors


class OpenAIEmbeddingService(EmbeddingService):
    def __init__(self, api_key: str, *, model: str = "text-embedding-3-small", timeout: float = 30.0):
        self.model = model
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=8),
        retry=retry_if_exception_type((openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)),
        reraise=True,
    )
    def _create(self, inputs: List[str]):
        return self.client.embeddings.create(model=self.model, input=inputs)

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        # The API rejects empty strings.
        inputs = [(t or " ")[:MAX_INPUT_CHARS] for t in texts]
        resp = self._create(inputs)
        data = sorted(resp.data, key=lambda d: d.index)
        vectors = validate_embedding_response([d.embedding for d in data], len(inputs))
        logger.debug(f"Embedded {len(vectors)} texts with {self.model}")
        return vectors
