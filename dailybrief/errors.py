"""Exception types raised by the brief pipeline."""

from __future__ import annotations


class DailyBriefError(Exception):
    """Base class for pipeline errors."""


class EmbeddingError(DailyBriefError):
    """Embedding service returned something we cannot use."""


class BriefGenerationError(DailyBriefError):
    """Generation output was empty, unparseable, or structurally invalid."""


class NoCandidatesError(DailyBriefError):
    """Ranking produced nothing to generate from."""


class UserNotFoundError(DailyBriefError):
    """User or stored preferences are missing."""
