"""Daily Brief contract utilities.

The "Daily Brief" is the JSON object the generation model is asked to return.
This module defines:
- A JSON Schema used to reject structurally broken output at the boundary
- The strict internal records everything downstream works with

The schema is deliberately loose about links and scores: those are repaired
or clamped by ``briefs.brief_validation`` rather than rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator


DAILY_BRIEF_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["items"],
    "properties": {
        "brief_date": {"type": "string"},
        "total_word_count": {"type": ["number", "null"]},
        "narrative_thread": {"type": ["string", "null"]},
        "opening": {"type": ["string", "null"]},
        "closing": {"type": ["string", "null"]},
        "items": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["title"],
                "properties": {
                    "position": {"type": ["integer", "number", "string", "null"]},
                    "title": {"type": "string", "minLength": 1},
                    "summary": {"type": ["string", "null"]},
                    "why_it_matters": {"type": ["string", "null"]},
                    "relevance_score": {"type": ["number", "string", "null"]},
                    "topics": {"type": ["array", "null"], "items": {"type": "string"}},
                    "source_links": {
                        "type": ["array", "null"],
                        "items": {
                            "type": "object",
                            "properties": {
                                "url": {"type": "string"},
                                "label": {"type": ["string", "null"]},
                            },
                            "additionalProperties": True,
                        },
                    },
                },
                "additionalProperties": True,
            },
        },
    },
    "additionalProperties": True,
}


_VALIDATOR = Draft202012Validator(DAILY_BRIEF_SCHEMA)


def validate_daily_brief_payload(payload: Dict[str, Any]) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: [str(p) for p in x.path]):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


@dataclass(frozen=True)
class SourceLink:
    url: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "label": self.label}


@dataclass(frozen=True)
class BriefItem:
    position: int
    title: str
    summary: str
    why_it_matters: str
    relevance_score: float
    topics: List[str] = field(default_factory=list)
    source_links: List[SourceLink] = field(default_factory=list)


@dataclass(frozen=True)
class GeneratedBrief:
    brief_date: str
    total_word_count: int
    items: List[BriefItem]
    narrative_thread: Optional[str] = None
    opening: Optional[str] = None
    closing: Optional[str] = None
