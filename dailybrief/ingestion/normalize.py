"""Text normalization for ingested content."""

from __future__ import annotations

import hashlib
import html
import re

FINGERPRINT_BODY_CHARS = 500
CHARS_PER_TOKEN = 4

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def content_fingerprint(title: str, body: str) -> str:
    """SHA-256 over the normalized title and a fixed-length body prefix."""
    sig = f"{(title or '').lower().strip()}|{(body or '')[:FINGERPRINT_BODY_CHARS].lower().strip()}"
    return hashlib.sha256(sig.encode("utf-8")).hexdigest()


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Truncate to an approximate token budget (1 token ~ 4 chars)."""
    text = text or ""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def strip_html(text: str) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", text))).strip()
