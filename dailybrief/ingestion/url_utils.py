"""URL canonicalization helpers for ingestion/dedup."""

from __future__ import annotations

from urllib.parse import urlparse


def normalize_url(url: str) -> str:
    """Canonicalize a URL for dedup.

    - Keep host + path only (scheme-independent)
    - Drop query string and fragment
    - Remove trailing slashes
    - Lowercase everything
    """
    if not url:
        return ""
    raw = url.strip()
    try:
        p = urlparse(raw)
        host = (p.hostname or "").lower()
    except ValueError:
        return raw.lower()
    if not host:
        return raw.lower()
    return f"{host}{p.path or ''}".rstrip("/").lower()
