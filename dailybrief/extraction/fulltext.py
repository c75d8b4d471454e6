"""Full-text enrichment for candidates whose feed snippet is too thin.

Only public http(s) URLs are fetched. Every failure is reported as a
``FulltextResult`` with ``text=None``; the caller keeps the stored snippet.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
import trafilatura

from dailybrief.ingestion.normalize import truncate_to_tokens

USER_AGENT = "DailyBrief/1.0 (Article Extractor)"
FULLTEXT_TOKEN_BUDGET = 2000
MAX_RESPONSE_BYTES = 2_000_000
_CHUNK_BYTES = 64 * 1024

_BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost"}


@dataclass(frozen=True)
class FulltextResult:
    text: Optional[str]
    status: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok" and bool(self.text)


def _failure(status: str, error: Optional[str] = None) -> FulltextResult:
    return FulltextResult(text=None, status=status, error=error or status)


def _non_public_address(host: str) -> bool:
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_unspecified
        or addr.is_reserved
        or addr.is_multicast
    )


def check_fetchable(url: str) -> Optional[str]:
    """Reason the URL must not be fetched, or None when it is safe to request."""
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").strip().lower()
    except ValueError:
        return "invalid_url"
    if parsed.scheme not in ("http", "https"):
        return "bad_scheme"
    if not host:
        return "missing_host"
    if host in _BLOCKED_HOSTNAMES or host.endswith(".localhost"):
        return "blocked_host"
    if _non_public_address(host):
        return "blocked_private_ip"
    return None


def _read_capped(resp: requests.Response, max_bytes: int) -> Optional[bytes]:
    """Body bytes, or None once more than ``max_bytes`` have arrived."""
    buf = bytearray()
    for chunk in resp.iter_content(chunk_size=_CHUNK_BYTES):
        buf.extend(chunk or b"")
        if len(buf) > max_bytes:
            return None
    return bytes(buf)


def fetch_and_extract(
    url: str,
    *,
    timeout: float = 8.0,
    max_bytes: int = MAX_RESPONSE_BYTES,
    max_tokens: int = FULLTEXT_TOKEN_BUDGET,
) -> FulltextResult:
    if not url:
        return _failure("error", "empty_url")
    reason = check_fetchable(url)
    if reason:
        return _failure("blocked", reason)

    try:
        with requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout, stream=True) as resp:
            if resp.status_code >= 400:
                return _failure(f"http_{resp.status_code}")
            body = _read_capped(resp, max_bytes)
            encoding = resp.encoding or "utf-8"
    except requests.RequestException as e:
        return _failure("error", str(e))

    if body is None:
        return _failure("too_large")
    try:
        html = body.decode(encoding, errors="replace")
    except LookupError:
        html = body.decode("utf-8", errors="replace")
    if not html.strip():
        return _failure("empty", "empty_html")

    try:
        text = trafilatura.extract(html, include_comments=False, include_tables=False)
    except Exception as e:
        return _failure("error", f"extract_failed: {e}")
    text = " ".join((text or "").split())
    if not text:
        return _failure("no_extract")
    return FulltextResult(text=truncate_to_tokens(text, max_tokens), status="ok")
