# utils.py — 2026-10-12
from __future__ import annotations
from urllib.parse import urldefrag, urlsplit, urlunsplit

from errors import InvalidUrlError

# ─────────────────────────── constants ────────────────────────────
ALLOWED_SCHEMES = ("http", "https")
_DEFAULT_PORTS  = {"http": 80, "https": 443}
# ──────────────────────────────────────────────────────────────────

# ─────────────────────────── validation ───────────────────────────
def validate_url(url: str) -> str:
    """Return `url` stripped, or raise InvalidUrlError. Never does I/O."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError("empty URL")
    url = url.strip()
    try:
        parts = urlsplit(url)
        parts.port                      # raises on a non-numeric port
    except ValueError as exc:
        raise InvalidUrlError(f"malformed URL {url!r}: {exc}") from None
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidUrlError(
            f"invalid URL format, expected http://... or https://..., got {url!r}"
        )
    if not parts.hostname:
        raise InvalidUrlError(f"URL has no host: {url!r}")
    return url

# ─────────────────────────── normalization ────────────────────────
def origin(url: str) -> tuple[str, str, int | None]:
    """(scheme, host, port) with default ports made explicit."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    return scheme, (parts.hostname or "").lower(), parts.port or _DEFAULT_PORTS.get(scheme)

def same_origin(a: str, b: str) -> bool:
    return origin(a) == origin(b)

def normalize_url(url: str) -> str:
    """
    Canonical form used as cache key: lowercase scheme and host, default
    port dropped, empty path turned into '/', fragment removed.
    Query strings are kept verbatim.
    """
    url = validate_url(url)
    parts = urlsplit(urldefrag(url)[0])
    scheme, host, port = origin(url)
    netloc = host
    if parts.port and parts.port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{parts.port}"
    if parts.username:
        cred = parts.username + (f":{parts.password}" if parts.password else "")
        netloc = f"{cred}@{netloc}"
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))
