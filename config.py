# config.py — 2026-10-12
"""
Runtime settings. Every tunable has a documented default and can be
overridden from the environment (``TAGSTAT_*``, plus ``PORT``).
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass

# ─────────────────────────── defaults ─────────────────────────────
DEFAULT_PORT              = 8080
DEFAULT_FETCH_TIMEOUT     = 10.0
DEFAULT_CRAWL_POLICY      = "single"
DEFAULT_CRAWL_CONCURRENCY = 6
DEFAULT_MAX_RESOURCES     = 40
DEFAULT_MAX_DEPTH         = 1
DEFAULT_FETCH_RETRIES     = 1
DEFAULT_RETRY_BACKOFF     = 1.5
DEFAULT_REQUEST_DEADLINE  = 60.0
DEFAULT_CACHE_TTL         = 900.0
DEFAULT_CACHE_MAX_ENTRIES = 128
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Safari/605.1.15"
)
CRAWL_POLICIES = ("single", "crawl")
ENV_PREFIX = "TAGSTAT_"
# ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Settings:
    port: int = DEFAULT_PORT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    crawl_policy: str = DEFAULT_CRAWL_POLICY
    crawl_concurrency: int = DEFAULT_CRAWL_CONCURRENCY
    crawl_max_resources: int = DEFAULT_MAX_RESOURCES
    crawl_max_depth: int = DEFAULT_MAX_DEPTH
    fetch_retries: int = DEFAULT_FETCH_RETRIES
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    request_deadline: float = DEFAULT_REQUEST_DEADLINE
    cache_ttl: float = DEFAULT_CACHE_TTL
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.crawl_policy not in CRAWL_POLICIES:
            raise ValueError(
                f"crawl_policy must be one of {CRAWL_POLICIES}, "
                f"got {self.crawl_policy!r}"
            )
        for name in ("crawl_concurrency", "crawl_max_resources",
                     "cache_max_entries"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        for name in ("crawl_max_depth", "fetch_retries"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        for name in ("fetch_timeout", "request_deadline"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")

    @property
    def crawl(self) -> bool:
        return self.crawl_policy == "crawl"

    def replace(self, **changes) -> "Settings":
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        values = {}
        port = env.get("PORT")
        if port:
            values["port"] = _coerce("port", port, int)
        for field in dataclasses.fields(cls):
            raw = env.get(ENV_PREFIX + field.name.upper())
            if raw is None or not raw.strip():
                continue
            values[field.name] = _coerce(field.name, raw.strip(), _TYPES[field.name])
        return cls(**values)


_TYPES = {
    "port": int,
    "fetch_timeout": float,
    "crawl_policy": str,
    "crawl_concurrency": int,
    "crawl_max_resources": int,
    "crawl_max_depth": int,
    "fetch_retries": int,
    "retry_backoff": float,
    "request_deadline": float,
    "cache_ttl": float,
    "cache_max_entries": int,
    "user_agent": str,
}


def _coerce(name: str, raw: str, typ):
    if typ is str:
        return raw.lower() if name == "crawl_policy" else raw
    try:
        return typ(raw)
    except ValueError:
        raise ValueError(f"invalid value for {name}: {raw!r}") from None
