# memory.py — 2026-10-12
"""
In-process cache of completed analyses, so a `report` call followed by an
`export` call for the same URL fetches the remote site once.

Entries are frozen AnalysisResults keyed by the normalized URL and crawl
policy. Concurrent callers asking for the same key share one computation
(single flight); failures reach every waiter and are never cached.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from typing import Callable, Optional, Tuple

from config import Settings
from stats import AnalysisResult
from utils import normalize_url

log = logging.getLogger(__name__)


class ResultCache:
    """Single-flight TTL cache of analysis results."""

    def __init__(self, ttl: float = 900.0, max_entries: int = 128,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Tuple[float, AnalysisResult]]" = OrderedDict()
        self._inflight: dict[str, Future] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResultCache":
        return cls(ttl=settings.cache_ttl, max_entries=settings.cache_max_entries)

    # ---------- keys ----------
    @staticmethod
    def key_for(url: str, settings: Settings) -> str:
        key = f"{settings.crawl_policy}|{normalize_url(url)}"
        if settings.crawl:
            key += f"|{settings.crawl_max_resources}|{settings.crawl_max_depth}"
        return key

    # ---------- lookup ----------
    def get(self, key: str) -> Optional[AnalysisResult]:
        with self._lock:
            return self._get_locked(key)

    def _get_locked(self, key: str) -> Optional[AnalysisResult]:
        item = self._entries.get(key)
        if item is None:
            return None
        ts, result = item
        if self._clock() - ts > self.ttl:
            del self._entries[key]
            return None
        return result

    def _publish_locked(self, key: str, result: AnalysisResult) -> None:
        self._entries[key] = (self._clock(), result.freeze())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get_or_compute(self, key: str,
                       compute: Callable[[], AnalysisResult]) -> AnalysisResult:
        with self._lock:
            cached = self._get_locked(key)
            if cached is not None:
                log.debug("cache hit %s", key)
                return cached
            fut = self._inflight.get(key)
            owner = fut is None
            if owner:
                fut = self._inflight[key] = Future()

        if not owner:
            log.debug("waiting on in-flight analysis %s", key)
            return fut.result()

        try:
            result = compute()
        except BaseException as exc:
            with self._lock:
                del self._inflight[key]
            fut.set_exception(exc)
            raise
        with self._lock:
            self._publish_locked(key, result)
            del self._inflight[key]
        fut.set_result(result)
        return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
