"""
Pytest fixtures shared by the suite.

Nothing here touches the network: resolver, server and CLI tests swap the
fetcher used by ``crawler`` for an in-memory ``FakeWeb``.
"""

import sys
import threading
import time
from pathlib import Path

import pytest

# Add project root to path so tests import the top-level modules
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import crawler  # noqa: E402
from config import Settings  # noqa: E402
from errors import HttpStatusError  # noqa: E402
from fetcher import FetchResult  # noqa: E402


class FakeWeb:
    """
    Stand-in for ``fetcher.fetch_page``.

    Each URL maps to an HTML string, an exception instance, or a list of
    those consumed one per call. Unknown URLs answer HTTP 404. ``peak``
    records the most calls that were in flight at the same time.
    """

    def __init__(self) -> None:
        self.pages: dict = {}
        self.content_types: dict = {}
        self.delays: dict = {}
        self.redirects: dict = {}
        self.calls: list = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def add(self, url, outcome, content_type="text/html; charset=utf-8",
            delay=0.0, final_url=None):
        self.pages[url] = outcome
        self.content_types[url] = content_type
        if delay:
            self.delays[url] = delay
        if final_url:
            self.redirects[url] = final_url
        return self

    def count(self, url) -> int:
        return sum(1 for u in self.calls if u == url)

    def __call__(self, url, timeout=None, user_agent=None):
        with self._lock:
            self.calls.append(url)
            self.active += 1
            self.peak = max(self.peak, self.active)
            outcome = self.pages.get(url)
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        try:
            if url in self.delays:
                time.sleep(self.delays[url])
        finally:
            with self._lock:
                self.active -= 1
        if outcome is None:
            raise HttpStatusError(url, 404)
        if isinstance(outcome, BaseException):
            raise outcome
        return FetchResult(url=url, final_url=self.redirects.get(url, url), status=200,
                           content_type=self.content_types.get(url, "text/html"),
                           encoding="utf-8", content=outcome.encode("utf-8"))


@pytest.fixture
def fake_web(monkeypatch):
    web = FakeWeb()
    monkeypatch.setattr(crawler, "fetch_page", web)
    return web


@pytest.fixture
def settings():
    """Single-resource policy, no retry backoff."""
    return Settings(retry_backoff=0.0, fetch_retries=0)


@pytest.fixture
def crawl_settings():
    return Settings(crawl_policy="crawl", crawl_max_resources=10,
                    crawl_max_depth=1, crawl_concurrency=4,
                    retry_backoff=0.0, fetch_retries=0)


SAMPLE_HTML = '<html><body><p class="a">x</p><p class="a">y</p></body></html>'


@pytest.fixture
def sample_html():
    return SAMPLE_HTML
