# crawler.py  — resolves the resource set of one analysis and drives
#               fetch -> parse -> fold over it

from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass, field
from typing import List, Tuple

from config import Settings
from errors import (AnalysisError, FetchTimeoutError, InvalidUrlError,
                    NetworkError, NoResourcesAnalyzedError, ParseError)
from fetcher import fetch_page
from parser import TagNode, extract_links, parse_html
from stats import AnalysisResult, fold
from utils import normalize_url, same_origin, validate_url

log = logging.getLogger(__name__)

_RETRYABLE = (NetworkError, FetchTimeoutError)


@dataclass
class CrawlReport:
    seed: str
    attempted: int = 0
    analyzed: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, AnalysisError]] = field(default_factory=list)

    def summary(self) -> str:
        return (f"{self.seed}: {len(self.analyzed)} analyzed, "
                f"{len(self.skipped)} skipped of {self.attempted} attempted")


def _load(url: str, settings: Settings, linked: bool,
          want_links: bool) -> Tuple[TagNode, list[str], str]:
    """
    Fetch and parse one resource; returns (tree, links, final_url).
    Retries transport failures only.
    """
    attempt = 0
    while True:
        try:
            page = fetch_page(url, timeout=settings.fetch_timeout,
                              user_agent=settings.user_agent)
            break
        except _RETRYABLE as exc:
            if attempt >= settings.fetch_retries:
                raise
            attempt += 1
            log.info("retry %d/%d for %s after %s", attempt,
                     settings.fetch_retries, url, exc.code)
            time.sleep(settings.retry_backoff * attempt)

    # the seed is always parsed; discovered links must look like HTML
    if linked and not page.is_html:
        raise ParseError(f"{url} is not HTML ({page.content_type})")
    tree = parse_html(page.content, page.encoding)
    links = extract_links(tree, page.final_url) if want_links else []
    return tree, links, page.final_url


def crawl(url: str, settings: Settings | None = None) -> Tuple[AnalysisResult, CrawlReport]:
    """
    Analyze `url` (and, under the "crawl" policy, same-origin pages linked
    from it) into one frozen AnalysisResult.

    Resources of one link level are fetched and parsed concurrently; their
    trees are folded here, on the calling thread, as they complete. A failed
    resource is skipped. Raises NoResourcesAnalyzedError when nothing could
    be folded.
    """
    settings = settings or Settings()
    seed = validate_url(url)
    deadline = time.monotonic() + settings.request_deadline
    budget = settings.crawl_max_resources if settings.crawl else 1
    max_depth = settings.crawl_max_depth if settings.crawl else 0

    result = AnalysisResult()
    report = CrawlReport(seed)
    seen = {normalize_url(seed)}
    # links are kept when they share the origin the seed resolved to
    site = seed
    frontier = [seed]
    depth = 0

    pool = concurrent.futures.ThreadPoolExecutor(
        max_workers=settings.crawl_concurrency, thread_name_prefix="tagstat-fetch"
    )
    try:
        while frontier and report.attempted < budget:
            batch = frontier[:budget - report.attempted]
            want_links = depth < max_depth
            futures = {
                pool.submit(_load, u, settings, depth > 0, want_links): u
                for u in batch
            }
            report.attempted += len(batch)
            found: dict[str, list[str]] = {}
            handled = set()
            try:
                for fut in concurrent.futures.as_completed(
                        futures, timeout=max(0.0, deadline - time.monotonic())):
                    u = futures[fut]
                    handled.add(u)
                    try:
                        tree, links, final_url = fut.result()
                    except AnalysisError as exc:
                        log.warning("skipped %s: %s", u, exc)
                        report.skipped.append((u, exc))
                        continue
                    fold(result, tree)
                    report.analyzed.append(u)
                    found[u] = links
                    if depth == 0 and final_url != seed:
                        log.debug("%s resolved to %s", seed, final_url)
                        site = final_url
                        seen.add(normalize_url(final_url))
            except concurrent.futures.TimeoutError:
                # abandon whatever is still in flight; nothing of it is folded
                for fut, u in futures.items():
                    if u in handled:
                        continue
                    fut.cancel()
                    report.skipped.append(
                        (u, FetchTimeoutError(f"request deadline exceeded for {u}")))
                log.warning("deadline of %.1fs exceeded for %s",
                            settings.request_deadline, seed)
                break

            depth += 1
            if depth > max_depth:
                break
            # batch order, not completion order, so the resource set is stable
            frontier = []
            for u in batch:
                for link in found.get(u, ()):
                    try:
                        key = normalize_url(link)
                    except InvalidUrlError:
                        continue
                    if key not in seen and same_origin(link, site):
                        seen.add(key)
                        frontier.append(link)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    log.info(report.summary())
    if result.files_analyzed == 0:
        raise NoResourcesAnalyzedError(seed, report.skipped)
    return result.freeze(), report


def analyze_url(url: str, settings: Settings | None = None) -> AnalysisResult:
    result, _ = crawl(url, settings)
    return result
