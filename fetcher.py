#fetcher.py
from __future__ import annotations
import logging
from dataclasses import dataclass

import requests

from config import DEFAULT_FETCH_TIMEOUT, DEFAULT_USER_AGENT
from errors import (FetchTimeoutError, HttpStatusError, InvalidUrlError,
                    NetworkError)
from utils import validate_url

log = logging.getLogger(__name__)

_HTML_TYPES = ("text/html", "application/xhtml+xml")


@dataclass
class FetchResult:
    url: str
    final_url: str
    status: int
    content_type: str
    encoding: str | None
    content: bytes

    @property
    def is_html(self) -> bool:
        # servers that omit the header are given the benefit of the doubt
        if not self.content_type:
            return True
        return any(t in self.content_type.lower() for t in _HTML_TYPES)


def fetch_page(url: str, timeout: float = DEFAULT_FETCH_TIMEOUT,
               user_agent: str | None = None) -> FetchResult:
    """
    Single GET, no retries. Raises InvalidUrlError, NetworkError,
    FetchTimeoutError or HttpStatusError.
    """
    url = validate_url(url)
    log.debug("FETCH %s", url)
    try:
        r = requests.get(url, headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
                         timeout=timeout)
    except requests.Timeout as exc:
        log.warning("timeout fetching %s: %s", url, exc)
        raise FetchTimeoutError(f"timed out fetching {url}") from exc
    except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema) as exc:
        raise InvalidUrlError(f"malformed URL {url!r}") from exc
    except requests.RequestException as exc:
        log.warning("network error fetching %s: %s", url, exc)
        raise NetworkError(f"could not reach {url}") from exc

    if not 200 <= r.status_code < 300:
        log.warning("HTTP %s from %s", r.status_code, url)
        raise HttpStatusError(url, r.status_code)

    # requests falls back to ISO-8859-1 for text/* without a charset; leave
    # the decision to the parser's own sniffing in that case
    encoding = r.encoding if "charset" in r.headers.get("content-type", "").lower() else None
    return FetchResult(url=url, final_url=r.url or url, status=r.status_code,
                       content_type=r.headers.get("content-type", ""),
                       encoding=encoding, content=r.content)
