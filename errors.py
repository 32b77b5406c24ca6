# errors.py — 2026-10-12
"""
Error taxonomy shared by the engine, the HTTP shim and the CLI.

Each error carries a short machine-readable ``code`` and the HTTP
``status`` the boundary layer answers with.
"""

from __future__ import annotations


class AnalysisError(Exception):
    code = "analysis_error"
    status = 500

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code, "message": str(self)}


class InvalidUrlError(AnalysisError):
    code = "invalid_url"
    status = 400


class UnsupportedFormatError(AnalysisError):
    code = "unsupported_format"
    status = 400

    def __init__(self, fmt: str, allowed=()) -> None:
        self.format = fmt
        self.allowed = tuple(allowed)
        msg = f"unsupported format {fmt!r}"
        if self.allowed:
            msg += f" (expected one of: {', '.join(self.allowed)})"
        super().__init__(msg)


# ─────────────────────────── transport ────────────────────────────
class FetchError(AnalysisError):
    code = "fetch_error"
    status = 502


class NetworkError(FetchError):
    code = "network_error"


class FetchTimeoutError(FetchError):
    code = "timeout"
    status = 504


class HttpStatusError(FetchError):
    code = "http_error"

    def __init__(self, url: str, status_code: int) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"{url} answered HTTP {status_code}")


# ─────────────────────────── content ──────────────────────────────
class ParseError(AnalysisError):
    code = "parse_error"
    status = 502


class NoResourcesAnalyzedError(AnalysisError):
    code = "no_resources_analyzed"

    def __init__(self, url: str, failures=()) -> None:
        self.url = url
        self.failures = list(failures)      # [(url, exc)]
        super().__init__(
            f"no resource could be analyzed for {url} "
            f"({len(self.failures)} failed)"
        )

    @property
    def status(self) -> int:                # type: ignore[override]
        if self.failures and all(
            isinstance(exc, FetchTimeoutError) for _, exc in self.failures
        ):
            return 504
        return 502
