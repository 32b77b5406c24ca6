# server.py — 2026-10-12
"""
Thin HTTP shim over the engine.

    GET /api/report/<url>?format=json|tree|flat
    GET /api/export/<url>?format=csv|json|graph|html

<url> is the literal target URL (scheme, path and its own query string),
not percent-encoded.
"""

from __future__ import annotations

import logging
import re

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

import crawler
import reporter
from config import Settings
from errors import AnalysisError
from memory import ResultCache
from stats import AnalysisResult
from utils import validate_url

log = logging.getLogger(__name__)

REPORT_FORMATS = ("json", "tree", "flat")
EXPORT_FORMATS = ("csv", "json", "graph", "html")

# some proxies squash "//" in paths: "https:/example.com"
_SQUASHED_SCHEME = re.compile(r"^(https?):/(?!/)", re.I)


def _target_url(captured: str) -> str:
    """Rebuild the target URL from the captured path and the query string."""
    url = _SQUASHED_SCHEME.sub(r"\1://", captured)
    raw_qs = request.query_string.decode("utf-8", "replace")
    kept = [p for p in raw_qs.split("&") if p and p.split("=", 1)[0] != "format"]
    if kept:
        url += ("&" if "?" in url else "?") + "&".join(kept)
    return validate_url(url)


def create_app(settings: Settings | None = None,
               cache: ResultCache | None = None) -> Flask:
    settings = settings or Settings.from_env()
    cache = cache or ResultCache.from_settings(settings)

    app = Flask(__name__)
    app.url_map.merge_slashes = False
    app.config["TAGSTAT_SETTINGS"] = settings
    app.extensions["tagstat_cache"] = cache

    def _analyze(url: str) -> AnalysisResult:
        key = ResultCache.key_for(url, settings)
        return cache.get_or_compute(key, lambda: crawler.analyze_url(url, settings))

    def _rendered(result: AnalysisResult, fmt: str, **headers) -> Response:
        body = reporter.render(result, fmt)
        resp = Response(body, status=200, content_type=reporter.content_type(fmt))
        for k, v in headers.items():
            resp.headers[k.replace("_", "-")] = v
        return resp

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    @app.get("/api/report/<path:target>")
    def report(target: str):
        # caller errors are raised before any I/O
        fmt = reporter.check_format(request.args.get("format") or "json", REPORT_FORMATS)
        url = _target_url(target)
        log.info("report %s (%s)", url, fmt)
        return _rendered(_analyze(url), fmt)

    @app.get("/api/export/<path:target>")
    def export(target: str):
        fmt = reporter.check_format(request.args.get("format"), EXPORT_FORMATS)
        url = _target_url(target)
        log.info("export %s (%s)", url, fmt)
        return _rendered(
            _analyze(url), fmt,
            Content_Disposition=f'attachment; filename="report.{reporter.EXTENSIONS[fmt]}"',
        )

    @app.errorhandler(AnalysisError)
    def analysis_error(exc: AnalysisError):
        log.info("%s -> %s %s", request.path, exc.status, exc.code)
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(Exception)
    def unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        log.exception("unhandled error for %s", request.path)
        return jsonify({"ok": False, "error": "internal_error",
                        "message": "internal server error"}), 500

    @app.after_request
    def cors(resp: Response) -> Response:
        resp.headers["Access-Control-Allow-Origin"] = "*"
        resp.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        resp.headers["Access-Control-Allow-Headers"] = "*"
        return resp

    return app
