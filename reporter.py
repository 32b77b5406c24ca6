# reporter.py — 2026-10-12
"""
Serialize a completed AnalysisResult into one of the export formats.
Renderers only read the result; they never mutate it.
"""

from __future__ import annotations

import csv
import html
import io
import json
from typing import Callable, Dict

from errors import UnsupportedFormatError
from stats import AnalysisResult, AttributeStats

# ─────────────────────────── tunables ────────────────────────────
TREE_TOP_VALUES = 5
HTML_TOP_VALUES = 10
CSV_HEADER      = ("Tag", "Count", "Attribute", "AttributeCount")
# ──────────────────────────────────────────────────────────────────

# ─────────────────────── ordering helpers ────────────────────────
def _by_count(items):
    """Most frequent first, name as tie-breaker."""
    return sorted(items, key=lambda s: (-s.count, s.name))

def _top_values(attr: AttributeStats, n: int):
    return sorted(attr.value_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]

# ─────────────────────────── formats ─────────────────────────────
def render_json(result: AnalysisResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


def render_csv(result: AnalysisResult) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(CSV_HEADER)
    tags = [result.tags[name] for name in sorted(result.tags)]
    for tag in tags:
        w.writerow((tag.name, tag.count, "", ""))
    for tag in tags:
        for name in sorted(tag.attributes):
            w.writerow((tag.name, tag.count, name, tag.attributes[name].count))
    return buf.getvalue()


def render_tree(result: AnalysisResult) -> str:
    lines = [f"📦 Files analyzed: {result.files_analyzed}",
             f"Max depth: {result.max_depth}"]
    tags = _by_count(result.tags.values())
    for i, tag in enumerate(tags):
        last_tag = i == len(tags) - 1
        lines.append(f"{'└── ' if last_tag else '├── '}{tag.name} ({tag.count})")
        indent = "    " if last_tag else "│   "
        attrs = _by_count(tag.attributes.values())
        for j, attr in enumerate(attrs):
            last_attr = j == len(attrs) - 1
            lines.append(f"{indent}{'└── ' if last_attr else '├── '}@{attr.name} ({attr.count})")
            val_indent = indent + ("    " if last_attr else "│   ")
            values = _top_values(attr, TREE_TOP_VALUES)
            for k, (value, n) in enumerate(values):
                branch = "└── " if k == len(values) - 1 else "├── "
                shown = value if value else '""'
                lines.append(f"{val_indent}{branch}{shown} ({n})")
    return "\n".join(lines) + "\n"


def render_flat(result: AnalysisResult) -> str:
    row = "{:<20} {:<10} {:<30} {:<10}"
    lines = [f"📦 Files analyzed: {result.files_analyzed}",
             row.format("TAG", "COUNT", "ATTRIBUTE", "ATTR COUNT"),
             "-" * 70]
    for tag in _by_count(result.tags.values()):
        attrs = _by_count(tag.attributes.values())
        if not attrs:
            lines.append(row.format(tag.name, tag.count, "-", "-"))
            continue
        for i, attr in enumerate(attrs):
            head = (tag.name, tag.count) if i == 0 else ("", "")
            lines.append(row.format(*head, attr.name, attr.count))
    return "\n".join(lines) + "\n"


def _dot_id(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'

def render_graph(result: AnalysisResult) -> str:
    """
    Graphviz DOT: one box per tag, one ellipse per (tag, attribute) pair,
    and a tag -> attribute edge labelled with how often they co-occur.
    """
    out = ["digraph tags {",
           "  rankdir=LR;",
           f"  label={_dot_id(f'files analyzed: {result.files_analyzed}, max depth: {result.max_depth}')};",
           "  node [fontname=\"Helvetica\"];"]
    for name in sorted(result.tags):
        tag = result.tags[name]
        out.append(f"  {_dot_id(name)} [shape=box, label={_dot_id(f'{name} ({tag.count})')}];")
    for name in sorted(result.tags):
        tag = result.tags[name]
        for attr_name in sorted(tag.attributes):
            attr = tag.attributes[attr_name]
            node = _dot_id(f"{name}@{attr_name}")
            out.append(f"  {node} [shape=ellipse, label={_dot_id('@' + attr_name)}];")
            out.append(f"  {_dot_id(name)} -> {node} [label=\"{attr.count}\"];")
    out.append("}")
    return "\n".join(out) + "\n"


def render_html(result: AnalysisResult) -> str:
    e = html.escape
    out = ["<!DOCTYPE html><html><head><meta charset=\"utf-8\"><style>",
           "body { font-family: sans-serif; }",
           "ul { list-style-type: none; }",
           ".tag { color: #2c3e50; font-weight: bold; }",
           ".attr { color: #e67e22; }",
           ".val { color: #27ae60; }",
           ".count { color: #7f8c8d; font-size: 0.9em; }",
           "</style></head><body>",
           "<h1>Analysis Report</h1>",
           f"<p>Files analyzed: {result.files_analyzed}</p>",
           f"<p>Max depth: {result.max_depth}</p>",
           "<ul>"]
    for tag in _by_count(result.tags.values()):
        out.append(f"<li><details><summary><span class='tag'>{e(tag.name)}</span> "
                   f"<span class='count'>({tag.count})</span></summary>")
        if tag.attributes:
            out.append("<ul>")
            for attr in _by_count(tag.attributes.values()):
                out.append(f"<li><details><summary><span class='attr'>@{e(attr.name)}</span> "
                           f"<span class='count'>({attr.count})</span></summary><ul>")
                for value, n in _top_values(attr, HTML_TOP_VALUES):
                    out.append(f"<li><span class='val'>{e(value)}</span> "
                               f"<span class='count'>({n})</span></li>")
                out.append("</ul></details></li>")
            out.append("</ul>")
        out.append("</details></li>")
    out.append("</ul></body></html>")
    return "\n".join(out) + "\n"

# ─────────────────────────── registry ────────────────────────────
RENDERERS: Dict[str, Callable[[AnalysisResult], str]] = {
    "json":  render_json,
    "csv":   render_csv,
    "tree":  render_tree,
    "flat":  render_flat,
    "graph": render_graph,
    "html":  render_html,
}

CONTENT_TYPES = {
    "json":  "application/json; charset=utf-8",
    "csv":   "text/csv; charset=utf-8",
    "tree":  "text/plain; charset=utf-8",
    "flat":  "text/plain; charset=utf-8",
    "graph": "text/vnd.graphviz; charset=utf-8",
    "html":  "text/html; charset=utf-8",
}

EXTENSIONS = {"json": "json", "csv": "csv", "graph": "dot", "html": "html",
              "tree": "txt", "flat": "txt"}


def check_format(fmt: str | None, allowed=tuple(RENDERERS)) -> str:
    """Normalize `fmt`, or raise UnsupportedFormatError. Touches no data."""
    key = (fmt or "").strip().lower()
    if key not in allowed or key not in RENDERERS:
        raise UnsupportedFormatError(fmt or "", allowed)
    return key


def render(result: AnalysisResult, fmt: str) -> str:
    return RENDERERS[check_format(fmt)](result)


def content_type(fmt: str) -> str:
    return CONTENT_TYPES[check_format(fmt)]
