#parser.py
"""
Markup parser: raw HTML -> TagNode tree.

BeautifulSoup with the stdlib-backed ``html.parser`` builder is used because
it never invents elements (no implied <html>/<head>/<body>), which keeps the
tag counts equal to what is literally in the source. Unknown tags are kept,
unclosed tags end at end of input or at the first sibling that cannot
nest inside them (implied end tags for p, li, dt, dd, option and table rows
and cells).
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple
from urllib.parse import urldefrag, urljoin, urlsplit

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from errors import ParseError
from utils import ALLOWED_SCHEMES, same_origin

DOCUMENT = "#document"

# open element -> start tags that end it implicitly
_P_CLOSERS = frozenset({
    "address", "article", "aside", "blockquote", "dd", "details", "div", "dl",
    "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2",
    "h3", "h4", "h5", "h6", "header", "hgroup", "hr", "li", "main", "menu",
    "nav", "ol", "p", "pre", "section", "table", "ul",
})
_TABLE_SECTIONS = frozenset({"thead", "tbody", "tfoot"})
_IMPLIED_END = {
    "p": _P_CLOSERS,
    "li": frozenset({"li"}),
    "dt": frozenset({"dt", "dd"}),
    "dd": frozenset({"dt", "dd"}),
    "option": frozenset({"option", "optgroup"}),
    "optgroup": frozenset({"optgroup"}),
    "tr": _TABLE_SECTIONS | {"tr"},
    "td": _TABLE_SECTIONS | {"tr", "td", "th"},
    "th": _TABLE_SECTIONS | {"tr", "td", "th"},
    "thead": _TABLE_SECTIONS,
    "tbody": _TABLE_SECTIONS,
}
# start tag -> open elements it may end
_ENDS: dict[str, frozenset] = {}
for _open, _closers in _IMPLIED_END.items():
    for _closer in _closers:
        _ENDS[_closer] = _ENDS.get(_closer, frozenset()) | {_open}

# an implied end never reaches past one of these
_SCOPE = frozenset({
    "applet", "body", "button", "caption", "datalist", "dl", "html",
    "marquee", "object", "ol", "select", "table", "td", "template", "th", "ul",
})


@dataclass
class TagNode:
    name: str
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    children: List["TagNode"] = field(default_factory=list)

    @property
    def is_document(self) -> bool:
        return self.name == DOCUMENT


class _Repeated(list):
    """Values of an attribute that appeared more than once on one tag."""


def _keep_duplicates(attrs: dict, key: str, value: str) -> None:
    prev = attrs[key]
    if isinstance(prev, _Repeated):
        prev.append(value)
    else:
        attrs[key] = _Repeated([prev, value])


def _attr_pairs(attrs: dict) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for name, value in attrs.items():
        name = name.lower()
        if isinstance(value, _Repeated):
            pairs.extend((name, "" if v is None else v) for v in value)
        else:
            pairs.append((name, "" if value is None else value))
    return pairs


class _TreeBuilder:
    """
    Rebuilds the soup as TagNodes from start/end events, ending open
    elements the way HTML's implied end tags do: an open <li> ends at the
    next <li>, an open <p> at the next block, a <td> at the next cell or row.
    The ``html.parser`` builder nests such siblings inside each other.
    """

    def __init__(self) -> None:
        self.root = TagNode(DOCUMENT)
        self._open: List[TagNode] = [self.root]
        self._names: Counter = Counter()
        self._nodes: dict = {}

    def start(self, el: Tag) -> None:
        name = el.name.lower()
        self._end_implied(name)
        node = TagNode(name, _attr_pairs(el.attrs))
        self._open[-1].children.append(node)
        self._open.append(node)
        self._names[name] += 1
        self._nodes[id(el)] = node

    def end(self, el: Tag) -> None:
        node = self._nodes.pop(id(el))
        # already ended implicitly when the loop finds nothing
        for i in range(len(self._open) - 1, 0, -1):
            if self._open[i] is node:
                self._truncate(i)
                return

    def _end_implied(self, name: str) -> None:
        candidates = _ENDS.get(name)
        while candidates and any(self._names[n] for n in candidates):
            for i in range(len(self._open) - 1, 0, -1):
                open_name = self._open[i].name
                if open_name in candidates:
                    self._truncate(i)
                    break
                if open_name in _SCOPE:
                    return
            else:
                return

    def _truncate(self, i: int) -> None:
        for node in self._open[i:]:
            self._names[node.name] -= 1
        del self._open[i:]


def _tag_events(soup: BeautifulSoup) -> Iterator[Tuple[Tag, bool]]:
    """(element, is_start) pairs in document order, without recursion."""
    pending = [(c, True) for c in reversed(soup.contents) if isinstance(c, Tag)]
    while pending:
        el, is_start = pending.pop()
        yield el, is_start
        if is_start:
            pending.append((el, False))
            pending.extend((c, True) for c in reversed(el.contents)
                           if isinstance(c, Tag))


def parse_html(content: bytes | str, encoding: str | None = None) -> TagNode:
    """
    Parse `content` into a document node whose children are the top-level
    elements. Raises ParseError when no element can be recovered.
    """
    if content is None or not content.strip():
        raise ParseError("empty document")

    kwargs = dict(multi_valued_attributes=None,
                  on_duplicate_attribute=_keep_duplicates)
    if isinstance(content, bytes) and encoding:
        kwargs["from_encoding"] = encoding
    try:
        soup = BeautifulSoup(content, "html.parser", **kwargs)
    except ParserRejectedMarkup as exc:
        raise ParseError(f"markup rejected: {exc}") from exc

    builder = _TreeBuilder()
    for el, is_start in _tag_events(soup):
        if is_start:
            builder.start(el)
        else:
            builder.end(el)
    soup.decompose()
    root = builder.root

    if not root.children:
        raise ParseError("no elements found")
    return root


def iter_nodes(tree: TagNode) -> Iterator[Tuple[TagNode, int]]:
    """Depth-first pre-order walk yielding (node, depth); elements start at 1."""
    start = tree.children if tree.is_document else [tree]
    stack = [(child, 1) for child in reversed(start)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if node.children:
            stack.extend((c, depth + 1) for c in reversed(node.children))


def count_elements(tree: TagNode) -> int:
    return sum(1 for _ in iter_nodes(tree))


def extract_links(tree: TagNode, base_url: str) -> list[str]:
    """Same-origin absolute links from <a href>, fragments removed, in order."""
    base = base_url
    for node, _ in iter_nodes(tree):
        if node.name == "base":
            href = dict(node.attributes).get("href", "").strip()
            if href:
                base = urljoin(base_url, href)
            break

    seen, links = set(), []
    for node, _ in iter_nodes(tree):
        if node.name != "a":
            continue
        for name, value in node.attributes:
            if name != "href" or not value.strip():
                continue
            try:
                href = urldefrag(urljoin(base, value.strip()))[0]
                if urlsplit(href).scheme.lower() not in ALLOWED_SCHEMES:
                    continue
                if not same_origin(href, base_url) or href in seen:
                    continue
            except ValueError:          # unparseable href, e.g. bad port
                continue
            seen.add(href)
            links.append(href)
    return links
