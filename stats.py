# stats.py — 2026-10-12
"""
Aggregate model and the fold that fills it.

`fold` is the only writer of an AnalysisResult while a request is being
analyzed. Counts are plain sums and depth is a max, so folding the same
trees in any order gives the same result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from parser import TagNode, iter_nodes, parse_html


@dataclass
class AttributeStats:
    name: str
    count: int = 0
    value_counts: Dict[str, int] = field(default_factory=dict)

    def add(self, value: str, n: int = 1) -> None:
        self.count += n
        self.value_counts[value] = self.value_counts.get(value, 0) + n

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "count": self.count,
            "value_counts": {v: self.value_counts[v] for v in sorted(self.value_counts)},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AttributeStats":
        return cls(data["name"], int(data["count"]),
                   {str(k): int(v) for k, v in data.get("value_counts", {}).items()})


@dataclass
class TagStats:
    name: str
    count: int = 0
    attributes: Dict[str, AttributeStats] = field(default_factory=dict)

    def attribute(self, name: str) -> AttributeStats:
        stats = self.attributes.get(name)
        if stats is None:
            stats = self.attributes[name] = AttributeStats(name)
        return stats

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "count": self.count,
            "attributes": {a: self.attributes[a].to_dict() for a in sorted(self.attributes)},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TagStats":
        attrs = {k: AttributeStats.from_dict(v) for k, v in data.get("attributes", {}).items()}
        return cls(data["name"], int(data["count"]), attrs)


@dataclass
class AnalysisResult:
    tags: Dict[str, TagStats] = field(default_factory=dict)
    files_analyzed: int = 0
    max_depth: int = 0
    frozen: bool = field(default=False, compare=False, repr=False)

    def tag(self, name: str) -> TagStats:
        stats = self.tags.get(name)
        if stats is None:
            stats = self.tags[name] = TagStats(name)
        return stats

    def freeze(self) -> "AnalysisResult":
        self.frozen = True
        return self

    def total_elements(self) -> int:
        return sum(t.count for t in self.tags.values())

    def to_dict(self) -> dict:
        return {
            "tags": {t: self.tags[t].to_dict() for t in sorted(self.tags)},
            "files_analyzed": self.files_analyzed,
            "max_depth": self.max_depth,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisResult":
        return cls(
            tags={k: TagStats.from_dict(v) for k, v in data.get("tags", {}).items()},
            files_analyzed=int(data.get("files_analyzed", 0)),
            max_depth=int(data.get("max_depth", 0)),
        )


def fold(aggregate: AnalysisResult, tree: TagNode) -> AnalysisResult:
    """Add one resource's tree to `aggregate` in place and return it."""
    if aggregate.frozen:
        raise RuntimeError("cannot fold into a completed AnalysisResult")
    max_depth = aggregate.max_depth
    for node, depth in iter_nodes(tree):
        if depth > max_depth:
            max_depth = depth
        stats = aggregate.tag(node.name)
        stats.count += 1
        for name, value in node.attributes:
            stats.attribute(name).add(value)
    aggregate.max_depth = max_depth
    aggregate.files_analyzed += 1
    return aggregate


def merge(a: AnalysisResult, b: AnalysisResult) -> AnalysisResult:
    """Associative, commutative merge of two partial aggregates into a new one."""
    out = AnalysisResult()
    for part in (a, b):
        for tag in part.tags.values():
            dst = out.tag(tag.name)
            dst.count += tag.count
            for attr in tag.attributes.values():
                dst_attr = dst.attribute(attr.name)
                for value, n in attr.value_counts.items():
                    dst_attr.add(value, n)
        out.files_analyzed += part.files_analyzed
        out.max_depth = max(out.max_depth, part.max_depth)
    return out


def analyze_html(content: bytes | str, encoding: str | None = None) -> AnalysisResult:
    """Parse a single document and fold it into a fresh, frozen result."""
    return fold(AnalysisResult(), parse_html(content, encoding)).freeze()
