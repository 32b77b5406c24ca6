"""Tests for the statistics aggregator (stats.py)."""

import itertools
import json

import pytest

from parser import count_elements, parse_html
from reporter import render_json
from stats import AnalysisResult, analyze_html, fold, merge

DOCS = [
    '<html><body><div id="main" class="c"><p class="t">a</p><p>b</p></div></body></html>',
    '<ul><li class="x">1</li><li class="y">2</li><li class="x">3</li></ul>',
    '<div><div><div><span data-k="v">deep</span></div></div></div><img src="i.png" alt>',
]


@pytest.fixture
def trees():
    return [parse_html(d) for d in DOCS]


class TestScenario:
    """The two-paragraph reference document."""

    def test_counts_and_depth(self, sample_html) -> None:
        result = analyze_html(sample_html)
        p = result.tags["p"]
        assert p.count == 2
        assert p.attributes["class"].count == 2
        assert p.attributes["class"].value_counts == {"a": 2}
        assert result.max_depth == 3
        assert result.files_analyzed == 1
        assert result.frozen


class TestInvariants:
    """Properties that hold for any set of folded trees."""

    def test_tag_counts_sum_to_element_count(self, trees) -> None:
        result = AnalysisResult()
        for tree in trees:
            fold(result, tree)
        assert result.total_elements() == sum(count_elements(t) for t in trees)

    def test_attribute_count_matches_value_counts(self, trees) -> None:
        result = AnalysisResult()
        for tree in trees:
            fold(result, tree)
        for tag in result.tags.values():
            for attr in tag.attributes.values():
                assert attr.count == sum(attr.value_counts.values())

    def test_fold_order_does_not_matter(self) -> None:
        results = []
        for order in itertools.permutations(DOCS):
            result = AnalysisResult()
            for doc in order:
                fold(result, parse_html(doc))
            results.append(result)
        first = results[0]
        assert all(r == first for r in results)
        assert all(r.to_dict() == first.to_dict() for r in results)

    def test_max_depth_never_decreases(self, trees) -> None:
        result = AnalysisResult()
        seen = []
        for tree in sorted(trees, key=lambda t: -count_elements(t)):
            fold(result, tree)
            seen.append(result.max_depth)
        assert seen == sorted(seen)
        assert result.max_depth == 4

    def test_files_analyzed_counts_folds(self, trees) -> None:
        result = AnalysisResult()
        for i, tree in enumerate(trees, 1):
            assert fold(result, tree) is result
            assert result.files_analyzed == i


class TestFold:
    """Fold details."""

    def test_duplicate_attributes_each_counted(self) -> None:
        result = analyze_html('<a class="x" class="y">l</a>')
        cls = result.tags["a"].attributes["class"]
        assert cls.count == 2
        assert cls.value_counts == {"x": 1, "y": 1}

    def test_valueless_attribute_counted_under_empty_value(self) -> None:
        result = analyze_html("<input disabled><input disabled>")
        assert result.tags["input"].attributes["disabled"].value_counts == {"": 2}

    @pytest.mark.parametrize("markup", [
        "<ul><li>a<li>b<li>c</ul>",
        "<body><p>a<p>b<p>c</body>",
    ])
    def test_unclosed_siblings_do_not_deepen(self, markup) -> None:
        result = analyze_html(markup)
        assert result.max_depth == 2
        assert result.total_elements() == 4

    def test_frozen_result_rejects_fold(self, sample_html) -> None:
        result = analyze_html(sample_html)
        with pytest.raises(RuntimeError):
            fold(result, parse_html(sample_html))


class TestMerge:
    """Partial aggregates merged associatively."""

    def test_merge_equals_sequential_fold(self, trees) -> None:
        sequential = AnalysisResult()
        for tree in trees:
            fold(sequential, tree)
        partials = [fold(AnalysisResult(), t) for t in trees]
        left = merge(merge(partials[0], partials[1]), partials[2])
        right = merge(partials[0], merge(partials[2], partials[1]))
        assert left == sequential
        assert right == sequential

    def test_merge_does_not_mutate_inputs(self, trees) -> None:
        a = fold(AnalysisResult(), trees[0])
        before = a.to_dict()
        merge(a, fold(AnalysisResult(), trees[0]))
        assert a.to_dict() == before


class TestSerialization:
    """JSON shape and round trip."""

    def test_json_round_trip(self, trees) -> None:
        result = AnalysisResult()
        for tree in trees:
            fold(result, tree)
        back = AnalysisResult.from_dict(json.loads(render_json(result)))
        assert back == result
        assert back.to_dict() == result.to_dict()

    def test_top_level_field_order(self, sample_html) -> None:
        data = json.loads(render_json(analyze_html(sample_html)))
        assert list(data) == ["tags", "files_analyzed", "max_depth"]
        assert list(data["tags"]["p"]) == ["name", "count", "attributes"]
        assert list(data["tags"]["p"]["attributes"]["class"]) == ["name", "count", "value_counts"]
