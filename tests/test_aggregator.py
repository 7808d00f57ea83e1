import random

import pytest

from record_linkage.config.models import AggregationMode
from record_linkage.core.aggregator import CorrespondenceAggregator
from record_linkage.core.errors import ConfigurationError
from record_linkage.core.model import Correspondence, Record


def _snapshot(correspondences):
    return [
        (c.key, c.similarity_score, [cause.identifier for cause in c.causal_correspondences])
        for c in correspondences
    ]


@pytest.fixture
def elementary():
    records = {name: Record(name) for name in ("a1", "a2", "a3", "b1", "b2", "b3")}
    scores = [
        ("a1", "b1", 0.1), ("a1", "b1", 0.2), ("a1", "b1", 0.3),
        ("a2", "b2", 0.7), ("a2", "b2", 0.6),
        ("a3", "b3", 0.05), ("a1", "b2", 0.33),
    ]
    return [Correspondence(records[f], records[s], score) for f, s, score in scores]


def test_single_correspondence_is_kept_as_its_own_cause() -> None:
    correspondence = Correspondence(Record("a1"), Record("b1"), 0.42)

    [aggregated] = CorrespondenceAggregator(0.0).aggregate([correspondence])

    assert aggregated.similarity_score == 0.42
    assert aggregated.causal_correspondences == (correspondence,)


def test_sum_is_clamped_and_keeps_every_cause(elementary) -> None:
    result = {c.key: c for c in CorrespondenceAggregator(0.0).aggregate(elementary)}

    assert result[("a1", "b1")].similarity_score == pytest.approx(0.6)
    assert len(result[("a1", "b1")].causal_correspondences) == 3
    assert result[("a2", "b2")].similarity_score == 1.0


@pytest.mark.parametrize("mode,expected", [
    (AggregationMode.AVERAGE, 0.2),
    (AggregationMode.MAX, 0.3),
])
def test_other_combinations(elementary, mode, expected) -> None:
    result = {c.key: c for c in CorrespondenceAggregator(0.0, mode).aggregate(elementary)}

    assert result[("a1", "b1")].similarity_score == pytest.approx(expected)


def test_cutoff_drops_pairs_at_or_below_min_score(elementary) -> None:
    result = CorrespondenceAggregator(0.33).aggregate(elementary)

    assert sorted(c.key for c in result) == [("a1", "b1"), ("a2", "b2")]


def test_duplicate_causes_are_not_deduplicated() -> None:
    a1, b1 = Record("a1"), Record("b1")
    same = Correspondence(a1, b1, 0.25)

    [aggregated] = CorrespondenceAggregator(0.0).aggregate([same, same])

    assert aggregated.similarity_score == 0.5
    assert len(aggregated.causal_correspondences) == 2


@pytest.mark.parametrize("mode", list(AggregationMode))
def test_aggregation_does_not_depend_on_input_order(elementary, mode) -> None:
    aggregator = CorrespondenceAggregator(0.0, mode)
    expected = _snapshot(aggregator.aggregate(elementary))

    for seed in range(5):
        shuffled = list(elementary)
        random.Random(seed).shuffle(shuffled)
        assert _snapshot(aggregator.aggregate(shuffled)) == expected
        assert _snapshot(aggregator.aggregate(shuffled, worker_count=3)) == expected


def test_partial_results_merge_in_any_order(elementary) -> None:
    aggregator = CorrespondenceAggregator(0.0)
    left = aggregator.partial(elementary[:3])
    right = aggregator.partial(elementary[3:])

    assert _snapshot(aggregator.finish(aggregator.merge(left, right))) == _snapshot(
        aggregator.finish(aggregator.merge(right, left))
    )


def test_min_score_is_validated() -> None:
    with pytest.raises(ConfigurationError):
        CorrespondenceAggregator(1.0)


def test_nested_causes_do_not_depend_on_input_order() -> None:
    a1, b1, title, name = Record("a1"), Record("b1"), Record("title"), Record("name")

    def with_evidence(value: str) -> Correspondence:
        evidence = Correspondence(Record(value), Record(value), 1.0)
        schema = Correspondence(title, name, 0.5, (evidence,))
        return Correspondence(a1, b1, 0.4, (schema,))

    first, second = with_evidence("v1"), with_evidence("v2")
    aggregator = CorrespondenceAggregator(0.0)

    def nested(correspondences):
        [aggregated] = correspondences
        return [
            inner.identifier
            for cause in aggregated.causal_correspondences
            for inner in cause.causal_correspondences
        ]

    assert nested(aggregator.aggregate([first, second])) == ["v1~v1", "v2~v2"]
    assert nested(aggregator.aggregate([second, first])) == ["v1~v1", "v2~v2"]
