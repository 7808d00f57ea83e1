import pytest

from record_linkage.core.errors import ConfigurationError
from record_linkage.core.filters import JaccardPairFilter
from record_linkage.core.model import Attribute, Correspondence, MatchableValue


def _co_occurrences(first: Attribute, second: Attribute, values):
    return [
        Correspondence(MatchableValue(v, first), MatchableValue(v, second), 1.0)
        for v in values
    ]


@pytest.mark.parametrize("threshold", [-0.1, 1.0, 1.5])
def test_threshold_outside_unit_interval_is_rejected(threshold: float) -> None:
    with pytest.raises(ConfigurationError):
        JaccardPairFilter(threshold)


def test_overlap_is_scored_with_shared_values_as_causes() -> None:
    first, second = Attribute("a1"), Attribute("a2")
    keys1, keys2 = {"a", "b", "c", "d"}, {"a", "b", "e", "f"}

    correspondence = JaccardPairFilter(0.0).create_final_pair(
        first, second, keys1, keys2, _co_occurrences(first, second, ["b", "a"])
    )

    assert correspondence.similarity_score == pytest.approx(2 / 6)
    assert [c.first.identifier for c in correspondence.causal_correspondences] == ["a", "b"]


def test_zero_threshold_drops_disjoint_sets() -> None:
    first, second = Attribute("a1"), Attribute("a2")

    assert JaccardPairFilter(0.0).create_final_pair(first, second, {"a"}, {"b"}, []) is None
    assert JaccardPairFilter(0.0).create_final_pair(first, second, set(), set(), []) is None


def test_threshold_is_exclusive() -> None:
    first, second = Attribute("a1"), Attribute("a2")
    co_occurrences = _co_occurrences(first, second, ["a"])

    # similarity is exactly 0.5
    assert JaccardPairFilter(0.5).create_final_pair(
        first, second, {"a"}, {"a", "b"}, co_occurrences
    ) is None
    assert JaccardPairFilter(0.49).create_final_pair(
        first, second, {"a"}, {"a", "b"}, co_occurrences
    ) is not None
