import pytest

from record_linkage.core.errors import ConfigurationError, DuplicateIdError
from record_linkage.core.model import (
    Attribute, Correspondence, DataSet, GoldStandard, Performance, Record
)


def test_attributes_are_equal_by_identity_only() -> None:
    first = Attribute("name")
    second = Attribute("name")

    assert first != second
    assert first == first
    assert len({first, second}) == 2


def test_dataset_assigns_ordinals_and_rejects_duplicate_ids() -> None:
    name, city = Attribute("name"), Attribute("city")
    dataset = DataSet("guide")
    dataset.add_attribute(name)
    dataset.add_attribute(city)
    dataset.add_attribute(name)
    dataset.add(Record("r1", "guide"))

    assert (dataset.ordinal(name), dataset.ordinal(city)) == (0, 1)
    assert dataset.schema == [name, city]
    with pytest.raises(DuplicateIdError):
        dataset.add(Record("r1", "guide"))
    assert len(dataset) == 1


def test_dataset_iteration_is_restartable() -> None:
    dataset = DataSet("guide")
    for record_id in ("r1", "r2", "r3"):
        dataset.add(Record(record_id, "guide"))

    assert [r.identifier for r in dataset] == ["r1", "r2", "r3"]
    assert [r.identifier for r in dataset] == ["r1", "r2", "r3"]


def test_require_attributes_reports_unregistered_attribute() -> None:
    dataset = DataSet("guide")
    dataset.add_attribute(Attribute("name"))

    with pytest.raises(ConfigurationError):
        dataset.require_attributes([Attribute("name")])


def test_absent_value_differs_from_empty_string() -> None:
    name = Attribute("name")
    record = Record("r1")

    assert not record.has_value(name)
    record.set_value(name, "")
    assert record.has_value(name)
    record.set_value(name, None)
    assert not record.has_value(name)


def test_gold_standard_ignores_orientation_and_keeps_unknown_pairs_unknown() -> None:
    gold_standard = GoldStandard()
    gold_standard.add_positive("a1", "b1")
    gold_standard.add_negative("a2", "b2")

    assert gold_standard.label("b1", "a1") is True
    assert gold_standard.label("a2", "b2") is False
    assert gold_standard.label("a3", "b3") is None
    assert len(gold_standard) == 2


def test_performance_guards_zero_denominators() -> None:
    performance = Performance(0, 0, 0)

    assert performance.precision == 0.0
    assert performance.recall == 0.0
    assert performance.f1 == 0.0


@pytest.mark.parametrize("tp,fp,fn", [(0, 3, 2), (5, 0, 0), (3, 1, 7), (0, 0, 4)])
def test_performance_measures_stay_in_unit_interval(tp: int, fp: int, fn: int) -> None:
    performance = Performance(tp, fp, fn)

    for value in (performance.precision, performance.recall, performance.f1):
        assert 0.0 <= value <= 1.0
    if tp + fp == 0:
        assert performance.precision == 0.0
    assert set(performance.to_dict()) == {
        "true_positives", "false_positives", "false_negatives", "precision", "recall", "f1"
    }


def test_correspondence_identifier_joins_both_ids() -> None:
    correspondence = Correspondence(Record("a1"), Record("b1"), 0.5)

    assert correspondence.key == ("a1", "b1")
    assert correspondence.identifier == "a1~b1"
    assert correspondence.causal_correspondences == ()


def test_shared_attribute_keeps_its_position_in_each_dataset() -> None:
    name, city = Attribute("name"), Attribute("city")
    first, second = DataSet("a"), DataSet("b")
    first.add_attribute(name)
    first.add_attribute(city)
    second.add_attribute(city)
    second.add_attribute(name)

    assert (first.ordinal(name), first.ordinal(city)) == (0, 1)
    assert (second.ordinal(name), second.ordinal(city)) == (1, 0)
    assert name.provenance == ""
    with pytest.raises(ConfigurationError):
        DataSet("c").ordinal(name)


def test_gold_standard_stores_each_pair_once() -> None:
    gold = GoldStandard()
    gold.add_positive("a1", "b1")
    gold.add_positive("b1", "a1")
    gold.add_negative("a2", "b2")
    gold.add_negative("b2", "a2")

    assert gold.positive == {("a1", "b1")}
    assert len(gold) == 2
    assert len(GoldStandard(positive={("a1", "b1"), ("b1", "a1")})) == 1


def test_sort_key_orders_by_nested_causes() -> None:
    a1, b1 = Record("a1"), Record("b1")
    first = Correspondence(a1, b1, 0.4, (Correspondence(Record("v1"), Record("v1"), 1.0),))
    second = Correspondence(a1, b1, 0.4, (Correspondence(Record("v2"), Record("v2"), 1.0),))

    assert sorted([second, first], key=Correspondence.sort_key) == [first, second]
