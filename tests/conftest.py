from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from record_linkage.core.model import Attribute, DataSet, GoldStandard, Record


def make_dataset(
    provenance: str,
    attributes: Sequence[Attribute],
    rows: List[Tuple[str, Sequence[Optional[str]]]]
) -> DataSet:
    dataset = DataSet(provenance)
    for attribute in attributes:
        dataset.add_attribute(attribute)
    for record_id, values in rows:
        record = Record(record_id, provenance)
        for attribute, value in zip(attributes, values):
            record.set_value(attribute, value)
        dataset.add(record)
    return dataset


@pytest.fixture
def name_attribute() -> Attribute:
    return Attribute("name")


@pytest.fixture
def city_attribute() -> Attribute:
    return Attribute("city")


@pytest.fixture
def restaurants(name_attribute, city_attribute) -> Dict[str, object]:
    """Two small restaurant guides; every true pair sits in its own city."""
    attributes = [name_attribute, city_attribute]
    first = make_dataset("guide_a", attributes, [
        ("a1", ["alpha", "c1"]),
        ("a2", ["bravo", "c2"]),
        ("a3", ["charlie", "c3"]),
        ("a4", ["delta", "c4"]),
        ("a5", ["echo", "c5"]),
        ("a6", ["kilo", "c6"]),
        ("a7", ["Mike", "c7"]),
        ("a8", ["November", "c8"]),
        ("a9", ["oscar", "c9"]),
        ("a10", ["papa", "c10"]),
    ])
    second = make_dataset("guide_b", attributes, [
        ("b1", ["alpha", "c1"]),
        ("b2", ["bravx", "c2"]),
        ("b3", ["charlee", "c3"]),
        ("b4", ["omega", "c4"]),
        ("b5", ["golf", "c5"]),
        ("b6", ["lima", "c6"]),
        ("b7", ["mike", "c7"]),
        ("b8", ["Nov.", "c8"]),
        ("b9", ["oscars", "c9"]),
        ("b10", ["quebec", "c10"]),
    ])

    training = GoldStandard()
    for first_id, second_id, label in [
        ("a1", "b1", True), ("a2", "b2", True), ("a3", "b3", True),
        ("a4", "b4", False), ("a5", "b5", False), ("a6", "b6", False),
    ]:
        training.add(first_id, second_id, label)

    test = GoldStandard()
    for first_id, second_id, label in [
        ("a7", "b7", True), ("a8", "b8", True),
        ("a9", "b9", False), ("a10", "b10", False),
    ]:
        test.add(first_id, second_id, label)

    return {"first": first, "second": second, "training": training, "test": test}
