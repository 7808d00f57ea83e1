"""Records, schemas, correspondences and evaluation results."""

from dataclasses import dataclass, field
from typing import (
    Any, Dict, Iterable, Iterator, List, Optional, Protocol, Set, Tuple,
    runtime_checkable
)

from record_linkage.core.errors import ConfigurationError, DuplicateIdError


@runtime_checkable
class Matchable(Protocol):
    """Anything that can take part in blocking and matching."""

    @property
    def identifier(self) -> str:
        ...

    @property
    def provenance(self) -> str:
        ...


class Attribute:
    """
    A schema element.

    Equality is by object identity so that equally named attributes of
    different datasets stay distinct. Positions within a schema are kept by
    the DataSet, so one attribute can be shared by several datasets.
    """

    __slots__ = ('name', '_identifier', 'provenance')

    def __init__(
        self,
        name: str,
        identifier: Optional[str] = None,
        provenance: str = ''
    ):
        self.name = name
        self._identifier = identifier or name
        self.provenance = provenance

    @property
    def identifier(self) -> str:
        return self._identifier

    def __repr__(self) -> str:
        return f"Attribute({self._identifier!r})"

    def __str__(self) -> str:
        return self._identifier


class Record:
    """A record with an id, its dataset of origin and attribute values."""

    __slots__ = ('_identifier', '_provenance', 'values')

    def __init__(
        self,
        identifier: str,
        provenance: str = '',
        values: Optional[Dict[Attribute, Optional[str]]] = None
    ):
        self._identifier = identifier
        self._provenance = provenance
        self.values: Dict[Attribute, Optional[str]] = dict(values or {})

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def provenance(self) -> str:
        return self._provenance

    def set_value(self, attribute: Attribute, value: Optional[str]) -> None:
        self.values[attribute] = value

    def get_value(self, attribute: Attribute) -> Optional[str]:
        return self.values.get(attribute)

    def has_value(self, attribute: Attribute) -> bool:
        """True if the attribute carries a value (an empty string counts)."""
        return self.values.get(attribute) is not None

    def __repr__(self) -> str:
        return f"Record({self._identifier!r})"

    def __str__(self) -> str:
        return self._identifier


@dataclass(frozen=True)
class MatchableValue:
    """An attribute value used as evidence during schema matching."""
    value: str
    attribute: Attribute
    provenance: str = ''

    @property
    def identifier(self) -> str:
        return self.value


class DataSet:
    """A schema plus the records that conform to it."""

    def __init__(self, provenance: str = ''):
        self.provenance = provenance
        self._attributes: List[Attribute] = []
        self._ordinals: Dict[Attribute, int] = {}
        self._records: Dict[str, Record] = {}

    @property
    def schema(self) -> List[Attribute]:
        return list(self._attributes)

    def add_attribute(self, attribute: Attribute) -> Attribute:
        """Register an attribute at the next position of this schema."""
        if attribute not in self._ordinals:
            self._ordinals[attribute] = len(self._attributes)
            self._attributes.append(attribute)
        return attribute

    def has_attribute(self, attribute: Attribute) -> bool:
        return attribute in self._ordinals

    def ordinal(self, attribute: Attribute) -> int:
        """
        Position of an attribute in this schema.

        Raises:
            ConfigurationError: If the attribute is not registered
        """
        self.require_attributes([attribute])
        return self._ordinals[attribute]

    def require_attributes(self, attributes: Iterable[Attribute]) -> None:
        """
        Ensure all attributes are registered in the schema.

        Raises:
            ConfigurationError: If any attribute is not part of the schema
        """
        missing = [a.identifier for a in attributes if not self.has_attribute(a)]
        if missing:
            raise ConfigurationError(
                f"Attributes {missing} are not registered in dataset "
                f"{self.provenance!r}"
            )

    def add(self, record: Record) -> None:
        """
        Add a record.

        Raises:
            DuplicateIdError: If a record with the same id already exists
        """
        if record.identifier in self._records:
            raise DuplicateIdError(record.identifier, self.provenance)
        self._records[record.identifier] = record

    def get_record(self, identifier: str) -> Optional[Record]:
        return self._records.get(identifier)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return (
            f"DataSet({self.provenance!r}, attributes={len(self._attributes)}, "
            f"records={len(self._records)})"
        )


@dataclass(frozen=True)
class Correspondence:
    """A scored match between two matchables, with its causal evidence."""
    first: Matchable
    second: Matchable
    similarity_score: float
    causal_correspondences: Tuple['Correspondence', ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.first.identifier, self.second.identifier)

    @property
    def identifier(self) -> str:
        return f"{self.first.identifier}~{self.second.identifier}"

    def sort_key(self) -> Tuple[Any, ...]:
        """Total order over correspondences, including their nested causes."""
        return (
            self.first.identifier,
            self.second.identifier,
            self.similarity_score,
            tuple(c.sort_key() for c in self.causal_correspondences)
        )

    def __repr__(self) -> str:
        return (
            f"Correspondence({self.first.identifier!r} <-> "
            f"{self.second.identifier!r}, {self.similarity_score:.6f}, "
            f"causal={len(self.causal_correspondences)})"
        )


@dataclass
class GoldStandard:
    """
    Labeled reference pairs.

    Lookups ignore orientation: (a, b) and (b, a) are the same pair. Pairs
    that are not listed are unknown, not negative.
    """
    positive: Set[Tuple[str, str]] = field(default_factory=set)
    negative: Set[Tuple[str, str]] = field(default_factory=set)

    def __post_init__(self):
        # each pair is stored in one orientation only
        positive, negative = self.positive, self.negative
        self.positive, self.negative = set(), set()
        for first_id, second_id in sorted(positive):
            self.add_positive(first_id, second_id)
        for first_id, second_id in sorted(negative):
            self.add_negative(first_id, second_id)

    def add_positive(self, first_id: str, second_id: str) -> None:
        if not self.contains_positive(first_id, second_id):
            self.positive.add((first_id, second_id))

    def add_negative(self, first_id: str, second_id: str) -> None:
        if not self.contains_negative(first_id, second_id):
            self.negative.add((first_id, second_id))

    def add(self, first_id: str, second_id: str, label: bool) -> None:
        if label:
            self.add_positive(first_id, second_id)
        else:
            self.add_negative(first_id, second_id)

    def contains_positive(self, first_id: str, second_id: str) -> bool:
        return (
            (first_id, second_id) in self.positive
            or (second_id, first_id) in self.positive
        )

    def contains_negative(self, first_id: str, second_id: str) -> bool:
        return (
            (first_id, second_id) in self.negative
            or (second_id, first_id) in self.negative
        )

    def label(self, first_id: str, second_id: str) -> Optional[bool]:
        """Return True/False for labeled pairs and None for unknown ones."""
        if self.contains_positive(first_id, second_id):
            return True
        if self.contains_negative(first_id, second_id):
            return False
        return None

    def __len__(self) -> int:
        return len(self.positive) + len(self.negative)


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator > 0 else 0.0


@dataclass(frozen=True)
class Performance:
    """Counts and derived quality measures of a matching result."""
    true_positives: int
    false_positives: int
    false_negatives: int

    @property
    def precision(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_positives)

    @property
    def recall(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if p + r > 0 else 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'true_positives': self.true_positives,
            'false_positives': self.false_positives,
            'false_negatives': self.false_negatives,
            'precision': self.precision,
            'recall': self.recall,
            'f1': self.f1,
        }
