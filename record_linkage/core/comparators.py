"""Similarity functions for attribute values and records."""

from abc import ABC, abstractmethod
from typing import AbstractSet, Hashable, Optional, Set

import Levenshtein
import regex as re

from record_linkage.config.models import TokenGranularity, validate_threshold
from record_linkage.core.errors import ConfigurationError, MissingAttributeError
from record_linkage.core.model import Attribute, Record
from record_linkage.core.preprocessor import Preprocessor

_WORD_PATTERN = re.compile(r'[\p{L}\p{N}]+')


def jaccard(first: AbstractSet[Hashable], second: AbstractSet[Hashable]) -> float:
    """
    Jaccard similarity of two sets.

    Two empty sets have similarity 0.0: no evidence is not a match.
    """
    union = len(first | second)
    if union == 0:
        return 0.0
    return len(first & second) / union


class SimilarityMeasure(ABC):
    """
    Similarity between two attribute values.

    Missing values (None) on either side always give 0.0.
    """

    def __init__(self, lower_case: bool = False):
        self.lower_case = lower_case

    def _normalize(self, value: str) -> str:
        return value.lower() if self.lower_case else value

    def compare(self, first: Optional[str], second: Optional[str]) -> float:
        if first is None or second is None:
            return 0.0
        return self._similarity(
            self._normalize(str(first)),
            self._normalize(str(second))
        )

    @abstractmethod
    def _similarity(self, first: str, second: str) -> float:
        pass


class EqualSimilarity(SimilarityMeasure):
    """1.0 for equal values, 0.0 otherwise."""

    def _similarity(self, first: str, second: str) -> float:
        return 1.0 if first == second else 0.0


class LevenshteinSimilarity(SimilarityMeasure):
    """Edit distance normalized by the longer value."""

    def _similarity(self, first: str, second: str) -> float:
        longest = max(len(first), len(second))
        if longest == 0:
            return 1.0
        return 1 - Levenshtein.distance(first, second) / longest


class TokenizingJaccardSimilarity(SimilarityMeasure):
    """Jaccard similarity over word tokens or character n-grams."""

    def __init__(
        self,
        lower_case: bool = False,
        granularity: TokenGranularity = TokenGranularity.WORD,
        ngram_size: int = 3
    ):
        super().__init__(lower_case)
        if ngram_size < 1:
            raise ConfigurationError(f"ngram_size must be positive, got {ngram_size}")
        self.granularity = TokenGranularity(granularity)
        self.ngram_size = ngram_size

    def tokenize(self, value: str) -> Set[str]:
        if self.granularity == TokenGranularity.WORD:
            return set(_WORD_PATTERN.findall(value))
        if len(value) <= self.ngram_size:
            return {value} if value else set()
        return {
            value[i:i + self.ngram_size]
            for i in range(len(value) - self.ngram_size + 1)
        }

    def _similarity(self, first: str, second: str) -> float:
        return jaccard(self.tokenize(first), self.tokenize(second))


class RecordComparator(ABC):
    """
    Compares one attribute of a record with one attribute of another.

    Absent values give a similarity of 0.0. In strict mode a record whose
    values do not include the attribute at all raises MissingAttributeError.
    """

    def __init__(
        self,
        attribute1: Attribute,
        attribute2: Optional[Attribute] = None,
        preprocessor: Optional[Preprocessor] = None,
        strict: bool = False
    ):
        self.attribute1 = attribute1
        self.attribute2 = attribute2 or attribute1
        self.preprocessor = preprocessor
        self.strict = strict

    @property
    @abstractmethod
    def measure(self) -> SimilarityMeasure:
        pass

    @property
    def name(self) -> str:
        return (
            f"{type(self).__name__}"
            f"({self.attribute1.identifier}~{self.attribute2.identifier})"
        )

    def _value(self, record: Record, attribute: Attribute) -> Optional[str]:
        if self.strict and attribute not in record.values:
            raise MissingAttributeError(attribute.identifier, record.identifier)
        value = record.get_value(attribute)
        if value is not None and self.preprocessor is not None:
            value = self.preprocessor.process(value)
        return value

    def compare(self, record1: Record, record2: Record) -> float:
        return self.measure.compare(
            self._value(record1, self.attribute1),
            self._value(record2, self.attribute2)
        )

    def __repr__(self) -> str:
        return self.name


class RecordComparatorEqual(RecordComparator):
    """Exact (or case-insensitive) equality of two attribute values."""

    def __init__(
        self,
        attribute1: Attribute,
        attribute2: Optional[Attribute] = None,
        lower_case: bool = False,
        **kwargs
    ):
        super().__init__(attribute1, attribute2, **kwargs)
        self._measure = EqualSimilarity(lower_case=lower_case)

    @property
    def measure(self) -> SimilarityMeasure:
        return self._measure


class RecordComparatorLevenshtein(RecordComparator):
    """Normalized Levenshtein similarity of two attribute values."""

    def __init__(
        self,
        attribute1: Attribute,
        attribute2: Optional[Attribute] = None,
        lower_case: bool = False,
        **kwargs
    ):
        super().__init__(attribute1, attribute2, **kwargs)
        self._measure = LevenshteinSimilarity(lower_case=lower_case)

    @property
    def measure(self) -> SimilarityMeasure:
        return self._measure


class RecordComparatorJaccard(RecordComparator):
    """
    Token Jaccard similarity of two attribute values.

    Similarities at or below ``threshold`` become 0.0; ``squared`` squares
    the remaining similarity to penalize weak overlaps.
    """

    def __init__(
        self,
        attribute1: Attribute,
        attribute2: Optional[Attribute] = None,
        threshold: float = 0.0,
        squared: bool = False,
        lower_case: bool = False,
        granularity: TokenGranularity = TokenGranularity.WORD,
        ngram_size: int = 3,
        **kwargs
    ):
        super().__init__(attribute1, attribute2, **kwargs)
        self.threshold = validate_threshold(threshold)
        self.squared = squared
        self._measure = TokenizingJaccardSimilarity(
            lower_case=lower_case,
            granularity=granularity,
            ngram_size=ngram_size
        )

    @property
    def measure(self) -> SimilarityMeasure:
        return self._measure

    def compare(self, record1: Record, record2: Record) -> float:
        similarity = super().compare(record1, record2)
        if similarity <= self.threshold:
            return 0.0
        return similarity * similarity if self.squared else similarity
