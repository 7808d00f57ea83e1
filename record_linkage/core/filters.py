"""Similarity-based acceptance of blocked pairs."""

from typing import AbstractSet, Optional, Sequence

from record_linkage.config.models import validate_threshold
from record_linkage.core.comparators import jaccard
from record_linkage.core.model import Correspondence, Matchable


class JaccardPairFilter:
    """
    Accepts a pair when the Jaccard similarity of its key sets exceeds a threshold.

    The threshold is an exclusive lower bound: with threshold 0.0 every pair
    with any overlap is kept and pairs without overlap are dropped.
    """

    def __init__(self, threshold: float = 0.0):
        self.threshold = validate_threshold(threshold)

    def similarity(self, first_keys: AbstractSet[str], second_keys: AbstractSet[str]) -> float:
        return jaccard(first_keys, second_keys)

    def create_final_pair(
        self,
        first: Matchable,
        second: Matchable,
        first_keys: AbstractSet[str],
        second_keys: AbstractSet[str],
        co_occurrences: Sequence[Correspondence]
    ) -> Optional[Correspondence]:
        """
        Build the aggregate correspondence for two sides, or None if rejected.

        Args:
            first: Matchable owning ``first_keys``
            second: Matchable owning ``second_keys``
            first_keys: Keys collected for the first side
            second_keys: Keys collected for the second side
            co_occurrences: Elementary key matches observed between the sides

        Returns:
            Optional[Correspondence]: Correspondence scored with the Jaccard
            similarity whose causes are the co-occurrences of shared keys
        """
        score = self.similarity(first_keys, second_keys)
        if score <= self.threshold:
            return None

        shared = first_keys & second_keys
        causes = sorted(
            (c for c in co_occurrences if c.first.identifier in shared),
            key=Correspondence.sort_key
        )
        return Correspondence(first, second, score, tuple(causes))
