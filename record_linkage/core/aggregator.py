"""Merging of duplicate correspondences."""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import reduce
from typing import Dict, Iterable, List, Optional, Tuple

from record_linkage.config.models import AggregationMode, validate_threshold
from record_linkage.core.model import Correspondence, Matchable

PairKey = Tuple[str, str]


@dataclass
class PartialAggregate:
    """Scores and causes collected for one pair, mergeable in any order."""
    first: Matchable
    second: Matchable
    scores: List[float] = field(default_factory=list)
    causes: List[Correspondence] = field(default_factory=list)

    def add(self, correspondence: Correspondence) -> None:
        self.scores.append(correspondence.similarity_score)
        # an elementary correspondence is its own cause
        if correspondence.causal_correspondences:
            self.causes.extend(correspondence.causal_correspondences)
        else:
            self.causes.append(correspondence)

    def merge(self, other: 'PartialAggregate') -> 'PartialAggregate':
        return PartialAggregate(
            self.first,
            self.second,
            self.scores + other.scores,
            self.causes + other.causes
        )


class CorrespondenceAggregator:
    """
    Groups correspondences by (first, second) and combines their scores.

    The combination is commutative and associative, and scores are summed
    with ``math.fsum``, so the result does not depend on input order.
    Aggregated pairs scoring at or below ``min_score`` are dropped.
    """

    def __init__(
        self,
        min_score: float = 0.0,
        mode: AggregationMode = AggregationMode.SUM,
        worker_count: int = 1
    ):
        self.min_score = validate_threshold(min_score, 'min_score')
        self.mode = AggregationMode(mode)
        self.worker_count = max(1, worker_count)

    def combine(self, scores: List[float]) -> float:
        if self.mode == AggregationMode.SUM:
            return min(1.0, math.fsum(scores))
        if self.mode == AggregationMode.AVERAGE:
            return math.fsum(scores) / len(scores)
        return max(scores)

    def partial(self, correspondences: Iterable[Correspondence]) -> Dict[PairKey, PartialAggregate]:
        """Aggregate one partition of the input without applying the cutoff."""
        partials: Dict[PairKey, PartialAggregate] = {}
        for correspondence in correspondences:
            key = correspondence.key
            if key not in partials:
                partials[key] = PartialAggregate(correspondence.first, correspondence.second)
            partials[key].add(correspondence)
        return partials

    @staticmethod
    def merge(
        left: Dict[PairKey, PartialAggregate],
        right: Dict[PairKey, PartialAggregate]
    ) -> Dict[PairKey, PartialAggregate]:
        """Combine two partial results."""
        merged = dict(left)
        for key, aggregate in right.items():
            merged[key] = merged[key].merge(aggregate) if key in merged else aggregate
        return merged

    def finish(self, partials: Dict[PairKey, PartialAggregate]) -> List[Correspondence]:
        """Score the aggregates, apply the cutoff and sort the result."""
        result = []
        for key in sorted(partials):
            aggregate = partials[key]
            score = self.combine(sorted(aggregate.scores))
            if score <= self.min_score:
                continue
            causes = tuple(sorted(aggregate.causes, key=Correspondence.sort_key))
            result.append(Correspondence(aggregate.first, aggregate.second, score, causes))
        return result

    def aggregate(
        self,
        correspondences: Iterable[Correspondence],
        worker_count: Optional[int] = None
    ) -> List[Correspondence]:
        """
        Merge duplicate correspondences.

        Args:
            correspondences: Elementary or previously aggregated correspondences
            worker_count: Number of partitions aggregated in parallel

        Returns:
            List[Correspondence]: One correspondence per pair, sorted by ids
        """
        items = list(correspondences)
        workers = max(1, worker_count or self.worker_count)
        if workers == 1 or len(items) < 2:
            return self.finish(self.partial(items))

        size = math.ceil(len(items) / workers)
        partitions = [items[i:i + size] for i in range(0, len(items), size)]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            partials = list(executor.map(self.partial, partitions))
        return self.finish(reduce(self.merge, partials, {}))
