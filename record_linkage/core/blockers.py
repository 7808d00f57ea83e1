"""Candidate pair generation via blocking keys."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from multiprocessing import cpu_count
from typing import (
    Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar
)

import xxhash

from record_linkage.config.models import EngineConfig
from record_linkage.core.errors import ConfigurationError, MatchingCancelled
from record_linkage.core.filters import JaccardPairFilter
from record_linkage.core.model import (
    Attribute, Correspondence, DataSet, MatchableValue, Record
)
from record_linkage.core.preprocessor import Preprocessor
from record_linkage.core.reporting import BlockingObserver

BlockingKeyGenerator = Callable[[Record], Iterable[Tuple[Optional[str], Record]]]

T = TypeVar('T')


def resolve_worker_count(config: EngineConfig) -> int:
    return config.worker_count if config.worker_count > 0 else cpu_count()


def batched(items: Sequence[T], size: int) -> List[Sequence[T]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise MatchingCancelled("Matching run was cancelled")


class AttributeValueKeyGenerator:
    """Uses the (optionally normalized) value of one attribute as blocking key."""

    def __init__(self, attribute: Attribute, preprocessor: Optional[Preprocessor] = None):
        self.attribute = attribute
        self.preprocessor = preprocessor

    @property
    def attributes(self) -> Tuple[Attribute, ...]:
        return (self.attribute,)

    def _value(self, record: Record) -> Optional[str]:
        value = record.get_value(self.attribute)
        if value is not None and self.preprocessor is not None:
            value = self.preprocessor.process(value)
        return value

    def __call__(self, record: Record) -> Iterable[Tuple[str, Record]]:
        value = self._value(record)
        if value is None:
            return []
        return [(value, record)]


class TokenKeyGenerator(AttributeValueKeyGenerator):
    """Emits one blocking key per whitespace-separated token of an attribute."""

    def __init__(
        self,
        attribute: Attribute,
        preprocessor: Optional[Preprocessor] = None,
        min_length: int = 1
    ):
        super().__init__(attribute, preprocessor)
        self.min_length = min_length

    def __call__(self, record: Record) -> Iterable[Tuple[str, Record]]:
        value = self._value(record)
        if value is None:
            return []
        return [
            (token, record) for token in dict.fromkeys(value.split())
            if len(token) >= self.min_length
        ]


def _distinct_pairs(pairs: Iterable[Tuple[Record, Record]]) -> List[Correspondence]:
    seen: Set[Tuple[str, str]] = set()
    candidates = []
    for first, second in pairs:
        key = (first.identifier, second.identifier)
        if key not in seen:
            seen.add(key)
            candidates.append(Correspondence(first, second, 0.0))
    return candidates


class Blocker(ABC):
    """Produces candidate record pairs between two datasets."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or EngineConfig()
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def run_blocking(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        """Return distinct candidate pairs (first from dataset1, second from dataset2)."""
        pass


class NoBlocker(Blocker):
    """Every record of the first dataset against every record of the second."""

    def run_blocking(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        second_records = list(dataset2)
        pairs = []
        for batch in batched(list(dataset1), self.config.batch_size):
            check_cancelled(cancel_event)
            pairs.extend((first, second) for first in batch for second in second_records)
        self.logger.info(f"Created {len(pairs)} candidate pairs without blocking")
        return _distinct_pairs(pairs)


class StandardRecordBlocker(Blocker):
    """
    Pairs records that share at least one blocking key.

    Keys are generated for both datasets in parallel, inserted into a bucket
    index, and pairs are then emitted per bucket. Only pairs across the two
    datasets are produced; each pair is returned once even when it shares
    several keys. Keys emitted as None are ignored.
    """

    def __init__(
        self,
        key_generator: BlockingKeyGenerator,
        second_key_generator: Optional[BlockingKeyGenerator] = None,
        config: Optional[EngineConfig] = None,
        observer: Optional[BlockingObserver] = None,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(config, logger)
        self.key_generator = key_generator
        self.second_key_generator = second_key_generator or key_generator
        self.observer = observer

    def _check_schema(self, generator: BlockingKeyGenerator, dataset: DataSet) -> None:
        attributes = getattr(generator, 'attributes', ())
        if attributes:
            dataset.require_attributes(attributes)

    def _generate_keys(
        self,
        generator: BlockingKeyGenerator,
        dataset: DataSet,
        executor: ThreadPoolExecutor,
        cancel_event: Optional[threading.Event]
    ) -> List[Tuple[str, Record]]:
        def keys_for_batch(batch: Sequence[Record]) -> List[Tuple[str, Record]]:
            keyed = []
            for record in batch:
                # a record lands in each of its buckets once; None is no key
                keyed.extend(dict.fromkeys(
                    (str(key), emitted) for key, emitted in generator(record)
                    if key is not None
                ))
            return keyed

        keyed: List[Tuple[str, Record]] = []
        for batch_keys in executor.map(
            keys_for_batch, batched(list(dataset), self.config.batch_size)
        ):
            check_cancelled(cancel_event)
            keyed.extend(batch_keys)
        return keyed

    def _build_index(
        self,
        first_keys: List[Tuple[str, Record]],
        second_keys: List[Tuple[str, Record]]
    ) -> Dict[bytes, Tuple[str, List[Record], List[Record]]]:
        index: Dict[bytes, Tuple[str, List[Record], List[Record]]] = {}
        for side, keyed in ((1, first_keys), (2, second_keys)):
            for key, record in keyed:
                digest = xxhash.xxh3_128_digest(key.encode('utf-8'))
                if digest not in index:
                    index[digest] = (key, [], [])
                index[digest][side].append(record)
        return index

    def run_blocking(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        start_time = time.time()
        self._check_schema(self.key_generator, dataset1)
        self._check_schema(self.second_key_generator, dataset2)

        with ThreadPoolExecutor(max_workers=resolve_worker_count(self.config)) as executor:
            first_keys = self._generate_keys(
                self.key_generator, dataset1, executor, cancel_event
            )
            second_keys = self._generate_keys(
                self.second_key_generator, dataset2, executor, cancel_event
            )
            index = self._build_index(first_keys, second_keys)

            blocks = [entry for entry in index.values() if entry[1] and entry[2]]
            self.logger.info(
                f"Created {len(index)} blocking keys, {len(blocks)} shared by both datasets"
            )
            if self.observer is not None:
                self.observer.on_blocks(
                    [(key, len(firsts), len(seconds)) for key, firsts, seconds in index.values()]
                )

            def pairs_for_blocks(batch) -> List[Tuple[Record, Record]]:
                return [
                    (first, second)
                    for _, firsts, seconds in batch
                    for first in firsts
                    for second in seconds
                ]

            pairs: List[Tuple[Record, Record]] = []
            for batch_pairs in executor.map(
                pairs_for_blocks, batched(blocks, self.config.batch_size)
            ):
                check_cancelled(cancel_event)
                pairs.extend(batch_pairs)

        candidates = _distinct_pairs(pairs)
        self.logger.info(
            f"Created {len(candidates)} candidate pairs from {len(pairs)} blocked pairs "
            f"in {time.time() - start_time:.2f} seconds"
        )
        return candidates


class ValueBasedBlocker:
    """
    Blocks schema attributes by the values they hold.

    Every attribute of a dataset is keyed by the set of its values; attribute
    pairs are accepted by the pair filter according to the overlap of those
    sets, since attributes of different datasets never share identity.
    """

    def __init__(
        self,
        pair_filter: Optional[JaccardPairFilter] = None,
        preprocessor: Optional[Preprocessor] = None,
        sample_size: Optional[int] = None,
        config: Optional[EngineConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.pair_filter = pair_filter or JaccardPairFilter(0.0)
        self.preprocessor = preprocessor
        self.sample_size = sample_size
        self.config = config or EngineConfig()
        self.logger = logger or logging.getLogger(__name__)

    def generate_value_sets(self, dataset: DataSet) -> Dict[Attribute, Set[str]]:
        """Collect the distinct values of every schema attribute."""
        value_sets: Dict[Attribute, Set[str]] = {a: set() for a in dataset.schema}
        for position, record in enumerate(dataset):
            if self.sample_size is not None and position >= self.sample_size:
                break
            for attribute, values in value_sets.items():
                value = record.get_value(attribute)
                if value is not None and self.preprocessor is not None:
                    value = self.preprocessor.process(value)
                if value is not None:
                    values.add(value)
        return value_sets

    def run_blocking(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        """Return filtered attribute correspondences with value matches as causes."""
        first_sets = self.generate_value_sets(dataset1)
        second_sets = self.generate_value_sets(dataset2)

        attributes_by_value: Dict[str, List[Attribute]] = defaultdict(list)
        for attribute, values in second_sets.items():
            for value in values:
                attributes_by_value[value].append(attribute)

        def match_attribute(first: Attribute) -> List[Correspondence]:
            first_values = first_sets[first]
            co_occurrences: Dict[Attribute, List[Correspondence]] = defaultdict(list)
            for value in first_values:
                for second in attributes_by_value.get(value, ()):
                    co_occurrences[second].append(Correspondence(
                        MatchableValue(value, first, dataset1.provenance),
                        MatchableValue(value, second, dataset2.provenance),
                        1.0
                    ))
            accepted = []
            for second, second_values in second_sets.items():
                correspondence = self.pair_filter.create_final_pair(
                    first, second, first_values, second_values,
                    co_occurrences.get(second, [])
                )
                if correspondence is not None:
                    accepted.append(correspondence)
            return accepted

        correspondences: List[Correspondence] = []
        with ThreadPoolExecutor(max_workers=resolve_worker_count(self.config)) as executor:
            for batch in batched(list(first_sets), self.config.batch_size):
                check_cancelled(cancel_event)
                for accepted in executor.map(match_attribute, batch):
                    correspondences.extend(accepted)

        self.logger.info(
            f"Value-based blocking accepted {len(correspondences)} of "
            f"{len(first_sets) * len(second_sets)} attribute pairs"
        )
        return correspondences


def restrict_candidates(
    candidates: Sequence[Correspondence],
    prior_correspondences: Sequence[Correspondence]
) -> List[Correspondence]:
    """
    Keep only candidates supported by correspondences of an earlier stage.

    Record-level priors keep the listed pairs. Attribute-level priors keep
    pairs where both records have values for at least one corresponding
    attribute pair; those attribute correspondences become the candidate's
    causes.

    Raises:
        ConfigurationError: If record- and attribute-level priors are mixed
    """
    schema_level = [isinstance(p.first, Attribute) for p in prior_correspondences]
    if any(schema_level) and not all(schema_level):
        raise ConfigurationError(
            "Prior correspondences mix attribute-level and record-level pairs"
        )

    restricted = []
    if all(schema_level):
        for candidate in candidates:
            causes = tuple(
                p for p in prior_correspondences
                if candidate.first.has_value(p.first) and candidate.second.has_value(p.second)
            )
            if causes:
                restricted.append(Correspondence(
                    candidate.first, candidate.second, candidate.similarity_score, causes
                ))
        return restricted

    by_key = {p.key: p for p in prior_correspondences}
    for candidate in candidates:
        prior = by_key.get(candidate.key)
        if prior is not None:
            restricted.append(Correspondence(
                candidate.first, candidate.second, candidate.similarity_score, (prior,)
            ))
    return restricted


class RestrictedBlocker(Blocker):
    """Applies another blocker, then restricts its pairs to prior correspondences."""

    def __init__(
        self,
        blocker: Blocker,
        prior_correspondences: Sequence[Correspondence],
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(blocker.config, logger or blocker.logger)
        self.blocker = blocker
        self.prior_correspondences = list(prior_correspondences)

    def run_blocking(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        candidates = self.blocker.run_blocking(dataset1, dataset2, cancel_event)
        restricted = restrict_candidates(candidates, self.prior_correspondences)
        self.logger.info(
            f"{len(restricted)} of {len(candidates)} candidate pairs are supported "
            f"by {len(self.prior_correspondences)} prior correspondences"
        )
        return restricted
