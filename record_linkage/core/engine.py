"""Orchestration of schema matching and identity resolution."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from record_linkage.config.models import EngineConfig
from record_linkage.core.aggregator import CorrespondenceAggregator
from record_linkage.core.blockers import (
    Blocker, RestrictedBlocker, ValueBasedBlocker,
    batched, check_cancelled, resolve_worker_count
)
from record_linkage.core.errors import NotTrainedError
from record_linkage.core.model import Correspondence, DataSet
from record_linkage.core.rules import LearningMatchingRule, MatchingRule


class MatchingEngine:
    """
    Runs matching tasks end to end.

    Candidate pairs are classified in batches on a thread pool; the optional
    ``cancel_event`` is checked between batches. Returned lists can be
    consumed any number of times.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or EngineConfig()
        self.logger = logger or logging.getLogger(__name__)

    def run_instance_based_schema_matching(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        blocker: ValueBasedBlocker,
        aggregator: CorrespondenceAggregator,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        """
        Match the attributes of two datasets by the values they share.

        Args:
            dataset1: First dataset
            dataset2: Second dataset
            blocker: Value-based blocker holding the pair filter
            aggregator: Aggregator merging duplicate attribute pairs
            cancel_event: Optional event that cancels the run between batches

        Returns:
            List[Correspondence]: Attribute correspondences whose causes are
            the shared values
        """
        start_time = time.time()
        accepted = blocker.run_blocking(dataset1, dataset2, cancel_event)
        check_cancelled(cancel_event)
        correspondences = aggregator.aggregate(
            accepted, worker_count=resolve_worker_count(self.config)
        )

        self.logger.info(
            f"Schema matching {dataset1.provenance!r} <-> {dataset2.provenance!r} "
            f"produced {len(correspondences)} correspondences "
            f"in {time.time() - start_time:.2f} seconds"
        )
        return correspondences

    def run_identity_resolution(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        prior_correspondences: Optional[Sequence[Correspondence]],
        rule: MatchingRule,
        blocker: Blocker,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Correspondence]:
        """
        Find records of two datasets that describe the same entity.

        Args:
            dataset1: First dataset
            dataset2: Second dataset
            prior_correspondences: Optional correspondences of an earlier
                stage restricting the candidate pairs
            rule: Matching rule classifying the candidates
            blocker: Blocker generating the candidates
            cancel_event: Optional event that cancels the run between batches

        Returns:
            List[Correspondence]: One correspondence per matching pair

        Raises:
            NotTrainedError: If a learned rule has not been trained
            ConfigurationError: If the rule does not fit the datasets
            MatchingCancelled: If ``cancel_event`` was set
        """
        start_time = time.time()
        rule.validate(dataset1, dataset2)
        if isinstance(rule, LearningMatchingRule) and not rule.trained:
            raise NotTrainedError("LearningMatchingRule must be trained with learn() before use")

        if prior_correspondences:
            blocker = RestrictedBlocker(blocker, prior_correspondences, self.logger)
        candidates = blocker.run_blocking(dataset1, dataset2, cancel_event)

        def classify_batch(batch: Sequence[Correspondence]) -> List[Correspondence]:
            matches = []
            for candidate in batch:
                correspondence = rule.apply(candidate)
                if correspondence is not None:
                    matches.append(correspondence)
            return matches

        workers = resolve_worker_count(self.config)
        correspondences: List[Correspondence] = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for group in batched(batched(candidates, self.config.batch_size), workers):
                check_cancelled(cancel_event)
                for matches in executor.map(classify_batch, group):
                    correspondences.extend(matches)

        self.logger.info(
            f"Identity resolution {dataset1.provenance!r} <-> {dataset2.provenance!r} "
            f"classified {len(candidates)} candidates into {len(correspondences)} "
            f"correspondences in {time.time() - start_time:.2f} seconds"
        )
        return correspondences
