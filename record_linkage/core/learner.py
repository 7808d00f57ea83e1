"""Training of learned matching rules."""

import logging
from typing import Optional, Sequence

from record_linkage.core.blockers import Blocker, RestrictedBlocker
from record_linkage.core.classifiers import Model
from record_linkage.core.model import Correspondence, DataSet, GoldStandard
from record_linkage.core.rules import LearningMatchingRule


class RuleLearner:
    """
    Trains a LearningMatchingRule on the candidate pairs the engine would see.

    Training goes through the same blocker and prior-correspondence
    restriction as MatchingEngine.run_identity_resolution, so features are
    extracted from identically generated candidates at training and at
    apply time.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def learn_matching_rule(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        prior_correspondences: Optional[Sequence[Correspondence]],
        rule: LearningMatchingRule,
        gold_standard: GoldStandard,
        blocker: Blocker
    ) -> Model:
        """
        Train ``rule`` on the labeled candidate pairs of two datasets.

        Args:
            dataset1: First dataset
            dataset2: Second dataset
            prior_correspondences: Optional correspondences restricting the candidates
            rule: Rule to train
            gold_standard: Labeled training pairs
            blocker: Blocker used for training and later matching

        Returns:
            Model: The fitted model
        """
        if prior_correspondences:
            blocker = RestrictedBlocker(blocker, prior_correspondences, self.logger)

        self.logger.info(
            f"Learning matching rule on {dataset1.provenance!r} <-> "
            f"{dataset2.provenance!r} with {len(gold_standard)} gold-standard pairs"
        )
        return rule.learn(dataset1, dataset2, blocker, gold_standard)
