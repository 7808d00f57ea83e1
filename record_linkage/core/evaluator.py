"""Evaluation of correspondences against a gold standard."""

import logging
from typing import Iterable, Optional, Set, Tuple

from record_linkage.config.models import EvaluationMode
from record_linkage.core.model import Correspondence, GoldStandard, Performance


class MatchingEvaluator:
    """
    Counts true positives, false positives and false negatives.

    The evaluation mode has to be chosen explicitly. With
    ``explicit_negatives`` a produced pair is a false positive only when the
    gold standard labels it negative; unlabeled pairs are ignored. With
    ``closed_world`` every produced pair not labeled positive is a false
    positive. Pair orientation is ignored in both modes.
    """

    def __init__(self, mode: EvaluationMode, logger: Optional[logging.Logger] = None):
        self.mode = EvaluationMode(mode)
        self.logger = logger or logging.getLogger(__name__)

    def evaluate_matching(
        self,
        correspondences: Iterable[Correspondence],
        gold_standard: GoldStandard
    ) -> Performance:
        produced: Set[Tuple[str, str]] = set()
        true_positives = 0
        false_positives = 0

        for correspondence in correspondences:
            first_id, second_id = correspondence.key
            if (first_id, second_id) in produced or (second_id, first_id) in produced:
                continue
            produced.add((first_id, second_id))

            if gold_standard.contains_positive(first_id, second_id):
                true_positives += 1
                self.logger.debug(f"[correct] {first_id} <-> {second_id}")
            elif (
                self.mode == EvaluationMode.CLOSED_WORLD
                or gold_standard.contains_negative(first_id, second_id)
            ):
                false_positives += 1
                self.logger.debug(f"[wrong] {first_id} <-> {second_id}")

        false_negatives = 0
        for first_id, second_id in gold_standard.positive:
            if (first_id, second_id) not in produced and (second_id, first_id) not in produced:
                false_negatives += 1
                self.logger.debug(f"[missing] {first_id} <-> {second_id}")

        performance = Performance(true_positives, false_positives, false_negatives)
        self.logger.info(
            f"Precision: {performance.precision:.4f}, Recall: {performance.recall:.4f}, "
            f"F1: {performance.f1:.4f} ({self.mode.value})"
        )
        return performance
