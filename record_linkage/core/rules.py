"""Rule-based and learned classification of candidate pairs."""

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple, Union

import joblib
import numpy as np

from record_linkage.config.models import (
    DebugReportConfig, RuleCombination, validate_threshold
)
from record_linkage.core.blockers import Blocker
from record_linkage.core.classifiers import Classifier, Model, SklearnClassifier
from record_linkage.core.comparators import RecordComparator
from record_linkage.core.errors import ConfigurationError, NotTrainedError
from record_linkage.core.model import Correspondence, DataSet, GoldStandard, Record
from record_linkage.core.reporting import FeatureDebugReport, FeatureObserver


class MatchingRule(ABC):
    """Classifies candidate record pairs using registered comparators."""

    def __init__(
        self,
        final_threshold: float,
        logger: Optional[logging.Logger] = None
    ):
        self.final_threshold = validate_threshold(final_threshold, 'final_threshold')
        self.comparators: List[RecordComparator] = []
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, dataset1: DataSet, dataset2: DataSet) -> None:
        """
        Check the rule against the schemas it will be applied to.

        Raises:
            ConfigurationError: If no comparator is registered or a comparator
                refers to an attribute missing from a schema
        """
        if not self.comparators:
            raise ConfigurationError(f"{type(self).__name__} has no comparators")
        dataset1.require_attributes(c.attribute1 for c in self.comparators)
        dataset2.require_attributes(c.attribute2 for c in self.comparators)

    @abstractmethod
    def compute_similarity(self, record1: Record, record2: Record) -> float:
        pass

    def is_match(self, score: float) -> bool:
        return score >= self.final_threshold

    def classify(
        self,
        record1: Record,
        record2: Record,
        causes: Tuple[Correspondence, ...] = ()
    ) -> Tuple[float, Tuple[Correspondence, ...]]:
        """Return the pair's score together with the provenance it was scored under."""
        if not self.comparators:
            raise ConfigurationError(f"{type(self).__name__} has no comparators")
        return self.compute_similarity(record1, record2), causes

    def apply(self, candidate: Correspondence) -> Optional[Correspondence]:
        """Turn a candidate pair into a correspondence, or None if it is no match."""
        score, causes = self.classify(
            candidate.first, candidate.second, candidate.causal_correspondences
        )
        if not self.is_match(score):
            return None
        return Correspondence(candidate.first, candidate.second, score, causes)


class LinearCombinationMatchingRule(MatchingRule):
    """
    Combines comparator scores into one similarity.

    ``weighted_sum`` adds weighted scores (clamped to [0, 1]); ``min`` and
    ``max`` ignore the weights. A pair matches when the combined score
    reaches the final threshold.
    """

    def __init__(
        self,
        final_threshold: float,
        combination: RuleCombination = RuleCombination.WEIGHTED_SUM,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(final_threshold, logger)
        self.combination = RuleCombination(combination)
        self.weights: List[float] = []

    def add_comparator(self, comparator: RecordComparator, weight: float = 1.0) -> None:
        if weight < 0:
            raise ConfigurationError(f"Comparator weight must not be negative, got {weight}")
        self.comparators.append(comparator)
        self.weights.append(float(weight))

    def normalize_weights(self) -> None:
        """Rescale the weights so that they sum to 1."""
        total = math.fsum(self.weights)
        if total > 0:
            self.weights = [w / total for w in self.weights]

    def compute_similarity(self, record1: Record, record2: Record) -> float:
        scores = [c.compare(record1, record2) for c in self.comparators]
        if self.combination == RuleCombination.MIN:
            return min(scores)
        if self.combination == RuleCombination.MAX:
            return max(scores)
        weighted = math.fsum(w * s for w, s in zip(self.weights, scores))
        return min(1.0, max(0.0, weighted))


class LearningMatchingRule(MatchingRule):
    """
    Classifies pairs with a model learned from a gold standard.

    The registered comparators define the feature vector, in registration
    order. The rule must be trained with ``learn`` before it is applied; a
    pair matches when the predicted probability is above the final threshold.
    """

    def __init__(
        self,
        final_threshold: float = 0.5,
        classifier: Optional[Classifier] = None,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(final_threshold, logger)
        self.classifier = classifier or SklearnClassifier()
        self.model: Optional[Model] = None
        self._debug_report: Optional[FeatureObserver] = None
        self._debug_gold_standard: Optional[GoldStandard] = None
        self._debug_lock = threading.Lock()

    def add_comparator(self, comparator: RecordComparator) -> None:
        self.comparators.append(comparator)
        self.model = None

    @property
    def trained(self) -> bool:
        return self.model is not None

    @property
    def feature_names(self) -> List[str]:
        return [c.name for c in self.comparators]

    def activate_debug_report(
        self,
        report: Optional[FeatureObserver] = None,
        gold_standard: Optional[GoldStandard] = None,
        config: Optional[DebugReportConfig] = None
    ) -> FeatureObserver:
        """
        Record feature vectors of classified pairs.

        Args:
            report: Observer receiving the rows; a FeatureDebugReport is created if omitted
            gold_standard: Labels added to each row when given
            config: Cap on the number of recorded examples

        Returns:
            FeatureObserver: The active report
        """
        config = config or DebugReportConfig()
        self._debug_report = report or FeatureDebugReport(config.max_examples)
        self._debug_gold_standard = gold_standard
        return self._debug_report

    def extract_features(self, record1: Record, record2: Record) -> np.ndarray:
        return np.array([c.compare(record1, record2) for c in self.comparators], dtype=float)

    def learn(
        self,
        dataset1: DataSet,
        dataset2: DataSet,
        blocker: Blocker,
        gold_standard: GoldStandard
    ) -> Model:
        """
        Train the rule on blocked pairs that are labeled in the gold standard.

        Args:
            dataset1: First dataset
            dataset2: Second dataset
            blocker: Blocker that is also used when the rule is applied
            gold_standard: Labeled training pairs

        Returns:
            Model: The fitted model

        Raises:
            ConfigurationError: If no comparator is registered or no blocked
                pair is labeled
        """
        start_time = time.time()
        self.validate(dataset1, dataset2)

        candidates = blocker.run_blocking(dataset1, dataset2)
        rows, labels = [], []
        for candidate in candidates:
            label = gold_standard.label(*candidate.key)
            if label is None:
                continue
            rows.append(self.extract_features(candidate.first, candidate.second))
            labels.append(1 if label else 0)

        if not rows:
            raise ConfigurationError(
                "None of the blocked candidate pairs is labeled in the gold standard"
            )

        positives = sum(labels)
        self.logger.info(
            f"Training on {len(rows)} labeled pairs ({positives} positive, "
            f"{len(rows) - positives} negative) out of {len(candidates)} candidates"
        )
        unblocked = len(gold_standard.positive) - positives
        if unblocked > 0:
            self.logger.info(
                f"{unblocked} positive gold-standard pairs were not produced by blocking"
            )

        features = np.vstack(rows)
        self.model = self.classifier.fit(features, np.array(labels, dtype=int))
        self.logger.info(f"Learned {self.model!r} in {time.time() - start_time:.2f} seconds")
        return self.model

    def compute_similarity(self, record1: Record, record2: Record) -> float:
        if self.model is None:
            raise NotTrainedError("LearningMatchingRule must be trained with learn() before use")
        features = self.extract_features(record1, record2)
        score = self.model.predict(features)
        if self._debug_report is not None:
            self._record_debug(record1, record2, features, score)
        return score

    def is_match(self, score: float) -> bool:
        return score > self.final_threshold

    def export_model(self, path: Union[str, Path]) -> None:
        """
        Store the trained model together with the feature names it was trained on.

        Raises:
            NotTrainedError: If the rule has not been trained
        """
        if self.model is None:
            raise NotTrainedError("Only a trained LearningMatchingRule can be exported")
        joblib.dump({'feature_names': self.feature_names, 'model': self.model}, path)
        self.logger.info(f"Exported {self.model!r} to {path}")

    def import_model(self, path: Union[str, Path]) -> Model:
        """
        Load a model stored with ``export_model``.

        The rule must have the same comparators, in the same order, as the
        rule that exported the model.

        Raises:
            ConfigurationError: If the stored feature names differ from this rule's
        """
        stored = joblib.load(path)
        if stored['feature_names'] != self.feature_names:
            raise ConfigurationError(
                f"Model in {path} was trained on {stored['feature_names']}, "
                f"rule has {self.feature_names}"
            )
        self.model = stored['model']
        self.logger.info(f"Imported {self.model!r} from {path}")
        return self.model

    def _record_debug(
        self,
        record1: Record,
        record2: Record,
        features: np.ndarray,
        score: float
    ) -> None:
        row = {'first_id': record1.identifier, 'second_id': record2.identifier}
        row.update(zip(self.feature_names, features.tolist()))
        row['score'] = score
        row['predicted'] = self.is_match(score)
        if self._debug_gold_standard is not None:
            row['gold'] = self._debug_gold_standard.label(
                record1.identifier, record2.identifier
            )
        with self._debug_lock:
            self._debug_report.on_feature_vector(row)
