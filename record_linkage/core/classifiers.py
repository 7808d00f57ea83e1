"""Pluggable classifiers for learned matching rules."""

from typing import Any, Optional, Protocol, Sequence

import numpy as np
from sklearn.base import clone
from sklearn.exceptions import NotFittedError
from sklearn.tree import DecisionTreeClassifier

from record_linkage.core.errors import ClassifierError


class Model(Protocol):
    """A fitted classifier."""

    def predict(self, features: Sequence[float]) -> float:
        """Probability that the feature vector describes a match."""
        ...


class Classifier(Protocol):
    """Anything that can be fitted to labeled feature vectors."""

    def fit(self, features: np.ndarray, labels: np.ndarray) -> Model:
        ...


class SklearnModel:
    """Wraps a fitted scikit-learn estimator exposing ``predict_proba``."""

    def __init__(self, estimator: Any):
        self.estimator = estimator
        classes = list(getattr(estimator, 'classes_', []))
        self._positive_column: Optional[int] = classes.index(1) if 1 in classes else None

    def predict(self, features: Sequence[float]) -> float:
        if self._positive_column is None:
            # trained on negatives only
            return 0.0
        vector = np.asarray(features, dtype=float).reshape(1, -1)
        try:
            probabilities = self.estimator.predict_proba(vector)
        except (ValueError, NotFittedError) as e:
            raise ClassifierError(f"Prediction failed: {e}") from e
        return float(probabilities[0, self._positive_column])

    def __repr__(self) -> str:
        return f"SklearnModel({self.estimator!r})"


class SklearnClassifier:
    """
    Fits a fresh clone of a scikit-learn estimator on every ``fit``.

    Labels are encoded as 1 (match) and 0 (non-match).
    """

    def __init__(self, estimator: Optional[Any] = None):
        self.estimator = estimator if estimator is not None else DecisionTreeClassifier(random_state=0)

    def fit(self, features: np.ndarray, labels: np.ndarray) -> SklearnModel:
        features = np.asarray(features, dtype=float)
        labels = np.asarray(labels, dtype=int)
        if features.ndim != 2 or features.shape[0] != labels.shape[0]:
            raise ClassifierError(
                f"Malformed training data: features {features.shape}, labels {labels.shape}"
            )
        if features.shape[0] == 0:
            raise ClassifierError("No training examples")

        estimator = clone(self.estimator)
        try:
            estimator.fit(features, labels)
        except ValueError as e:
            raise ClassifierError(f"Training failed: {e}") from e
        return SklearnModel(estimator)

    def __repr__(self) -> str:
        return f"SklearnClassifier({self.estimator!r})"
