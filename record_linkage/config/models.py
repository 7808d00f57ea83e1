"""Configuration models for the record linkage system."""

from dataclasses import dataclass
from enum import Enum

from record_linkage.core.errors import ConfigurationError


class AggregationMode(str, Enum):
    """How scores of duplicate correspondences are combined."""
    SUM = "sum"          # sum, then clamp to 1.0
    AVERAGE = "average"
    MAX = "max"


class EvaluationMode(str, Enum):
    """How produced pairs missing from the gold standard are counted."""
    EXPLICIT_NEGATIVES = "explicit_negatives"  # only labeled negatives are false positives
    CLOSED_WORLD = "closed_world"              # anything not labeled positive is a false positive


class RuleCombination(str, Enum):
    """How a rule-based matcher combines its comparator scores."""
    WEIGHTED_SUM = "weighted_sum"
    MIN = "min"
    MAX = "max"


class TokenGranularity(str, Enum):
    """Tokenization used by Jaccard similarity."""
    WORD = "word"
    NGRAM = "ngram"


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for parallel execution of blocking and matching."""
    worker_count: int = -1   # -1 uses the CPU count
    batch_size: int = 1000

    def __post_init__(self):
        if self.worker_count == 0 or self.worker_count < -1:
            raise ConfigurationError(
                f"worker_count must be positive or -1, got {self.worker_count}"
            )
        if self.batch_size <= 0:
            raise ConfigurationError(
                f"batch_size must be positive, got {self.batch_size}"
            )


@dataclass(frozen=True)
class DebugReportConfig:
    """Configuration for the feature-vector debug report of learned rules."""
    max_examples: int = 1000

    def __post_init__(self):
        if self.max_examples < 0:
            raise ConfigurationError(
                f"max_examples must not be negative, got {self.max_examples}"
            )


def validate_threshold(value: float, name: str = 'threshold') -> float:
    """
    Check that a threshold lies in [0, 1).

    Args:
        value: Threshold to check
        name: Name used in the error message

    Returns:
        float: The threshold as a float

    Raises:
        ConfigurationError: If the threshold is outside [0, 1)
    """
    try:
        threshold = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if not 0.0 <= threshold < 1.0:
        raise ConfigurationError(f"{name} must be in [0, 1), got {threshold}")
    return threshold
