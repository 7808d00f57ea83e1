"""
Record Linkage
==============

Blocking, schema matching and identity resolution for structured records
from two datasets.

Key Features:
- Exact-key and value-based blocking with parallel pair generation
- Jaccard pair filtering with provenance of the shared values
- Order-independent aggregation of duplicate correspondences
- Rule-based and learned (scikit-learn) matching rules
- Precision/recall evaluation against a gold standard
"""

from record_linkage.core.model import (
    Attribute,
    Correspondence,
    DataSet,
    GoldStandard,
    MatchableValue,
    Performance,
    Record
)
from record_linkage.core.comparators import (
    RecordComparatorEqual,
    RecordComparatorJaccard,
    RecordComparatorLevenshtein
)
from record_linkage.core.blockers import (
    AttributeValueKeyGenerator,
    NoBlocker,
    StandardRecordBlocker,
    TokenKeyGenerator,
    ValueBasedBlocker
)
from record_linkage.core.filters import JaccardPairFilter
from record_linkage.core.aggregator import CorrespondenceAggregator
from record_linkage.core.classifiers import SklearnClassifier
from record_linkage.core.rules import LearningMatchingRule, LinearCombinationMatchingRule
from record_linkage.core.learner import RuleLearner
from record_linkage.core.engine import MatchingEngine
from record_linkage.core.evaluator import MatchingEvaluator
from record_linkage.core.log import LogManager

from record_linkage.config.models import (
    AggregationMode,
    EngineConfig,
    EvaluationMode,
    RuleCombination,
    TokenGranularity
)

__version__ = "1.0.0"
