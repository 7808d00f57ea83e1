"""Example: learned identity resolution between two restaurant guides."""

import logging
from pathlib import Path
from typing import Dict, Optional

from sklearn.tree import DecisionTreeClassifier

from record_linkage.config.models import EngineConfig, EvaluationMode
from record_linkage.core.blockers import AttributeValueKeyGenerator, StandardRecordBlocker
from record_linkage.core.classifiers import SklearnClassifier
from record_linkage.core.comparators import (
    RecordComparatorEqual,
    RecordComparatorJaccard,
    RecordComparatorLevenshtein
)
from record_linkage.core.engine import MatchingEngine
from record_linkage.core.evaluator import MatchingEvaluator
from record_linkage.core.io import read_csv_dataset, read_gold_standard, write_correspondences
from record_linkage.core.learner import RuleLearner
from record_linkage.core.log import LogManager
from record_linkage.core.model import Attribute, Performance
from record_linkage.core.preprocessor import registry
from record_linkage.core.reporting import BlockSizeReport
from record_linkage.core.rules import LearningMatchingRule

ATTRIBUTE_NAMES = ('name', 'address', 'city', 'style')


def create_restaurant_rule(
    attributes: Dict[str, Attribute],
    final_threshold: float = 0.5
) -> LearningMatchingRule:
    """
    Create a learned rule comparing name, address and style.

    Args:
        attributes: Attributes shared by both datasets, by column name
        final_threshold: Probability a pair needs to exceed to match

    Returns:
        LearningMatchingRule: Untrained rule with its comparators registered
    """
    rule = LearningMatchingRule(
        final_threshold=final_threshold,
        classifier=SklearnClassifier(DecisionTreeClassifier(random_state=0, min_samples_leaf=2))
    )
    for name in ('name', 'address', 'style'):
        attribute = attributes[name]
        rule.add_comparator(RecordComparatorLevenshtein(attribute))
        rule.add_comparator(RecordComparatorLevenshtein(attribute, lower_case=True))
        rule.add_comparator(RecordComparatorEqual(attribute))
        rule.add_comparator(RecordComparatorEqual(attribute, lower_case=True))
        rule.add_comparator(RecordComparatorJaccard(attribute, threshold=0.3, squared=True))
        rule.add_comparator(
            RecordComparatorJaccard(attribute, threshold=0.3, squared=True, lower_case=True)
        )
    return rule


def match_restaurants(
    first_file: Path,
    second_file: Path,
    training_file: Path,
    test_file: Path,
    output_dir: Optional[Path] = None,
    worker_processes: int = -1
) -> Performance:
    """
    Learn a matching rule, match two restaurant files and evaluate the result.

    Args:
        first_file: CSV file with an 'id' column and the restaurant attributes
        second_file: CSV file with the same columns
        training_file: Gold standard used for learning
        test_file: Gold standard used for evaluation
        output_dir: Optional directory for correspondences and debug reports
        worker_processes: Number of worker threads (-1 for CPU count)

    Returns:
        Performance: Evaluation on the test gold standard
    """
    log_manager = LogManager()
    logger = log_manager.attach('default')
    try:
        # both files share one schema
        attributes = {name: Attribute(name) for name in ATTRIBUTE_NAMES}
        first = read_csv_dataset(first_file, 'id', attributes=attributes)
        second = read_csv_dataset(second_file, 'id', attributes=attributes)

        gs_training = read_gold_standard(training_file)
        gs_test = read_gold_standard(test_file)

        config = EngineConfig(worker_count=worker_processes)
        block_report = BlockSizeReport(max_blocks=100)
        blocker = StandardRecordBlocker(
            AttributeValueKeyGenerator(attributes['city'], registry.create('lower_case')),
            config=config,
            observer=block_report,
            logger=logger
        )

        rule = create_restaurant_rule(attributes)
        rule.logger = logger
        debug_report = rule.activate_debug_report(gold_standard=gs_training)

        RuleLearner(logger).learn_matching_rule(
            first, second, None, rule, gs_training, blocker
        )
        if output_dir:
            output_dir.mkdir(parents=True, exist_ok=True)
            rule.export_model(output_dir / 'restaurant_matching_model.joblib')

        engine = MatchingEngine(config, logger)
        correspondences = engine.run_identity_resolution(
            first, second, None, rule, blocker
        )

        if output_dir:
            write_correspondences(output_dir / 'restaurant_correspondences.csv', correspondences)
            block_report.write_csv(output_dir / 'debug_blocking.csv')
            debug_report.write_csv(output_dir / 'debug_learning_rule.csv')

        performance = MatchingEvaluator(EvaluationMode.EXPLICIT_NEGATIVES, logger).evaluate_matching(
            correspondences, gs_test
        )
        logger.info(f"{first.provenance} <-> {second.provenance}")
        logger.info(f"Precision: {performance.precision:.4f}")
        logger.info(f"Recall: {performance.recall:.4f}")
        logger.info(f"F1: {performance.f1:.4f}")
        return performance

    except Exception as e:
        logging.getLogger(__name__).error(f"An error occurred: {e}", exc_info=True)
        raise
    finally:
        log_manager.detach()


if __name__ == "__main__":
    data_dir = Path('data/restaurants')
    match_restaurants(
        first_file=data_dir / 'fodors.csv',
        second_file=data_dir / 'zagats.csv',
        training_file=data_dir / 'gs_restaurant_training.csv',
        test_file=data_dir / 'gs_restaurant_test.csv',
        output_dir=data_dir / 'output',
        worker_processes=-1
    )
