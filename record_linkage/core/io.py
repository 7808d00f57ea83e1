"""Reading datasets and gold standards, writing correspondences."""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from record_linkage.core.errors import ConfigurationError
from record_linkage.core.model import (
    Attribute, Correspondence, DataSet, GoldStandard, Record
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_TRUE_LABELS = {'true', '1', 'yes'}
_FALSE_LABELS = {'false', '0', 'no'}

CORRESPONDENCE_COLUMNS = ['first_id', 'second_id', 'score', 'causal']


def dataset_from_dataframe(
    df: pd.DataFrame,
    id_column: str,
    provenance: str = '',
    attributes: Optional[Dict[str, Attribute]] = None
) -> DataSet:
    """
    Build a DataSet from a DataFrame.

    Args:
        df: One row per record
        id_column: Column holding the record ids
        provenance: Name of the dataset
        attributes: Column name to Attribute mapping; by default every
            column except the id column becomes a new Attribute

    Returns:
        DataSet: Dataset whose missing cells are absent values

    Raises:
        ConfigurationError: If a mapped column is missing
        DuplicateIdError: If the id column contains duplicates
    """
    if id_column not in df.columns:
        raise ConfigurationError(f"Id column {id_column!r} not found")
    if attributes is None:
        attributes = {
            column: Attribute(column, provenance=provenance)
            for column in df.columns if column != id_column
        }
    missing = [column for column in attributes if column not in df.columns]
    if missing:
        raise ConfigurationError(f"Columns {missing} not found in dataframe")

    dataset = DataSet(provenance)
    for attribute in attributes.values():
        dataset.add_attribute(attribute)

    for row in df.to_dict('records'):
        record = Record(str(row[id_column]), provenance)
        for column, attribute in attributes.items():
            value = row[column]
            record.set_value(attribute, None if pd.isna(value) else str(value))
        dataset.add(record)

    logger.info(f"Loaded {len(dataset)} records into dataset {provenance!r}")
    return dataset


def read_csv_dataset(
    path: PathLike,
    id_column: str,
    provenance: Optional[str] = None,
    attributes: Optional[Dict[str, Attribute]] = None,
    **read_csv_kwargs
) -> DataSet:
    """Read a CSV file with one record per row."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[''], **read_csv_kwargs)
    return dataset_from_dataframe(
        df, id_column, provenance or Path(path).stem, attributes
    )


def _parse_label(value: object) -> Optional[bool]:
    text = str(value).strip().lower()
    if text in _TRUE_LABELS:
        return True
    if text in _FALSE_LABELS:
        return False
    return None


def gold_standard_from_dataframe(df: pd.DataFrame) -> GoldStandard:
    """
    Build a gold standard from the first three columns: first id, second id, label.

    Further columns are ignored; rows with an unreadable label are skipped.
    """
    if df.shape[1] < 3:
        raise ConfigurationError(
            f"Gold standard needs at least 3 columns, got {df.shape[1]}"
        )
    gold_standard = GoldStandard()
    skipped = 0
    for first_id, second_id, raw_label in df.iloc[:, :3].itertuples(index=False):
        label = _parse_label(raw_label)
        if label is None or pd.isna(first_id) or pd.isna(second_id):
            skipped += 1
            continue
        gold_standard.add(str(first_id).strip(), str(second_id).strip(), label)

    if skipped:
        logger.warning(f"Skipped {skipped} gold-standard rows without a valid label")
    logger.info(
        f"Loaded gold standard with {len(gold_standard.positive)} positive and "
        f"{len(gold_standard.negative)} negative pairs"
    )
    return gold_standard


def read_gold_standard(path: PathLike) -> GoldStandard:
    """Read a headerless CSV gold standard; rows may carry extra columns."""
    with open(path, newline='', encoding='utf-8') as handle:
        rows = [
            (row + [''] * 3)[:3]
            for row in csv.reader(handle) if any(cell.strip() for cell in row)
        ]
    return gold_standard_from_dataframe(
        pd.DataFrame(rows, columns=['first_id', 'second_id', 'label'])
    )


def correspondences_to_frame(correspondences: Iterable[Correspondence]) -> pd.DataFrame:
    """
    Tabulate correspondences.

    Scores are formatted with six decimals; causal correspondences are listed
    as ``first~second`` joined by ``;``.
    """
    rows: List[Dict[str, str]] = [
        {
            'first_id': c.first.identifier,
            'second_id': c.second.identifier,
            'score': f"{c.similarity_score:.6f}",
            'causal': ';'.join(cause.identifier for cause in c.causal_correspondences),
        }
        for c in correspondences
    ]
    return pd.DataFrame(rows, columns=CORRESPONDENCE_COLUMNS)


def write_correspondences(path: PathLike, correspondences: Iterable[Correspondence]) -> None:
    """Write correspondences as a headerless CSV file."""
    correspondences_to_frame(correspondences).to_csv(path, index=False, header=False)
