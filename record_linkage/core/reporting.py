"""Observer hooks for blocking and learning diagnostics."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

import pandas as pd


class BlockingObserver(Protocol):
    """Receives the size of every block once blocking is done."""

    def on_blocks(self, block_sizes: Sequence[Tuple[str, int, int]]) -> None:
        """block_sizes holds (key, size in first dataset, size in second dataset)."""
        ...


class FeatureObserver(Protocol):
    """Receives feature vectors classified by a learned rule."""

    def on_feature_vector(self, row: Dict[str, Any]) -> None:
        ...


class BlockSizeReport:
    """Keeps the largest blocks as a table."""

    def __init__(self, max_blocks: int = 100):
        self.max_blocks = max_blocks
        self._frame = pd.DataFrame(
            columns=['blocking_key', 'first_size', 'second_size', 'pairs']
        )

    def on_blocks(self, block_sizes: Sequence[Tuple[str, int, int]]) -> None:
        frame = pd.DataFrame(
            block_sizes,
            columns=['blocking_key', 'first_size', 'second_size']
        )
        frame['pairs'] = frame['first_size'] * frame['second_size']
        self._frame = (
            frame.sort_values(['pairs', 'blocking_key'], ascending=[False, True])
            .head(self.max_blocks)
            .reset_index(drop=True)
        )

    def to_frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def histogram(self) -> pd.Series:
        """Number of blocks per pair count."""
        return self._frame['pairs'].value_counts().sort_index()

    def write_csv(self, path: Union[str, Path]) -> None:
        self._frame.to_csv(path, index=False)


class FeatureDebugReport:
    """
    Collects feature vectors with predicted and gold-standard labels.

    Only the first ``max_examples`` vectors are kept.
    """

    def __init__(self, max_examples: int = 1000):
        self.max_examples = max_examples
        self._rows: List[Dict[str, Any]] = []

    @property
    def full(self) -> bool:
        return len(self._rows) >= self.max_examples

    def on_feature_vector(self, row: Dict[str, Any]) -> None:
        if not self.full:
            self._rows.append(dict(row))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows)

    def write_csv(self, path: Union[str, Path], columns: Optional[List[str]] = None) -> None:
        self.to_frame().to_csv(path, index=False, columns=columns)
