"""
Asynchronous matrix and label sources.

The update pipeline never reads files directly: every epoch carries a
``confusion_source`` and every dataset a label table, both exposing
``async data()``. This module provides:

- InMemoryMatrixSource / InMemoryLabelTable  (tests, notebooks)
- CsvMatrixSource        : header-less square CSV, one matrix per file
- PredictionsMatrixSource: CSV with y_true/y_pred columns, the confusion
                           matrix is computed with scikit-learn
- CsvLabelTable          : CSV with "index" and "label" columns
- load_matrix / load_labels: the two loading operations used by the pipeline

Blocking file reads run in a worker thread so that a pending load never
blocks interaction handling on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from epochmatrix.data.matrix import SquareMatrix


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Matrix sources
# ---------------------------------------------------------------------------


class InMemoryMatrixSource:
    """Matrix source wrapping an already available 2D array."""

    def __init__(self, rows: Sequence[Sequence[Any]]) -> None:
        self._rows = [list(r) for r in rows]

    async def data(self) -> List[List[Any]]:
        return [list(r) for r in self._rows]


class CsvMatrixSource:
    """
    Matrix source backed by a header-less CSV file.

    Parameters
    ----------
    path : str
        CSV file with one matrix row per line.
    sep : str
        Column separator.
    """

    def __init__(self, path: str, sep: str = ",") -> None:
        self.path = path
        self.sep = sep

    def _read(self) -> List[List[Any]]:
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Confusion matrix CSV not found at: {self.path}")
        df = pd.read_csv(self.path, header=None, sep=self.sep)
        return df.values.tolist()

    async def data(self) -> List[List[Any]]:
        return await asyncio.to_thread(self._read)


class PredictionsMatrixSource:
    """
    Matrix source computing a confusion matrix from raw predictions.

    The CSV must contain a ground-truth and a predicted column holding class
    indices. ``n_classes`` fixes the label set, so epochs in which some class
    was never predicted still produce a matrix of the full order.
    """

    def __init__(
        self,
        path: str,
        n_classes: int,
        true_column: str = "y_true",
        pred_column: str = "y_pred",
    ) -> None:
        self.path = path
        self.n_classes = int(n_classes)
        self.true_column = true_column
        self.pred_column = pred_column

    def _read(self) -> List[List[int]]:
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Predictions CSV not found at: {self.path}")
        df = pd.read_csv(self.path)

        missing_cols = [c for c in (self.true_column, self.pred_column) if c not in df.columns]
        if missing_cols:
            raise ValueError(
                f"Missing required column(s) in predictions CSV: {missing_cols}. "
                f"Available columns: {list(df.columns)}"
            )

        cm = confusion_matrix(
            df[self.true_column].to_numpy(),
            df[self.pred_column].to_numpy(),
            labels=list(range(self.n_classes)),
        )
        return cm.tolist()

    async def data(self) -> List[List[int]]:
        return await asyncio.to_thread(self._read)


# ---------------------------------------------------------------------------
# Label tables
# ---------------------------------------------------------------------------


class InMemoryLabelTable:
    """Label table over a list of class names (index = list position)."""

    def __init__(self, labels: Sequence[str]) -> None:
        self._labels = list(labels)

    async def data(self) -> List[Tuple[int, str]]:
        return list(enumerate(self._labels))


class CsvLabelTable:
    """
    Label table backed by a CSV file with "index" and "label" columns.
    """

    def __init__(self, path: str, index_column: str = "index", label_column: str = "label") -> None:
        self.path = path
        self.index_column = index_column
        self.label_column = label_column

    def _read(self) -> List[Tuple[int, str]]:
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Label CSV not found at: {self.path}")
        df = pd.read_csv(self.path)
        missing_cols = [c for c in (self.index_column, self.label_column) if c not in df.columns]
        if missing_cols:
            raise ValueError(
                f"Missing required column(s) in label CSV: {missing_cols}. "
                f"Available columns: {list(df.columns)}"
            )
        return [
            (int(idx), str(label))
            for idx, label in zip(df[self.index_column], df[self.label_column])
        ]

    async def data(self) -> List[Tuple[int, str]]:
        return await asyncio.to_thread(self._read)


# ---------------------------------------------------------------------------
# Loading operations used by the update pipeline
# ---------------------------------------------------------------------------


async def load_matrix(epoch: Any) -> SquareMatrix:
    """
    Load the confusion matrix of ``epoch`` as a SquareMatrix.

    Raises
    ------
    ValueError
        If the epoch has no confusion source.
    ShapeError
        If the loaded array is not square.
    """
    source = getattr(epoch, "confusion_source", None)
    if source is None:
        raise ValueError(f"Epoch {getattr(epoch, 'name', epoch)!r} has no confusion source.")

    rows = await source.data()
    if isinstance(rows, np.ndarray):
        rows = rows.tolist()
    logger.debug("Loaded confusion matrix for epoch %s", getattr(epoch, "name", epoch))
    return SquareMatrix.from_rows(rows)


async def load_labels(table: Optional[Any]) -> List[str]:
    """
    Load class labels as a list ordered by their index.
    """
    if table is None:
        return []
    pairs = await table.data()
    return [label for _, label in sorted(pairs, key=lambda p: p[0])]
