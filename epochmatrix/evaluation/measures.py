"""
Per-class measures shown next to the confusion matrix.

For a confusion matrix with ground-truth rows and predicted columns:

- false positives of class c : column sum of c minus the diagonal value
- false negatives of class c : row sum of c minus the diagonal value
- precision of class c       : diagonal value / column sum (0 when undefined)
- class size of class c      : row sum, or the provided class size

The helpers return pandas DataFrames so the scripts can print or export
them directly.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from epochmatrix.data.matrix import SquareMatrix


MEASURE_COLUMNS = ["label", "fp", "fn", "precision", "class_size"]


def compute_class_measures(
    matrix: SquareMatrix,
    labels: Sequence[str],
    class_sizes: Optional[Sequence[float]] = None,
) -> pd.DataFrame:
    """
    Compute per-class measures for one confusion matrix.

    Parameters
    ----------
    matrix : SquareMatrix
        Confusion matrix (rows: ground truth, columns: prediction).
    labels : Sequence[str]
        Class labels, one per row.
    class_sizes : Optional[Sequence[float]]
        Known class sizes; row sums are used if None.

    Returns
    -------
    pd.DataFrame
        One row per class with columns ["label", "fp", "fn", "precision",
        "class_size"].

    Raises
    ------
    ValueError
        If the number of labels does not match the matrix order.
    """
    cm = matrix.to_numpy()
    n = cm.shape[0]
    if len(labels) != n:
        raise ValueError(
            f"Number of labels ({len(labels)}) does not match CM size ({n})."
        )

    tp = np.diag(cm)
    col_sums = cm.sum(axis=0)
    row_sums = cm.sum(axis=1)

    with np.errstate(all="ignore"):
        precision = np.divide(
            tp, col_sums, out=np.zeros(n, dtype=np.float64), where=col_sums != 0
        )

    sizes = np.asarray(class_sizes if class_sizes is not None else row_sums)

    return pd.DataFrame(
        {
            "label": list(labels),
            "fp": col_sums - tp,
            "fn": row_sums - tp,
            "precision": precision,
            "class_size": sizes[:n],
        },
        columns=MEASURE_COLUMNS,
    )


def measure_series(
    matrices: Sequence[SquareMatrix],
    labels: Sequence[str],
    epoch_names: Optional[Sequence[str]] = None,
    class_sizes: Optional[Sequence[float]] = None,
) -> pd.DataFrame:
    """
    Per-class measures for a sequence of epochs, stacked into one table
    with an additional "epoch" column (long format).
    """
    if epoch_names is None:
        epoch_names = [str(i) for i in range(len(matrices))]

    frames: List[pd.DataFrame] = []
    for name, matrix in zip(epoch_names, matrices):
        df = compute_class_measures(matrix, labels, class_sizes=class_sizes)
        df.insert(0, "epoch", name)
        frames.append(df)

    if not frames:
        return pd.DataFrame(columns=["epoch"] + MEASURE_COLUMNS)
    return pd.concat(frames, axis=0, ignore_index=True)
