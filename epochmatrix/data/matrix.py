"""
Square matrix container used for every loaded confusion matrix.

Rows correspond to ground-truth classes, columns to predicted classes.
The container is backed by a numpy array and never shares storage with
other instances: clone() and transform() always copy.
"""

from __future__ import annotations

from typing import Callable, List, Sequence, Union

import numpy as np

from epochmatrix.errors import ShapeError


Number = Union[int, float]


class SquareMatrix:
    """
    Fixed-size square numeric matrix.

    Parameters
    ----------
    order : int
        Number of rows (and columns); must be >= 1.
    """

    def __init__(self, order: int) -> None:
        order = int(order)
        if order < 1:
            raise ShapeError(f"Matrix order must be >= 1, got {order}.")
        self._order = order
        self._data = np.zeros((order, order), dtype=np.int64)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Number]]) -> "SquareMatrix":
        """
        Build a matrix whose order is the number of rows in ``rows``.
        """
        if rows is None or len(rows) == 0:
            raise ShapeError("Cannot build a matrix from an empty row list.")
        m = cls(len(rows))
        m.init_from(rows)
        return m

    def init_from(self, rows: Sequence[Sequence[Number]]) -> None:
        """
        Overwrite the matrix content with ``rows``.

        Raises
        ------
        ShapeError
            If the row count or any row length differs from the order.
        """
        if len(rows) != self._order:
            raise ShapeError(
                f"Expected {self._order} rows, got {len(rows)}."
            )
        for i, row in enumerate(rows):
            if len(row) != self._order:
                raise ShapeError(
                    f"Row {i} has length {len(row)}, expected {self._order}."
                )

        arr = np.array(rows)
        if arr.dtype.kind not in "biuf":
            arr = arr.astype(np.float64)
        self._data = arr

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def order(self) -> int:
        return self._order

    def value_at(self, row: int, col: int) -> Number:
        return self._data[row, col].item()

    def row(self, row: int) -> List[Number]:
        return self._data[row, :].tolist()

    def column(self, col: int) -> List[Number]:
        return self._data[:, col].tolist()

    def max_value(self) -> Number:
        return self._data.max().item()

    def flatten(self) -> List[Number]:
        """Row-major one-dimensional list of all N*N values."""
        return self._data.ravel().tolist()

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()

    # ------------------------------------------------------------------
    # Copies and transformations
    # ------------------------------------------------------------------

    def clone(self) -> "SquareMatrix":
        m = SquareMatrix(self._order)
        m._data = self._data.copy()
        return m

    def transform(
        self,
        fn: Callable[[int, int, "SquareMatrix"], Number],
    ) -> "SquareMatrix":
        """
        Apply ``fn(row, col, self)`` to every cell and return the result as a
        new matrix of the same order. ``self`` is left untouched.
        """
        n = self._order
        rows = [[fn(r, c, self) for c in range(n)] for r in range(n)]
        m = SquareMatrix(n)
        m.init_from(rows)
        return m

    def set_diagonal(self, fn: Callable[[int], Number]) -> None:
        """
        Overwrite the main diagonal in place with ``fn(index)``.
        """
        values = np.asarray([fn(i) for i in range(self._order)])
        self._data = self._data.astype(np.result_type(self._data, values), copy=False)
        np.fill_diagonal(self._data, values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SquareMatrix):
            return NotImplemented
        return self._order == other._order and np.array_equal(self._data, other._data)

    def __repr__(self) -> str:
        return f"SquareMatrix(order={self._order}, data={self._data.tolist()})"
