"""
Tests for the SquareMatrix container.

These tests validate that:

- matrices are initialized only from square input
- flatten() is row-major and has N*N values
- clone() and transform() never share storage with the source
- set_diagonal() mutates the diagonal in place
"""

from __future__ import annotations

import pytest

from epochmatrix.data.matrix import SquareMatrix
from epochmatrix.errors import ShapeError


ROWS_3 = [[1, 2, 3], [4, 5, 6], [7, 8, 9]]


@pytest.mark.parametrize("order", [1, 2, 3, 5])
def test_flatten_is_row_major_with_n_squared_values(order):
    rows = [[r * order + c for c in range(order)] for r in range(order)]
    m = SquareMatrix(order)
    m.init_from(rows)

    flat = m.flatten()
    assert len(flat) == order * order
    assert flat == list(range(order * order))


def test_clone_is_equal_but_independent():
    m = SquareMatrix.from_rows(ROWS_3)
    c = m.clone()

    assert c is not m
    assert c.flatten() == m.flatten()

    c.set_diagonal(lambda i: 0)
    assert m.value_at(0, 0) == 1
    assert c.value_at(0, 0) == 0


def test_init_rejects_ragged_rows():
    m = SquareMatrix(3)
    with pytest.raises(ShapeError):
        m.init_from([[1, 2, 3], [4, 5], [7, 8, 9]])


def test_init_rejects_wrong_row_count():
    m = SquareMatrix(3)
    with pytest.raises(ShapeError):
        m.init_from([[1, 2, 3], [4, 5, 6]])


def test_order_must_be_positive():
    with pytest.raises(ShapeError):
        SquareMatrix(0)
    with pytest.raises(ShapeError):
        SquareMatrix.from_rows([])


def test_accessors():
    m = SquareMatrix.from_rows(ROWS_3)
    assert m.order() == 3
    assert m.value_at(1, 2) == 6
    assert m.row(2) == [7, 8, 9]
    assert m.column(0) == [1, 4, 7]
    assert m.max_value() == 9
    assert SquareMatrix(2).max_value() == 0


def test_transform_returns_new_matrix():
    m = SquareMatrix.from_rows(ROWS_3)
    t = m.transform(lambda r, c, src: src.value_at(c, r))

    assert t is not m
    assert t.order() == 3
    assert t.row(0) == [1, 4, 7]
    # source untouched
    assert m.row(0) == [1, 2, 3]


def test_set_diagonal_in_place():
    m = SquareMatrix.from_rows(ROWS_3)
    m.set_diagonal(lambda i: -i)
    assert [m.value_at(i, i) for i in range(3)] == [0, -1, -2]
    assert m.value_at(0, 1) == 2


def test_set_diagonal_with_float_values():
    m = SquareMatrix.from_rows([[1, 2], [3, 4]])
    m.set_diagonal(lambda i: 0.5)
    assert m.value_at(0, 0) == 0.5
    assert m.value_at(1, 0) == 3


def test_equality_by_value():
    assert SquareMatrix.from_rows(ROWS_3) == SquareMatrix.from_rows(ROWS_3)
    assert SquareMatrix.from_rows(ROWS_3) != SquareMatrix(3)
