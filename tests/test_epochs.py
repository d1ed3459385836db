"""
Tests for epoch records and the epoch catalog.

These tests validate that:

- the catalog is dense, of length max(identifier) + 1
- every epoch sits at its own identifier's position
- gaps are missing and never selectable
- ceiling_to_existing resolves positions onto existing epochs
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from epochmatrix.data.epochs import Epoch, EpochCatalog, extract_epoch_id
from epochmatrix.errors import EmptyCatalogError


def _epochs(ids):
    return [Epoch(identifier=i, name=f"epoch_{i}") for i in ids]


def test_build_fills_gaps():
    catalog = EpochCatalog.build(_epochs([5, 0, 2]))

    assert len(catalog) == 6
    for i in (0, 2, 5):
        assert catalog.position_exists(i)
        assert catalog.epoch_at(i).identifier == i
    for i in (1, 3, 4):
        assert not catalog.position_exists(i)
        assert catalog.epoch_at(i) is None


def test_positions_are_contiguous_from_zero():
    catalog = EpochCatalog.build(_epochs([3, 1]))
    assert [dp.position for dp in catalog.datapoints] == [0, 1, 2, 3]


def test_out_of_range_positions_do_not_exist():
    catalog = EpochCatalog.build(_epochs([0, 1]))
    assert not catalog.position_exists(-1)
    assert not catalog.position_exists(2)


def test_empty_catalog_raises():
    with pytest.raises(EmptyCatalogError):
        EpochCatalog.build([])


def test_ceiling_to_existing():
    catalog = EpochCatalog.build(_epochs([0, 2, 5]))
    assert catalog.ceiling_to_existing(0) == 0
    assert catalog.ceiling_to_existing(1) == 2
    assert catalog.ceiling_to_existing(3) == 5
    assert catalog.ceiling_to_existing(5) == 5
    assert catalog.ceiling_to_existing(6) is None


def test_epochs_in_range_skips_missing():
    catalog = EpochCatalog.build(_epochs([0, 2, 5]))
    assert [e.identifier for e in catalog.epochs_in_range(1, 5)] == [2, 5]
    assert [e.identifier for e in catalog.existing_epochs()] == [0, 2, 5]


def test_extract_epoch_id():
    assert extract_epoch_id(Epoch(identifier=4, name="whatever")) == 4
    assert extract_epoch_id(SimpleNamespace(name="epoch_12")) == 12
    assert extract_epoch_id("run-7") == 7
    with pytest.raises(ValueError):
        extract_epoch_id("final")
