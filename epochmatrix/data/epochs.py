"""
Epoch records and the dense positional epoch catalog.

A classifier run stores one confusion matrix per training epoch, but not
every epoch index has to be present (e.g. only every 5th epoch was
evaluated). The timeline lays epochs out by identifier, so the catalog
builds a dense sequence of length ``max(identifier) + 1`` where missing
identifiers become non-selectable slots.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from epochmatrix.errors import EmptyCatalogError


_TRAILING_INT = re.compile(r"(\d+)\s*$")


@dataclass(frozen=True)
class Epoch:
    """
    One training epoch of a classifier run.

    ``confusion_source`` is any object exposing ``async data()`` that
    returns the confusion matrix as a two-dimensional numeric array.
    """

    identifier: int
    name: str
    confusion_source: Any = None
    class_sizes: Optional[Sequence[int]] = None


def extract_epoch_id(epoch: Any) -> int:
    """
    Return the integer identifier of an epoch.

    Accepts an Epoch (or any object with an ``identifier`` attribute), or
    falls back to the trailing integer of its name ("epoch_12" -> 12).

    Raises
    ------
    ValueError
        If no identifier can be derived.
    """
    identifier = getattr(epoch, "identifier", None)
    if identifier is not None:
        return int(identifier)

    name = getattr(epoch, "name", epoch)
    match = _TRAILING_INT.search(str(name))
    if match is None:
        raise ValueError(f"Cannot derive an epoch id from {name!r}.")
    return int(match.group(1))


@dataclass(frozen=True)
class DataPoint:
    exists: bool
    position: int
    epoch: Optional[Epoch] = None


class EpochCatalog:
    """
    Dense positional view over one dataset's epochs.

    Use :meth:`build` to construct it.
    """

    def __init__(self, datapoints: List[DataPoint]) -> None:
        self.datapoints = datapoints

    @classmethod
    def build(cls, epochs: Iterable[Epoch]) -> "EpochCatalog":
        """
        Sort ``epochs`` by identifier and fill gaps with missing slots.

        Raises
        ------
        EmptyCatalogError
            If ``epochs`` is empty.
        """
        ordered = sorted(epochs, key=extract_epoch_id)
        if not ordered:
            raise EmptyCatalogError("Cannot build an epoch catalog from an empty list.")

        by_id = {extract_epoch_id(e): e for e in ordered}
        length = extract_epoch_id(ordered[-1]) + 1

        datapoints = []
        for i in range(length):
            epoch = by_id.get(i)
            datapoints.append(DataPoint(exists=epoch is not None, position=i, epoch=epoch))
        return cls(datapoints)

    def __len__(self) -> int:
        return len(self.datapoints)

    def position_exists(self, position: int) -> bool:
        return 0 <= position < len(self.datapoints) and self.datapoints[position].exists

    def epoch_at(self, position: int) -> Optional[Epoch]:
        if not self.position_exists(position):
            return None
        return self.datapoints[position].epoch

    def ceiling_to_existing(self, position: int) -> Optional[int]:
        """
        Smallest existing position >= ``position``, or None.
        """
        for i in range(max(int(position), 0), len(self.datapoints)):
            if self.datapoints[i].exists:
                return i
        return None

    def epochs_in_range(self, start: int, end: int) -> List[Epoch]:
        """
        Existing epochs with ``start <= position <= end`` in position order.
        """
        return [
            dp.epoch
            for dp in self.datapoints[max(start, 0): end + 1]
            if dp.exists
        ]

    def existing_epochs(self) -> List[Epoch]:
        return [dp.epoch for dp in self.datapoints if dp.exists]
