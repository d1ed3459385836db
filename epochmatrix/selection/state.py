"""
Selection state owned by a SelectionContext.

- TimelineSelection : per dataset-timeline single epoch + epoch range
- CellSelection     : the currently selected confusion matrix cell
- SelectionContext  : registry of timeline selections, the cell selection
                      and the event bus shared by timelines and pipeline

The context is created once per view and passed explicitly to the
timelines and to the update pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from epochmatrix.data.datasets import Dataset
from epochmatrix.data.epochs import Epoch
from epochmatrix.selection import events as ev


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TimelineSelection:
    """
    Selection of one dataset-timeline.

    ``single_selected`` and ``multi_selected`` are cleared independently.
    Both are only written by the Timeline of the same dataset.
    """

    dataset: Dataset
    dataset_color: str
    index_in_timeline_collection: int = -1
    single_selected: Optional[Epoch] = None
    multi_selected: List[Epoch] = field(default_factory=list)

    @property
    def timeline_id(self) -> str:
        return self.dataset.name

    def clear_multi_selection(self) -> None:
        self.multi_selected = []

    def clear_single_selection(self) -> None:
        self.single_selected = None


@dataclass(frozen=True)
class Cell:
    """A confusion matrix cell addressed by its flattened position."""

    position: int
    order: int
    content: Any = None

    @property
    def row(self) -> int:
        return self.position // self.order

    @property
    def col(self) -> int:
        return self.position % self.order


class CellSelection:
    def __init__(self, events: ev.EventBus) -> None:
        self._events = events
        self._cell: Optional[Cell] = None
        self.transpose_cell_renderer = False

    def cell_selected(self, cell: Optional[Cell]) -> None:
        if cell is None:
            return
        self._cell = cell
        self._events.fire(ev.CELL_SELECTED)

    def get_cell(self) -> Optional[Cell]:
        return self._cell

    def toggle_transpose_cell_renderer(self) -> bool:
        self.transpose_cell_renderer = not self.transpose_cell_renderer
        return self.transpose_cell_renderer


class SelectionContext:
    """
    Owner of all selection state of one confusion matrix view.
    """

    def __init__(self, events: Optional[ev.EventBus] = None) -> None:
        self.events = events or ev.EventBus()
        self.cell_selection = CellSelection(self.events)
        self._timelines: Dict[str, TimelineSelection] = {}

    def add_timeline(self, dataset: Dataset, color: Optional[str] = None) -> TimelineSelection:
        """
        Register a dataset-timeline and fire DATASET_ADDED.

        Raises
        ------
        ValueError
            If a timeline for a dataset of the same name already exists.
        """
        if dataset.name in self._timelines:
            raise ValueError(f'Dataset "{dataset.name}" is already selected.')

        selection = TimelineSelection(
            dataset=dataset,
            dataset_color=color or dataset.color,
            index_in_timeline_collection=len(self._timelines),
        )
        self._timelines[dataset.name] = selection
        logger.info("Added timeline for dataset %s", dataset.name)
        self.events.fire(ev.DATASET_ADDED, dataset)
        return selection

    def remove_timeline(self, name: str) -> TimelineSelection:
        """
        Unregister a dataset-timeline and fire DATASET_REMOVED.

        Raises
        ------
        KeyError
            If no timeline of that name exists.
        """
        if name not in self._timelines:
            raise KeyError(f'No timeline for dataset "{name}".')

        selection = self._timelines.pop(name)
        for i, remaining in enumerate(self._timelines.values()):
            remaining.index_in_timeline_collection = i
        logger.info("Removed timeline for dataset %s", name)
        self.events.fire(ev.DATASET_REMOVED, selection.dataset)
        return selection

    def timeline(self, name: str) -> TimelineSelection:
        return self._timelines[name]

    def timelines(self) -> List[TimelineSelection]:
        return list(self._timelines.values())
