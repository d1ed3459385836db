"""
Timeline interaction: pointer positions to epoch selections.

Each dataset-timeline lays its epoch positions out on an ordinal point
scale. Two tools write the timeline's selection:

- the brush, a continuous pixel range resolved to a contiguous epoch range
  (multi selection); the single-epoch marker jumps to the range end
- the single-epoch pointer, which toggles the single selection

Both tools invert the same scale, round to the nearest position and reject
positions that are missing in the epoch catalog. Every committed change
fires EPOCH_SELECTED with the timeline id.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from epochmatrix.data.epochs import Epoch, EpochCatalog
from epochmatrix.selection import events as ev
from epochmatrix.selection.range_selector import Candidate
from epochmatrix.selection.state import SelectionContext, TimelineSelection
from epochmatrix.utils.config_utils import DEFAULT_EPOCH_SPACING


logger = logging.getLogger(__name__)


class OrdinalScale:
    """
    Point scale mapping positions ``0 .. length-1`` evenly onto
    ``[0, width]``. A single position sits in the middle of the range.
    """

    def __init__(self, length: int, width: float) -> None:
        if length < 1:
            raise ValueError(f"Scale length must be >= 1, got {length}.")
        self.length = int(length)
        self.width = float(width)
        if self.length < 2:
            self.start = self.width / 2.0
            self.step = 0.0
        else:
            self.start = 0.0
            self.step = self.width / (self.length - 1)

    def __call__(self, position: float) -> float:
        return self.start + self.step * position

    def invert(self, px: float) -> float:
        if self.step == 0.0:
            return 0.0
        return (px - self.start) / self.step

    def position_at(self, px: float) -> int:
        return int(round(self.invert(px)))


class SingleEpochSelector:
    """State of the single-epoch marker."""

    def __init__(self) -> None:
        self.hidden = True
        self.cur_pos = -1

    def set_position(self, pos: int) -> None:
        # same visible position again toggles the marker off
        if self.cur_pos != pos or self.hidden:
            self.hidden = False
        else:
            self.hidden = True
        self.cur_pos = pos

    def show_at(self, pos: int) -> None:
        self.cur_pos = pos
        self.hidden = False

    def hide_node(self, val: bool) -> None:
        self.hidden = val


def overall_length(catalogs: Sequence[EpochCatalog]) -> int:
    """Length of the shared timeline axis (longest catalog)."""
    return max((len(c) for c in catalogs), default=0)


class Timeline:
    """
    Interaction model of one dataset-timeline.

    Parameters
    ----------
    selection : TimelineSelection
        Selection state written by this timeline.
    events : EventBus
        Bus on which EPOCH_SELECTED is fired.
    domain_length : Optional[int]
        Number of positions on the shared axis; defaults to the length of
        this dataset's catalog.
    epoch_spacing : float
        Pixels per position used to compute the axis width.
    """

    def __init__(
        self,
        selection: TimelineSelection,
        events: ev.EventBus,
        domain_length: Optional[int] = None,
        epoch_spacing: float = DEFAULT_EPOCH_SPACING,
    ) -> None:
        self.selection = selection
        self.events = events
        self.catalog = selection.dataset.catalog

        length = max(domain_length or 0, len(self.catalog))
        self.width = length * float(epoch_spacing)
        self.scale = OrdinalScale(length, self.width)

        self.single_epoch_selector = SingleEpochSelector()
        self.brush_extent: Optional[Tuple[float, float]] = None
        self.hover_position: Optional[int] = None

    @property
    def timeline_id(self) -> str:
        return self.selection.timeline_id

    # ------------------------------------------------------------------
    # Pointer resolution
    # ------------------------------------------------------------------

    def pos_from_coordinates(self, px: float) -> int:
        return self.scale.position_at(px)

    def is_valid_pos(self, pos: int) -> bool:
        return self.catalog.position_exists(pos)

    def epoch_candidates(self, marker_width: float = 2.0) -> List[Candidate]:
        """Existing epoch positions as RangeSelector candidates."""
        return [
            Candidate(offset=self.scale(dp.position), width=marker_width, payload=dp.position)
            for dp in self.catalog.datapoints
            if dp.exists
        ]

    # ------------------------------------------------------------------
    # Single-epoch pointer
    # ------------------------------------------------------------------

    def pointer_move(self, px: float) -> Optional[int]:
        """Hover preview: the valid position under the pointer, or None."""
        pos = self.pos_from_coordinates(px)
        self.hover_position = pos if self.is_valid_pos(pos) else None
        return self.hover_position

    def pointer_leave(self) -> None:
        self.hover_position = None

    def pointer_up(self, px: float) -> bool:
        """
        Select (or deselect) the single epoch under the pointer.

        Returns
        -------
        bool
            False if the pointer is over a missing position (nothing changes).
        """
        pos = self.pos_from_coordinates(px)
        if not self.is_valid_pos(pos):
            return False
        self.single_epoch_selector.set_position(pos)
        self.update_single_selection()
        self.events.fire(ev.EPOCH_SELECTED, self.timeline_id)
        return True

    def select_position(self, pos: int) -> bool:
        """Same as pointer_up at the pixel of ``pos``."""
        return self.pointer_up(self.scale(pos))

    def update_single_selection(self) -> None:
        self.selection.clear_single_selection()
        selector = self.single_epoch_selector
        if not selector.hidden:
            epoch = self.catalog.epoch_at(selector.cur_pos)
            if epoch is None:
                raise ValueError(f"Single epoch marker on missing position {selector.cur_pos}.")
            self.selection.single_selected = epoch

    # ------------------------------------------------------------------
    # Range brush
    # ------------------------------------------------------------------

    def brush_empty(self) -> bool:
        return self.brush_extent is None or self.brush_extent[0] == self.brush_extent[1]

    def get_data_indices(self, n0: float, n1: float) -> Tuple[Optional[int], Optional[int]]:
        """
        Resolve two fractional positions to existing positions.

        The pair is ordered first, then each end is rounded, clamped to this
        dataset's catalog (the shared axis can be longer) and moved to the
        next existing position (None if there is none).
        """
        if n0 > n1:
            n0, n1 = n1, n0
        last = len(self.catalog) - 1
        start = self.catalog.ceiling_to_existing(min(math.ceil(round(n0)), last))
        end = self.catalog.ceiling_to_existing(min(math.ceil(round(n1)), last))
        return start, end

    def _extent_indices(self) -> Tuple[Optional[int], Optional[int]]:
        e0, e1 = self.brush_extent
        return self.get_data_indices(self.scale.invert(e0), self.scale.invert(e1))

    @staticmethod
    def _is_range(indices: Tuple[Optional[int], Optional[int]]) -> bool:
        start, end = indices
        return start is not None and end is not None and start < end

    def brush_move(self, start_px: float, end_px: float) -> Optional[Tuple[float, float]]:
        """
        Live brush update: snap the extent onto existing positions.

        Returns the snapped pixel extent, or None if the brush collapsed.
        """
        self.brush_extent = (min(start_px, end_px), max(start_px, end_px))
        if self.brush_empty():
            return None

        indices = self._extent_indices()
        if self._is_range(indices):
            self.brush_extent = (self.scale(indices[0]), self.scale(indices[1]))
            self.single_epoch_selector.show_at(indices[1])
        else:
            self.brush_extent = None
        return self.brush_extent

    def brush_end(self) -> List[Epoch]:
        """
        Commit the brush to the multi selection and fire EPOCH_SELECTED.

        Returns the selected epochs (empty if the brush was cleared).
        """
        indices = (None, None) if self.brush_empty() else self._extent_indices()

        if self._is_range(indices):
            start, end = indices
            self.selection.multi_selected = self.catalog.epochs_in_range(start, end)
            self.single_epoch_selector.show_at(end)
            self.update_single_selection()
            logger.debug(
                "Timeline %s: selected epochs %d..%d (%d epochs)",
                self.timeline_id, start, end, len(self.selection.multi_selected),
            )
        else:
            self.selection.clear_multi_selection()
            self.brush_extent = None

        self.events.fire(ev.EPOCH_SELECTED, self.timeline_id)
        return list(self.selection.multi_selected)

    def brush(self, start_px: float, end_px: float) -> List[Epoch]:
        """Full brush gesture: move to ``[start_px, end_px]`` and commit."""
        self.brush_move(start_px, end_px)
        return self.brush_end()

    def brush_positions(self, start_pos: float, end_pos: float) -> List[Epoch]:
        return self.brush(self.scale(start_pos), self.scale(end_pos))

    def set_brush(self, width: float) -> List[Epoch]:
        return self.brush(0.0, width)

    def reset_to_full_range(self) -> bool:
        """
        Double activation on the timeline label: if any range is selected,
        select the full extent again (a reset, never a toggle-off).
        """
        if self.brush_empty():
            return False
        self.set_brush(self.width)
        return True


def build_timelines(
    context: SelectionContext,
    epoch_spacing: float = DEFAULT_EPOCH_SPACING,
) -> List[Timeline]:
    """
    Create one Timeline per registered dataset, sharing one axis length.
    """
    selections = context.timelines()
    length = overall_length([s.dataset.catalog for s in selections])
    return [
        Timeline(s, context.events, domain_length=length, epoch_spacing=epoch_spacing)
        for s in selections
    ]
