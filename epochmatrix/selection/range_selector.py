"""
Drag-based range selection over a row of discrete elements.

RangeSelector turns pointer coordinates of a drag gesture into the subset of
candidate elements covered by the drag and forwards the drag lifecycle
(start, move, end) to its listeners. Rangeband is the listener drawing the
highlight band: it follows the pointer while dragging and snaps onto the
matched elements when the drag ends.

Coordinates are (x, y) pixel tuples; only x is used for range resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from epochmatrix.utils.config_utils import DEFAULT_BAND_MARGIN, DEFAULT_DRAG_TOLERANCE


logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class Candidate:
    """A selectable element at horizontal pixel ``offset`` with fixed ``width``."""

    offset: float
    width: float
    payload: Any = None

    def intersects(self, start_px: float, end_px: float) -> bool:
        return start_px <= self.offset + self.width and end_px >= self.offset


class DragListener:
    """Interface of objects notified by a RangeSelector."""

    def drag_start(self) -> None:
        pass

    def dragging(self, start: Point, end: Point) -> None:
        pass

    def drag_end(self, selection: List[Candidate]) -> None:
        pass


class SelectionRect:
    def __init__(self) -> None:
        self.start_pt: Optional[Point] = None
        self.end_pt: Optional[Point] = None

    def init(self, point: Point) -> None:
        self.start_pt = point
        self.end_pt = point

    def end(self, point: Point) -> None:
        self.end_pt = point

    def get_order_by_x(self) -> Tuple[Point, Point]:
        if self.start_pt[0] > self.end_pt[0]:
            return self.end_pt, self.start_pt
        return self.start_pt, self.end_pt


def select_candidates(
    candidates: Sequence[Candidate],
    start_px: float,
    end_px: float,
) -> List[Candidate]:
    """
    Candidates whose bounds intersect ``[start_px, end_px]``, in input order.
    """
    if start_px > end_px:
        start_px, end_px = end_px, start_px
    return [c for c in candidates if c.intersects(start_px, end_px)]


class RangeSelector:
    """
    Parameters
    ----------
    candidates : Sequence[Candidate]
        Elements that can be covered by a drag.
    listeners : Sequence[DragListener]
        Notified on every step of the drag lifecycle.
    """

    def __init__(
        self,
        candidates: Sequence[Candidate],
        listeners: Sequence[DragListener] = (),
    ) -> None:
        self.candidates = list(candidates)
        self.listeners = list(listeners)
        self.selection_rect = SelectionRect()

    def drag_start(self, point: Point) -> None:
        for listener in self.listeners:
            listener.drag_start()
        self.selection_rect.init(point)

    def drag_move(self, point: Point) -> None:
        self.selection_rect.end(point)
        start, end = self.selection_rect.get_order_by_x()
        for listener in self.listeners:
            listener.dragging(start, end)

    def drag_end(self, point: Point) -> List[Candidate]:
        self.selection_rect.end(point)
        start, end = self.selection_rect.get_order_by_x()
        selection = select_candidates(self.candidates, start[0], end[0])
        logger.debug("Drag [%s, %s] matched %d candidate(s)", start[0], end[0], len(selection))
        for listener in self.listeners:
            listener.drag_end(selection)
        return selection


class Rangeband(DragListener):
    """
    Highlight band following a drag.

    While dragging, the band spans the two (x-ordered) pointer positions once
    the span exceeds ``drag_tolerance``. When the drag ends it is hidden if
    fewer than two elements were matched, otherwise it snaps to the first and
    last matched element (plus ``margin`` on both sides).
    """

    def __init__(
        self,
        drag_tolerance: float = DEFAULT_DRAG_TOLERANCE,
        margin: float = DEFAULT_BAND_MARGIN,
    ) -> None:
        self.drag_tolerance = float(drag_tolerance)
        self.margin = float(margin)
        self.hidden = True
        self.x = 0.0
        self.width = 0.0
        self.is_dragging = False

    def hide(self, val: bool) -> None:
        self.hidden = val

    def drag_start(self) -> None:
        self.is_dragging = False

    def dragging(self, start: Point, end: Point) -> None:
        span = end[0] - start[0]
        if span > self.drag_tolerance:
            self.hide(False)
            self.x = start[0]
            self.width = span + self.margin
            self.is_dragging = True

    def drag_end(self, selection: List[Candidate]) -> None:
        # a single element is a point pick, not a range
        if len(selection) < 2:
            self.hide(True)
        else:
            self._snap_band(selection)
        self.is_dragging = False

    def _snap_band(self, selection: List[Candidate]) -> None:
        first = selection[0]
        last = selection[-1]
        self.x = first.offset - self.margin
        self.width = last.offset - first.offset + last.width + 2 * self.margin
        self.hide(False)

    @property
    def bounds(self) -> Optional[Tuple[float, float]]:
        """(start, end) of the visible band, or None while hidden."""
        if self.hidden:
            return None
        return self.x, self.x + self.width
