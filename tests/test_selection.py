"""
Tests for selection state and timeline interaction.

These tests validate that:

- drag spans resolve to the candidates whose bounds intersect them
- the highlight band is hidden for point picks and snapped for ranges
- the single-epoch pointer toggles the single selection
- the brush resolves pixel ranges onto existing epochs
- every committed change fires EPOCH_SELECTED with the timeline id
- the selection context registers and removes timelines
"""

from __future__ import annotations

import pytest

from epochmatrix.data.datasets import dataset_from_matrices
from epochmatrix.selection import events as ev
from epochmatrix.selection.range_selector import Candidate, Rangeband, RangeSelector
from epochmatrix.selection.state import Cell, SelectionContext
from epochmatrix.selection.timeline import OrdinalScale, Timeline, build_timelines


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


IDENTITY_2 = [[1, 0], [0, 1]]


def _dataset(name, ids):
    return dataset_from_matrices(name, {i: IDENTITY_2 for i in ids}, labels=["a", "b"])


def _timeline(ids, name="run"):
    context = SelectionContext()
    selection = context.add_timeline(_dataset(name, ids))
    fired = []
    context.events.on(ev.EPOCH_SELECTED, fired.append)
    return Timeline(selection, context.events), fired


def _ids(epochs):
    return [e.identifier for e in epochs]


CANDIDATES = [Candidate(offset=o, width=10) for o in (0, 10, 20, 30)]


# ---------------------------------------------------------------------------
# Range selector and highlight band
# ---------------------------------------------------------------------------


def test_drag_span_matches_intersecting_candidates():
    band = Rangeband(drag_tolerance=3, margin=3)
    selector = RangeSelector(CANDIDATES, [band])

    selector.drag_start((5, 0))
    selector.drag_move((25, 0))
    selection = selector.drag_end((25, 0))

    assert [c.offset for c in selection] == [0, 10, 20]
    # snapped onto first and last match, not onto the raw drag pixels
    assert band.bounds == (-3, 33)


def test_drag_span_without_candidates_hides_band():
    band = Rangeband(drag_tolerance=3, margin=3)
    selector = RangeSelector(CANDIDATES, [band])

    selector.drag_start((42, 0))
    selector.drag_move((50, 0))
    assert band.bounds is not None

    selection = selector.drag_end((50, 0))
    assert selection == []
    assert band.hidden


def test_single_candidate_drag_hides_band():
    band = Rangeband(drag_tolerance=3, margin=3)
    selector = RangeSelector(CANDIDATES, [band])

    selector.drag_start((1, 0))
    selector.drag_move((8, 0))
    assert band.is_dragging
    selection = selector.drag_end((8, 0))

    assert len(selection) == 1
    assert band.hidden
    assert not band.is_dragging


def test_band_reveals_only_beyond_tolerance():
    band = Rangeband(drag_tolerance=3, margin=3)
    band.dragging((5, 0), (7, 0))
    assert band.hidden

    band.dragging((5, 0), (25, 0))
    assert not band.hidden
    assert band.x == 5
    assert band.width == 23


def test_band_is_ordered_for_right_to_left_drags():
    band = Rangeband(drag_tolerance=3, margin=0)
    selector = RangeSelector(CANDIDATES, [band])

    selector.drag_start((25, 0))
    selector.drag_move((5, 0))

    assert band.bounds == (5, 25)


# ---------------------------------------------------------------------------
# Ordinal scale
# ---------------------------------------------------------------------------


def test_ordinal_scale_points_and_inverse():
    scale = OrdinalScale(6, 30)
    assert scale(0) == 0
    assert scale(5) == 30
    assert scale.position_at(scale(3)) == 3
    assert scale.position_at(scale(3) + 2) == 3
    assert scale.position_at(scale(3) + 4) == 4


def test_ordinal_scale_single_position():
    scale = OrdinalScale(1, 5)
    assert scale(0) == 2.5
    assert scale.position_at(0) == 0
    with pytest.raises(ValueError):
        OrdinalScale(0, 5)


# ---------------------------------------------------------------------------
# Single-epoch pointer
# ---------------------------------------------------------------------------


def test_selecting_same_position_twice_deselects():
    tl, fired = _timeline(range(6))

    assert tl.select_position(3)
    assert tl.selection.single_selected.identifier == 3

    assert tl.select_position(3)
    assert tl.selection.single_selected is None
    assert fired == ["run", "run"]


def test_selecting_another_position_moves_marker():
    tl, fired = _timeline(range(6))

    tl.select_position(3)
    tl.select_position(4)

    assert tl.selection.single_selected.identifier == 4
    assert tl.single_epoch_selector.cur_pos == 4
    assert len(fired) == 2


def test_missing_position_is_rejected():
    tl, fired = _timeline([0, 1, 3])

    assert not tl.pointer_up(tl.scale(2))
    assert tl.selection.single_selected is None
    assert fired == []


def test_hover_preview():
    tl, _ = _timeline([0, 1, 3])
    assert tl.pointer_move(tl.scale(1)) == 1
    assert tl.pointer_move(tl.scale(2)) is None
    tl.pointer_move(tl.scale(3))
    tl.pointer_leave()
    assert tl.hover_position is None


# ---------------------------------------------------------------------------
# Range brush
# ---------------------------------------------------------------------------


def test_brush_selects_contiguous_range_and_moves_single_marker():
    tl, fired = _timeline(range(6))

    epochs = tl.brush_positions(1, 4)

    assert _ids(epochs) == [1, 2, 3, 4]
    assert _ids(tl.selection.multi_selected) == [1, 2, 3, 4]
    assert tl.selection.single_selected.identifier == 4
    assert fired == ["run"]


def test_brush_direction_is_normalized():
    tl, _ = _timeline(range(6))
    assert _ids(tl.brush(tl.scale(4), tl.scale(1))) == [1, 2, 3, 4]


def test_brush_snaps_to_existing_epochs():
    tl, _ = _timeline([0, 1, 3, 4, 7])

    snapped = tl.brush_move(tl.scale(2), tl.scale(6))
    assert snapped == (tl.scale(3), tl.scale(7))

    assert _ids(tl.brush_end()) == [3, 4, 7]


def test_collapsed_brush_clears_multi_selection_only():
    tl, fired = _timeline(range(6))
    tl.brush_positions(1, 4)

    assert tl.brush(tl.scale(2), tl.scale(2)) == []
    assert tl.selection.multi_selected == []
    # clearing the range keeps the single selection
    assert tl.selection.single_selected.identifier == 4
    assert len(fired) == 2


def test_brush_on_shorter_dataset_of_shared_axis():
    context = SelectionContext()
    context.add_timeline(_dataset("long", range(10)))
    context.add_timeline(_dataset("short", range(4)))
    long_tl, short_tl = build_timelines(context, epoch_spacing=5)

    assert long_tl.scale.length == short_tl.scale.length == 10
    assert _ids(short_tl.set_brush(short_tl.width)) == [0, 1, 2, 3]
    assert _ids(long_tl.set_brush(long_tl.width)) == list(range(10))


def test_double_activation_resets_to_full_range():
    tl, _ = _timeline(range(6))
    assert not tl.reset_to_full_range()

    tl.brush_positions(1, 2)
    assert tl.reset_to_full_range()
    assert _ids(tl.selection.multi_selected) == [0, 1, 2, 3, 4, 5]

    # applying it again keeps the full range selected
    assert tl.reset_to_full_range()
    assert _ids(tl.selection.multi_selected) == [0, 1, 2, 3, 4, 5]


def test_epoch_candidates_cover_existing_positions():
    tl, _ = _timeline([0, 2, 3])
    candidates = tl.epoch_candidates()
    assert [c.payload for c in candidates] == [0, 2, 3]
    assert candidates[1].offset == tl.scale(2)


# ---------------------------------------------------------------------------
# Selection context
# ---------------------------------------------------------------------------


def test_context_add_and_remove_timelines_fire_events():
    context = SelectionContext()
    added, removed = [], []
    context.events.on(ev.DATASET_ADDED, added.append)
    context.events.on(ev.DATASET_REMOVED, removed.append)

    a = _dataset("a", [0])
    b = _dataset("b", [0])
    context.add_timeline(a, color="#ff0000")
    context.add_timeline(b)

    assert added == [a, b]
    assert context.timeline("a").dataset_color == "#ff0000"
    assert context.timeline("b").index_in_timeline_collection == 1

    with pytest.raises(ValueError):
        context.add_timeline(a)

    context.remove_timeline("a")
    assert removed == [a]
    assert [t.timeline_id for t in context.timelines()] == ["b"]
    assert context.timeline("b").index_in_timeline_collection == 0

    with pytest.raises(KeyError):
        context.remove_timeline("a")


def test_clearing_single_keeps_multi():
    tl, _ = _timeline(range(4))
    tl.brush_positions(0, 3)

    tl.selection.clear_single_selection()
    assert tl.selection.single_selected is None
    assert len(tl.selection.multi_selected) == 4


def test_cell_selection():
    context = SelectionContext()
    fired = []
    context.events.on(ev.CELL_SELECTED, lambda: fired.append(True))

    context.cell_selection.cell_selected(None)
    assert context.cell_selection.get_cell() is None
    assert fired == []

    cell = Cell(position=7, order=4)
    context.cell_selection.cell_selected(cell)
    assert context.cell_selection.get_cell() is cell
    assert (cell.row, cell.col) == (1, 3)
    assert fired == [True]

    assert context.cell_selection.toggle_transpose_cell_renderer() is True
    assert context.cell_selection.toggle_transpose_cell_renderer() is False


def test_event_bus_off():
    bus = ev.EventBus()
    calls = []
    bus.on(ev.REDRAW, calls.append)
    bus.fire(ev.REDRAW, 1)
    bus.off(ev.REDRAW, calls.append)
    bus.fire(ev.REDRAW, 2)
    assert calls == [1]
    assert bus.listener_count(ev.REDRAW) == 0
