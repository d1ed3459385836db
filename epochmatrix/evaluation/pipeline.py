"""
Update pipeline: selection change -> load -> synchronize -> calculate.

This module ties the selection state to the cell content calculators:

- truncate_to_shortest / synchronize_data : align epoch ranges across
  datasets so that the calculators can zip them positionally
- choose_render_mode                      : which calculators are needed
- UpdatePipeline                          : runs one UpdateCycle per
  EPOCH_SELECTED / REDRAW notification and hands the result to a renderer

All loads of a cycle run concurrently and are joined all-or-nothing: if any
load fails, the remaining loads are cancelled and the cycle raises
AbortError without rendering anything. Each cycle gets a monotonically
increasing id; when a cycle finishes loading after a newer cycle was
started, its result is stale and is discarded.
"""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import pandas as pd

from epochmatrix.data.epochs import Epoch
from epochmatrix.data.sources import load_labels, load_matrix
from epochmatrix.errors import AbortError
from epochmatrix.evaluation.cell_content import (
    HeatCellContent,
    Line,
    LoadedDataset,
    LoadedEpoch,
    MultiEpochCalculator,
    SingleEpochCalculator,
    check_data_sanity,
)
from epochmatrix.evaluation.measures import compute_class_measures
from epochmatrix.selection import events as ev
from epochmatrix.selection.state import SelectionContext, TimelineSelection
from epochmatrix.utils.config_utils import remove_main_diagonal_enabled


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Synchronization and render mode
# ---------------------------------------------------------------------------


class RenderMode(enum.Enum):
    CLEAR = "clear"
    SINGLE = "single"
    MULTI = "multi"
    COMBINED = "combined"

    @classmethod
    def from_presence(cls, single: bool, multi: bool) -> "RenderMode":
        if single and multi:
            return cls.COMBINED
        if single:
            return cls.SINGLE
        if multi:
            return cls.MULTI
        return cls.CLEAR

    @property
    def has_single(self) -> bool:
        return self in (RenderMode.SINGLE, RenderMode.COMBINED)

    @property
    def has_multi(self) -> bool:
        return self in (RenderMode.MULTI, RenderMode.COMBINED)


def truncate_to_shortest(sequences: Sequence[Sequence[Any]]) -> List[List[Any]]:
    """
    Cut every sequence to the length of the shortest one.

    Returns new lists; applying it twice gives the same result as once.
    """
    if not sequences:
        return []
    n = min(len(s) for s in sequences)
    return [list(s[:n]) for s in sequences]


def synchronize_data(datasets: Sequence[LoadedDataset]) -> List[LoadedDataset]:
    """
    Return new bundles whose multi-epoch data is truncated to the shortest
    range over all datasets.
    """
    truncated = truncate_to_shortest([ds.multi_epoch_data for ds in datasets])
    return [replace(ds, multi_epoch_data=multi) for ds, multi in zip(datasets, truncated)]


def choose_render_mode(datasets: Sequence[LoadedDataset]) -> RenderMode:
    single = any(ds.single_epoch_data is not None for ds in datasets)
    multi = any(len(ds.multi_epoch_data) > 0 for ds in datasets)
    return RenderMode.from_presence(single, multi)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class MatrixRenderResult:
    """
    Output of one update cycle, consumed by the external renderer.

    ``heat_cells`` is set in SINGLE/COMBINED mode, ``line_cells`` in
    MULTI/COMBINED mode. ``measures`` maps dataset names to the class
    measures of their single selected epoch.
    """

    cycle_id: int
    mode: RenderMode
    labels: List[str] = field(default_factory=list)
    heat_cells: Optional[List[HeatCellContent]] = None
    line_cells: Optional[List[List[Line]]] = None
    measures: Dict[str, pd.DataFrame] = field(default_factory=dict)

    def combined_cells(self) -> List[Dict[str, Any]]:
        if self.heat_cells is None or self.line_cells is None:
            return []
        return [
            {"heatcell": heat, "linecell": line}
            for heat, line in zip(self.heat_cells, self.line_cells)
        ]


Renderer = Callable[[MatrixRenderResult], Any]


async def _gather_all_or_nothing(coros: Sequence[Awaitable[Any]]) -> List[Any]:
    """
    Await all ``coros`` concurrently. If one fails, cancel the others and
    re-raise the failure once they have unwound.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


# ---------------------------------------------------------------------------
# Update pipeline
# ---------------------------------------------------------------------------


class UpdatePipeline:
    """
    Recomputes the cell content whenever the selection changes.

    Parameters
    ----------
    context : SelectionContext
        Selection state to read and event bus to listen on.
    renderer : Optional[Renderer]
        Called with every non-stale MatrixRenderResult.
    config : Optional[Dict[str, Any]]
        Viewer configuration ("evaluation.remove_main_diagonal").
    """

    def __init__(
        self,
        context: SelectionContext,
        renderer: Optional[Renderer] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.context = context
        self.renderer = renderer
        self.remove_main_diagonal = remove_main_diagonal_enabled(config)

        self._cycle_ids = itertools.count(1)
        self.latest_cycle_id = 0
        self._pending: List[asyncio.Task] = []

        context.events.on(ev.EPOCH_SELECTED, self._on_epoch_selected)
        context.events.on(ev.REDRAW, self._on_redraw)

    def close(self) -> None:
        self.context.events.off(ev.EPOCH_SELECTED, self._on_epoch_selected)
        self.context.events.off(ev.REDRAW, self._on_redraw)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _on_epoch_selected(self, timeline_id: Optional[str] = None) -> None:
        logger.debug("Epoch selection changed on timeline %s", timeline_id)
        self.schedule_update()

    def _on_redraw(self, *args: Any) -> None:
        self.context.events.fire(ev.CLEAR_DETAIL_VIEW)
        self.schedule_update()

    def schedule_update(self) -> None:
        """
        Start an update cycle. Inside a running event loop the cycle runs
        as a task (see wait_pending); otherwise it runs to completion.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.update_views())
            return
        self._pending.append(loop.create_task(self.update_views()))

    async def wait_pending(self) -> List[Optional[MatrixRenderResult]]:
        """
        Await every scheduled cycle; once all have finished, the first
        failure in scheduling order is re-raised.
        """
        results: List[Optional[MatrixRenderResult]] = []
        errors: List[BaseException] = []
        while self._pending:
            tasks, self._pending = self._pending, []
            for outcome in await asyncio.gather(*tasks, return_exceptions=True):
                if isinstance(outcome, BaseException):
                    errors.append(outcome)
                else:
                    results.append(outcome)
        if errors:
            raise errors[0]
        return results

    # ------------------------------------------------------------------
    # Update cycle
    # ------------------------------------------------------------------

    async def update_views(self) -> Optional[MatrixRenderResult]:
        """
        Run one update cycle.

        Returns
        -------
        Optional[MatrixRenderResult]
            The rendered result, or None if the cycle became stale.

        Raises
        ------
        AbortError
            If any load of the cycle failed.
        SanityError
            If the loaded data is inconsistent.
        """
        cycle_id = next(self._cycle_ids)
        self.latest_cycle_id = cycle_id
        selections = self.context.timelines()
        logger.info("Starting update cycle %d for %d timeline(s)", cycle_id, len(selections))

        aligned = truncate_to_shortest([s.multi_selected for s in selections])
        try:
            loaded = await _gather_all_or_nothing(
                [self._load_timeline(s, multi) for s, multi in zip(selections, aligned)]
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Update cycle %d aborted: %s", cycle_id, exc)
            raise AbortError(cycle_id, str(exc)) from exc

        if cycle_id != self.latest_cycle_id:
            logger.info(
                "Discarding stale update cycle %d (latest is %d)", cycle_id, self.latest_cycle_id
            )
            return None

        result = self.compute(cycle_id, loaded)
        if self.renderer is not None:
            self.renderer(result)
        return result

    def compute(self, cycle_id: int, loaded: Sequence[LoadedDataset]) -> MatrixRenderResult:
        """
        Synchronize, check and calculate the content of loaded datasets.
        """
        datasets = synchronize_data(loaded)
        mode = choose_render_mode(datasets)
        if mode is RenderMode.CLEAR:
            logger.info("Update cycle %d: nothing selected", cycle_id)
            return MatrixRenderResult(cycle_id=cycle_id, mode=mode)

        check_data_sanity(datasets)
        result = MatrixRenderResult(cycle_id=cycle_id, mode=mode, labels=list(datasets[0].labels))

        if mode.has_single:
            single = [ds for ds in datasets if ds.single_epoch_data is not None]
            result.heat_cells = SingleEpochCalculator(self.remove_main_diagonal).calculate(single)
            for ds in single:
                result.measures[ds.name] = compute_class_measures(
                    ds.single_epoch_data.confusion_data, ds.labels, ds.class_sizes or None
                )

        if mode.has_multi:
            multi = [ds for ds in datasets if ds.multi_epoch_data]
            result.line_cells = MultiEpochCalculator(self.remove_main_diagonal).calculate(multi)

        logger.info(
            "Update cycle %d: mode=%s, %d dataset(s), %d label(s)",
            cycle_id, mode.name, len(datasets), len(result.labels),
        )
        return result

    async def _load_epochs(self, epochs: Sequence[Epoch]) -> List[LoadedEpoch]:
        matrices = await _gather_all_or_nothing([load_matrix(e) for e in epochs])
        return [
            LoadedEpoch(identifier=e.identifier, name=e.name, confusion_data=m)
            for e, m in zip(epochs, matrices)
        ]

    async def _load_timeline(
        self,
        selection: TimelineSelection,
        multi_selected: Sequence[Epoch],
    ) -> LoadedDataset:
        dataset = selection.dataset
        single = selection.single_selected
        single_epochs = [single] if single is not None else []

        multi_data, single_data, labels = await _gather_all_or_nothing(
            [
                self._load_epochs(multi_selected),
                self._load_epochs(single_epochs),
                load_labels(dataset.class_labels),
            ]
        )

        single_epoch = single_data[0] if single_data else None
        return LoadedDataset(
            name=selection.timeline_id,
            labels=labels,
            single_epoch_data=single_epoch,
            multi_epoch_data=multi_data,
            dataset_color=selection.dataset_color,
            class_sizes=self._class_sizes(selection, single_epoch, multi_data),
        )

    @staticmethod
    def _class_sizes(
        selection: TimelineSelection,
        single: Optional[LoadedEpoch],
        multi: Sequence[LoadedEpoch],
    ) -> List[float]:
        """
        Dataset class sizes, else the selected epoch's, else row sums of the
        first loaded matrix.
        """
        if selection.dataset.class_sizes is not None:
            return [float(s) for s in selection.dataset.class_sizes]

        for epoch in [selection.single_selected, *selection.multi_selected]:
            if epoch is not None and epoch.class_sizes is not None:
                return [float(s) for s in epoch.class_sizes]

        first = single or (multi[0] if multi else None)
        if first is None:
            return []
        return [float(v) for v in first.confusion_data.to_numpy().sum(axis=1)]
