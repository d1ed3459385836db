"""
Per-cell content of the confusion matrix view.

Cells are addressed by their flattened (row-major) position
``p = row * order + col``. Two calculators derive content from the loaded
datasets of one update cycle:

- SingleEpochCalculator: one HeatCellContent per position, comparing the
  single selected epoch of every dataset (counts + shared maximum)
- MultiEpochCalculator : one list of Line per position, one Line per
  dataset holding the value series over the selected epoch range

Diagonal positions hold correct classifications; they are replaced by empty
content unless ``remove_main_diagonal`` is switched off.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from epochmatrix.data.matrix import SquareMatrix
from epochmatrix.errors import SanityError


# ---------------------------------------------------------------------------
# Loaded data of one update cycle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoadedEpoch:
    identifier: int
    name: str
    confusion_data: SquareMatrix


@dataclass(frozen=True)
class LoadedDataset:
    """
    Everything the calculators need from one dataset-timeline.

    Instances are never modified; synchronization builds new ones.
    """

    name: str
    labels: List[str]
    single_epoch_data: Optional[LoadedEpoch]
    multi_epoch_data: List[LoadedEpoch]
    dataset_color: str
    class_sizes: List[float] = field(default_factory=list)


def is_diagonal_position(position: int, order: int) -> bool:
    """True if flattened ``position`` lies on the main diagonal of an ``order`` matrix."""
    return position % (order + 1) == 0


def check_data_sanity(datasets: Sequence[LoadedDataset]) -> None:
    """
    Validate the loaded data of one cycle before any calculator runs.

    Every loaded matrix must have the same order, which must equal the
    number of class labels of every dataset.

    Raises
    ------
    SanityError
        On empty labels, no loaded matrix at all, or any order mismatch.
    """
    if not datasets:
        raise SanityError("No datasets were loaded.")

    for ds in datasets:
        if not ds.labels:
            raise SanityError(f'No class labels were found for dataset "{ds.name}".')

    matrices = []
    for ds in datasets:
        if ds.single_epoch_data is not None:
            matrices.append((ds, ds.single_epoch_data))
        matrices.extend((ds, e) for e in ds.multi_epoch_data)

    if not matrices:
        raise SanityError("No confusion matrix was found.")

    order = matrices[0][1].confusion_data.order()
    for ds, epoch in matrices:
        if epoch.confusion_data.order() != order:
            raise SanityError(
                f'The confusion matrix of epoch "{epoch.name}" in dataset "{ds.name}" '
                f"has order {epoch.confusion_data.order()}, expected {order}."
            )

    for ds in datasets:
        if len(ds.labels) != order:
            raise SanityError(
                f'Dataset "{ds.name}" has {len(ds.labels)} labels but the matrices '
                f"have order {order}."
            )


# ---------------------------------------------------------------------------
# Content records
# ---------------------------------------------------------------------------


@dataclass
class HeatCellContent:
    max_val: float
    counts: List[float]
    class_labels: List[str]
    index_in_multi_selection: List[int]
    color_values: List[str]

    @classmethod
    def empty(cls) -> "HeatCellContent":
        return cls(max_val=0, counts=[], class_labels=[], index_in_multi_selection=[], color_values=[])

    @property
    def is_empty(self) -> bool:
        return not self.counts


@dataclass
class Line:
    values: List[float]
    values_in_percent: List[float]
    max: float
    class_label: str
    color: str

    @classmethod
    def empty(cls, color: str = "", class_label: str = "") -> "Line":
        return cls(values=[], values_in_percent=[], max=0, class_label=class_label, color=color)

    @property
    def is_empty(self) -> bool:
        return not self.values


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------


class CellContentCalculator:
    def __init__(self, remove_main_diagonal: bool = True) -> None:
        self.remove_main_diagonal = remove_main_diagonal

    def _excluded(self, position: int, order: int) -> bool:
        return self.remove_main_diagonal and is_diagonal_position(position, order)

    def _kept(self, per_position: Sequence, order: int) -> list:
        return [v for p, v in enumerate(per_position) if not self._excluded(p, order)]

    def calculate(self, datasets: Sequence[LoadedDataset]) -> list:
        raise NotImplementedError


class SingleEpochCalculator(CellContentCalculator):
    """
    Heat cell content comparing the single selected epoch of every dataset.

    ``max_val`` is the maximum over all positions and datasets; excluded
    diagonal positions do not contribute to it.
    """

    def calculate(self, datasets: Sequence[LoadedDataset]) -> List[HeatCellContent]:
        missing = [ds.name for ds in datasets if ds.single_epoch_data is None]
        if missing:
            raise SanityError(f"No single epoch loaded for dataset(s): {missing}")
        if not datasets:
            return []

        order = datasets[0].single_epoch_data.confusion_data.order()
        flattened = [ds.single_epoch_data.confusion_data.flatten() for ds in datasets]
        zipped = list(zip(*flattened))

        max_val = max((max(values) for values in self._kept(zipped, order)), default=0)

        index_in_multi = [
            next(
                (i for i, e in enumerate(ds.multi_epoch_data)
                 if e.identifier == ds.single_epoch_data.identifier),
                -1,
            )
            for ds in datasets
        ]
        colors = [ds.dataset_color for ds in datasets]

        content = []
        for position, values in enumerate(zipped):
            if self._excluded(position, order):
                content.append(HeatCellContent.empty())
                continue
            content.append(
                HeatCellContent(
                    max_val=max_val,
                    counts=list(values),
                    class_labels=[str(v) for v in values],
                    index_in_multi_selection=list(index_in_multi),
                    color_values=list(colors),
                )
            )
        return content


class MultiEpochCalculator(CellContentCalculator):
    """
    Line content: per position one series per dataset over the selected
    epoch range. ``max`` is shared by all datasets, positions and epochs
    (excluded diagonal positions aside);
    ``values_in_percent`` divides by the dataset's class size at
    ``position % order``.
    """

    def calculate(self, datasets: Sequence[LoadedDataset]) -> List[List[Line]]:
        if not datasets:
            return []

        lengths = {len(ds.multi_epoch_data) for ds in datasets}
        if 0 in lengths:
            empty = [ds.name for ds in datasets if not ds.multi_epoch_data]
            raise SanityError(f"No epoch range loaded for dataset(s): {empty}")
        if len(lengths) > 1:
            raise SanityError(
                f"Epoch ranges are not synchronized across datasets (lengths {sorted(lengths)})."
            )

        order = datasets[0].multi_epoch_data[0].confusion_data.order()
        for ds in datasets:
            if len(ds.class_sizes) < order:
                raise SanityError(
                    f'Dataset "{ds.name}" has {len(ds.class_sizes)} class sizes, expected {order}.'
                )

        # per dataset: position -> series over epochs
        dataset_series = []
        for ds in datasets:
            per_epoch = [e.confusion_data.flatten() for e in ds.multi_epoch_data]
            dataset_series.append(list(zip(*per_epoch)))
        # position -> [series of dataset 0, series of dataset 1, ...]
        zipped = list(zip(*dataset_series))

        max_val = max(
            (max(series, default=0) for per_ds in self._kept(zipped, order) for series in per_ds),
            default=0,
        )

        labels = datasets[0].labels
        content = []
        for position, per_ds in enumerate(zipped):
            label = labels[position % len(labels)]
            if self._excluded(position, order):
                content.append([Line.empty(ds.dataset_color, label) for ds in datasets])
                continue

            lines = []
            for ds, series in zip(datasets, per_ds):
                class_size = ds.class_sizes[position % order]
                lines.append(
                    Line(
                        values=list(series),
                        values_in_percent=[v / class_size if class_size else 0.0 for v in series],
                        max=max_val,
                        class_label=label,
                        color=ds.dataset_color,
                    )
                )
            content.append(lines)
        return content
