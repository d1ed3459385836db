"""
Dataset (classifier run) descriptions.

A dataset is one classifier run: a list of epochs with their confusion
matrix sources, a class label table, a display color and (optionally) the
class sizes used to normalize multi-epoch series.

Datasets can be built in code or loaded from a directory containing a
``dataset.yaml`` file:

    dataset:
      name: resnet_run_1
      color: "#1f77b4"
      labels: labels.csv          # columns: index,label
      class_sizes: [100, 80, 95]  # optional
    epochs:
      - id: 0
        matrix: matrices/epoch_0.csv        # header-less square CSV
      - id: 5
        name: epoch_5
        predictions: predictions/epoch_5.csv  # columns: y_true,y_pred

Relative paths are resolved against the dataset directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
import yaml

from epochmatrix.data.epochs import Epoch, EpochCatalog
from epochmatrix.data.sources import (
    CsvLabelTable,
    CsvMatrixSource,
    InMemoryLabelTable,
    InMemoryMatrixSource,
    PredictionsMatrixSource,
)


DEFAULT_DATASET_FILENAME = "dataset.yaml"
DEFAULT_DATASET_COLOR = "#1f77b4"


@dataclass
class Dataset:
    """
    One classifier run with its epochs and class labels.
    """

    name: str
    epochs: List[Epoch]
    class_labels: Any = None
    color: str = DEFAULT_DATASET_COLOR
    class_sizes: Optional[Sequence[int]] = None
    _catalog: Optional[EpochCatalog] = field(default=None, init=False, repr=False)

    @property
    def catalog(self) -> EpochCatalog:
        """Lazily built epoch catalog (raises EmptyCatalogError without epochs)."""
        if self._catalog is None:
            self._catalog = EpochCatalog.build(self.epochs)
        return self._catalog


def dataset_from_matrices(
    name: str,
    matrices: Dict[int, Sequence[Sequence[Any]]],
    labels: Sequence[str],
    color: str = DEFAULT_DATASET_COLOR,
    class_sizes: Optional[Sequence[int]] = None,
) -> Dataset:
    """
    Build an in-memory dataset from ``{epoch_id: rows}``.
    """
    epochs = [
        Epoch(
            identifier=int(epoch_id),
            name=f"epoch_{epoch_id}",
            confusion_source=InMemoryMatrixSource(rows),
        )
        for epoch_id, rows in sorted(matrices.items())
    ]
    return Dataset(
        name=name,
        epochs=epochs,
        class_labels=InMemoryLabelTable(labels),
        color=color,
        class_sizes=tuple(class_sizes) if class_sizes is not None else None,
    )


# ---------------------------------------------------------------------------
# YAML-backed datasets
# ---------------------------------------------------------------------------


def load_dataset_config(config_path: str) -> Dict[str, Any]:
    """
    Load and return a dataset YAML description.

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    ValueError
        If the YAML file is empty or cannot be parsed.
    KeyError
        If the "dataset" or "epochs" section is missing.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Dataset config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    if cfg is None:
        raise ValueError(f"Dataset config file is empty or invalid: {config_path}")

    for section in ("dataset", "epochs"):
        if section not in cfg:
            raise KeyError(f'Missing "{section}" section in dataset config: {config_path}')

    return cfg


def _resolve(base_dir: str, path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(base_dir, path)


def _count_labels(labels_path: str) -> int:
    if not os.path.exists(labels_path):
        raise FileNotFoundError(f"Label CSV not found at: {labels_path}")
    return len(pd.read_csv(labels_path))


def load_dataset_from_dir(
    dataset_dir: str,
    filename: str = DEFAULT_DATASET_FILENAME,
) -> Dataset:
    """
    Build a Dataset from a directory holding a dataset YAML description.

    Parameters
    ----------
    dataset_dir : str
        Directory containing ``filename`` and the referenced CSV files.
    filename : str
        Name of the YAML description inside ``dataset_dir``.

    Returns
    -------
    Dataset
        Dataset whose epochs read their matrices lazily.

    Raises
    ------
    ValueError
        If an epoch entry names neither a matrix nor a predictions file,
        or if the "labels" entry is missing.
    """
    cfg = load_dataset_config(os.path.join(dataset_dir, filename))
    dataset_cfg = cfg["dataset"] or {}

    name = str(dataset_cfg.get("name", os.path.basename(os.path.normpath(dataset_dir))))
    color = str(dataset_cfg.get("color", DEFAULT_DATASET_COLOR))
    sep = str(dataset_cfg.get("matrix_sep", ","))

    labels_file = dataset_cfg.get("labels")
    if not labels_file:
        raise ValueError(f'Dataset "{name}" does not define a "labels" file.')
    labels_path = _resolve(dataset_dir, labels_file)

    class_sizes = dataset_cfg.get("class_sizes")
    n_classes: Optional[int] = dataset_cfg.get("n_classes")

    epochs: List[Epoch] = []
    for entry in cfg["epochs"] or []:
        epoch_id = int(entry["id"])
        epoch_name = str(entry.get("name", f"epoch_{epoch_id}"))

        if "matrix" in entry:
            source = CsvMatrixSource(_resolve(dataset_dir, entry["matrix"]), sep=sep)
        elif "predictions" in entry:
            if n_classes is None:
                n_classes = _count_labels(labels_path)
            source = PredictionsMatrixSource(
                _resolve(dataset_dir, entry["predictions"]),
                n_classes=int(n_classes),
                true_column=str(entry.get("true_column", "y_true")),
                pred_column=str(entry.get("pred_column", "y_pred")),
            )
        else:
            raise ValueError(
                f'Epoch {epoch_id} of dataset "{name}" needs a "matrix" or "predictions" file.'
            )

        epoch_sizes = entry.get("class_sizes")
        epochs.append(
            Epoch(
                identifier=epoch_id,
                name=epoch_name,
                confusion_source=source,
                class_sizes=tuple(epoch_sizes) if epoch_sizes is not None else None,
            )
        )

    return Dataset(
        name=name,
        epochs=epochs,
        class_labels=CsvLabelTable(labels_path),
        color=color,
        class_sizes=tuple(class_sizes) if class_sizes is not None else None,
    )
