"""
Inspect the cell content of an epoch selection from the command line.

This script:

- loads one or more dataset directories (each with a dataset.yaml)
- selects an epoch range and/or a single epoch on every timeline
- runs one update cycle of the pipeline
- logs the per-cell table and the per-class measures

Usage (from project root):

    python -m scripts.inspect_selection --dataset-dir runs/a --dataset-dir runs/b \
        --range 0 20 --single 20
"""

from __future__ import annotations

import argparse
import asyncio
from typing import List, Optional

import pandas as pd

from epochmatrix.data.datasets import load_dataset_from_dir
from epochmatrix.evaluation.pipeline import MatrixRenderResult, UpdatePipeline
from epochmatrix.selection.state import SelectionContext
from epochmatrix.selection.timeline import build_timelines
from epochmatrix.utils.config_utils import (
    get_logger,
    get_timeline_settings,
    load_viewer_config,
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute confusion matrix cell content for an epoch selection."
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/viewer.yaml",
        help="Path to viewer config YAML (default: config/viewer.yaml).",
    )
    parser.add_argument(
        "--dataset-dir",
        type=str,
        action="append",
        required=True,
        help="Directory containing a dataset.yaml (repeat for several datasets).",
    )
    parser.add_argument(
        "--range",
        type=int,
        nargs=2,
        metavar=("START", "END"),
        default=None,
        help="Epoch positions of the range selection.",
    )
    parser.add_argument(
        "--single",
        type=int,
        default=None,
        help="Epoch position of the single selection.",
    )
    return parser.parse_args(argv)


def heat_cells_to_frame(result: MatrixRenderResult) -> pd.DataFrame:
    """
    One row per cell with the counts of every dataset.
    """
    order = len(result.labels)
    records = []
    for position, cell in enumerate(result.heat_cells or []):
        record = {
            "true": result.labels[position // order],
            "predicted": result.labels[position % order],
            "max": cell.max_val,
        }
        for i, count in enumerate(cell.counts):
            record[f"count_{i}"] = count
        records.append(record)
    return pd.DataFrame(records)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)

    viewer_cfg = load_viewer_config(args.config)
    logger = get_logger(
        name="inspect_selection",
        config=viewer_cfg,
        log_file_suffix="inspect",
    )
    settings = get_timeline_settings(viewer_cfg)

    context = SelectionContext()
    for dataset_dir in args.dataset_dir:
        dataset = load_dataset_from_dir(dataset_dir)
        context.add_timeline(dataset)
        logger.info("Loaded dataset %s with %d epochs", dataset.name, len(dataset.epochs))

    for timeline in build_timelines(context, epoch_spacing=settings["epoch_spacing"]):
        if args.range is not None:
            epochs = timeline.brush_positions(*args.range)
            logger.info("%s: range selection holds %d epochs", timeline.timeline_id, len(epochs))

        if args.single is not None:
            current = timeline.selection.single_selected
            if current is None or current.identifier != args.single:
                if not timeline.select_position(args.single):
                    logger.warning(
                        "%s: epoch %d does not exist, single selection skipped",
                        timeline.timeline_id,
                        args.single,
                    )

    # created after the selection so that only one cycle runs
    pipeline = UpdatePipeline(context, config=viewer_cfg)
    result = asyncio.run(pipeline.update_views())

    logger.info("Render mode: %s", result.mode.name)
    if result.heat_cells is not None:
        with pd.option_context("display.max_rows", None, "display.width", 120):
            logger.info("Single epoch cells:\n%s", heat_cells_to_frame(result).to_string(index=False))
    if result.line_cells is not None:
        logger.info("Multi epoch cells: %d positions", len(result.line_cells))
    for name, measures in result.measures.items():
        logger.info("Class measures for %s:\n%s", name, measures.to_string(index=False))


if __name__ == "__main__":
    main()
