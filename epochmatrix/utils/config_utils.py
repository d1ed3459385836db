"""
Configuration and logging helpers.

This module centralizes common functionality used across the project:

- loading the viewer configuration (config/viewer.yaml)
- reading timeline/evaluation settings with their defaults
- ensuring directories exist before writing files
- constructing loggers that respect config/logging settings

The update pipeline and the scripts rely on these utilities.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml


DEFAULT_VIEWER_CONFIG_PATH = "config/viewer.yaml"

DEFAULT_EPOCH_SPACING = 5.0
DEFAULT_DRAG_TOLERANCE = 3.0
DEFAULT_BAND_MARGIN = 3.0


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def load_viewer_config(
    config_path: str = DEFAULT_VIEWER_CONFIG_PATH,
) -> Dict[str, Any]:
    """
    Load and return the viewer configuration dictionary.

    Parameters
    ----------
    config_path : str
        Path to the viewer YAML configuration file.

    Returns
    -------
    Dict[str, Any]
        Parsed configuration with sections such as "general", "paths",
        "logging", "timeline" and "evaluation".

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    ValueError
        If the YAML file is empty or cannot be parsed.
    KeyError
        If one of the required sections is missing.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Viewer config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    if cfg is None:
        raise ValueError(f"Viewer config file is empty or invalid: {config_path}")

    for section in ("general", "logging", "timeline"):
        if section not in cfg:
            raise KeyError(f'Missing "{section}" section in viewer config: {config_path}')

    return cfg


def get_timeline_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, float]:
    """
    Return the timeline geometry settings with defaults filled in.

    Parameters
    ----------
    config : Optional[Dict[str, Any]]
        Viewer configuration (may be None).

    Returns
    -------
    Dict[str, float]
        Keys: "epoch_spacing", "drag_tolerance", "band_margin".
    """
    timeline_cfg = (config or {}).get("timeline", {}) or {}
    return {
        "epoch_spacing": float(timeline_cfg.get("epoch_spacing", DEFAULT_EPOCH_SPACING)),
        "drag_tolerance": float(timeline_cfg.get("drag_tolerance", DEFAULT_DRAG_TOLERANCE)),
        "band_margin": float(timeline_cfg.get("band_margin", DEFAULT_BAND_MARGIN)),
    }


def remove_main_diagonal_enabled(config: Optional[Dict[str, Any]] = None) -> bool:
    evaluation_cfg = (config or {}).get("evaluation", {}) or {}
    return bool(evaluation_cfg.get("remove_main_diagonal", True))


# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------


def ensure_dir_exists(path: str) -> None:
    """
    Ensure that a directory exists (create it if necessary).

    Parameters
    ----------
    path : str
        Directory path.
    """
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------


def _parse_log_level(level_str: str) -> int:
    """
    Convert a string log level into a logging module constant.

    Parameters
    ----------
    level_str : str
        One of: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL" (case-insensitive).

    Returns
    -------
    int
        Corresponding logging level.
    """
    level_str = (level_str or "INFO").upper()
    return {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }.get(level_str, logging.INFO)


def get_logger(
    name: str,
    config: Dict[str, Any],
    log_file_suffix: Optional[str] = None,
) -> logging.Logger:
    """
    Construct and return a logger that respects the logging section of
    the viewer config.

    Parameters
    ----------
    name : str
        Logger name.
    config : Dict[str, Any]
        Viewer configuration.
    log_file_suffix : Optional[str]
        Optional suffix appended to the log file name (e.g., "inspect").

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # If the logger already has handlers, assume it's already configured.
    if logger.handlers:
        return logger

    logging_cfg = config.get("logging", {}) or {}
    paths_cfg = config.get("paths", {}) or {}

    level = _parse_log_level(logging_cfg.get("level", "INFO"))
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Optional file handler
    if bool(logging_cfg.get("to_file", False)):
        logs_dir = paths_cfg.get("logs_dir", "experiments/logs")
        ensure_dir_exists(logs_dir)

        file_prefix = logging_cfg.get("file_prefix", "viewer_log")
        if log_file_suffix:
            filename = f"{file_prefix}_{log_file_suffix}.log"
        else:
            filename = f"{file_prefix}.log"

        file_handler = logging.FileHandler(os.path.join(logs_dir, filename), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
