"""Path construction helpers for monitor output artifacts.

Artifact names are derived only from run parameters, so repeated runs with
identical parameters overwrite the same files.
"""

from __future__ import annotations

from pathlib import Path

from perception_monitor.config.constants import (
    DETAIL_FILE_PREFIX,
    HISTOGRAM_FILE_PREFIX,
    LOG_SUFFIX,
    SUMMARY_FILE_PREFIX,
)
from perception_monitor.config.types import MonitorConfig


def resolve_within_base(path: Path, base_dir: Path) -> Path:
    """Resolve *path* and ensure it stays within the trusted *base_dir*.

    Raises :exc:`ValueError` if the resolved path escapes the base directory.
    """
    candidate = path if path.is_absolute() else base_dir / path
    resolved = candidate.resolve()
    base_resolved = base_dir.resolve()
    if resolved != base_resolved and base_resolved not in resolved.parents:
        raise ValueError(f"Path escapes base_dir: {path}")
    return resolved


def run_id(config: MonitorConfig, population_size: int) -> str:
    """Return the deterministic parameter stem identifying one run."""
    return config.artifact_stem(population_size)


def detail_log_path(out_dir: Path, config: MonitorConfig, population_size: int) -> Path:
    """Return path to the per-event detail log."""
    return Path(out_dir) / f"{DETAIL_FILE_PREFIX}_{run_id(config, population_size)}{LOG_SUFFIX}"


def histogram_log_path(out_dir: Path, config: MonitorConfig, population_size: int) -> Path:
    """Return path to the per-agent stored-tuple histogram log."""
    return (
        Path(out_dir) / f"{HISTOGRAM_FILE_PREFIX}_{run_id(config, population_size)}{LOG_SUFFIX}"
    )


def summary_path(out_dir: Path, config: MonitorConfig, population_size: int) -> Path:
    """Return path to the Parquet tick-summary sidecar."""
    return Path(out_dir) / f"{SUMMARY_FILE_PREFIX}_{run_id(config, population_size)}.parquet"


def batch_runs_path(out_dir: Path) -> Path:
    """Return path to the per-batch run table."""
    return Path(out_dir) / "batch_runs.parquet"
