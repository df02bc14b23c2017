"""Matplotlib renderers for monitor logs."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from perception_monitor.analysis.curves import (
    Curve,
    accuracy_curve,
    bytes_curve,
    convergence_curve,
    load_curve,
    occupancy_curve,
    propagation_histogram,
)
from perception_monitor.io.paths import resolve_within_base as _resolve_within_base
from perception_monitor.io.readers import read_detail_log, read_histogram_log
from perception_monitor.io.schemas import CURVE_NAMES

CURVE_LABELS: dict[str, str] = {
    "coverage": "Coverage (voted / registered)",
    "accuracy": "Accuracy (correct / voted)",
    "storage_load": "Storage load",
    "total_bytes_sent": "Bytes sent per tick",
}

CURVE_COLORS: dict[str, str] = {
    "coverage": "tab:blue",
    "accuracy": "tab:green",
    "storage_load": "tab:orange",
    "total_bytes_sent": "tab:purple",
}


def _resolve(path: Path, base_dir: Path | None) -> Path:
    if base_dir is None:
        return Path(path)
    return _resolve_within_base(Path(path), Path(base_dir))


def _save(fig: plt.Figure, output_path: Path, dpi: int = 150) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=dpi)
    plt.close(fig)


def render_run_curves(
    detail_log_path: Path,
    output_path: Path,
    histogram_log_path: Path | None = None,
    base_dir: Path | None = None,
    allow_truncated: bool = False,
) -> None:
    """Plot coverage, accuracy, storage load and bytes sent against tick.

    When a histogram log is given, the mean per-agent tuple occupancy is
    overlaid on the storage load panel on a secondary axis.
    """
    detail = read_detail_log(_resolve(detail_log_path, base_dir), allow_truncated=allow_truncated)
    curves: dict[str, Curve] = {
        "coverage": convergence_curve(detail),
        "accuracy": accuracy_curve(detail),
        "storage_load": load_curve(detail),
        "total_bytes_sent": bytes_curve(detail),
    }

    fig, axes = plt.subplots(2, 2, figsize=(10, 7), squeeze=False)
    for idx, name in enumerate(CURVE_NAMES):
        ax = axes[idx // 2, idx % 2]
        curve = curves[name]
        ax.plot(curve.ticks, curve.values, color=CURVE_COLORS[name], linewidth=1.6)
        ax.set_title(CURVE_LABELS[name])
        ax.set_xlabel("Tick")
        ax.grid(True, alpha=0.3)
        if name in ("coverage", "accuracy"):
            ax.set_ylim(-0.02, 1.02)

    if histogram_log_path is not None:
        histogram = read_histogram_log(
            _resolve(histogram_log_path, base_dir), allow_truncated=allow_truncated
        )
        occupancy = occupancy_curve(histogram)
        twin = axes[1, 0].twinx()
        twin.plot(
            occupancy.ticks, occupancy.values, color="tab:gray", linestyle="--", linewidth=1.2
        )
        twin.set_ylabel("Mean stored tuples / agent")

    fig.suptitle(f"{detail.object_count} objects, {len(detail.ticks)} ticks", fontsize=12)
    _save(fig, output_path)


def render_propagation_histogram(
    histogram_log_path: Path,
    output_path: Path,
    tick: int | None = None,
    base_dir: Path | None = None,
    allow_truncated: bool = False,
) -> None:
    """Bar chart of how many agents hold each tuple identifier at one tick."""
    histogram = read_histogram_log(
        _resolve(histogram_log_path, base_dir), allow_truncated=allow_truncated
    )
    identifiers, holders = propagation_histogram(histogram, tick=tick)
    shown_tick = tick if tick is not None else (histogram.ticks[-1].tick if histogram.ticks else 0)

    fig, ax = plt.subplots(figsize=(8, 4))
    positions = np.arange(identifiers.shape[0])
    ax.bar(positions, holders, color="tab:blue", alpha=0.8)
    if identifiers.shape[0] <= 40:
        ax.set_xticks(positions)
        ax.set_xticklabels([str(i) for i in identifiers], rotation=90, fontsize=7)
    ax.set_xlabel("Tuple identifier")
    ax.set_ylabel("Holding agents")
    ax.set_ylim(0, max(histogram.population_size, 1))
    ax.set_title(f"Tuple propagation at tick {shown_tick}")
    ax.grid(True, axis="y", alpha=0.3)
    _save(fig, output_path)


def render_coverage_overlay(
    runs: list[tuple[str, Path]],
    output_path: Path,
    base_dir: Path | None = None,
    allow_truncated: bool = False,
) -> None:
    """Overlay the coverage curves of several runs (e.g. one per seed)."""
    if not runs:
        raise ValueError("runs must not be empty")
    fig, ax = plt.subplots(figsize=(7, 4))
    for label, path in runs:
        detail = read_detail_log(_resolve(path, base_dir), allow_truncated=allow_truncated)
        curve = convergence_curve(detail)
        ax.plot(curve.ticks, curve.values, alpha=0.7, linewidth=1.4, label=label)
    ax.set_xlabel("Tick")
    ax.set_ylabel(CURVE_LABELS["coverage"])
    ax.set_ylim(-0.02, 1.02)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)
    _save(fig, output_path)
