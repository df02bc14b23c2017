"""Offline analysis of monitor logs."""

from perception_monitor.analysis.curves import (
    Curve,
    accuracy_curve,
    bytes_curve,
    convergence_curve,
    elapsed_ticks,
    load_curve,
    occupancy_curve,
    propagation_histogram,
    summarize_run,
)

__all__ = [
    "Curve",
    "accuracy_curve",
    "bytes_curve",
    "convergence_curve",
    "elapsed_ticks",
    "load_curve",
    "occupancy_curve",
    "propagation_histogram",
    "summarize_run",
]
