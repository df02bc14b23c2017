"""Experiments layer: multi-seed batches and the run CLI."""

from perception_monitor.experiments.batch import run_seed_batch

__all__ = [
    "run_seed_batch",
]
