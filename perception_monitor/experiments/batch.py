"""Multi-seed batch orchestration over independent monitored runs.

Each run gets its own controller, registry and aggregator, so runs in one
process never share aggregation state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from perception_monitor.config.types import MonitorConfig, RunResult
from perception_monitor.io.paths import batch_runs_path
from perception_monitor.io.schemas import BATCH_RUNS_SCHEMA, SUMMARY_SCHEMA_VERSION
from perception_monitor.simulation.driver import Environment, run_experiment

logger = logging.getLogger(__name__)

EnvironmentFactory = Callable[[int], Environment]
"""Builds a fresh environment for a given seed."""


def run_seed_batch(
    base_config: MonitorConfig,
    seeds: Sequence[int],
    environment_factory: EnvironmentFactory,
    out_dir: Path,
) -> list[RunResult]:
    """Run one experiment per seed and persist a batch-level run table."""
    if not seeds:
        raise ValueError("seeds must not be empty")
    if len(set(seeds)) != len(seeds):
        raise ValueError("seeds must be distinct")
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    results: list[RunResult] = []
    rows: list[dict[str, int | str | float | None]] = []
    for seed in seeds:
        config = replace(base_config, seed=seed)
        result = run_experiment(environment_factory(seed), config, out_dir)
        results.append(result)
        rows.append(
            {
                "schema_version": SUMMARY_SCHEMA_VERSION,
                "run_id": result.run_id,
                "seed": seed,
                "termination_reason": result.termination_reason.value,
                "final_tick": result.final_tick,
                "ticks_processed": result.ticks_processed,
                "voted_objects": result.voted_objects,
                "registered_objects": result.registered_objects,
                "coverage": result.coverage,
                "accuracy": result.accuracy,
            }
        )
        logger.info(
            "seed %d: %s after %d ticks",
            seed,
            result.termination_reason.value,
            result.ticks_processed,
        )

    pq.write_table(pa.Table.from_pylist(rows, schema=BATCH_RUNS_SCHEMA), batch_runs_path(out_dir))
    return results
