"""Offline reconstruction of convergence, load, and opinion-propagation curves.

Everything here is computed from the text logs alone. Votes are replayed in
log order with last-writer-wins per location, exactly as the monitor
applied them online; votes whose logged ground truth is the unknown
placeholder were stray votes and never count toward coverage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from perception_monitor.config.constants import UNKNOWN_CATEGORY
from perception_monitor.io.readers import DetailLog, HistogramLog


@dataclass(frozen=True)
class Curve:
    """A per-tick series."""

    ticks: np.ndarray
    values: np.ndarray

    def __len__(self) -> int:
        return int(self.ticks.shape[0])

    def final(self) -> float | None:
        if len(self) == 0:
            return None
        return float(self.values[-1])


def _replay(log: DetailLog) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ticks, voted-object counts and correct-vote counts after each tick."""
    current: dict[tuple[float, float, float], bool] = {}
    ticks: list[int] = []
    voted: list[int] = []
    correct: list[int] = []
    for block in log.ticks:
        for agent in block.agents:
            for vote in agent.votes:
                if vote.true_category == UNKNOWN_CATEGORY:
                    continue
                current[(vote.x, vote.y, vote.z)] = vote.correct
        ticks.append(block.tick)
        voted.append(len(current))
        correct.append(sum(current.values()))
    return (
        np.asarray(ticks, dtype=np.int64),
        np.asarray(voted, dtype=np.int64),
        np.asarray(correct, dtype=np.int64),
    )


def convergence_curve(log: DetailLog) -> Curve:
    """Coverage (voted objects / registered objects) after each tick."""
    ticks, voted, _ = _replay(log)
    if log.object_count == 0:
        return Curve(ticks=ticks, values=np.zeros(len(ticks), dtype=np.float64))
    return Curve(ticks=ticks, values=voted / float(log.object_count))


def accuracy_curve(log: DetailLog) -> Curve:
    """Fraction of voted objects whose current vote matches ground truth; NaN before any vote."""
    ticks, voted, correct = _replay(log)
    with np.errstate(invalid="ignore", divide="ignore"):
        values = np.where(voted > 0, correct / np.maximum(voted, 1), np.nan)
    return Curve(ticks=ticks, values=values.astype(np.float64))


def load_curve(log: DetailLog) -> Curve:
    """Aggregate storage load per tick."""
    ticks = np.asarray([b.tick for b in log.ticks], dtype=np.int64)
    values = np.asarray([b.storage_load for b in log.ticks], dtype=np.float64)
    return Curve(ticks=ticks, values=values)


def bytes_curve(log: DetailLog) -> Curve:
    """Total bytes sent per tick."""
    ticks = np.asarray([b.tick for b in log.ticks], dtype=np.int64)
    values = np.asarray([b.total_bytes_sent for b in log.ticks], dtype=np.float64)
    return Curve(ticks=ticks, values=values)


def elapsed_ticks(log: DetailLog) -> np.ndarray:
    """Opinion formation times (last update minus start) of every logged vote."""
    return np.asarray(
        [vote.elapsed_ticks for block in log.ticks for a in block.agents for vote in a.votes],
        dtype=np.int64,
    )


def propagation_histogram(
    log: HistogramLog, tick: int | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """Number of agents holding each tuple identifier at ``tick`` (default: last tick).

    Returns ``(identifiers, holder_counts)`` sorted by identifier.
    """
    if not log.ticks:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    if tick is None:
        block = log.ticks[-1]
    else:
        matches = [b for b in log.ticks if b.tick == tick]
        if not matches:
            raise ValueError(f"tick {tick} not present in histogram log")
        block = matches[0]
    identifiers = np.asarray(
        [identifier for agent in block.agents for identifier, _ in set(agent.tuples)],
        dtype=np.int64,
    )
    unique, counts = np.unique(identifiers, return_counts=True)
    return unique.astype(np.int64), counts.astype(np.int64)


def occupancy_curve(log: HistogramLog) -> Curve:
    """Mean number of stored tuples per agent at each tick."""
    ticks = np.asarray([b.tick for b in log.ticks], dtype=np.int64)
    values = np.asarray(
        [
            np.mean([len(a.tuples) for a in b.agents]) if b.agents else 0.0
            for b in log.ticks
        ],
        dtype=np.float64,
    )
    return Curve(ticks=ticks, values=values)


def summarize_run(detail: DetailLog, histogram: HistogramLog | None = None) -> dict[str, Any]:
    """JSON-serializable digest of one run's logs."""
    coverage = convergence_curve(detail)
    accuracy = accuracy_curve(detail)
    load = load_curve(detail)
    elapsed = elapsed_ticks(detail)
    final_accuracy = accuracy.final()
    summary: dict[str, Any] = {
        "object_count": detail.object_count,
        "ticks": len(detail.ticks),
        "final_tick": int(coverage.ticks[-1]) if len(coverage) else None,
        "final_coverage": coverage.final(),
        "final_accuracy": None
        if final_accuracy is None or np.isnan(final_accuracy)
        else final_accuracy,
        "peak_storage_load": float(load.values.max()) if len(load) else None,
        "total_bytes_sent": int(bytes_curve(detail).values.sum()),
        "votes_logged": int(elapsed.shape[0]),
        "mean_elapsed_ticks": float(elapsed.mean()) if elapsed.size else None,
    }
    if histogram is not None:
        identifiers, holders = propagation_histogram(histogram)
        summary["population_size"] = histogram.population_size
        summary["distinct_tuples_final"] = int(identifiers.shape[0])
        summary["max_tuple_holders_final"] = int(holders.max()) if holders.size else 0
    return summary
