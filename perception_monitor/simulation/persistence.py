"""Text-log streams and Parquet persistence helpers for the tick loop."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

import pyarrow as pa
import pyarrow.parquet as pq

from perception_monitor.config.constants import FLOAT_FORMAT
from perception_monitor.domain.records import AgentState
from perception_monitor.domain.registry import ObjectRegistry
from perception_monitor.errors import OutputStreamError, StreamClosedError
from perception_monitor.io.schemas import TICK_SUMMARY_SCHEMA
from perception_monitor.simulation.aggregator import TickSummary


def format_field(value: object) -> str:
    """Render one log field.

    Reals use the short six-significant-digit form when it parses back to the
    same value, and the shortest exact repr otherwise, so logged coordinates
    stay distinct for offline replay.
    """
    if isinstance(value, float):
        short = format(value, FLOAT_FORMAT)
        return short if float(short) == value else repr(value)
    return str(value)


class LogStream:
    """Append-only, line-oriented text stream opened with truncation."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle: TextIO | None = self.path.open("w", encoding="utf-8")
        except OSError as exc:
            raise OutputStreamError(f"cannot open output stream {self.path}: {exc}") from exc
        self.lines_written = 0

    @property
    def closed(self) -> bool:
        return self._handle is None

    def write_line(self, *fields: object) -> None:
        if self._handle is None:
            raise StreamClosedError(f"stream {self.path} is closed")
        try:
            self._handle.write(" ".join(format_field(f) for f in fields) + "\n")
        except OSError as exc:
            raise OutputStreamError(f"cannot write to {self.path}: {exc}") from exc
        self.lines_written += 1

    def flush(self) -> None:
        if self._handle is not None:
            self._handle.flush()

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        handle.close()


def write_detail_block(
    stream: LogStream,
    summary: TickSummary,
    snapshots: Sequence[AgentState],
    registry: ObjectRegistry,
) -> None:
    """Write one tick of the detail log: header, per-agent events, load line."""
    stream.write_line(summary.tick, len(snapshots))
    for state in snapshots:
        stream.write_line(state.agent_id, len(state.voting_decisions))
        for event in state.voting_decisions:
            location = event.location
            stream.write_line(
                event.category,
                registry.true_category(location),
                float(event.radius),
                event.timing.elapsed,
                float(location.x),
                float(location.y),
                float(location.z),
            )
    stream.write_line(float(summary.storage_load), summary.total_bytes_sent)


def write_histogram_block(
    stream: LogStream, tick: int, snapshots: Sequence[AgentState]
) -> None:
    """Write one tick of the histogram log: tick line, then stored tuples per agent."""
    stream.write_line(tick)
    for state in snapshots:
        stream.write_line(state.node_id, len(state.stored_tuples))
        for stored in state.stored_tuples:
            stream.write_line(stored.identifier, stored.hash)


def new_summary_columns() -> dict[str, list[int | float | None]]:
    return {name: [] for name in TICK_SUMMARY_SCHEMA.names}


def append_summary_row(
    columns: dict[str, list[int | float | None]],
    summary: TickSummary,
    accuracy: float | None,
) -> None:
    columns["tick"].append(summary.tick)
    columns["total_messages"].append(summary.total_messages)
    columns["total_stored_tuples"].append(summary.total_stored_tuples)
    columns["total_bytes_sent"].append(summary.total_bytes_sent)
    columns["storage_load"].append(summary.storage_load)
    columns["votes_recorded"].append(summary.votes_recorded)
    columns["coverage"].append(summary.coverage)
    columns["accuracy"].append(accuracy)


def flush_summary_columns(
    summary_columns: dict[str, list[int | float | None]],
    summary_path: Path,
    summary_writer: pq.ParquetWriter | None,
) -> pq.ParquetWriter | None:
    """Write accumulated tick-summary rows to Parquet and clear in-memory buffers."""
    if not summary_columns["tick"]:
        return summary_writer
    table = pa.Table.from_pydict(summary_columns, schema=TICK_SUMMARY_SCHEMA)
    if summary_writer is None:
        try:
            summary_writer = pq.ParquetWriter(summary_path, TICK_SUMMARY_SCHEMA)
        except OSError as exc:
            raise OutputStreamError(f"cannot open summary file {summary_path}: {exc}") from exc
    summary_writer.write_table(table)
    for values in summary_columns.values():
        values.clear()
    return summary_writer
