"""Experiment controller: lifecycle, per-tick logging, and termination.

State machine::

    UNINITIALIZED --setup--> RUNNING --termination--> FINISHED --teardown--> CLOSED

``reset`` returns any state to ``UNINITIALIZED`` so a controller can be
reused for the next configuration of a batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum
from pathlib import Path
from types import TracebackType

import pyarrow.parquet as pq

from perception_monitor.config.constants import FLUSH_THRESHOLD
from perception_monitor.config.types import MonitorConfig, RunResult, TerminationReason
from perception_monitor.domain.agent import AgentHandle, AgentSnapshotReader
from perception_monitor.domain.records import Category, Location
from perception_monitor.domain.registry import ObjectRegistry
from perception_monitor.errors import (
    AgentUnavailableError,
    ConfigurationError,
    ExperimentFinishedError,
    ExperimentStateError,
    StreamClosedError,
)
from perception_monitor.io import paths
from perception_monitor.simulation.aggregator import Aggregator, TickSummary
from perception_monitor.simulation.persistence import (
    LogStream,
    append_summary_row,
    flush_summary_columns,
    new_summary_columns,
    write_detail_block,
    write_histogram_block,
)

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    FINISHED = "finished"
    CLOSED = "closed"


class ExperimentController:
    """Drives aggregation, serialization, and termination once per tick."""

    def __init__(self, config: MonitorConfig, out_dir: Path) -> None:
        self.config = config
        self.out_dir = Path(out_dir)
        self.reader = AgentSnapshotReader()
        self._clear()

    def _clear(self) -> None:
        self.state = ControllerState.UNINITIALIZED
        self.registry = ObjectRegistry(policy=self.config.unknown_vote_policy)
        self.aggregator: Aggregator | None = None
        self.agents: tuple[AgentHandle, ...] = ()
        self.total_storage_capacity = 0
        self.total_routing_capacity = 0
        self.clock: int | None = None
        self.ticks_processed = 0
        self.last_summary: TickSummary | None = None
        self.termination_reason: TerminationReason | None = None
        self.detail_stream: LogStream | None = None
        self.histogram_stream: LogStream | None = None
        self.summary_file: Path | None = None
        self._summary_writer: pq.ParquetWriter | None = None
        self._summary_columns = new_summary_columns()

    @property
    def population_size(self) -> int:
        return len(self.agents)

    @property
    def run_id(self) -> str:
        return paths.run_id(self.config, self.population_size)

    # Lifecycle ---------------------------------------------------------------

    def setup(
        self,
        agents: Sequence[AgentHandle],
        objects: Iterable[tuple[Location, Category]],
    ) -> None:
        """Compute capacities, register objects, and open both log streams."""
        if self.state is not ControllerState.UNINITIALIZED:
            raise ExperimentStateError(
                f"setup requires an uninitialized controller, not {self.state.value}"
            )
        if not agents:
            raise ConfigurationError("population must contain at least one agent")

        storage_total = 0
        routing_total = 0
        for handle in agents:
            if not handle.is_available():
                raise AgentUnavailableError(handle.get_id())
            storage_total += handle.get_storage_capacity()
            routing_total += handle.get_routing_capacity()

        # Nothing on self changes until every fallible step below has succeeded.
        registry = ObjectRegistry(policy=self.config.unknown_vote_policy)
        aggregator = Aggregator(registry, total_storage_capacity=storage_total)
        registry.register_objects(objects)

        population_size = len(agents)
        detail_path = paths.detail_log_path(self.out_dir, self.config, population_size)
        histogram_path = paths.histogram_log_path(self.out_dir, self.config, population_size)
        detail_stream = LogStream(detail_path)
        histogram_stream: LogStream | None = None
        try:
            histogram_stream = LogStream(histogram_path)
            histogram_stream.write_line(population_size)
            detail_stream.write_line(registry.object_count)
        except OSError:
            detail_stream.close()
            if histogram_stream is not None:
                histogram_stream.close()
            raise

        for handle in agents:
            handle.set_num_stored_tuples(0)
            handle.reset_bytes_sent()

        self.registry = registry
        self.aggregator = aggregator
        self.agents = tuple(agents)
        self.total_storage_capacity = storage_total
        self.total_routing_capacity = routing_total
        self.detail_stream = detail_stream
        self.histogram_stream = histogram_stream
        if self.config.write_summary:
            self.summary_file = paths.summary_path(self.out_dir, self.config, population_size)

        self.state = ControllerState.RUNNING
        logger.info(
            "run %s: %d agents, %d objects, storage capacity %d, routing capacity %d",
            self.run_id,
            self.population_size,
            self.registry.object_count,
            storage_total,
            routing_total,
        )

    def _require_running(self) -> None:
        if self.state is ControllerState.RUNNING:
            return
        if self.state is ControllerState.FINISHED:
            raise ExperimentFinishedError("experiment has finished; no further ticks are processed")
        if self.state is ControllerState.CLOSED:
            raise StreamClosedError("output streams are closed")
        raise ExperimentStateError("controller has not been set up")

    def pre_step(self, tick: int) -> None:
        """Record the simulation clock for the upcoming post-step."""
        self._require_running()
        self.clock = tick

    def post_step(self) -> TickSummary:
        """Snapshot every agent, aggregate, serialize, then evaluate termination."""
        self._require_running()
        if self.clock is None:
            raise ExperimentStateError("pre_step must run before post_step")
        aggregator = self.aggregator
        detail_stream = self.detail_stream
        histogram_stream = self.histogram_stream
        if aggregator is None or detail_stream is None or histogram_stream is None:
            raise ExperimentStateError("controller has not been set up")

        tick = self.clock
        snapshots = [self.reader.snapshot(handle) for handle in self.agents]
        summary = aggregator.aggregate(tick, snapshots)

        write_detail_block(detail_stream, summary, snapshots, self.registry)
        write_histogram_block(histogram_stream, tick, snapshots)
        if self.summary_file is not None:
            append_summary_row(self._summary_columns, summary, self.registry.accuracy())
            if len(self._summary_columns["tick"]) >= FLUSH_THRESHOLD:
                self._summary_writer = flush_summary_columns(
                    self._summary_columns, self.summary_file, self._summary_writer
                )

        self.ticks_processed += 1
        self.last_summary = summary
        logger.debug(
            "tick %d: coverage %.3f, load %.3f, bytes %d",
            tick,
            summary.coverage,
            summary.storage_load,
            summary.total_bytes_sent,
        )
        self._evaluate_termination(tick)
        return summary

    def step(self, tick: int) -> TickSummary:
        self.pre_step(tick)
        return self.post_step()

    def _evaluate_termination(self, tick: int) -> None:
        if self.registry.is_fully_covered():
            self.termination_reason = TerminationReason.FULL_COVERAGE
        elif tick > self.config.max_ticks:
            self.termination_reason = TerminationReason.MAX_TICKS
        else:
            return
        self.state = ControllerState.FINISHED
        logger.info(
            "run %s finished at tick %d (%s): %d/%d objects voted",
            self.run_id,
            tick,
            self.termination_reason.value,
            self.registry.voted_count,
            self.registry.object_count,
        )

    def is_experiment_finished(self) -> bool:
        return self.state in (ControllerState.FINISHED, ControllerState.CLOSED)

    def teardown(self) -> None:
        """Flush and close every output stream."""
        if self.state is ControllerState.UNINITIALIZED:
            return
        try:
            if self.summary_file is not None:
                self._summary_writer = flush_summary_columns(
                    self._summary_columns, self.summary_file, self._summary_writer
                )
        finally:
            if self._summary_writer is not None:
                self._summary_writer.close()
                self._summary_writer = None
            for stream in (self.detail_stream, self.histogram_stream):
                if stream is not None:
                    stream.close()
        if self.state is not ControllerState.CLOSED:
            logger.info("run %s: output streams closed", self.run_id)
        self.state = ControllerState.CLOSED

    def reset(self) -> None:
        """Close any open streams and forget all run state."""
        self.teardown()
        self._clear()

    def __enter__(self) -> ExperimentController:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.teardown()

    # Results -----------------------------------------------------------------

    def result(self) -> RunResult:
        if self.termination_reason is None or self.clock is None:
            raise ExperimentStateError("experiment has not finished")
        return RunResult(
            run_id=self.run_id,
            termination_reason=self.termination_reason,
            final_tick=self.clock,
            ticks_processed=self.ticks_processed,
            voted_objects=self.registry.voted_count,
            registered_objects=self.registry.object_count,
            accuracy=self.registry.accuracy(),
            detail_log_path=paths.detail_log_path(self.out_dir, self.config, self.population_size),
            histogram_log_path=paths.histogram_log_path(
                self.out_dir, self.config, self.population_size
            ),
            summary_path=self.summary_file,
        )
