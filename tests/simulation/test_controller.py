"""Tests for simulation/controller.py: lifecycle, log output, and termination."""

from __future__ import annotations

from pathlib import Path

import pyarrow.parquet as pq
import pytest

from perception_monitor.config.types import MonitorConfig, TerminationReason, UnknownVotePolicy
from perception_monitor.domain.agent import InMemoryAgent
from perception_monitor.domain.records import Location
from perception_monitor.errors import (
    AgentUnavailableError,
    ConfigurationError,
    DuplicateLocationError,
    ExperimentFinishedError,
    ExperimentStateError,
    OutputStreamError,
    StreamClosedError,
    UnknownLocationError,
)
from perception_monitor.io.schemas import TICK_SUMMARY_SCHEMA
from perception_monitor.simulation.controller import ControllerState, ExperimentController

A = Location(1.0, 2.0, 0.0)
B = Location(-1.5, 0.25, 0.0)
OBJECTS = [(A, "cube"), (B, "sphere")]


def _config(**overrides: object) -> MonitorConfig:
    params: dict[str, object] = {"min_votes": 3, "storage": 8, "routing": 4, "bucket": 1}
    params.update(overrides)
    return MonitorConfig(**params)  # type: ignore[arg-type]


def _agents(n: int, storage_capacity: int = 8) -> list[InMemoryAgent]:
    return [
        InMemoryAgent(f"fb{i}", node_id=i + 1, storage_capacity=storage_capacity, routing_capacity=4)
        for i in range(n)
    ]


class TestRoundTrip:
    def test_full_coverage_at_first_tick(self, tmp_path: Path) -> None:
        agents = _agents(3)
        controller = ExperimentController(_config(), tmp_path)
        controller.setup(agents, OBJECTS)
        agents[0].report_vote(A, "cube", radius=0.25, start=1, last_update=1)
        agents[1].report_vote(B, "sphere", radius=0.25, start=1, last_update=1)
        summary = controller.step(1)
        controller.teardown()

        assert summary.coverage == pytest.approx(1.0)
        assert controller.is_experiment_finished()
        result = controller.result()
        assert result.termination_reason is TerminationReason.FULL_COVERAGE
        assert result.final_tick == 1
        assert result.voted_objects == 2
        assert result.accuracy == pytest.approx(1.0)

        detail = tmp_path / "outputfile_3_3_0_8_4_1.dat"
        histogram = tmp_path / "histogramfile_3_3_0_8_4_1.dat"
        assert result.detail_log_path == detail
        assert result.histogram_log_path == histogram
        assert detail.read_text().splitlines() == [
            "2",
            "1 3",
            "fb0 1",
            "cube cube 0.25 0 1 2 0",
            "fb1 1",
            "sphere sphere 0.25 0 -1.5 0.25 0",
            "fb2 0",
            "0 0",
        ]
        assert histogram.read_text().splitlines() == ["3", "1", "1 0", "2 0", "3 0"]


class TestCeiling:
    def test_terminates_after_tick_ceiling(self, tmp_path: Path) -> None:
        controller = ExperimentController(_config(max_ticks=100), tmp_path)
        controller.setup(_agents(1), [(A, "cube")])
        for tick in range(1, 101):
            controller.step(tick)
            assert not controller.is_experiment_finished()
        controller.step(101)
        assert controller.is_experiment_finished()
        controller.teardown()

        result = controller.result()
        assert result.termination_reason is TerminationReason.MAX_TICKS
        assert result.final_tick == 101
        assert result.ticks_processed == 101
        assert result.coverage == 0.0
        assert result.accuracy is None

    def test_zero_objects_finish_at_first_tick(self, tmp_path: Path) -> None:
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(2), [])
            summary = controller.step(1)
            assert controller.termination_reason is TerminationReason.FULL_COVERAGE
        assert summary.coverage == 0.0
        assert controller.result().coverage == 0.0


class TestLogShape:
    def test_agent_line_followed_by_its_events(self, tmp_path: Path) -> None:
        agents = _agents(2)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[1].report_vote(A, "cone", radius=0.1, start=2, last_update=6)
            agents[1].report_vote(A, "cube", radius=0.2, start=2, last_update=7)
            controller.step(7)
        lines = (tmp_path / "outputfile_3_2_0_8_4_1.dat").read_text().splitlines()
        idx = lines.index("fb1 2")
        assert lines[idx + 1] == "cone cube 0.1 4 1 2 0"
        assert lines[idx + 2] == "cube cube 0.2 5 1 2 0"
        assert len(lines[idx + 3].split()) == 2

    def test_headers(self, tmp_path: Path) -> None:
        with ExperimentController(_config(seed=9), tmp_path) as controller:
            controller.setup(_agents(4), OBJECTS)
        assert (tmp_path / "outputfile_3_4_9_8_4_1.dat").read_text() == "2\n"
        assert (tmp_path / "histogramfile_3_4_9_8_4_1.dat").read_text() == "4\n"

    def test_stray_vote_logged_with_unknown_truth(self, tmp_path: Path) -> None:
        agents = _agents(1)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[0].report_vote(Location(5.0, 5.0, 0.0), "cube", 0.5, 1, 1)
            controller.step(1)
            assert controller.registry.voted_count == 0
        lines = (tmp_path / "outputfile_3_1_0_8_4_1.dat").read_text().splitlines()
        assert "cube unknown 0.5 0 5 5 0" in lines

    def test_storage_load_line(self, tmp_path: Path) -> None:
        agents = _agents(2)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[0].store_tuple(0, 10)
            agents[0].store_tuple(1, 11)
            agents[1].send_message(20)
            controller.step(1)
        lines = (tmp_path / "outputfile_3_2_0_8_4_1.dat").read_text().splitlines()
        assert lines[-1] == "0.125 20"
        histogram = (tmp_path / "histogramfile_3_2_0_8_4_1.dat").read_text().splitlines()
        assert histogram == ["2", "1", "1 2", "0 10", "1 11", "2 0"]

    def test_existing_logs_truncated(self, tmp_path: Path) -> None:
        stale = tmp_path / "outputfile_3_1_0_8_4_1.dat"
        stale.write_text("old run\n" * 10)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(1), OBJECTS)
        assert stale.read_text() == "2\n"


class TestDraining:
    def test_counters_drained_each_tick(self, tmp_path: Path) -> None:
        agents = _agents(1)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[0].send_message(20)
            agents[0].store_tuple(0, 1)
            first = controller.step(1)
            second = controller.step(2)
        assert (first.total_messages, first.total_bytes_sent, first.total_stored_tuples) == (
            1,
            20,
            1,
        )
        assert (second.total_messages, second.total_bytes_sent, second.total_stored_tuples) == (
            0,
            0,
            0,
        )

    def test_voting_decisions_left_for_agent(self, tmp_path: Path) -> None:
        agents = _agents(1)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[0].report_vote(A, "cube", 0.2, 1, 1)
            controller.step(1)
            assert len(agents[0].get_voting_decisions()) == 1

    def test_setup_resets_agent_counters(self, tmp_path: Path) -> None:
        agents = _agents(1)
        agents[0].send_message(50)
        agents[0].store_tuple(0, 1)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
        assert agents[0].get_bytes_sent() == 0
        assert agents[0].get_num_stored_tuples() == 0

    def test_coverage_is_monotonic(self, tmp_path: Path) -> None:
        agents = _agents(2)
        coverages = []
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            for tick, votes in enumerate([[], [(A, "cube")], [(A, "cone")], [], [(B, "cube")]]):
                for agent in agents:
                    agent.clear_voting_decisions()
                for location, category in votes:
                    agents[tick % 2].report_vote(location, category, 0.1, tick, tick)
                coverages.append(controller.step(tick + 1).coverage)
        assert coverages == sorted(coverages)
        assert coverages[-1] == pytest.approx(1.0)


class TestSetupErrors:
    def test_retry_after_stream_failure(self, tmp_path: Path) -> None:
        out_dir = tmp_path / "out"
        out_dir.write_text("")
        agents = _agents(1)
        agents[0].send_message(20)
        controller = ExperimentController(_config(), out_dir)
        with pytest.raises(OutputStreamError):
            controller.setup(agents, OBJECTS)
        assert controller.state is ControllerState.UNINITIALIZED
        assert controller.registry.object_count == 0
        assert controller.agents == ()
        assert agents[0].get_bytes_sent() == 20

        out_dir.unlink()
        controller.setup(agents, OBJECTS)
        assert controller.state is ControllerState.RUNNING
        assert controller.registry.object_count == 2
        assert agents[0].get_bytes_sent() == 0
        controller.teardown()
        assert (out_dir / "outputfile_3_1_0_8_4_1.dat").read_text() == "2\n"

    def test_zero_storage_capacity(self, tmp_path: Path) -> None:
        controller = ExperimentController(_config(), tmp_path)
        with pytest.raises(ConfigurationError, match="total storage capacity"):
            controller.setup(_agents(2, storage_capacity=0), OBJECTS)
        assert list(tmp_path.iterdir()) == []
        assert controller.state is ControllerState.UNINITIALIZED

    def test_empty_population(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="at least one agent"):
            ExperimentController(_config(), tmp_path).setup([], OBJECTS)

    def test_duplicate_locations(self, tmp_path: Path) -> None:
        with pytest.raises(DuplicateLocationError):
            ExperimentController(_config(), tmp_path).setup(_agents(1), [(A, "cube"), (A, "cone")])

    def test_unavailable_agent(self, tmp_path: Path) -> None:
        agents = _agents(2)
        agents[1].available = False
        with pytest.raises(AgentUnavailableError, match="fb1"):
            ExperimentController(_config(), tmp_path).setup(agents, OBJECTS)

    def test_setup_twice(self, tmp_path: Path) -> None:
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(1), OBJECTS)
            with pytest.raises(ExperimentStateError, match="uninitialized"):
                controller.setup(_agents(1), OBJECTS)


class TestStateErrors:
    def test_step_before_setup(self, tmp_path: Path) -> None:
        with pytest.raises(ExperimentStateError, match="not been set up"):
            ExperimentController(_config(), tmp_path).step(1)

    def test_post_step_without_clock(self, tmp_path: Path) -> None:
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(1), OBJECTS)
            with pytest.raises(ExperimentStateError, match="pre_step"):
                controller.post_step()

    def test_post_step_with_detached_stream(self, tmp_path: Path) -> None:
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(1), OBJECTS)
            detached = controller.detail_stream
            controller.detail_stream = None
            controller.pre_step(1)
            with pytest.raises(ExperimentStateError, match="not been set up"):
                controller.post_step()
        assert detached is not None
        detached.close()

    def test_step_after_finish(self, tmp_path: Path) -> None:
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(1), [])
            controller.step(1)
            with pytest.raises(ExperimentFinishedError):
                controller.step(2)

    def test_step_after_teardown(self, tmp_path: Path) -> None:
        controller = ExperimentController(_config(), tmp_path)
        controller.setup(_agents(1), OBJECTS)
        controller.teardown()
        assert controller.state is ControllerState.CLOSED
        with pytest.raises(StreamClosedError):
            controller.step(1)

    def test_agent_lost_mid_run(self, tmp_path: Path) -> None:
        agents = _agents(2)
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            controller.step(1)
            agents[0].available = False
            with pytest.raises(AgentUnavailableError, match="fb0"):
                controller.step(2)

    def test_strict_policy_rejects_stray_vote(self, tmp_path: Path) -> None:
        agents = _agents(1)
        config = _config(unknown_vote_policy=UnknownVotePolicy.STRICT)
        with ExperimentController(config, tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[0].report_vote(Location(5.0, 5.0, 0.0), "cube", 0.5, 1, 1)
            with pytest.raises(UnknownLocationError):
                controller.step(1)

    def test_result_before_finish(self, tmp_path: Path) -> None:
        with ExperimentController(_config(), tmp_path) as controller:
            controller.setup(_agents(1), OBJECTS)
            controller.step(1)
            with pytest.raises(ExperimentStateError, match="not finished"):
                controller.result()


class TestTeardown:
    def test_teardown_is_idempotent(self, tmp_path: Path) -> None:
        controller = ExperimentController(_config(), tmp_path)
        controller.setup(_agents(1), OBJECTS)
        controller.teardown()
        controller.teardown()
        assert controller.detail_stream is not None and controller.detail_stream.closed

    def test_teardown_before_setup_is_noop(self, tmp_path: Path) -> None:
        controller = ExperimentController(_config(), tmp_path)
        controller.teardown()
        assert controller.state is ControllerState.UNINITIALIZED

    def test_reset_allows_reuse(self, tmp_path: Path) -> None:
        controller = ExperimentController(_config(), tmp_path)
        controller.setup(_agents(1), OBJECTS)
        controller.step(1)
        controller.reset()
        assert controller.state is ControllerState.UNINITIALIZED
        assert controller.ticks_processed == 0
        assert controller.registry.object_count == 0
        controller.setup(_agents(2), OBJECTS)
        assert controller.state is ControllerState.RUNNING
        controller.teardown()


class TestSummarySidecar:
    def test_one_row_per_tick(self, tmp_path: Path) -> None:
        agents = _agents(1)
        with ExperimentController(_config(max_ticks=4), tmp_path) as controller:
            controller.setup(agents, OBJECTS)
            agents[0].report_vote(A, "cone", 0.1, 1, 1)
            for tick in range(1, 6):
                controller.step(tick)
        table = pq.read_table(tmp_path / "summaryfile_3_1_0_8_4_1.parquet")
        assert table.column_names == TICK_SUMMARY_SCHEMA.names
        assert table.column("tick").to_pylist() == [1, 2, 3, 4, 5]
        assert table.column("coverage").to_pylist() == [pytest.approx(0.5)] * 5
        assert table.column("accuracy").to_pylist() == [pytest.approx(0.0)] * 5
        assert controller.result().summary_path == tmp_path / "summaryfile_3_1_0_8_4_1.parquet"

    def test_disabled(self, tmp_path: Path) -> None:
        with ExperimentController(_config(write_summary=False), tmp_path) as controller:
            controller.setup(_agents(1), [])
            controller.step(1)
        assert not list(tmp_path.glob("*.parquet"))
        assert controller.result().summary_path is None
