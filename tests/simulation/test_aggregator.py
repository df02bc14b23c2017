"""Tests for simulation/aggregator.py."""

from __future__ import annotations

import logging

import pytest

from perception_monitor.domain.records import AgentState, Location, TimingInfo, VotingDecisionEvent
from perception_monitor.domain.registry import ObjectRegistry
from perception_monitor.errors import ConfigurationError
from perception_monitor.simulation.aggregator import Aggregator

A = Location(0.0, 1.0, 0.0)
B = Location(2.0, 3.0, 0.0)


def _vote(location: Location, category: str) -> VotingDecisionEvent:
    return VotingDecisionEvent(
        location=location, category=category, radius=0.2, timing=TimingInfo(1, 1)
    )


def _state(
    agent_id: str,
    messages: int = 0,
    tuples: int = 0,
    bytes_sent: int = 0,
    votes: tuple[VotingDecisionEvent, ...] = (),
) -> AgentState:
    return AgentState(
        agent_id=agent_id,
        node_id=int(agent_id[2:]) + 1,
        message_count=messages,
        stored_tuple_count=tuples,
        bytes_sent=bytes_sent,
        routing_capacity=4,
        storage_capacity=8,
        voting_decisions=votes,
    )


def _aggregator(capacity: int = 16) -> Aggregator:
    registry = ObjectRegistry()
    registry.register_objects([(A, "cube"), (B, "sphere")])
    return Aggregator(registry, total_storage_capacity=capacity)


class TestAggregate:
    def test_totals(self) -> None:
        aggregator = _aggregator()
        summary = aggregator.aggregate(
            4,
            [
                _state("fb0", messages=2, tuples=3, bytes_sent=40),
                _state("fb1", messages=1, tuples=1, bytes_sent=20),
            ],
        )
        assert summary.tick == 4
        assert summary.total_messages == 3
        assert summary.total_stored_tuples == 4
        assert summary.total_bytes_sent == 60
        assert summary.storage_load == pytest.approx(0.25)
        assert summary.votes_recorded == 0
        assert summary.coverage == 0.0

    def test_votes_forwarded_to_registry(self) -> None:
        aggregator = _aggregator()
        summary = aggregator.aggregate(1, [_state("fb0", votes=(_vote(A, "cube"),))])
        assert summary.votes_recorded == 1
        assert summary.coverage == pytest.approx(0.5)
        assert aggregator.registry.voted_category(A) == "cube"

    @pytest.mark.parametrize(
        ("first", "second", "winner"),
        [("cube", "sphere", "sphere"), ("sphere", "cube", "cube")],
    )
    def test_last_agent_wins_conflicting_votes(self, first: str, second: str, winner: str) -> None:
        aggregator = _aggregator()
        aggregator.aggregate(
            1,
            [_state("fb0", votes=(_vote(A, first),)), _state("fb1", votes=(_vote(A, second),))],
        )
        assert aggregator.registry.voted_category(A) == winner

    def test_last_event_wins_within_agent(self) -> None:
        aggregator = _aggregator()
        aggregator.aggregate(1, [_state("fb0", votes=(_vote(B, "cone"), _vote(B, "sphere")))])
        assert aggregator.registry.voted_category(B) == "sphere"

    def test_empty_population(self) -> None:
        summary = _aggregator().aggregate(1, [])
        assert summary.total_messages == 0
        assert summary.storage_load == 0.0

    def test_overload_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        aggregator = _aggregator(capacity=2)
        with caplog.at_level(logging.WARNING, logger="perception_monitor.simulation.aggregator"):
            summary = aggregator.aggregate(3, [_state("fb0", tuples=3)])
        assert summary.storage_load == pytest.approx(1.5)
        assert any("exceeds aggregate capacity" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("capacity", [0, -1])
def test_non_positive_capacity_rejected(capacity: int) -> None:
    with pytest.raises(ConfigurationError, match="total storage capacity must be > 0"):
        Aggregator(ObjectRegistry(), total_storage_capacity=capacity)
