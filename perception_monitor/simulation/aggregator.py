"""Tick-level aggregation of drained agent snapshots.

Pure logic, no I/O: totals are folded in agent enumeration order and every
voting-decision event is forwarded to the registry in agent order, then
event order, so the last agent's last event wins on conflicting votes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from perception_monitor.domain.records import AgentState
from perception_monitor.domain.registry import ObjectRegistry
from perception_monitor.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickSummary:
    """Population totals for one tick."""

    tick: int
    total_messages: int
    total_stored_tuples: int
    total_bytes_sent: int
    storage_load: float
    votes_recorded: int
    coverage: float


class Aggregator:
    """Folds per-agent snapshots into a :class:`TickSummary`."""

    def __init__(self, registry: ObjectRegistry, total_storage_capacity: int) -> None:
        if total_storage_capacity <= 0:
            raise ConfigurationError(
                f"total storage capacity must be > 0, got {total_storage_capacity}"
            )
        self.registry = registry
        self.total_storage_capacity = total_storage_capacity

    def aggregate(self, tick: int, snapshots: Sequence[AgentState]) -> TickSummary:
        total_messages = 0
        total_stored_tuples = 0
        total_bytes_sent = 0
        votes_recorded = 0
        for state in snapshots:
            total_messages += state.message_count
            total_stored_tuples += state.stored_tuple_count
            total_bytes_sent += state.bytes_sent
            for event in state.voting_decisions:
                self.registry.record_vote(event.location, event.category)
                votes_recorded += 1

        storage_load = total_stored_tuples / self.total_storage_capacity
        if storage_load > 1.0:
            logger.warning(
                "tick %d: storage load %.3f exceeds aggregate capacity %d",
                tick,
                storage_load,
                self.total_storage_capacity,
            )
        return TickSummary(
            tick=tick,
            total_messages=total_messages,
            total_stored_tuples=total_stored_tuples,
            total_bytes_sent=total_bytes_sent,
            storage_load=storage_load,
            votes_recorded=votes_recorded,
            coverage=self.registry.coverage(),
        )
