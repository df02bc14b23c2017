"""Agent handle protocol, snapshot reader, and a deterministic in-memory agent.

The monitor drains agent-owned accumulators with an explicit two-phase
contract: :meth:`AgentSnapshotReader.read` copies the counters and buffers
into an immutable :class:`AgentState`, then
:meth:`AgentSnapshotReader.reset_counters` zeroes the message count, the
stored-tuple count and the bytes-sent counter and clears the timing records.
The voting-decision buffer is never cleared here; the agent owns it.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from perception_monitor.domain.records import (
    AgentState,
    Category,
    Location,
    StoredTuple,
    TimingInfo,
    VotingDecisionEvent,
)
from perception_monitor.errors import AgentUnavailableError


@runtime_checkable
class AgentHandle(Protocol):
    """Interface the monitor consumes from an external agent controller."""

    def is_available(self) -> bool: ...

    def get_id(self) -> str: ...

    def get_node_id(self) -> int: ...

    def get_message_count(self) -> int: ...

    def get_num_stored_tuples(self) -> int: ...

    def get_bytes_sent(self) -> int: ...

    def get_routing_capacity(self) -> int: ...

    def get_storage_capacity(self) -> int: ...

    def get_voting_decisions(self) -> Sequence[VotingDecisionEvent]: ...

    def get_tuples(self) -> Sequence[StoredTuple]: ...

    def set_message_count(self, count: int) -> None: ...

    def set_num_stored_tuples(self, count: int) -> None: ...

    def reset_bytes_sent(self) -> None: ...

    def clear_timing_info(self) -> None: ...


class AgentSnapshotReader:
    """Reads then drains per-tick agent accumulators.

    Call :meth:`snapshot` exactly once per agent per tick: a second call in
    the same tick sees zeroed counters.
    """

    def _check(self, handle: AgentHandle | None) -> AgentHandle:
        if handle is None:
            raise AgentUnavailableError("<none>", "handle is missing")
        if not handle.is_available():
            raise AgentUnavailableError(handle.get_id())
        return handle

    def read(self, handle: AgentHandle | None) -> AgentState:
        """Copy the agent's counters and buffers without modifying them."""
        agent = self._check(handle)
        return AgentState(
            agent_id=agent.get_id(),
            node_id=agent.get_node_id(),
            message_count=agent.get_message_count(),
            stored_tuple_count=agent.get_num_stored_tuples(),
            bytes_sent=agent.get_bytes_sent(),
            routing_capacity=agent.get_routing_capacity(),
            storage_capacity=agent.get_storage_capacity(),
            voting_decisions=tuple(agent.get_voting_decisions()),
            stored_tuples=tuple(agent.get_tuples()),
        )

    def reset_counters(self, handle: AgentHandle | None) -> None:
        """Zero the drained accumulators; the voting-decision buffer is left alone."""
        agent = self._check(handle)
        agent.reset_bytes_sent()
        agent.clear_timing_info()
        agent.set_message_count(0)
        agent.set_num_stored_tuples(0)

    def snapshot(self, handle: AgentHandle | None) -> AgentState:
        state = self.read(handle)
        self.reset_counters(handle)
        return state


class InMemoryAgent:
    """Deterministic stand-in for an agent controller.

    Used by the reference driver and tests. Behaviour mirrors the real
    controller's bookkeeping: counters accumulate until drained by the
    monitor, and the voting-decision buffer is cleared only by
    :meth:`clear_voting_decisions`.
    """

    def __init__(
        self,
        agent_id: str,
        node_id: int,
        storage_capacity: int,
        routing_capacity: int,
    ) -> None:
        self.agent_id = agent_id
        self.node_id = node_id
        self.storage_capacity = storage_capacity
        self.routing_capacity = routing_capacity
        self.available = True
        self._message_count = 0
        self._num_stored_tuples = 0
        self._bytes_sent = 0
        self._voting_decisions: list[VotingDecisionEvent] = []
        self._timing_info: list[TimingInfo] = []
        self._tuples: list[StoredTuple] = []

    def __repr__(self) -> str:
        return f"InMemoryAgent(agent_id={self.agent_id!r}, node_id={self.node_id})"

    # Agent-side mutators ---------------------------------------------------

    def send_message(self, n_bytes: int) -> None:
        self._message_count += 1
        self._bytes_sent += n_bytes

    def store_tuple(self, identifier: int, hash_value: int) -> None:
        self._tuples.append(StoredTuple(identifier=identifier, hash=hash_value))
        self._num_stored_tuples += 1

    def evict_tuple(self, identifier: int) -> None:
        self._tuples = [t for t in self._tuples if t.identifier != identifier]

    def report_vote(
        self,
        location: Location,
        category: Category,
        radius: float,
        start: int,
        last_update: int,
    ) -> VotingDecisionEvent:
        timing = TimingInfo(start=start, last_update=last_update)
        event = VotingDecisionEvent(
            location=location, category=category, radius=radius, timing=timing
        )
        self._voting_decisions.append(event)
        self._timing_info.append(timing)
        return event

    def clear_voting_decisions(self) -> None:
        self._voting_decisions.clear()

    # AgentHandle -------------------------------------------------------------

    def is_available(self) -> bool:
        return self.available

    def get_id(self) -> str:
        return self.agent_id

    def get_node_id(self) -> int:
        return self.node_id

    def get_message_count(self) -> int:
        return self._message_count

    def get_num_stored_tuples(self) -> int:
        return self._num_stored_tuples

    def get_bytes_sent(self) -> int:
        return self._bytes_sent

    def get_routing_capacity(self) -> int:
        return self.routing_capacity

    def get_storage_capacity(self) -> int:
        return self.storage_capacity

    def get_voting_decisions(self) -> list[VotingDecisionEvent]:
        return list(self._voting_decisions)

    def get_timing_info(self) -> list[TimingInfo]:
        return list(self._timing_info)

    def get_tuples(self) -> list[StoredTuple]:
        return list(self._tuples)

    def set_message_count(self, count: int) -> None:
        self._message_count = count

    def set_num_stored_tuples(self, count: int) -> None:
        self._num_stored_tuples = count

    def reset_bytes_sent(self) -> None:
        self._bytes_sent = 0

    def clear_timing_info(self) -> None:
        self._timing_info.clear()
