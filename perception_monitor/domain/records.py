"""Typed domain model for objects, votes, and per-tick agent snapshots.

All records are frozen dataclasses. ``AgentState`` is the read-only view of
one agent for one tick; its event and tuple lists are tuples copied from the
agent's own buffers so later mutation by the agent cannot leak into a
snapshot that has already been aggregated.
"""

from __future__ import annotations

from dataclasses import dataclass

Category = str
"""Discrete label an agent assigns to a perceived object."""


@dataclass(frozen=True, order=True)
class Location:
    """Static 3D position of an object; compared by exact float equality."""

    x: float
    y: float
    z: float

    def __str__(self) -> str:
        return f"({self.x}, {self.y}, {self.z})"


@dataclass(frozen=True)
class ObjectRecord:
    """Ground truth for one object, created once at setup."""

    object_id: int
    location: Location
    true_category: Category


@dataclass(frozen=True)
class VoteRecord:
    """Most recent voted category for one location."""

    location: Location
    voted_category: Category


@dataclass(frozen=True)
class TimingInfo:
    """Ticks at which an opinion was first formed and last updated."""

    start: int
    last_update: int

    @property
    def elapsed(self) -> int:
        return self.last_update - self.start


@dataclass(frozen=True)
class VotingDecisionEvent:
    """An agent's finalized opinion about the object at ``location``."""

    location: Location
    category: Category
    radius: float
    timing: TimingInfo


@dataclass(frozen=True)
class StoredTuple:
    """One opinion held in an agent's bounded local store."""

    identifier: int
    hash: int


@dataclass(frozen=True)
class AgentState:
    """Immutable snapshot of a single agent's counters and buffers at one tick."""

    agent_id: str
    node_id: int
    message_count: int
    stored_tuple_count: int
    bytes_sent: int
    routing_capacity: int
    storage_capacity: int
    voting_decisions: tuple[VotingDecisionEvent, ...] = ()
    stored_tuples: tuple[StoredTuple, ...] = ()


Snapshot = tuple[AgentState, ...]
"""Ordered tuple of agent states capturing the whole population at one tick."""
