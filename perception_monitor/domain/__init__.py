"""Domain layer: records, object registry, and agent snapshot reading."""

from perception_monitor.domain.agent import AgentHandle, AgentSnapshotReader, InMemoryAgent
from perception_monitor.domain.records import (
    AgentState,
    Category,
    Location,
    ObjectRecord,
    Snapshot,
    StoredTuple,
    TimingInfo,
    VoteRecord,
    VotingDecisionEvent,
)
from perception_monitor.domain.registry import ObjectRegistry

__all__ = [
    "AgentHandle",
    "AgentSnapshotReader",
    "AgentState",
    "Category",
    "InMemoryAgent",
    "Location",
    "ObjectRecord",
    "ObjectRegistry",
    "Snapshot",
    "StoredTuple",
    "TimingInfo",
    "VoteRecord",
    "VotingDecisionEvent",
]
