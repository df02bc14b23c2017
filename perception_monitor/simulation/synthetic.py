"""Seeded synthetic environment for exercising the monitor without a physics engine.

Each tick every agent clears its own voting-decision buffer, then with
probability ``perception_probability`` perceives a uniformly chosen object
and votes for it: the true category with probability ``accuracy``, another
category otherwise. Every vote is broadcast (one message) and stored as a
tuple, evicting the oldest tuple once the agent's store is full.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from random import Random

from perception_monitor.domain.agent import InMemoryAgent
from perception_monitor.domain.records import Category, Location
from perception_monitor.errors import ConfigurationError

CATEGORIES: tuple[Category, ...] = ("cube", "cylinder", "sphere", "cone")
"""Default category vocabulary for generated objects."""

MESSAGE_BYTES = 20
"""Payload size of one broadcast opinion."""


def _opinion_hash(location: Location, category: Category) -> int:
    """Stable 32-bit hash of an opinion, independent of PYTHONHASHSEED."""
    digest = hashlib.sha256(f"{location.x}|{location.y}|{location.z}|{category}".encode())
    return int(digest.hexdigest()[:8], 16)


@dataclass(frozen=True)
class SyntheticConfig:
    """Shape and behaviour of a generated environment."""

    n_agents: int = 10
    n_objects: int = 5
    storage_capacity: int = 8
    routing_capacity: int = 4
    perception_probability: float = 0.05
    accuracy: float = 0.8
    arena_size: float = 4.0
    seed: int = 0

    def __post_init__(self) -> None:
        if self.n_agents < 1:
            raise ConfigurationError("n_agents must be >= 1")
        if self.n_objects < 0:
            raise ConfigurationError("n_objects must be >= 0")
        if self.storage_capacity < 0 or self.routing_capacity < 0:
            raise ConfigurationError("capacities must be >= 0")
        if not 0.0 <= self.perception_probability <= 1.0:
            raise ConfigurationError("perception_probability must be in [0.0, 1.0]")
        if not 0.0 <= self.accuracy <= 1.0:
            raise ConfigurationError("accuracy must be in [0.0, 1.0]")


class SyntheticEnvironment:
    """Deterministic stand-in for the arena, its objects, and its agents."""

    def __init__(self, config: SyntheticConfig) -> None:
        self.config = config
        self._rng = Random(config.seed)
        self._clock = 0
        self._agents = [
            InMemoryAgent(
                agent_id=f"fb{i}",
                node_id=i + 1,
                storage_capacity=config.storage_capacity,
                routing_capacity=config.routing_capacity,
            )
            for i in range(config.n_agents)
        ]
        self._objects: list[tuple[Location, Category]] = []
        taken: set[Location] = set()
        while len(self._objects) < config.n_objects:
            location = Location(
                x=round(self._rng.uniform(-config.arena_size, config.arena_size), 3),
                y=round(self._rng.uniform(-config.arena_size, config.arena_size), 3),
                z=0.0,
            )
            if location in taken:
                continue
            taken.add(location)
            self._objects.append((location, self._rng.choice(CATEGORIES)))
        self._first_seen: dict[tuple[str, Location], int] = {}
        self._next_tuple_id = 0

    def clock(self) -> int:
        return self._clock

    def agents(self) -> list[InMemoryAgent]:
        return list(self._agents)

    def objects(self) -> list[tuple[Location, Category]]:
        return list(self._objects)

    def advance(self) -> None:
        self._clock += 1
        for agent in self._agents:
            agent.clear_voting_decisions()
            if not self._objects or self._rng.random() >= self.config.perception_probability:
                continue
            location, true_category = self._rng.choice(self._objects)
            if self._rng.random() < self.config.accuracy:
                category = true_category
            else:
                category = self._rng.choice([c for c in CATEGORIES if c != true_category])
            start = self._first_seen.setdefault((agent.agent_id, location), self._clock)
            agent.report_vote(
                location,
                category,
                radius=round(self._rng.uniform(0.05, 0.5), 3),
                start=start,
                last_update=self._clock,
            )
            agent.send_message(MESSAGE_BYTES)
            self._store(agent, _opinion_hash(location, category))

    def _store(self, agent: InMemoryAgent, hash_value: int) -> None:
        if agent.storage_capacity == 0:
            return
        stored = agent.get_tuples()
        if len(stored) >= agent.storage_capacity:
            agent.evict_tuple(stored[0].identifier)
        agent.store_tuple(self._next_tuple_id, hash_value)
        self._next_tuple_id += 1
