"""Object registry: ground-truth categories and the evolving voted-category map.

Each object receives an integer id in registration order; the exact
``Location`` is kept as an attribute and as a lookup index, because voting
events identify objects only by where they were perceived.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from perception_monitor.config.constants import UNKNOWN_CATEGORY
from perception_monitor.config.types import UnknownVotePolicy
from perception_monitor.domain.records import Category, Location, ObjectRecord, VoteRecord
from perception_monitor.errors import (
    ConfigurationError,
    DuplicateLocationError,
    UnknownLocationError,
)

logger = logging.getLogger(__name__)


class ObjectRegistry:
    """Stable object identities plus last-writer-wins vote bookkeeping."""

    def __init__(self, policy: UnknownVotePolicy = UnknownVotePolicy.LENIENT) -> None:
        self.policy = policy
        self._objects: list[ObjectRecord] = []
        self._index: dict[Location, int] = {}
        self._votes: dict[int, Category] = {}
        self._stray_votes: dict[Location, Category] = {}
        self._registered = False

    def register_objects(self, objects: Iterable[tuple[Location, Category]]) -> None:
        """Register every perceivable object once; duplicate locations fail fast."""
        if self._registered:
            raise ConfigurationError("objects have already been registered")
        records: list[ObjectRecord] = []
        index: dict[Location, int] = {}
        for location, category in objects:
            if location in index:
                raise DuplicateLocationError(location)
            object_id = len(records)
            index[location] = object_id
            records.append(
                ObjectRecord(object_id=object_id, location=location, true_category=category)
            )
        self._objects = records
        self._index = index
        self._registered = True
        logger.info("registered %d objects", len(records))

    def record_vote(self, location: Location, category: Category) -> None:
        """Upsert the voted category for ``location``."""
        object_id = self._index.get(location)
        if object_id is not None:
            self._votes[object_id] = category
            return
        if self.policy is UnknownVotePolicy.STRICT:
            raise UnknownLocationError(location)
        if location not in self._stray_votes:
            logger.warning("vote for unregistered location %s kept as stray vote", location)
        self._stray_votes[location] = category

    # Queries -------------------------------------------------------------

    @property
    def objects(self) -> tuple[ObjectRecord, ...]:
        return tuple(self._objects)

    @property
    def object_count(self) -> int:
        return len(self._objects)

    @property
    def voted_count(self) -> int:
        return len(self._votes)

    @property
    def stray_votes(self) -> dict[Location, Category]:
        return dict(self._stray_votes)

    def object_id(self, location: Location) -> int | None:
        return self._index.get(location)

    def true_category(self, location: Location) -> Category:
        object_id = self._index.get(location)
        if object_id is None:
            return UNKNOWN_CATEGORY
        return self._objects[object_id].true_category

    def voted_category(self, location: Location) -> Category | None:
        object_id = self._index.get(location)
        if object_id is None:
            return self._stray_votes.get(location)
        return self._votes.get(object_id)

    def votes(self) -> list[VoteRecord]:
        """Current votes on registered objects, ordered by object id."""
        return [
            VoteRecord(location=self._objects[object_id].location, voted_category=category)
            for object_id, category in sorted(self._votes.items())
        ]

    def voted_categories(self) -> dict[Location, Category]:
        return {vote.location: vote.voted_category for vote in self.votes()}

    def coverage(self) -> float:
        """Fraction of registered objects that have received at least one vote.

        An empty registry reports 0.0 even though :meth:`is_fully_covered` is
        trivially true for it.
        """
        if not self._objects:
            return 0.0
        return len(self._votes) / len(self._objects)

    def is_fully_covered(self) -> bool:
        return len(self._votes) == len(self._objects)

    def accuracy(self) -> float | None:
        """Fraction of voted objects whose current vote matches ground truth."""
        if not self._votes:
            return None
        correct = sum(
            1
            for object_id, category in self._votes.items()
            if self._objects[object_id].true_category == category
        )
        return correct / len(self._votes)
