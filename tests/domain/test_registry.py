"""Tests for domain/registry.py."""

from __future__ import annotations

import logging

import pytest

from perception_monitor.config.types import UnknownVotePolicy
from perception_monitor.domain.records import Location, VoteRecord
from perception_monitor.domain.registry import ObjectRegistry
from perception_monitor.errors import (
    ConfigurationError,
    DuplicateLocationError,
    UnknownLocationError,
)

A = Location(1.0, 2.0, 0.0)
B = Location(-1.5, 0.25, 0.0)
STRAY = Location(9.0, 9.0, 0.0)


def _registry(policy: UnknownVotePolicy = UnknownVotePolicy.LENIENT) -> ObjectRegistry:
    registry = ObjectRegistry(policy=policy)
    registry.register_objects([(A, "cube"), (B, "sphere")])
    return registry


class TestRegistration:
    def test_ids_follow_registration_order(self) -> None:
        registry = _registry()
        assert [o.object_id for o in registry.objects] == [0, 1]
        assert registry.object_id(A) == 0
        assert registry.object_id(B) == 1
        assert registry.object_count == 2

    def test_duplicate_location_fails_fast(self) -> None:
        registry = ObjectRegistry()
        with pytest.raises(DuplicateLocationError) as excinfo:
            registry.register_objects([(A, "cube"), (B, "cube"), (A, "sphere")])
        assert excinfo.value.location == A
        assert registry.object_count == 0

    def test_second_registration_rejected(self) -> None:
        registry = _registry()
        with pytest.raises(ConfigurationError, match="already been registered"):
            registry.register_objects([(STRAY, "cone")])

    def test_true_category_lookup(self) -> None:
        registry = _registry()
        assert registry.true_category(A) == "cube"
        assert registry.true_category(B) == "sphere"
        assert registry.true_category(STRAY) == "unknown"


class TestVotes:
    def test_last_writer_wins(self) -> None:
        registry = _registry()
        registry.record_vote(A, "sphere")
        registry.record_vote(A, "cube")
        assert registry.voted_category(A) == "cube"
        assert registry.voted_count == 1

    def test_votes_ordered_by_object_id(self) -> None:
        registry = _registry()
        registry.record_vote(B, "sphere")
        registry.record_vote(A, "cone")
        assert registry.votes() == [VoteRecord(A, "cone"), VoteRecord(B, "sphere")]
        assert registry.voted_categories() == {A: "cone", B: "sphere"}

    def test_coverage_and_full_coverage(self) -> None:
        registry = _registry()
        assert registry.coverage() == 0.0
        assert not registry.is_fully_covered()
        registry.record_vote(A, "cube")
        assert registry.coverage() == pytest.approx(0.5)
        registry.record_vote(B, "cube")
        assert registry.coverage() == pytest.approx(1.0)
        assert registry.is_fully_covered()

    def test_accuracy(self) -> None:
        registry = _registry()
        assert registry.accuracy() is None
        registry.record_vote(A, "cube")
        registry.record_vote(B, "cube")
        assert registry.accuracy() == pytest.approx(0.5)

    def test_empty_registry_is_fully_covered(self) -> None:
        registry = ObjectRegistry()
        registry.register_objects([])
        assert registry.coverage() == 0.0
        assert registry.is_fully_covered()


class TestUnknownLocations:
    def test_lenient_keeps_stray_vote(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = _registry()
        with caplog.at_level(logging.WARNING, logger="perception_monitor.domain.registry"):
            registry.record_vote(STRAY, "cone")
            registry.record_vote(STRAY, "cube")
        assert registry.stray_votes == {STRAY: "cube"}
        assert registry.voted_category(STRAY) == "cube"
        assert registry.voted_count == 0
        assert registry.coverage() == 0.0
        warnings = [r for r in caplog.records if "stray" in r.getMessage()]
        assert len(warnings) == 1

    def test_strict_raises(self) -> None:
        registry = _registry(UnknownVotePolicy.STRICT)
        with pytest.raises(UnknownLocationError, match="unregistered location"):
            registry.record_vote(STRAY, "cone")
        assert registry.stray_votes == {}
