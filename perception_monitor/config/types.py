"""Configuration dataclasses and result containers for monitored experiments.

The four unsigned controller parameters (``min_votes``, ``storage``,
``routing``, ``bucket``) and the seed never alter monitor logic; they only
name the output artifacts. ``max_ticks`` and ``unknown_vote_policy`` are the
monitor's own knobs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from perception_monitor.config.constants import MAX_TICKS
from perception_monitor.errors import ConfigurationError

__all__ = [
    "MonitorConfig",
    "RunResult",
    "TerminationReason",
    "UnknownVotePolicy",
]


class UnknownVotePolicy(Enum):
    """Handling policy for votes that reference an unregistered location."""

    LENIENT = "lenient"
    STRICT = "strict"


class TerminationReason(Enum):
    """Why a monitored experiment stopped."""

    FULL_COVERAGE = "full_coverage"
    MAX_TICKS = "max_ticks"


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunResult:
    """Top-level result for one monitored experiment run."""

    run_id: str
    termination_reason: TerminationReason
    final_tick: int
    ticks_processed: int
    voted_objects: int
    registered_objects: int
    accuracy: float | None
    detail_log_path: Path
    histogram_log_path: Path
    summary_path: Path | None

    @property
    def coverage(self) -> float:
        """Voted over registered objects; 0.0 for a run with nothing registered.

        A zero-object run still ends as FULL_COVERAGE at its first tick, since
        nothing is left unvoted, but reports no coverage.
        """
        if self.registered_objects == 0:
            return 0.0
        return self.voted_objects / self.registered_objects


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------


def _coerce_uint(raw: object, key: str) -> int:
    """Coerce raw value to a non-negative int; rejects booleans and fractional floats."""
    if isinstance(raw, bool):
        raise ConfigurationError(f"{key} must be an integer value")
    if isinstance(raw, float):
        if raw != int(raw):
            raise ConfigurationError(f"{key} must be an integer value, got {raw!r}")
        raw = int(raw)
    if isinstance(raw, str):
        try:
            raw = int(raw.strip())
        except ValueError as exc:
            raise ConfigurationError(f"{key} must be an integer value, got {raw!r}") from exc
    if not isinstance(raw, int):
        raise ConfigurationError(f"{key} must be an integer value")
    if raw < 0:
        raise ConfigurationError(f"{key} must be >= 0")
    return raw


@dataclass(frozen=True)
class MonitorConfig:
    """Fixed run parameters read once at setup."""

    min_votes: int
    storage: int
    routing: int
    bucket: int
    seed: int = 0
    max_ticks: int = MAX_TICKS
    unknown_vote_policy: UnknownVotePolicy = UnknownVotePolicy.LENIENT
    write_summary: bool = True

    def __post_init__(self) -> None:
        for key in ("min_votes", "storage", "routing", "bucket", "seed", "max_ticks"):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{key} must be an integer value")
            if value < 0:
                raise ConfigurationError(f"{key} must be >= 0")
        if not isinstance(self.unknown_vote_policy, UnknownVotePolicy):
            raise ConfigurationError("unknown_vote_policy must be an UnknownVotePolicy")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> MonitorConfig:
        """Build a config from a JSON-like mapping, coercing string values."""
        missing = [k for k in ("min_votes", "storage", "routing", "bucket") if k not in raw]
        if missing:
            raise ConfigurationError(f"missing required parameters: {', '.join(missing)}")
        policy_raw = raw.get("unknown_vote_policy", UnknownVotePolicy.LENIENT.value)
        try:
            policy = UnknownVotePolicy(policy_raw)
        except ValueError as exc:
            valid = ", ".join(p.value for p in UnknownVotePolicy)
            raise ConfigurationError(f"unknown_vote_policy must be one of {valid}") from exc
        return cls(
            min_votes=_coerce_uint(raw["min_votes"], "min_votes"),
            storage=_coerce_uint(raw["storage"], "storage"),
            routing=_coerce_uint(raw["routing"], "routing"),
            bucket=_coerce_uint(raw["bucket"], "bucket"),
            seed=_coerce_uint(raw.get("seed", 0), "seed"),
            max_ticks=_coerce_uint(raw.get("max_ticks", MAX_TICKS), "max_ticks"),
            unknown_vote_policy=policy,
            write_summary=bool(raw.get("write_summary", True)),
        )

    def artifact_stem(self, population_size: int) -> str:
        """Underscore-joined parameter suffix shared by every output artifact."""
        return "_".join(
            str(v)
            for v in (
                self.min_votes,
                population_size,
                self.seed,
                self.storage,
                self.routing,
                self.bucket,
            )
        )
