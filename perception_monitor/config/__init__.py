"""Configuration layer: constants and typed config dataclasses."""

from perception_monitor.config.constants import (
    FLOAT_FORMAT,
    FLUSH_THRESHOLD,
    MAX_TICKS,
    UNKNOWN_CATEGORY,
)
from perception_monitor.config.types import (
    MonitorConfig,
    RunResult,
    TerminationReason,
    UnknownVotePolicy,
)

__all__ = [
    "FLOAT_FORMAT",
    "FLUSH_THRESHOLD",
    "MAX_TICKS",
    "MonitorConfig",
    "RunResult",
    "TerminationReason",
    "UNKNOWN_CATEGORY",
    "UnknownVotePolicy",
]
