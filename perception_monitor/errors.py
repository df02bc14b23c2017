"""Exception taxonomy for the experiment monitor.

Every error derives from :class:`MonitorError` and from the builtin that
best describes it, so callers may catch either the monitor-specific class or
the familiar ``ValueError`` / ``OSError`` / ``RuntimeError``.
"""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for all monitor failures."""


class ConfigurationError(MonitorError, ValueError):
    """Missing or invalid setup parameters, detected before any tick runs."""


class DuplicateLocationError(ConfigurationError):
    """Two registered objects share the exact same location."""

    def __init__(self, location: object) -> None:
        super().__init__(f"duplicate object location: {location}")
        self.location = location


class UnknownLocationError(MonitorError, KeyError):
    """A vote references a location that was never registered (strict policy)."""

    def __init__(self, location: object) -> None:
        super().__init__(f"vote for unregistered location: {location}")
        self.location = location

    def __str__(self) -> str:
        return str(self.args[0])


class OutputStreamError(MonitorError, OSError):
    """An output stream could not be opened or written."""


class StreamClosedError(OutputStreamError):
    """A write was attempted after the stream was closed."""


class AgentUnavailableError(MonitorError, RuntimeError):
    """A registered agent handle became invalid mid-run."""

    def __init__(self, agent_id: object, reason: str = "handle is no longer available") -> None:
        super().__init__(f"agent {agent_id}: {reason}")
        self.agent_id = agent_id


class ExperimentStateError(MonitorError, RuntimeError):
    """An operation was invoked in the wrong controller state."""


class ExperimentFinishedError(ExperimentStateError):
    """A tick was submitted after the experiment reached ``FINISHED``."""
