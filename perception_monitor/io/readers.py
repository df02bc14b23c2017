"""Offline parsers for the detail and histogram text logs.

Both logs are self-delimiting: every block announces how many lines follow
it, so a reader needs no out-of-band metadata. A truncated trailing tick
(e.g. from an aborted run) raises :exc:`ValueError` unless
``allow_truncated`` is set, in which case the partial tick is dropped.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pyarrow as pa

from perception_monitor.io.schemas import STORED_TUPLE_SCHEMA, VOTE_EVENT_SCHEMA


@dataclass(frozen=True)
class LoggedVote:
    voted_category: str
    true_category: str
    radius: float
    elapsed_ticks: int
    x: float
    y: float
    z: float

    @property
    def correct(self) -> bool:
        return self.voted_category == self.true_category


@dataclass(frozen=True)
class AgentEvents:
    agent_id: str
    votes: tuple[LoggedVote, ...]


@dataclass(frozen=True)
class DetailTick:
    tick: int
    population_size: int
    agents: tuple[AgentEvents, ...]
    storage_load: float
    total_bytes_sent: int


@dataclass(frozen=True)
class AgentTuples:
    node_id: int
    tuples: tuple[tuple[int, int], ...]


@dataclass(frozen=True)
class HistogramTick:
    tick: int
    agents: tuple[AgentTuples, ...]


@dataclass
class DetailLog:
    object_count: int
    ticks: list[DetailTick] = field(default_factory=list)


@dataclass
class HistogramLog:
    population_size: int
    ticks: list[HistogramTick] = field(default_factory=list)


class _Lines:
    """Token-splitting line cursor that reports 1-based line numbers on errors."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lines = self.path.read_text(encoding="utf-8").splitlines()
        self.lineno = 0

    def exhausted(self) -> bool:
        return self.lineno >= len(self._lines)

    def next(self, n_fields: int) -> list[str]:
        if self.exhausted():
            raise EOFError(f"{self.path}: unexpected end of file after line {self.lineno}")
        tokens = self._lines[self.lineno].split()
        self.lineno += 1
        if len(tokens) != n_fields:
            raise ValueError(
                f"{self.path}:{self.lineno}: expected {n_fields} fields, got {len(tokens)}"
            )
        return tokens


def _parse_int(token: str, lines: _Lines) -> int:
    try:
        return int(token)
    except ValueError as exc:
        raise ValueError(f"{lines.path}:{lines.lineno}: expected integer, got {token!r}") from exc


def _parse_float(token: str, lines: _Lines) -> float:
    try:
        return float(token)
    except ValueError as exc:
        raise ValueError(f"{lines.path}:{lines.lineno}: expected real, got {token!r}") from exc


def _read_detail_tick(lines: _Lines) -> DetailTick:
    tick_raw, population_raw = lines.next(2)
    tick = _parse_int(tick_raw, lines)
    population_size = _parse_int(population_raw, lines)
    agents: list[AgentEvents] = []
    for _ in range(population_size):
        agent_id, count_raw = lines.next(2)
        votes: list[LoggedVote] = []
        for _ in range(_parse_int(count_raw, lines)):
            voted, truth, radius, elapsed, x, y, z = lines.next(7)
            votes.append(
                LoggedVote(
                    voted_category=voted,
                    true_category=truth,
                    radius=_parse_float(radius, lines),
                    elapsed_ticks=_parse_int(elapsed, lines),
                    x=_parse_float(x, lines),
                    y=_parse_float(y, lines),
                    z=_parse_float(z, lines),
                )
            )
        agents.append(AgentEvents(agent_id=agent_id, votes=tuple(votes)))
    load_raw, bytes_raw = lines.next(2)
    return DetailTick(
        tick=tick,
        population_size=population_size,
        agents=tuple(agents),
        storage_load=_parse_float(load_raw, lines),
        total_bytes_sent=_parse_int(bytes_raw, lines),
    )


def read_detail_log(path: Path, allow_truncated: bool = False) -> DetailLog:
    """Parse a detail log into typed per-tick blocks."""
    lines = _Lines(path)
    (object_count_raw,) = lines.next(1)
    log = DetailLog(object_count=_parse_int(object_count_raw, lines))
    while not lines.exhausted():
        try:
            log.ticks.append(_read_detail_tick(lines))
        except EOFError:
            if allow_truncated:
                break
            raise ValueError(f"{lines.path}: truncated tick block at end of file") from None
    return log


def _read_histogram_tick(lines: _Lines, population_size: int) -> HistogramTick:
    (tick_raw,) = lines.next(1)
    agents: list[AgentTuples] = []
    for _ in range(population_size):
        node_raw, count_raw = lines.next(2)
        tuples: list[tuple[int, int]] = []
        for _ in range(_parse_int(count_raw, lines)):
            identifier, hash_raw = lines.next(2)
            tuples.append((_parse_int(identifier, lines), _parse_int(hash_raw, lines)))
        agents.append(AgentTuples(node_id=_parse_int(node_raw, lines), tuples=tuple(tuples)))
    return HistogramTick(tick=_parse_int(tick_raw, lines), agents=tuple(agents))


def read_histogram_log(path: Path, allow_truncated: bool = False) -> HistogramLog:
    """Parse a histogram log into typed per-tick blocks."""
    lines = _Lines(path)
    (population_raw,) = lines.next(1)
    log = HistogramLog(population_size=_parse_int(population_raw, lines))
    while not lines.exhausted():
        try:
            log.ticks.append(_read_histogram_tick(lines, log.population_size))
        except EOFError:
            if allow_truncated:
                break
            raise ValueError(f"{lines.path}: truncated tick block at end of file") from None
    return log


def iter_votes(log: DetailLog) -> Iterator[tuple[int, str, LoggedVote]]:
    """Yield ``(tick, agent_id, vote)`` in log order."""
    for block in log.ticks:
        for agent in block.agents:
            for vote in agent.votes:
                yield block.tick, agent.agent_id, vote


def detail_log_to_table(log: DetailLog) -> pa.Table:
    """Flatten every logged vote into one Arrow table."""
    columns: dict[str, list[object]] = {name: [] for name in VOTE_EVENT_SCHEMA.names}
    for tick, agent_id, vote in iter_votes(log):
        columns["tick"].append(tick)
        columns["agent_id"].append(agent_id)
        columns["voted_category"].append(vote.voted_category)
        columns["true_category"].append(vote.true_category)
        columns["radius"].append(vote.radius)
        columns["elapsed_ticks"].append(vote.elapsed_ticks)
        columns["x"].append(vote.x)
        columns["y"].append(vote.y)
        columns["z"].append(vote.z)
    return pa.Table.from_pydict(columns, schema=VOTE_EVENT_SCHEMA)


def histogram_log_to_table(log: HistogramLog) -> pa.Table:
    """Flatten every stored tuple into one Arrow table."""
    columns: dict[str, list[int]] = {name: [] for name in STORED_TUPLE_SCHEMA.names}
    for block in log.ticks:
        for agent in block.agents:
            for identifier, hash_value in agent.tuples:
                columns["tick"].append(block.tick)
                columns["node_id"].append(agent.node_id)
                columns["identifier"].append(identifier)
                columns["hash"].append(hash_value)
    return pa.Table.from_pydict(columns, schema=STORED_TUPLE_SCHEMA)
