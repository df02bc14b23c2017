"""External driver loop binding an environment to the experiment controller.

Per tick: the environment advances its agents, the controller reads the
clock (pre-step), then aggregates and logs (post-step), then termination is
checked. The loop stops as soon as the controller reports ``FINISHED``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol

from perception_monitor.config.types import MonitorConfig, RunResult
from perception_monitor.domain.agent import AgentHandle
from perception_monitor.domain.records import Category, Location
from perception_monitor.simulation.controller import ExperimentController


class Environment(Protocol):
    """Interface of the physics/rendering engine the monitor observes."""

    def clock(self) -> int: ...

    def agents(self) -> Sequence[AgentHandle]: ...

    def objects(self) -> Iterable[tuple[Location, Category]]: ...

    def advance(self) -> None: ...


def run_experiment(
    environment: Environment,
    config: MonitorConfig,
    out_dir: Path,
) -> RunResult:
    """Run one monitored experiment to termination and return its result.

    Errors raised inside a tick abort the run; streams are closed either way.
    """
    controller = ExperimentController(config, out_dir)
    with controller:
        controller.setup(environment.agents(), environment.objects())
        while not controller.is_experiment_finished():
            environment.advance()
            controller.pre_step(environment.clock())
            controller.post_step()
    return controller.result()
