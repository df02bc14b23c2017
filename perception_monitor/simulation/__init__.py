"""Simulation layer: aggregation, controller lifecycle, persistence, and drivers."""

from perception_monitor.simulation.aggregator import Aggregator, TickSummary
from perception_monitor.simulation.controller import ControllerState, ExperimentController
from perception_monitor.simulation.driver import Environment, run_experiment
from perception_monitor.simulation.synthetic import SyntheticConfig, SyntheticEnvironment

__all__ = [
    "Aggregator",
    "ControllerState",
    "Environment",
    "ExperimentController",
    "SyntheticConfig",
    "SyntheticEnvironment",
    "TickSummary",
    "run_experiment",
]
