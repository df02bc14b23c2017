"""Visualization layer: renderers and CLI."""

from perception_monitor.viz.cli import main, summary_main
from perception_monitor.viz.render import (
    render_coverage_overlay,
    render_propagation_histogram,
    render_run_curves,
)

__all__ = [
    "main",
    "render_coverage_overlay",
    "render_propagation_histogram",
    "render_run_curves",
    "summary_main",
]
