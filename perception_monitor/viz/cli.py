"""CLI entrypoints for plotting and summarizing monitor logs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from perception_monitor.analysis.curves import summarize_run
from perception_monitor.io.paths import resolve_within_base
from perception_monitor.io.readers import read_detail_log, read_histogram_log
from perception_monitor.viz.render import (
    render_coverage_overlay,
    render_propagation_histogram,
    render_run_curves,
)


def _parse_labeled_paths(raw: list[str]) -> list[tuple[str, Path]]:
    """Parse ``label=path`` pairs."""
    result: list[tuple[str, Path]] = []
    for item in raw:
        if "=" not in item:
            raise ValueError(f"Expected label=path format, got: {item}")
        label, path = item.split("=", 1)
        result.append((label, Path(path)))
    return result


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", type=Path, required=True)
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Reject input paths that resolve outside this directory",
    )
    parser.add_argument(
        "--allow-truncated",
        action="store_true",
        help="Drop a partial trailing tick instead of failing",
    )


def _build_curves_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("curves", help="Coverage/accuracy/load/bytes per tick")
    parser.add_argument("--detail-log", type=Path, required=True)
    parser.add_argument("--histogram-log", type=Path, default=None)
    _add_common(parser)


def _build_histogram_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("histogram", help="Tuple propagation at one tick")
    parser.add_argument("--histogram-log", type=Path, required=True)
    parser.add_argument("--tick", type=int, default=None)
    _add_common(parser)


def _build_overlay_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("overlay", help="Coverage curves of several runs")
    parser.add_argument(
        "--run",
        action="append",
        default=[],
        help="label=path/to/outputfile.dat (repeatable)",
    )
    _add_common(parser)


def _handle_curves(args: argparse.Namespace) -> None:
    render_run_curves(
        args.detail_log,
        args.output,
        histogram_log_path=args.histogram_log,
        base_dir=args.base_dir,
        allow_truncated=args.allow_truncated,
    )


def _handle_histogram(args: argparse.Namespace) -> None:
    render_propagation_histogram(
        args.histogram_log,
        args.output,
        tick=args.tick,
        base_dir=args.base_dir,
        allow_truncated=args.allow_truncated,
    )


def _handle_overlay(args: argparse.Namespace) -> None:
    render_coverage_overlay(
        _parse_labeled_paths(args.run),
        args.output,
        base_dir=args.base_dir,
        allow_truncated=args.allow_truncated,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Plot collective-perception monitor logs")
    subparsers = parser.add_subparsers(dest="command")
    _build_curves_parser(subparsers)
    _build_histogram_parser(subparsers)
    _build_overlay_parser(subparsers)

    args = parser.parse_args(argv)
    handlers = {
        "curves": _handle_curves,
        "histogram": _handle_histogram,
        "overlay": _handle_overlay,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        raise SystemExit(1)
    try:
        handler(args)
    except ValueError as exc:
        parser.error(str(exc))


def summary_main(argv: list[str] | None = None) -> None:
    """Print a JSON digest of one run's logs."""
    parser = argparse.ArgumentParser(description="Summarize collective-perception monitor logs")
    parser.add_argument("--detail-log", type=Path, required=True)
    parser.add_argument("--histogram-log", type=Path, default=None)
    parser.add_argument("--base-dir", type=Path, default=None)
    parser.add_argument("--allow-truncated", action="store_true")
    args = parser.parse_args(argv)

    detail_path = args.detail_log
    histogram_path = args.histogram_log
    try:
        if args.base_dir is not None:
            detail_path = resolve_within_base(detail_path, args.base_dir)
            if histogram_path is not None:
                histogram_path = resolve_within_base(histogram_path, args.base_dir)
        detail = read_detail_log(detail_path, allow_truncated=args.allow_truncated)
        histogram = (
            read_histogram_log(histogram_path, allow_truncated=args.allow_truncated)
            if histogram_path is not None
            else None
        )
    except ValueError as exc:
        parser.error(str(exc))
    print(json.dumps(summarize_run(detail, histogram), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
