"""CLI entrypoint for monitored runs against the synthetic environment.

Supports ``--config path/to/config.json`` for reproducibility. CLI arguments
override config-file values; config-file values override built-in defaults.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from perception_monitor.config.constants import MAX_TICKS
from perception_monitor.config.types import MonitorConfig, TerminationReason, UnknownVotePolicy
from perception_monitor.experiments.batch import run_seed_batch
from perception_monitor.simulation.synthetic import SyntheticConfig, SyntheticEnvironment


def _parse_seeds(raw_seeds: str) -> tuple[int, ...]:
    """Parse comma-delimited non-negative integer seeds."""
    parts = [part.strip() for part in raw_seeds.split(",") if part.strip()]
    if not parts:
        raise ValueError("seeds must not be empty")
    seeds: list[int] = []
    for part in parts:
        try:
            value = int(part)
        except ValueError as exc:
            raise ValueError("seeds must contain integers") from exc
        if value < 0:
            raise ValueError("seeds values must be >= 0")
        seeds.append(value)
    return tuple(seeds)


def _get_val(cli_val: object, key: str, file_cfg: dict[str, object], default: object) -> object:
    """CLI > file > default resolution."""
    if cli_val is not None:
        return cli_val
    return file_cfg.get(key, default)


def _coerce_int(raw: object, key: str) -> int:
    """Coerce raw value to int; rejects booleans and non-integer floats."""
    if isinstance(raw, bool):
        raise ValueError(f"{key} must be an integer value")
    if isinstance(raw, float):
        if raw != int(raw):
            raise ValueError(f"{key} must be an integer value, got {raw!r}")
        return int(raw)
    if isinstance(raw, (int, str)):
        return int(raw)
    raise ValueError(f"{key} must be an integer value")


def _coerce_float(raw: object, key: str) -> float:
    """Coerce raw value to float; rejects booleans."""
    if isinstance(raw, bool):
        raise ValueError(f"{key} must be a float value")
    if isinstance(raw, (int, float, str)):
        return float(raw)
    raise ValueError(f"{key} must be a float value")


def _get_int(cli_val: int | None, key: str, file_cfg: dict[str, object], default: int) -> int:
    """CLI > file > default resolution for integer values."""
    return _coerce_int(_get_val(cli_val, key, file_cfg, default), key)


def _get_float(
    cli_val: float | None, key: str, file_cfg: dict[str, object], default: float
) -> float:
    """CLI > file > default resolution for float values."""
    return _coerce_float(_get_val(cli_val, key, file_cfg, default), key)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run monitored collective-perception experiments on a synthetic arena"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON config file (CLI args override file values)",
    )
    parser.add_argument("--agents", type=int, default=None)
    parser.add_argument("--objects", type=int, default=None)
    parser.add_argument("--min-votes", type=int, default=None)
    parser.add_argument("--storage", type=int, default=None)
    parser.add_argument("--routing", type=int, default=None)
    parser.add_argument("--bucket", type=int, default=None)
    parser.add_argument("--seeds", type=str, default=None, help="comma-delimited seeds")
    parser.add_argument("--max-ticks", type=int, default=None)
    parser.add_argument("--perception-probability", type=float, default=None)
    parser.add_argument("--accuracy", type=float, default=None)
    parser.add_argument(
        "--unknown-vote-policy",
        type=str,
        choices=[policy.value for policy in UnknownVotePolicy],
        default=None,
    )
    parser.add_argument("--out-dir", type=Path, default=None)
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    file_cfg: dict[str, object] = {}
    if args.config is not None:
        try:
            file_cfg = json.loads(Path(args.config).read_text())
        except FileNotFoundError:
            parser.error(f"Config file not found: {args.config}")
        except json.JSONDecodeError as exc:
            parser.error(f"Config file is not valid JSON: {args.config}: {exc}")

    try:
        monitor_config = MonitorConfig.from_mapping(
            {
                "min_votes": _get_val(args.min_votes, "min_votes", file_cfg, 3),
                "storage": _get_val(args.storage, "storage", file_cfg, 8),
                "routing": _get_val(args.routing, "routing", file_cfg, 4),
                "bucket": _get_val(args.bucket, "bucket", file_cfg, 1),
                "max_ticks": _get_val(args.max_ticks, "max_ticks", file_cfg, MAX_TICKS),
                "unknown_vote_policy": _get_val(
                    args.unknown_vote_policy,
                    "unknown_vote_policy",
                    file_cfg,
                    UnknownVotePolicy.LENIENT.value,
                ),
            }
        )
        seeds = _parse_seeds(str(_get_val(args.seeds, "seeds", file_cfg, "0")))
        n_agents = _get_int(args.agents, "agents", file_cfg, 10)
        n_objects = _get_int(args.objects, "objects", file_cfg, 5)
        perception_probability = _get_float(
            args.perception_probability, "perception_probability", file_cfg, 0.05
        )
        accuracy = _get_float(args.accuracy, "accuracy", file_cfg, 0.8)
    except ValueError as exc:
        parser.error(str(exc))
    out_dir = Path(str(_get_val(args.out_dir, "out_dir", file_cfg, "data")))

    def make_environment(seed: int) -> SyntheticEnvironment:
        return SyntheticEnvironment(
            SyntheticConfig(
                n_agents=n_agents,
                n_objects=n_objects,
                storage_capacity=monitor_config.storage,
                routing_capacity=monitor_config.routing,
                perception_probability=perception_probability,
                accuracy=accuracy,
                seed=seed,
            )
        )

    results = run_seed_batch(monitor_config, seeds, make_environment, out_dir)
    summary = {
        "runs": len(results),
        "full_coverage": sum(
            1 for r in results if r.termination_reason is TerminationReason.FULL_COVERAGE
        ),
        "timed_out": sum(1 for r in results if r.termination_reason is TerminationReason.MAX_TICKS),
        "results": [
            {
                "run_id": r.run_id,
                "termination_reason": r.termination_reason.value,
                "final_tick": r.final_tick,
                "coverage": r.coverage,
                "accuracy": r.accuracy,
                "detail_log": str(r.detail_log_path),
                "histogram_log": str(r.histogram_log_path),
            }
            for r in results
        ],
    }
    print(json.dumps(summary, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
