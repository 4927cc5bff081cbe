"""Command line entry point for backpropnets training runs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from backpropnets.core.errors import TrainingError
from backpropnets.training import pipelines


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "stop_reason": result.stop_reason,
        "final_error": result.final_error,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if result.checkpoint_path:
        payload["checkpoint"] = result.checkpoint_path
    if result.summary_path:
        payload["summary"] = result.summary_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor-batch",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--max-epochs", type=int, help="Override train.max_epochs")
    parser.add_argument("--learning-rate", type=float, help="Override train.learning_rate")
    parser.add_argument(
        "--workers",
        type=int,
        help="Compute batch gradients on this many worker threads",
    )
    parser.add_argument("--error-threshold", type=float, help="Override train.error_threshold")
    parser.add_argument("--time-limit", type=float, help="Stop issuing epochs after N seconds")
    parser.add_argument("--run-dir", help="Directory for run artifacts")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase log verbosity"
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = dict(pipelines.read_config_file(args.config))
        if pipelines.REQUIRED_SECTIONS <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    train_cfg = config.setdefault("train", {})
    if args.max_epochs is not None:
        train_cfg["max_epochs"] = args.max_epochs
    if args.learning_rate is not None:
        train_cfg["learning_rate"] = args.learning_rate
    if args.workers is not None:
        train_cfg["worker_count"] = args.workers
    if args.error_threshold is not None:
        train_cfg["error_threshold"] = args.error_threshold
    if args.time_limit is not None:
        train_cfg["time_limit"] = args.time_limit
    if args.run_dir:
        train_cfg["run_dir"] = args.run_dir

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    try:
        result = pipelines.run_pipeline(config)
    except TrainingError as exc:
        raise SystemExit(f"Training failed: {exc}") from exc
    print(_format_result(result))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
