"""Command line entry point for training and scoring SigmoidNet models."""

from __future__ import annotations

import argparse
import cProfile
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from sigmoidnet.core import costs
from sigmoidnet.core.errors import SigmoidNetError
from sigmoidnet.training import pipelines


def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _sizes(value: str) -> list[int]:
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid layer sizes: {value!r}") from exc


def _add_data_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data-dir", type=Path, help="Directory holding the MNIST IDX files")
    parser.add_argument(
        "--offline",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Never download; build a deterministic fixture for missing files",
    )
    parser.add_argument(
        "--max-items", type=int, help="Only use the first N examples of the split"
    )


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--log-level", help="Logging level (defaults to $LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="Train a network with mini-batch SGD")
    train.add_argument(
        "--preset",
        choices=sorted(pipelines.presets().keys()),
        default=pipelines.DEFAULT_PRESET,
        help="Preset configuration to start from",
    )
    train.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    train.add_argument("--epochs", type=int)
    train.add_argument("--batch-size", type=int)
    train.add_argument("--learning-rate", type=float)
    train.add_argument("--lmbda", type=float, help="L2 regularisation coefficient")
    train.add_argument("--cost", choices=list(costs.names()))
    train.add_argument("--patience", type=int, help="Epochs without improvement before stopping")
    train.add_argument("--workers", type=int, help="Threads per mini-batch")
    train.add_argument("--sizes", type=_sizes, help="Comma separated layer sizes, e.g. 784,30,10")
    train.add_argument("--seed", type=int)
    train.add_argument("--validation-size", type=int)
    train.add_argument(
        "--evaluate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Score the held-out set after every epoch",
    )
    train.add_argument("--model-out", type=Path, help="Where to write the trained network")
    train.add_argument("--run-dir", type=Path, help="Directory for metrics and manifest")
    train.add_argument("--enable-plots", action="store_true", help="Write an accuracy plot")
    train.add_argument("--cpuprofile", type=Path, help="Write cProfile stats to this file")
    train.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    _add_data_args(train)

    infer = sub.add_parser("infer", help="Score a saved network on a labeled split")
    infer.add_argument("--model", type=Path, required=True, help="Saved network (.npz)")
    infer.add_argument("--split", choices=["train", "dev", "test"], default="test")
    _add_data_args(infer)

    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> dict:
    config = pipelines.load_preset(args.preset)
    if args.config:
        config = pipelines.merge(config, pipelines.load_config_file(args.config))

    data_cfg = config.setdefault("data", {})
    model_cfg = config.setdefault("model", {})
    train_cfg = config.setdefault("train", {})
    _apply_data_args(data_cfg, args)

    overrides = {
        "epochs": args.epochs,
        "batch_size": args.batch_size,
        "learning_rate": args.learning_rate,
        "lmbda": args.lmbda,
        "cost": args.cost,
        "improvement_patience": args.patience,
        "workers": args.workers,
        "seed": args.seed,
    }
    train_cfg.update({k: v for k, v in overrides.items() if v is not None})
    if args.model_out is not None:
        train_cfg["model_out"] = str(args.model_out)
    if args.run_dir is not None:
        train_cfg["run_dir"] = str(args.run_dir)
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.sizes:
        model_cfg["sizes"] = args.sizes
    if args.validation_size is not None:
        data_cfg["validation_size"] = args.validation_size
    if args.evaluate is not None:
        data_cfg["evaluate"] = args.evaluate
    return config


def _apply_data_args(data_cfg: dict, args: argparse.Namespace) -> None:
    if args.data_dir is not None:
        data_cfg["location"] = str(args.data_dir)
    if args.offline is not None:
        data_cfg["offline"] = args.offline
    if args.max_items is not None:
        data_cfg["max_items"] = args.max_items


def _train(args: argparse.Namespace) -> None:
    config = resolve_config(args)
    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    if args.cpuprofile:
        profiler = cProfile.Profile()
        profiler.enable()
        try:
            result = pipelines.run_training(config)
        finally:
            profiler.disable()
            args.cpuprofile.parent.mkdir(parents=True, exist_ok=True)
            profiler.dump_stats(str(args.cpuprofile))
    else:
        result = pipelines.run_training(config)

    payload = {
        "epochs_run": result.epochs_run,
        "stop_reason": result.stop_reason,
        "best": f"{result.best_score}/{result.evaluation_size}",
        "model": result.model_path,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    print(json.dumps(payload, sort_keys=True))


def _infer(args: argparse.Namespace) -> None:
    data_cfg: dict = {}
    _apply_data_args(data_cfg, args)
    correct, total = pipelines.run_inference(args.model, data_cfg, split=args.split)
    print(f"Results: {correct}/{total}")


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        if args.command == "train":
            _train(args)
        else:
            _infer(args)
    except SigmoidNetError as exc:
        raise SystemExit(f"error: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        # Bad presets, config files or hyperparameters.
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
        raise SystemExit(f"config error: {message}") from exc


if __name__ == "__main__":
    main()
