"""Pipeline assembly: config presets, training runs and inference runs."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.network import Network
from ..core.types import LabeledExample, RunResult
from ..data import cache, mnist
from ..persistence import load_network, save_network
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .params import TrainingParameters
from .sgd import SGD

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "mnist-full": {
        "data": {"location": None, "validation_size": 10000, "evaluate": True},
        "model": {"sizes": [784, 30, 10], "scale_weights": True},
        "train": {
            "epochs": 30,
            "batch_size": 10,
            "learning_rate": 0.5,
            "lmbda": 5.0,
            "cost": "cross_entropy",
            "improvement_patience": 10,
            "workers": 1,
            "seed": None,
            "run_dir": "runs/mnist-full",
            "model_out": "configs/network.npz",
            "enable_plots": False,
        },
    },
    "mnist-quick": {
        "data": {"location": None, "validation_size": 10000, "evaluate": True},
        "model": {"sizes": [784, 30, 10], "scale_weights": False},
        "train": {
            "epochs": 5,
            "batch_size": 10,
            "learning_rate": 3.0,
            "lmbda": 0.0,
            "cost": "quadratic",
            "improvement_patience": 5,
            "workers": 1,
            "seed": None,
            "run_dir": "runs/mnist-quick",
            "model_out": "configs/network-quick.npz",
            "enable_plots": False,
        },
    },
    "mnist-fixture": {
        "data": {
            "location": ".cache/sigmoidnet/fixture",
            "offline": True,
            "validation_size": 64,
            "evaluate": True,
        },
        "model": {"sizes": [784, 16, 10], "scale_weights": True},
        "train": {
            "epochs": 3,
            "batch_size": 8,
            "learning_rate": 0.5,
            "lmbda": 1.0,
            "cost": "cross_entropy",
            "improvement_patience": 3,
            "workers": 2,
            "seed": 0,
            "run_dir": "runs/mnist-fixture",
            "model_out": "runs/mnist-fixture/network.npz",
            "enable_plots": False,
        },
    },
}

DEFAULT_PRESET = "mnist-full"


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> Dict[str, object]:
    try:
        return deepcopy(dict(_PRESETS[name]))
    except KeyError as exc:
        available = ", ".join(sorted(_PRESETS))
        raise KeyError(f"Unknown preset: {name}. Available presets: {available}") from exc


def load_config_file(path: str | Path) -> Mapping[str, object]:
    path = Path(path)
    text = path.read_text()
    if path.suffix.lower() in {".yml", ".yaml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif path.suffix.lower() == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")
    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def merge(base: Dict[str, object], override: Mapping[str, object]) -> Dict[str, object]:
    """Recursively merge ``override`` into ``base`` and return ``base``."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            base[key] = merge(dict(base[key]), value)  # type: ignore[arg-type]
        else:
            base[key] = value
    return base


# ---------------------------------------------------------------------------
# Data


def _load_split(data_cfg: Mapping[str, object], split: str) -> Tuple[List[LabeledExample], Mapping[str, object]]:
    location, provenance = cache.fetch_mnist(
        data_cfg.get("location"),  # type: ignore[arg-type]
        offline=data_cfg.get("offline"),  # type: ignore[arg-type]
    )
    examples = mnist.load(split, location)
    max_items = data_cfg.get("max_items")
    if max_items is not None:
        examples = examples[: int(max_items)]  # type: ignore[call-overload]
    return examples, provenance


def _holdout_size(requested: int, available: int) -> int:
    # The offline fixture is smaller than the full-size hold-out.
    if 0 < available <= requested:
        clamped = available // 6
        logger.warning(
            "validation_size=%d leaves no training data out of %d examples; "
            "holding out %d instead",
            requested,
            available,
            clamped,
        )
        return clamped
    return requested


def split_validation(
    examples: Sequence[LabeledExample], validation_size: int
) -> Tuple[List[LabeledExample], List[LabeledExample]]:
    """Hold out the last ``validation_size`` examples for evaluation."""

    if validation_size < 0:
        raise ValueError(f"validation_size must be >= 0, got {validation_size}")
    if validation_size >= len(examples):
        raise ValueError(
            f"validation_size={validation_size} leaves no training data "
            f"out of {len(examples)} examples"
        )
    cut = len(examples) - validation_size
    return list(examples[:cut]), list(examples[cut:])


# ---------------------------------------------------------------------------
# Training


def run_training(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config.get("data", {}))  # type: ignore[arg-type]
    model_cfg = dict(config.get("model", {}))  # type: ignore[arg-type]
    train_cfg = dict(config.get("train", {}))  # type: ignore[arg-type]

    params = TrainingParameters.from_mapping(train_cfg)
    seed = train_cfg.get("seed")
    rng = np.random.default_rng(None if seed is None else int(seed))  # type: ignore[arg-type]

    examples, provenance = _load_split(data_cfg, "train")
    logger.info("Dataset loaded (%d items)", len(examples))
    if data_cfg.get("evaluate", True):
        validation_size = _holdout_size(
            int(data_cfg.get("validation_size", 10000)), len(examples)  # type: ignore[arg-type]
        )
        train, evaluation = split_validation(examples, validation_size)
    else:
        train, evaluation = list(examples), []

    sizes = [int(size) for size in model_cfg.get("sizes", [784, 30, 10])]  # type: ignore[union-attr]
    network = Network.random(
        sizes, rng, scale_weights=bool(model_cfg.get("scale_weights", True))
    )

    run_dir = _resolve_run_dir(train_cfg)
    run_dir.mkdir(parents=True, exist_ok=True)

    print_startup_summary(
        dataset=str(provenance.get("mode", "mnist")),
        sizes=sizes,
        params=params,
        train_size=len(train),
        evaluation_size=len(evaluation),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="validation", seed=seed)  # type: ignore[arg-type]
    csv_sink = CsvSink(run_dir / "metrics.csv", split="validation")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = SGD(network, params, rng=rng, callbacks=[jsonl, csv_sink, plots])
    result = trainer.run(train, evaluation)
    plots.close()
    logger.info(
        "Training stopped after %d epochs (%s)", result.epochs_run, result.stop_reason.value
    )

    model_out = Path(str(train_cfg.get("model_out") or run_dir / "network.npz"))
    model_path = save_network(network, model_out)

    resolved = json.loads(json.dumps(config, default=str))
    resolved.setdefault("train", {}).update(params.to_dict())
    if evaluation:
        resolved.setdefault("data", {})["validation_size"] = len(evaluation)
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        dataset_provenance=provenance,
        network=network.describe(),
        result={
            "epochs_run": result.epochs_run,
            "stop_reason": result.stop_reason.value,
            "best_score": result.best_score,
            "history": result.history,
            "model_path": str(model_path),
        },
    )
    return RunResult(
        epochs_run=result.epochs_run,
        stop_reason=result.stop_reason.value,
        best_score=result.best_score,
        evaluation_size=len(evaluation),
        model_path=str(model_path),
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
    )


def run_inference(
    model_path: str | Path, data_cfg: Mapping[str, object], split: str = "test"
) -> Tuple[int, int]:
    """Score a persisted network on ``split``; returns ``(correct, total)``."""

    examples, _ = _load_split(data_cfg, split)
    logger.info("Dataset loaded (%d items)", len(examples))
    network = load_network(model_path)
    return network.evaluate(examples), len(examples)


def _resolve_run_dir(train_cfg: Mapping[str, object]) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp


def print_startup_summary(
    *,
    dataset: str,
    sizes: Sequence[int],
    params: TrainingParameters,
    train_size: int,
    evaluation_size: int,
) -> None:
    print("=== SigmoidNet run ===")
    print(f"Dataset       : mnist ({dataset})")
    print(f"Layers        : {list(sizes)}")
    print(f"Cost          : {params.cost.value}")
    print(f"Epochs        : {params.epochs}")
    print(f"Batch size    : {params.batch_size}")
    print(f"Learning rate : {params.learning_rate}")
    print(f"Lambda        : {params.lmbda}")
    print(f"Patience      : {params.improvement_patience}")
    print(f"Workers       : {params.workers}")
    print(f"Train/eval    : {train_size}/{evaluation_size}")
    print("======================")


__all__ = [
    "DEFAULT_PRESET",
    "load_config_file",
    "load_preset",
    "merge",
    "presets",
    "run_inference",
    "run_training",
    "split_validation",
]
