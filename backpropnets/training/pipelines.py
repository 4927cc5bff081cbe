"""Preset-driven pipeline: dataset + network + trainer + run artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping

import yaml

from ..core.errors import ConfigurationError
from ..core.network import FeedForwardNetwork
from ..core.types import RunResult
from ..data import registry
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from ..reporting.summary import write_manifest, write_summary
from .config import TrainerConfig
from .trainers import build_trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-batch": {
        "data": {"name": "xor", "options": {}},
        "network": {"hidden": [3], "activation": "logistic", "bias_init": "random", "seed": 1},
        "train": {
            "max_epochs": 3000,
            "learning_rate": 0.5,
            "run_dir": "runs/xor-batch",
        },
    },
    "xor-parallel": {
        "data": {"name": "xor", "options": {"repeat": 8}},
        "network": {"hidden": [4], "activation": "logistic", "bias_init": "random", "seed": 1},
        "train": {
            "max_epochs": 1500,
            "learning_rate": 0.1,
            "worker_count": 4,
            "run_dir": "runs/xor-parallel",
        },
    },
    "xor-error-average": {
        "data": {"name": "xor", "options": {"shuffle": True, "seed": 3}},
        "network": {"hidden": [3], "activation": "logistic", "bias_init": "random", "seed": 1},
        "train": {
            "max_epochs": 10000,
            "error_threshold": 0.01,
            "learning_rate": 0.5,
            "run_dir": "runs/xor-error-average",
        },
    },
    "sine-per-example": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 64, "seed": 0}},
        "network": {
            "hidden": [8],
            "activation": "tanh",
            "output_activation": "logistic",
            "seed": 0,
        },
        "train": {
            "max_epochs": 200,
            "discipline": "per_example",
            "learning_rate": 0.2,
            "run_dir": "runs/sine-per-example",
        },
    },
    "blobs-parallel": {
        "data": {"name": "blobs", "options": {"n_classes": 3, "per_class": 40, "seed": 0}},
        "network": {"hidden": [8], "activation": "logistic", "seed": 0},
        "train": {
            "max_epochs": 300,
            "learning_rate": 0.02,
            "parallel": True,
            "run_dir": "runs/blobs-parallel",
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None

_RUN_KEYS = {"run_dir", "save_checkpoint"}
REQUIRED_SECTIONS = {"data", "network", "train"}


def read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")
    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = REQUIRED_SECTIONS - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    available = presets()
    try:
        return available[name]
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def build_network(network_cfg: Mapping[str, object], d_in: int, d_out: int) -> FeedForwardNetwork:
    hidden = [int(h) for h in network_cfg.get("hidden", [])]  # type: ignore[union-attr]
    return FeedForwardNetwork(
        layer_dims=[d_in, *hidden, d_out],
        activation=str(network_cfg.get("activation", "logistic")),
        output_activation=network_cfg.get("output_activation"),  # type: ignore[arg-type]
        bias_init=str(network_cfg.get("bias_init", "zeros")),
        loss=str(network_cfg.get("loss", "mse")),
        seed=int(network_cfg.get("seed", 0)),  # type: ignore[arg-type]
    )


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train the network described by ``config`` and write run artifacts.

    Artifacts in ``train.run_dir``: ``metrics.jsonl``, ``metrics.csv``,
    ``summary.json``, ``manifest.json``, ``config.json`` and, unless
    ``train.save_checkpoint`` is false, ``weights.npz``.
    """

    missing = REQUIRED_SECTIONS - set(config)
    if missing:
        raise ConfigurationError(f"Config is missing sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    network_cfg = dict(config["network"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    trainer_config = TrainerConfig.from_mapping(
        {k: v for k, v in train_cfg.items() if k not in _RUN_KEYS}
    )
    network = build_network(network_cfg, dataset.d_in, dataset.d_out)

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    jsonl = JsonlSink(run_dir / "metrics.jsonl", run=run_dir.name)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    capture = MetricsCapture()
    trainer = build_trainer(trainer_config, callbacks=[jsonl, csv_sink, capture])

    logger.info(
        "Run %s: dataset=%s dims=%s trainer=%s parameters=%d",
        run_dir,
        dataset.name,
        network.layer_dims,
        type(trainer).__name__,
        network.parameter_count(),
    )
    state = trainer.train(network, dataset.training_set)

    checkpoint = ""
    if train_cfg.get("save_checkpoint", True):
        checkpoint = str(network.save(run_dir / "weights.npz"))

    resolved = json.loads(json.dumps(config))
    (run_dir / "config.json").write_text(json.dumps(resolved, indent=2))
    final_error = float(capture.last.get("error", float("nan")))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        dataset_provenance=dataset.provenance,
        outcome={
            "epochs": state.epoch_count,
            "stop_reason": state.stop_reason,
            "final_error": final_error,
        },
    )
    summary = write_summary(jsonl.path, run_dir / "summary.json")

    return RunResult(
        epochs=state.epoch_count,
        stop_reason=str(state.stop_reason),
        final_error=final_error,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        checkpoint_path=checkpoint,
        summary_path=summary,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


__all__ = ["build_network", "load_preset", "presets", "read_config_file", "run_pipeline"]
