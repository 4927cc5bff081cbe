"""Deterministic run summaries."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np


def _read_records(path: Path) -> list[Mapping[str, object]]:
    records: list[Mapping[str, object]] = []
    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


def _numeric_series(records: Iterable[Mapping[str, object]]) -> dict[str, list[float]]:
    series: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key == "epoch" or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                series.setdefault(key, []).append(float(value))
    return series


def summarize(records: list[Mapping[str, object]]) -> Mapping[str, object]:
    metrics: dict[str, Mapping[str, float]] = {}
    for name, values in _numeric_series(records).items():
        arr = np.asarray(values, dtype=np.float64)
        metrics[name] = {
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "mean": float(np.mean(arr)),
            "last": float(arr[-1]),
        }
    return {"version": 1, "epochs": len(records), "metrics": metrics}


def write_summary(metrics_jsonl: str | Path, out_path: str | Path) -> str:
    """Condense a per-epoch JSONL file into ``out_path``."""

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    summary = summarize(_read_records(Path(metrics_jsonl)))
    out.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out)


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    outcome: Mapping[str, object],
) -> str:
    """Record the resolved config, the data it ran on and how training ended."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "outcome": dict(outcome),
        "environment": {
            "numpy": np.__version__,
            "cpu_count": os.cpu_count(),
        },
    }
    path.write_text(json.dumps(manifest, indent=2, default=str))
    return str(path)


__all__ = ["summarize", "write_summary", "write_manifest"]
