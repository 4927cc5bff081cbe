"""Generic CSV loader for regression and classification training sets."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

from .registry import DatasetSpec, register_dataset
from .training_set import TrainingSet


def standardize(array: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Apply standard scaling returning the scaled array and parameters."""

    mean = array.mean(axis=0, keepdims=True)
    std = array.std(axis=0, keepdims=True)
    std = np.where(std == 0, 1.0, std)
    return (array - mean) / std, mean, std


def _encode_targets(
    raw: np.ndarray, task_type: str, positive_label: object | None
) -> tuple[np.ndarray, list]:
    if task_type == "regression":
        return np.asarray(raw, dtype=np.float64).reshape(-1, 1), []
    if task_type == "binary":
        if positive_label is None:
            raise ValueError("binary CSV datasets need a positive_label")
        return (raw == positive_label).astype(np.float64).reshape(-1, 1), [positive_label]
    encoder = LabelEncoder()
    indices = encoder.fit_transform(raw)
    classes = encoder.classes_.tolist()
    return np.eye(len(classes))[indices], classes


@register_dataset("csv")
def load_csv(
    *,
    csv_path: str | Path,
    target_col: str | int = "target",
    task_type: str = "regression",
    positive_label: object | None = None,
    header: bool = True,
    standardize_inputs: bool = True,
    shuffle: bool = False,
    seed: int = 0,
) -> DatasetSpec:
    """Load a training set from a CSV file.

    Files without a header row (``header=False``) address the target column
    by position, e.g. ``target_col=0`` for the letter-recognition layout where
    the class letter leads each row.
    """

    path = Path(csv_path)
    df = pd.read_csv(path, header=0 if header else None)
    if target_col not in df.columns:
        raise KeyError(f"Target column {target_col!r} not found in {path.name}")
    raw_targets = df.pop(target_col).to_numpy()
    inputs = df.to_numpy(dtype=np.float64)
    targets, classes = _encode_targets(raw_targets, task_type, positive_label)

    provenance: dict[str, object] = {
        "type": "csv",
        "path": str(path),
        "target_col": target_col,
        "rows": int(inputs.shape[0]),
    }
    if classes:
        provenance["classes"] = [str(c) for c in classes]
    if standardize_inputs:
        inputs, mean, std = standardize(inputs)
        provenance["normalization"] = {
            "mean": mean.flatten().tolist(),
            "std": std.flatten().tolist(),
        }

    return DatasetSpec(
        name="csv",
        training_set=TrainingSet(inputs, targets, shuffle=shuffle, seed=seed),
        task_type=task_type,
        provenance=provenance,
    )


__all__ = ["load_csv", "standardize"]
