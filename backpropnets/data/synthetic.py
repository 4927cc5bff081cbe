"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import DatasetSpec, register_dataset
from .training_set import TrainingSet

XOR_INPUTS = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
XOR_TARGETS = np.array([[0.0], [1.0], [1.0], [0.0]])


@register_dataset("xor")
def make_xor(*, repeat: int = 1, shuffle: bool = False, seed: int = 0) -> DatasetSpec:
    """The four XOR truth-table rows, optionally repeated."""

    if repeat < 1:
        raise ValueError("repeat must be >= 1")
    x = np.tile(XOR_INPUTS, (repeat, 1))
    y = np.tile(XOR_TARGETS, (repeat, 1))
    return DatasetSpec(
        name="xor",
        training_set=TrainingSet(x, y, shuffle=shuffle, seed=seed),
        task_type="binary",
        provenance={"type": "xor", "repeat": repeat, "shuffle": shuffle, "seed": seed},
    )


@register_dataset("sine")
def make_sine(
    *,
    freq: float = 1.0,
    n_points: int = 64,
    noise: float = 0.05,
    seed: int = 0,
    shuffle: bool = True,
) -> DatasetSpec:
    """``sin(freq * pi * x)`` on ``[-1, 1]`` rescaled into ``[0, 1]``."""

    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, n_points).reshape(-1, 1)
    y = np.sin(freq * np.pi * x) + noise * rng.standard_normal(size=x.shape)
    y = 0.5 * (np.clip(y, -1.0, 1.0) + 1.0)
    return DatasetSpec(
        name="sine",
        training_set=TrainingSet(x, y, shuffle=shuffle, seed=seed),
        task_type="regression",
        provenance={"type": "sine", "freq": freq, "n_points": n_points, "noise": noise, "seed": seed},
    )


@register_dataset("blobs")
def make_blobs(
    *,
    n_classes: int = 3,
    per_class: int = 30,
    dim: int = 2,
    spread: float = 0.4,
    seed: int = 0,
    shuffle: bool = True,
) -> DatasetSpec:
    """Gaussian clusters with one-hot targets."""

    rng = np.random.default_rng(seed)
    centers = rng.uniform(-2.0, 2.0, size=(n_classes, dim))
    inputs = []
    targets = []
    eye = np.eye(n_classes)
    for idx, center in enumerate(centers):
        inputs.append(center + spread * rng.standard_normal((per_class, dim)))
        targets.append(np.repeat(eye[idx : idx + 1], per_class, axis=0))
    return DatasetSpec(
        name="blobs",
        training_set=TrainingSet(np.vstack(inputs), np.vstack(targets), shuffle=shuffle, seed=seed),
        task_type="multiclass",
        provenance={
            "type": "blobs",
            "n_classes": n_classes,
            "per_class": per_class,
            "dim": dim,
            "spread": spread,
            "seed": seed,
        },
    )


__all__ = ["make_xor", "make_sine", "make_blobs"]
