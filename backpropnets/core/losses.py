"""Per-example error functions used by the backward pass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .types import Array

ErrorFn = Callable[[Array, Array], tuple[float, Array]]


@dataclass(frozen=True)
class ErrorFunction:
    """Error wrapper returning both the scalar error and dE/dy."""

    name: str
    fn: ErrorFn

    def __call__(self, predictions: Array, expected: Array) -> tuple[float, Array]:
        return self.fn(predictions, expected)


class ErrorRegistry:
    """Central registry for error functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, ErrorFunction] = {}

    def register(self, name: str, fn: ErrorFn) -> None:
        self._registry[name] = ErrorFunction(name, fn)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str) -> ErrorFunction:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown error function {name!r}. Available: {available}")
        return self._registry[name]


REGISTRY = ErrorRegistry()

_EPS = 1e-12


def _mse(pred: Array, target: Array) -> tuple[float, Array]:
    diff = pred - target
    loss = float(np.mean(np.square(diff)))
    return loss, 2.0 * diff / diff.size


def _mae(pred: Array, target: Array) -> tuple[float, Array]:
    diff = pred - target
    loss = float(np.mean(np.abs(diff)))
    return loss, np.sign(diff) / diff.size


def _cross_entropy(pred: Array, target: Array) -> tuple[float, Array]:
    probs = np.clip(pred, _EPS, 1.0)
    n = probs.size
    loss = float(-np.sum(target * np.log(probs)) / n)
    grad = -(target / probs) / n
    return loss, grad


REGISTRY.register("mse", _mse)
REGISTRY.register("mae", _mae)
REGISTRY.register("ce", _cross_entropy)

__all__ = ["ErrorFunction", "ErrorRegistry", "REGISTRY"]
