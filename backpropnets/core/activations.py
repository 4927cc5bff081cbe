"""Activation functions for backpropnets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

from .types import Array


def logistic(x: Array) -> Array:
    """Return the logistic sigmoid of ``x``."""

    return 1.0 / (1.0 + np.exp(-np.clip(x, -500.0, 500.0)))


def logistic_deriv(y: Array) -> Array:
    return y * (1.0 - y)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def tanh_deriv(y: Array) -> Array:
    return 1.0 - np.square(y)


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_deriv(y: Array) -> Array:
    return (y > 0).astype(np.float64)


def identity(x: Array) -> Array:
    return x


def identity_deriv(y: Array) -> Array:
    return np.ones_like(y)


@dataclass(frozen=True)
class Activation:
    """Activation paired with its derivative.

    ``derivative`` receives the *activated* output ``y = fn(x)``, which is what
    the backward pass has at hand.
    """

    name: str
    fn: Callable[[Array], Array]
    derivative: Callable[[Array], Array]

    def __call__(self, x: Array) -> Array:
        return self.fn(x)


ACTIVATIONS: Dict[str, Activation] = {
    "logistic": Activation("logistic", logistic, logistic_deriv),
    "tanh": Activation("tanh", tanh, tanh_deriv),
    "relu": Activation("relu", relu, relu_deriv),
    "identity": Activation("identity", identity, identity_deriv),
}
ACTIVATIONS["sigmoid"] = ACTIVATIONS["logistic"]


def get_activation(name: str) -> Activation:
    try:
        return ACTIVATIONS[name]
    except KeyError as exc:
        available = ", ".join(sorted(ACTIVATIONS))
        raise KeyError(f"Unknown activation {name!r}. Available activations: {available}") from exc


__all__ = ["Activation", "ACTIVATIONS", "get_activation", "logistic", "tanh", "relu", "identity"]
