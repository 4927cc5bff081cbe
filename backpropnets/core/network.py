"""Fully connected feed-forward network with a per-example backward pass."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, MutableSequence, Optional, Sequence

import numpy as np

from .activations import Activation, get_activation
from .losses import REGISTRY as ERROR_REGISTRY
from .losses import ErrorFunction
from .types import Array, LayerCache, LayerShape, WeightDelta

BIAS_INITS = ("zeros", "negative_one", "positive_one", "random")


@dataclass(frozen=True)
class NetworkParameters:
    """Activation and bias initialisation bundle."""

    activation: str
    bias_init: str
    output_activation: Optional[str] = None


LOGISTIC = NetworkParameters(activation="logistic", bias_init="negative_one")
TANH = NetworkParameters(activation="tanh", bias_init="positive_one")


@dataclass
class FeedForwardNetwork:
    """Dense network ``layer_dims[0] -> ... -> layer_dims[-1]``.

    Weights are stored as ``(fan_in, fan_out)`` matrices and are never resized
    after construction. :meth:`backprop` only reads the weights, so several
    threads may call it at once as long as nobody calls :meth:`apply_delta`
    concurrently.
    """

    layer_dims: Sequence[int]
    activation: str = "logistic"
    output_activation: Optional[str] = None
    bias_init: str = "zeros"
    loss: str = "mse"
    seed: int = 0
    weights: MutableSequence[Array] = field(init=False, repr=False)
    biases: MutableSequence[Array] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        dims = [int(d) for d in self.layer_dims]
        if len(dims) < 2:
            raise ValueError("A network needs at least an input and an output layer")
        if any(d < 1 for d in dims):
            raise ValueError(f"Layer sizes must be positive, got {dims}")
        if self.bias_init not in BIAS_INITS:
            raise ValueError(f"Unknown bias_init {self.bias_init!r}; expected one of {BIAS_INITS}")
        self.layer_dims = dims
        self._hidden: Activation = get_activation(self.activation)
        self._output: Activation = get_activation(self.output_activation or self.activation)
        self._error: ErrorFunction = ERROR_REGISTRY.resolve(self.loss)
        self.reset(self.seed)

    @classmethod
    def with_parameters(
        cls, layer_dims: Sequence[int], params: NetworkParameters, **kwargs: object
    ) -> "FeedForwardNetwork":
        return cls(
            layer_dims=layer_dims,
            activation=params.activation,
            output_activation=params.output_activation,
            bias_init=params.bias_init,
            **kwargs,  # type: ignore[arg-type]
        )

    def reset(self, seed: int) -> None:
        rng = np.random.default_rng(seed)
        weights: list[Array] = []
        biases: list[Array] = []
        dims = list(self.layer_dims)
        for in_dim, out_dim in zip(dims[:-1], dims[1:]):
            bound = 1.0 / np.sqrt(in_dim)
            weights.append(rng.uniform(-bound, bound, size=(in_dim, out_dim)))
            biases.append(self._init_bias(out_dim, rng))
        self.weights = weights
        self.biases = biases

    def _init_bias(self, size: int, rng: np.random.Generator) -> Array:
        if self.bias_init == "negative_one":
            return np.full(size, -1.0)
        if self.bias_init == "positive_one":
            return np.full(size, 1.0)
        if self.bias_init == "random":
            return rng.uniform(-0.5, 0.5, size=size)
        return np.zeros(size)

    @property
    def input_dim(self) -> int:
        return self.layer_dims[0]

    @property
    def output_dim(self) -> int:
        return self.layer_dims[-1]

    def layer_shapes(self) -> List[LayerShape]:
        return [(int(w.shape[0]), int(w.shape[1])) for w in self.weights]

    def parameter_count(self) -> int:
        return int(sum(w.size + b.size for w, b in zip(self.weights, self.biases)))

    # ------------------------------------------------------------------
    # Forward / backward

    def _forward(self, inputs: Array) -> tuple[Array, LayerCache]:
        cache = LayerCache()
        x = inputs
        last = len(self.weights) - 1
        for idx, (W, b) in enumerate(zip(self.weights, self.biases)):
            cache.layer_inputs.append(x)
            activation = self._output if idx == last else self._hidden
            x = activation(x @ W + b)
            cache.outputs.append(x)
        return x, cache

    def forward(self, inputs: Array) -> Array:
        """Evaluate one example (1-D) or a batch of examples (2-D)."""

        x = np.asarray(inputs, dtype=np.float64)
        if x.shape[-1] != self.input_dim:
            raise ValueError(f"Expected inputs with {self.input_dim} features, got {x.shape[-1]}")
        outputs, _ = self._forward(x)
        return outputs

    predict = forward

    def error(self, inputs: Array, expected: Array) -> float:
        outputs = self.forward(np.asarray(inputs, dtype=np.float64).reshape(-1))
        value, _ = self._error(outputs, np.asarray(expected, dtype=np.float64).reshape(-1))
        return value

    def backprop(self, inputs: Array, expected: Array) -> tuple[WeightDelta, float]:
        """Return the descent delta for one example and its error.

        The delta is the negative error gradient, so ``apply_delta(delta.scaled(lr))``
        performs a gradient-descent step with learning rate ``lr``.
        """

        x = np.asarray(inputs, dtype=np.float64).reshape(-1)
        target = np.asarray(expected, dtype=np.float64).reshape(-1)
        if x.size != self.input_dim:
            raise ValueError(f"Example has {x.size} inputs, network expects {self.input_dim}")
        if target.size != self.output_dim:
            raise ValueError(
                f"Example has {target.size} expected outputs, network produces {self.output_dim}"
            )

        outputs, cache = self._forward(x)
        error, grad = self._error(outputs, target)

        n_layers = len(self.weights)
        weight_deltas: list[Array] = [np.empty(0)] * n_layers
        bias_deltas: list[Array] = [np.empty(0)] * n_layers
        signal = grad * self._output.derivative(outputs)
        for idx in reversed(range(n_layers)):
            weight_deltas[idx] = -np.outer(cache.layer_inputs[idx], signal)
            bias_deltas[idx] = -signal
            if idx > 0:
                signal = (self.weights[idx] @ signal) * self._hidden.derivative(
                    cache.layer_inputs[idx]
                )
        return WeightDelta(weights=weight_deltas, biases=bias_deltas), float(error)

    def apply_delta(self, delta: WeightDelta) -> None:
        if delta.shapes() != self.layer_shapes():
            raise ValueError(
                f"Delta shapes {delta.shapes()} do not match network shapes {self.layer_shapes()}"
            )
        for idx in range(len(self.weights)):
            self.weights[idx] += delta.weights[idx]
            self.biases[idx] += delta.biases[idx]

    # ------------------------------------------------------------------
    # Persistence

    def state_dict(self) -> Mapping[str, Array]:
        state = {f"W{idx}": W.copy() for idx, W in enumerate(self.weights)}
        state.update({f"b{idx}": b.copy() for idx, b in enumerate(self.biases)})
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx in range(len(self.weights)):
            for prefix, target in (("W", self.weights), ("b", self.biases)):
                key = f"{prefix}{idx}"
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
                value = np.asarray(state[key], dtype=np.float64)
                if value.shape != target[idx].shape:
                    raise ValueError(
                        f"Parameter {key} has shape {value.shape}, expected {target[idx].shape}"
                    )
                target[idx] = value.copy()

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            np.savez_compressed(handle, **self.state_dict())
        return path

    def load(self, path: str | Path) -> None:
        with np.load(Path(path)) as archive:
            self.load_state_dict({name: archive[name] for name in archive.files})

    def copy(self) -> "FeedForwardNetwork":
        return copy.deepcopy(self)


__all__ = ["FeedForwardNetwork", "NetworkParameters", "LOGISTIC", "TANH", "BIAS_INITS"]
