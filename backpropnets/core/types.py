"""Core typing contracts for backpropnets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

import numpy as np

Array = np.ndarray
LayerShape = Tuple[int, int]


@dataclass(frozen=True, eq=False)
class Example:
    """A single (input, expected-output) training pair."""

    inputs: Array
    expected: Array

    def __post_init__(self) -> None:
        inputs = np.array(self.inputs, dtype=np.float64).reshape(-1)
        expected = np.array(self.expected, dtype=np.float64).reshape(-1)
        inputs.flags.writeable = False
        expected.flags.writeable = False
        object.__setattr__(self, "inputs", inputs)
        object.__setattr__(self, "expected", expected)


@dataclass
class WeightDelta:
    """Per-layer weight and bias contributions with the network's shapes."""

    weights: List[Array]
    biases: List[Array]

    @classmethod
    def zeros(cls, shapes: Sequence[LayerShape]) -> "WeightDelta":
        return cls(
            weights=[np.zeros(shape, dtype=np.float64) for shape in shapes],
            biases=[np.zeros(shape[1], dtype=np.float64) for shape in shapes],
        )

    @classmethod
    def sum(cls, deltas: Iterable["WeightDelta"], shapes: Sequence[LayerShape]) -> "WeightDelta":
        """Element-wise sum of ``deltas``; zero when ``deltas`` is empty."""

        total = cls.zeros(shapes)
        for delta in deltas:
            total.accumulate(delta)
        return total

    def shapes(self) -> List[LayerShape]:
        return [(int(w.shape[0]), int(w.shape[1])) for w in self.weights]

    def accumulate(self, other: "WeightDelta") -> None:
        if len(other.weights) != len(self.weights):
            raise ValueError(
                f"Cannot accumulate a {len(other.weights)}-layer delta into "
                f"a {len(self.weights)}-layer delta"
            )
        for idx, (w, b) in enumerate(zip(other.weights, other.biases)):
            self.weights[idx] += w
            self.biases[idx] += b

    def scaled(self, factor: float) -> "WeightDelta":
        return WeightDelta(
            weights=[w * factor for w in self.weights],
            biases=[b * factor for b in self.biases],
        )

    def copy(self) -> "WeightDelta":
        return WeightDelta(
            weights=[w.copy() for w in self.weights],
            biases=[b.copy() for b in self.biases],
        )

    def allclose(self, other: "WeightDelta", *, rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        if self.shapes() != other.shapes():
            return False
        pairs = zip(self.weights + self.biases, other.weights + other.biases)
        return all(np.allclose(a, b, rtol=rtol, atol=atol) for a, b in pairs)


@dataclass(frozen=True)
class EpochStats:
    """Aggregate error of one completed epoch."""

    epoch: int
    average_error: float
    total_error: float
    examples: int
    duration: float = 0.0

    def as_metrics(self) -> dict:
        return {
            "error": self.average_error,
            "total_error": self.total_error,
            "examples": float(self.examples),
            "duration": self.duration,
        }


@dataclass
class TrainerState:
    """Progress of a single ``train`` call, mutated only by the epoch driver."""

    epoch_count: int = 0
    last_stats: Optional[EpochStats] = None
    halted: bool = False
    stop_reason: Optional[str] = None

    @property
    def average_error(self) -> Optional[float]:
        return None if self.last_stats is None else self.last_stats.average_error


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`backpropnets.training.pipelines.run_pipeline`."""

    epochs: int
    stop_reason: str
    final_error: float
    metrics_path: str
    manifest_path: str
    checkpoint_path: str = ""
    summary_path: str = ""


class Network(Protocol):
    """Contract the trainers need from a feed-forward network."""

    def forward(self, inputs: Array) -> Array:
        ...

    def backprop(self, inputs: Array, expected: Array) -> tuple[WeightDelta, float]:
        ...

    def apply_delta(self, delta: WeightDelta) -> None:
        ...

    def layer_shapes(self) -> List[LayerShape]:
        ...


class TrainingSetLike(Protocol):
    """Finite, restartable source of examples."""

    def __len__(self) -> int:
        ...

    def iter_epoch(self, epoch: int) -> Iterator[Example]:
        ...


@dataclass
class LayerCache:
    """Activations captured during one forward pass."""

    layer_inputs: List[Array] = field(default_factory=list)
    outputs: List[Array] = field(default_factory=list)
