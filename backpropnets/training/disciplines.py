"""Update disciplines: when computed deltas reach the network."""

from __future__ import annotations

import math
from typing import Iterable, Protocol

from ..core.types import Example, Network, WeightDelta
from .engines import GradientEngine


class UpdateDiscipline(Protocol):
    name: str
    supports_parallel: bool

    def run_epoch(
        self,
        network: Network,
        examples: Iterable[Example],
        engine: GradientEngine,
        learning_rate: float,
    ) -> tuple[float, int]:
        """Run one epoch and return ``(total_error, example_count)``.

        On failure the network must be left exactly as it was before the epoch.
        """


def _check_finite(error: float, what: str) -> None:
    if not math.isfinite(error):
        raise FloatingPointError(f"{what} produced a non-finite error ({error})")


class BatchDiscipline:
    """Accumulate every example's delta and apply the sum once per epoch.

    All deltas are computed against the pre-epoch weights, which is what makes
    the parallel engine safe to use here.
    """

    name = "batch"
    supports_parallel = True

    def run_epoch(
        self,
        network: Network,
        examples: Iterable[Example],
        engine: GradientEngine,
        learning_rate: float,
    ) -> tuple[float, int]:
        gradient = engine.compute(network, list(examples))
        _check_finite(gradient.total_error, "Epoch")
        network.apply_delta(gradient.delta.scaled(learning_rate))
        return gradient.total_error, gradient.examples


class PerExampleDiscipline:
    """Apply each example's delta before the next example is evaluated.

    Later examples see the weights updated by earlier ones, so this discipline
    is inherently sequential and ignores the engine.
    """

    name = "per_example"
    supports_parallel = False

    def run_epoch(
        self,
        network: Network,
        examples: Iterable[Example],
        engine: GradientEngine,
        learning_rate: float,
    ) -> tuple[float, int]:
        snapshot = network.state_dict() if hasattr(network, "state_dict") else None
        applied = WeightDelta.zeros(network.layer_shapes())
        total = 0.0
        count = 0
        try:
            for example in examples:
                delta, error = network.backprop(example.inputs, example.expected)
                _check_finite(float(error), f"Example {count}")
                step = delta.scaled(learning_rate)
                network.apply_delta(step)
                applied.accumulate(step)
                total += float(error)
                count += 1
        except Exception:
            self._rollback(network, snapshot, applied)
            raise
        return total, count

    @staticmethod
    def _rollback(network: Network, snapshot: object, applied: WeightDelta) -> None:
        if snapshot is not None:
            network.load_state_dict(snapshot)  # type: ignore[attr-defined]
        else:
            network.apply_delta(applied.scaled(-1.0))


DISCIPLINES = {
    BatchDiscipline.name: BatchDiscipline,
    PerExampleDiscipline.name: PerExampleDiscipline,
}

__all__ = ["UpdateDiscipline", "BatchDiscipline", "PerExampleDiscipline", "DISCIPLINES"]
