"""Stopping criteria evaluated once per completed epoch."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from ..core.errors import ConfigurationError
from ..core.types import TrainerState


class StoppingCriterion(Protocol):
    """Decides after each epoch whether training halts."""

    max_epochs: int

    def should_stop(self, state: TrainerState) -> bool:
        ...

    def reason(self, state: TrainerState) -> str:
        ...


def _check_max_epochs(max_epochs: int) -> None:
    if isinstance(max_epochs, bool) or not isinstance(max_epochs, int):
        raise ConfigurationError(f"max_epochs must be an integer, got {max_epochs!r}")
    if max_epochs < 1:
        raise ConfigurationError(f"max_epochs must be >= 1, got {max_epochs}")


@dataclass(frozen=True)
class EpochBounded:
    """Stop once ``max_epochs`` epochs have completed."""

    max_epochs: int

    def __post_init__(self) -> None:
        _check_max_epochs(self.max_epochs)

    def should_stop(self, state: TrainerState) -> bool:
        return state.epoch_count >= self.max_epochs

    def reason(self, state: TrainerState) -> str:
        return "max_epochs"


@dataclass(frozen=True)
class ErrorAverageBounded:
    """Stop when the epoch's average error reaches ``error_threshold``.

    ``max_epochs`` caps runs that never converge and is required.
    """

    error_threshold: float
    max_epochs: int

    def __post_init__(self) -> None:
        threshold = self.error_threshold
        if not isinstance(threshold, (int, float)) or not math.isfinite(threshold):
            raise ConfigurationError(f"error_threshold must be a finite number, got {threshold!r}")
        if threshold <= 0:
            raise ConfigurationError("error_threshold must be greater than 0")
        _check_max_epochs(self.max_epochs)

    def reached(self, state: TrainerState) -> bool:
        error = state.average_error
        return error is not None and error <= self.error_threshold

    def should_stop(self, state: TrainerState) -> bool:
        return self.reached(state) or state.epoch_count >= self.max_epochs

    def reason(self, state: TrainerState) -> str:
        return "error_threshold" if self.reached(state) else "max_epochs"


__all__ = ["StoppingCriterion", "EpochBounded", "ErrorAverageBounded"]
