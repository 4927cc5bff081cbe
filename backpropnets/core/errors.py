"""Exceptions raised by the training core."""

from __future__ import annotations

from typing import Optional

from .types import TrainerState


class TrainingError(Exception):
    """Base class for every fatal training failure."""


class ConfigurationError(TrainingError, ValueError):
    """Invalid trainer, network or dataset configuration.

    Always raised before the first epoch runs, so the network is untouched.
    """


class ComputationError(TrainingError, RuntimeError):
    """A backpropagation call failed while an epoch was in progress.

    The failing epoch is discarded. ``state`` describes the epochs that were
    fully applied before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        epoch: int,
        state: Optional[TrainerState] = None,
    ) -> None:
        super().__init__(message)
        self.epoch = epoch
        self.state = state


__all__ = ["TrainingError", "ConfigurationError", "ComputationError"]
