"""backpropnets public API."""

from .core import activations, losses  # noqa: F401
from .core.errors import ComputationError, ConfigurationError, TrainingError
from .core.network import LOGISTIC, TANH, FeedForwardNetwork, NetworkParameters
from .core.types import EpochStats, Example, TrainerState, WeightDelta
from .data import TrainingSet, get_dataset
from .training import (
    EpochBoundedBatchTrainer,
    EpochBoundedPerExampleTrainer,
    ErrorAveragePerExampleTrainer,
    TrainerConfig,
    build_trainer,
)
from .training.pipelines import load_preset, presets, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "ComputationError",
    "ConfigurationError",
    "EpochBoundedBatchTrainer",
    "EpochBoundedPerExampleTrainer",
    "EpochStats",
    "ErrorAveragePerExampleTrainer",
    "Example",
    "FeedForwardNetwork",
    "LOGISTIC",
    "NetworkParameters",
    "TANH",
    "TrainerConfig",
    "TrainerState",
    "TrainingError",
    "TrainingSet",
    "WeightDelta",
    "activations",
    "build_trainer",
    "get_dataset",
    "load_preset",
    "losses",
    "presets",
    "run_pipeline",
]
