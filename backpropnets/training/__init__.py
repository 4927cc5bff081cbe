"""Backpropagation trainers, update disciplines and gradient engines."""

from .config import TrainerConfig
from .disciplines import BatchDiscipline, PerExampleDiscipline
from .driver import EpochDriver
from .engines import EpochGradient, ParallelEngine, SequentialEngine
from .stopping import EpochBounded, ErrorAverageBounded
from .trainers import (
    EpochBoundedBatchTrainer,
    EpochBoundedPerExampleTrainer,
    ErrorAveragePerExampleTrainer,
    Trainer,
    build_trainer,
)

__all__ = [
    "BatchDiscipline",
    "EpochBounded",
    "EpochBoundedBatchTrainer",
    "EpochBoundedPerExampleTrainer",
    "EpochDriver",
    "EpochGradient",
    "ErrorAverageBounded",
    "ErrorAveragePerExampleTrainer",
    "ParallelEngine",
    "PerExampleDiscipline",
    "SequentialEngine",
    "Trainer",
    "TrainerConfig",
    "build_trainer",
]
