"""Training sets and the dataset registry."""

# Ensure built-in datasets register themselves when the package is imported.
from . import csv_generic as _csv_generic  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .registry import DatasetSpec, available_datasets, get_dataset, register_dataset
from .training_set import TrainingSet

__all__ = [
    "DatasetSpec",
    "TrainingSet",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
