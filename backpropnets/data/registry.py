"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from .training_set import TrainingSet

TASK_TYPES = ("regression", "binary", "multiclass")


@dataclass(frozen=True)
class DatasetSpec:
    """A built training set plus the metadata needed to reproduce it.

    Attributes
    ----------
    name:
        Registry identifier the dataset was built from.
    training_set:
        The examples themselves.
    task_type:
        One of ``{"regression", "binary", "multiclass"}``.
    provenance:
        Options the factory was called with, copied into run manifests.
    """

    name: str
    training_set: TrainingSet
    task_type: str
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def d_in(self) -> int:
        return self.training_set.input_dim

    @property
    def d_out(self) -> int:
        return self.training_set.output_dim


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    return _decorator


def get_dataset(name: str, /, **options: Any) -> DatasetSpec:
    """Build the dataset registered under ``name``."""

    if name not in _REGISTRY:
        raise KeyError(f"Unknown dataset: {name}")
    spec = _REGISTRY[name](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.task_type not in TASK_TYPES:
        raise ValueError(f"Invalid task type: {spec.task_type}")
    if not isinstance(spec.training_set, TrainingSet):
        raise TypeError("DatasetSpec.training_set must be a TrainingSet")


__all__ = [
    "DatasetSpec",
    "TASK_TYPES",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
