"""Trainer configuration."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.errors import ConfigurationError
from .disciplines import DISCIPLINES
from .engines import PARTITIONS


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


@dataclass(frozen=True)
class TrainerConfig:
    """Options shared by every trainer variant.

    ``error_threshold`` selects the error-average trainer; ``discipline``
    defaults to ``"per_example"`` in that case and to ``"batch"`` otherwise.
    ``worker_count`` (or ``parallel=True``, which defaults to one worker per
    CPU) selects the parallel gradient engine, valid only with ``"batch"``.
    """

    max_epochs: int
    error_threshold: Optional[float] = None
    worker_count: Optional[int] = None
    parallel: bool = False
    discipline: Optional[str] = None
    learning_rate: float = 0.1
    partition: str = "contiguous"
    time_limit: Optional[float] = None

    def __post_init__(self) -> None:
        self.validate()

    @property
    def resolved_discipline(self) -> str:
        if self.discipline is not None:
            return self.discipline
        return "per_example" if self.error_threshold is not None else "batch"

    @property
    def uses_parallel_engine(self) -> bool:
        return self.parallel or self.worker_count is not None

    def validate(self) -> None:
        if not _is_integer(self.max_epochs):
            raise ConfigurationError(f"max_epochs must be an integer, got {self.max_epochs!r}")
        if self.max_epochs < 1:
            raise ConfigurationError(f"max_epochs must be >= 1, got {self.max_epochs}")
        if self.resolved_discipline not in DISCIPLINES:
            raise ConfigurationError(
                f"discipline must be one of {sorted(DISCIPLINES)}, got {self.discipline!r}"
            )
        if self.worker_count is not None and not _is_integer(self.worker_count):
            raise ConfigurationError(f"worker_count must be an integer, got {self.worker_count!r}")
        if self.worker_count is not None and self.worker_count < 1:
            raise ConfigurationError(f"worker_count must be >= 1, got {self.worker_count}")
        if self.partition not in PARTITIONS:
            raise ConfigurationError(f"partition must be one of {PARTITIONS}, got {self.partition!r}")
        if self.uses_parallel_engine and self.resolved_discipline != "batch":
            raise ConfigurationError("The parallel engine requires the batch discipline")
        if self.error_threshold is not None:
            if not _is_finite_number(self.error_threshold):
                raise ConfigurationError(
                    f"error_threshold must be a finite number, got {self.error_threshold!r}"
                )
            if self.error_threshold <= 0:
                raise ConfigurationError("error_threshold must be greater than 0")
            if self.resolved_discipline != "per_example":
                raise ConfigurationError(
                    "error_threshold is only supported with the per_example discipline"
                )
        if not _is_finite_number(self.learning_rate):
            raise ConfigurationError(
                f"learning_rate must be a finite number, got {self.learning_rate!r}"
            )
        if self.learning_rate <= 0:
            raise ConfigurationError("learning_rate must be greater than 0")
        if self.time_limit is not None:
            if not _is_finite_number(self.time_limit) or self.time_limit <= 0:
                raise ConfigurationError(
                    f"time_limit must be a positive number of seconds, got {self.time_limit!r}"
                )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TrainerConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown trainer options: {', '.join(unknown)}")
        if "max_epochs" not in data:
            raise ConfigurationError("max_epochs is required")
        return cls(**dict(data))

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


__all__ = ["TrainerConfig"]
