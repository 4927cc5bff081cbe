"""The three backpropagation trainer variants.

Each variant is a fixed pairing of stopping criterion and update discipline
over the shared :class:`~backpropnets.training.driver.EpochDriver`:

=================================  =====================  ==============
Trainer                            Stops on               Applies deltas
=================================  =====================  ==============
``EpochBoundedBatchTrainer``       ``max_epochs``         once per epoch
``EpochBoundedPerExampleTrainer``  ``max_epochs``         per example
``ErrorAveragePerExampleTrainer``  average error or cap   per example
=================================  =====================  ==============

Only the batch trainer can spread gradient computation over worker threads.
"""

from __future__ import annotations

from typing import Iterator, Optional, Sequence

from ..core.types import EpochStats, Network, TrainerState, TrainingSetLike
from .config import TrainerConfig
from .disciplines import BatchDiscipline, PerExampleDiscipline
from .driver import EpochDriver
from .engines import GradientEngine, ParallelEngine, SequentialEngine
from .stopping import EpochBounded, ErrorAverageBounded


class Trainer:
    """Blocking facade over an :class:`EpochDriver`.

    Separate threads may call :meth:`train` on one instance with different
    networks; they share the engine's worker pool and the callbacks.
    """

    def __init__(self, driver: EpochDriver) -> None:
        self.driver = driver

    @property
    def criterion(self):
        return self.driver.criterion

    @property
    def discipline(self):
        return self.driver.discipline

    @property
    def engine(self) -> GradientEngine:
        return self.driver.engine

    def train(self, network: Network, training_set: TrainingSetLike) -> TrainerState:
        """Train until the stopping condition and return the final state.

        Calling ``train`` again starts a fresh state from the network's
        current weights.
        """

        return self.driver.train(network, training_set)

    def iter_epochs(
        self,
        network: Network,
        training_set: TrainingSetLike,
        state: Optional[TrainerState] = None,
    ) -> Iterator[EpochStats]:
        return self.driver.epochs(network, training_set, state)


class EpochBoundedBatchTrainer(Trainer):
    """Fixed number of epochs, one summed update per epoch."""

    def __init__(
        self,
        max_epochs: int,
        *,
        learning_rate: float = 0.1,
        parallel: bool = False,
        worker_count: Optional[int] = None,
        partition: str = "contiguous",
        callbacks: Sequence[object] | None = None,
        time_limit: Optional[float] = None,
    ) -> None:
        engine: GradientEngine
        if parallel or worker_count is not None:
            engine = ParallelEngine(worker_count, partition=partition)
        else:
            engine = SequentialEngine()
        super().__init__(
            EpochDriver(
                EpochBounded(max_epochs),
                BatchDiscipline(),
                engine,
                learning_rate=learning_rate,
                callbacks=callbacks,
                time_limit=time_limit,
            )
        )


class EpochBoundedPerExampleTrainer(Trainer):
    """Fixed number of epochs, weights updated after every example."""

    def __init__(
        self,
        max_epochs: int,
        *,
        learning_rate: float = 0.1,
        callbacks: Sequence[object] | None = None,
        time_limit: Optional[float] = None,
    ) -> None:
        super().__init__(
            EpochDriver(
                EpochBounded(max_epochs),
                PerExampleDiscipline(),
                SequentialEngine(),
                learning_rate=learning_rate,
                callbacks=callbacks,
                time_limit=time_limit,
            )
        )


class ErrorAveragePerExampleTrainer(Trainer):
    """Stop at the first epoch whose average error is <= ``error_threshold``."""

    def __init__(
        self,
        error_threshold: float,
        max_epochs: int,
        *,
        learning_rate: float = 0.1,
        callbacks: Sequence[object] | None = None,
        time_limit: Optional[float] = None,
    ) -> None:
        super().__init__(
            EpochDriver(
                ErrorAverageBounded(error_threshold, max_epochs),
                PerExampleDiscipline(),
                SequentialEngine(),
                learning_rate=learning_rate,
                callbacks=callbacks,
                time_limit=time_limit,
            )
        )


def build_trainer(config: TrainerConfig, callbacks: Sequence[object] | None = None) -> Trainer:
    """Pick the trainer variant described by ``config``."""

    if config.error_threshold is not None:
        return ErrorAveragePerExampleTrainer(
            config.error_threshold,
            config.max_epochs,
            learning_rate=config.learning_rate,
            callbacks=callbacks,
            time_limit=config.time_limit,
        )
    if config.resolved_discipline == "per_example":
        return EpochBoundedPerExampleTrainer(
            config.max_epochs,
            learning_rate=config.learning_rate,
            callbacks=callbacks,
            time_limit=config.time_limit,
        )
    return EpochBoundedBatchTrainer(
        config.max_epochs,
        learning_rate=config.learning_rate,
        parallel=config.parallel,
        worker_count=config.worker_count,
        partition=config.partition,
        callbacks=callbacks,
        time_limit=config.time_limit,
    )


__all__ = [
    "Trainer",
    "EpochBoundedBatchTrainer",
    "EpochBoundedPerExampleTrainer",
    "ErrorAveragePerExampleTrainer",
    "build_trainer",
]
