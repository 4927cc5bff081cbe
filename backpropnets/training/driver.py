"""Epoch driver shared by every trainer variant."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Iterator, Mapping, Optional, Sequence

from ..core.errors import ComputationError, ConfigurationError, TrainingError
from ..core.types import EpochStats, Network, TrainerState, TrainingSetLike
from .disciplines import UpdateDiscipline
from .engines import GradientEngine, SequentialEngine
from .stopping import StoppingCriterion

logger = logging.getLogger(__name__)


class EpochDriver:
    """Run epochs until the stopping criterion, the time limit or a failure.

    The driver is the only writer of the network: engines compute deltas and
    the discipline applies them from the driver's thread. ``time_limit`` (in
    seconds) is checked between epochs only; an epoch in progress always runs
    to completion.
    """

    def __init__(
        self,
        criterion: StoppingCriterion,
        discipline: UpdateDiscipline,
        engine: Optional[GradientEngine] = None,
        *,
        learning_rate: float = 0.1,
        callbacks: Sequence[object] | None = None,
        time_limit: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        engine = engine or SequentialEngine()
        if engine.parallel and not discipline.supports_parallel:
            raise ConfigurationError(
                f"The {discipline.name} discipline applies deltas between examples "
                "and cannot use a parallel gradient engine"
            )
        if (
            isinstance(learning_rate, bool)
            or not isinstance(learning_rate, (int, float))
            or not math.isfinite(learning_rate)
        ):
            raise ConfigurationError(f"learning_rate must be a finite number, got {learning_rate!r}")
        if learning_rate <= 0:
            raise ConfigurationError("learning_rate must be greater than 0")
        if time_limit is not None and (
            isinstance(time_limit, bool)
            or not isinstance(time_limit, (int, float))
            or time_limit <= 0
        ):
            raise ConfigurationError(
                f"time_limit must be greater than 0 when set, got {time_limit!r}"
            )
        self.criterion = criterion
        self.discipline = discipline
        self.engine = engine
        self.learning_rate = float(learning_rate)
        self.callbacks = list(callbacks or [])
        self.time_limit = time_limit
        self._clock = clock

    def validate(self, network: Network, training_set: TrainingSetLike) -> None:
        """Reject configurations that would fail before the first epoch."""

        if len(training_set) == 0:
            raise ConfigurationError("The training set is empty; average error is undefined")
        shapes = network.layer_shapes()
        if not shapes:
            raise ConfigurationError("The network has no layers")
        input_dim, output_dim = shapes[0][0], shapes[-1][1]
        for idx, example in enumerate(training_set.iter_epoch(0)):
            if example.inputs.size != input_dim:
                raise ConfigurationError(
                    f"Example {idx} has {example.inputs.size} inputs; "
                    f"the network expects {input_dim}"
                )
            if example.expected.size != output_dim:
                raise ConfigurationError(
                    f"Example {idx} has {example.expected.size} expected outputs; "
                    f"the network produces {output_dim}"
                )

    def train(self, network: Network, training_set: TrainingSetLike) -> TrainerState:
        state = TrainerState()
        for _ in self.epochs(network, training_set, state):
            pass
        return state

    def epochs(
        self,
        network: Network,
        training_set: TrainingSetLike,
        state: Optional[TrainerState] = None,
    ) -> Iterator[EpochStats]:
        """Yield the stats of each completed epoch.

        ``state`` is updated in place before each yield, so callers that pass
        their own :class:`TrainerState` can inspect it after a failure.
        """

        state = state if state is not None else TrainerState()
        self.validate(network, training_set)
        logger.info(
            "Training on %d examples: %s discipline, %s engine, up to %d epochs",
            len(training_set),
            self.discipline.name,
            self.engine.describe(),
            self.criterion.max_epochs,
        )
        started = self._clock()
        self.engine.start()
        try:
            while not state.halted:
                if self.time_limit is not None and self._clock() - started >= self.time_limit:
                    state.halted = True
                    state.stop_reason = "time_limit"
                    break
                stats = self._run_epoch(network, training_set, state)
                state.epoch_count = stats.epoch
                state.last_stats = stats
                logger.debug("Epoch %d: average error %.6g", stats.epoch, stats.average_error)
                self._emit_epoch(stats.epoch, stats.as_metrics())
                if self.criterion.should_stop(state):
                    state.halted = True
                    state.stop_reason = self.criterion.reason(state)
                yield stats
        finally:
            self.engine.close()
        logger.info(
            "Training stopped after %d epochs (%s), average error %s",
            state.epoch_count,
            state.stop_reason,
            "n/a" if state.average_error is None else f"{state.average_error:.6g}",
        )

    def _run_epoch(
        self, network: Network, training_set: TrainingSetLike, state: TrainerState
    ) -> EpochStats:
        epoch = state.epoch_count + 1
        began = time.perf_counter()
        try:
            total, count = self.discipline.run_epoch(
                network,
                training_set.iter_epoch(epoch - 1),
                self.engine,
                self.learning_rate,
            )
        except TrainingError:
            state.halted = True
            state.stop_reason = "error"
            raise
        except Exception as exc:
            state.halted = True
            state.stop_reason = "error"
            logger.error("Epoch %d aborted, no update applied: %s", epoch, exc)
            raise ComputationError(
                f"Epoch {epoch} aborted: {exc}", epoch=epoch, state=state
            ) from exc
        return EpochStats(
            epoch=epoch,
            average_error=total / count,
            total_error=total,
            examples=count,
            duration=time.perf_counter() - began,
        )

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["EpochDriver"]
