"""Gradient engines computing the summed delta of a batch of examples.

Engines only *read* the network: they call ``network.backprop`` and return the
reduced :class:`EpochGradient`. Applying it is the update discipline's job, and
happens on the driver thread after every worker has finished.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import numpy as np

from ..core.errors import ConfigurationError
from ..core.types import Example, Network, WeightDelta

logger = logging.getLogger(__name__)

PARTITIONS = ("contiguous", "round_robin")


@dataclass
class EpochGradient:
    """Summed delta and error over ``examples`` examples."""

    delta: WeightDelta
    total_error: float
    examples: int

    @property
    def average_error(self) -> float:
        return self.total_error / self.examples if self.examples else float("nan")


def compute_chunk(network: Network, examples: Sequence[Example]) -> EpochGradient:
    """Sum the backprop deltas and errors of ``examples`` against fixed weights."""

    local = WeightDelta.zeros(network.layer_shapes())
    error_sum = 0.0
    for example in examples:
        delta, error = network.backprop(example.inputs, example.expected)
        local.accumulate(delta)
        error_sum += float(error)
    return EpochGradient(delta=local, total_error=error_sum, examples=len(examples))


def reduce_gradients(
    partials: Sequence[EpochGradient], network: Network
) -> EpochGradient:
    """Element-wise sum of partial results, in the order given."""

    return EpochGradient(
        delta=WeightDelta.sum((p.delta for p in partials), network.layer_shapes()),
        total_error=float(sum(p.total_error for p in partials)),
        examples=int(sum(p.examples for p in partials)),
    )


class GradientEngine(Protocol):
    parallel: bool
    worker_count: int

    def start(self) -> None:
        ...

    def close(self) -> None:
        ...

    def compute(self, network: Network, examples: Sequence[Example]) -> EpochGradient:
        ...

    def describe(self) -> str:
        ...


class SequentialEngine:
    """Single-threaded engine; computes every delta on the calling thread."""

    parallel = False
    worker_count = 1

    def start(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "SequentialEngine":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def compute(self, network: Network, examples: Sequence[Example]) -> EpochGradient:
        return compute_chunk(network, examples)

    def describe(self) -> str:
        return "sequential"


class ParallelEngine:
    """Fixed pool of worker threads sharing read-only access to the network.

    The pool is created by the first :meth:`start` and reused for every epoch
    until the matching :meth:`close`; overlapping ``train`` calls on one
    trainer share it and the last one to finish shuts it down. Each
    :meth:`compute` call partitions the examples into one chunk per worker,
    waits for all chunks (the barrier), then reduces the local deltas in
    chunk order.
    """

    parallel = True

    def __init__(self, worker_count: Optional[int] = None, partition: str = "contiguous") -> None:
        if worker_count is None:
            worker_count = os.cpu_count() or 1
        if isinstance(worker_count, bool) or not isinstance(worker_count, int):
            raise ConfigurationError(f"worker_count must be an integer, got {worker_count!r}")
        if worker_count < 1:
            raise ConfigurationError(f"worker_count must be >= 1, got {worker_count}")
        if partition not in PARTITIONS:
            raise ConfigurationError(f"partition must be one of {PARTITIONS}, got {partition!r}")
        self.worker_count = worker_count
        self.partition_scheme = partition
        self._executor: Optional[ThreadPoolExecutor] = None
        self._users = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        """Acquire the pool, creating it for the first user."""

        with self._lock:
            self._users += 1
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.worker_count, thread_name_prefix="backprop-worker"
                )
                logger.debug("Started %d gradient workers", self.worker_count)

    def close(self) -> None:
        """Release the pool; it shuts down once every ``start`` is matched."""

        with self._lock:
            if self._users > 0:
                self._users -= 1
            if self._users or self._executor is None:
                return
            executor, self._executor = self._executor, None
        executor.shutdown(wait=True)
        logger.debug("Stopped gradient workers")

    @property
    def running(self) -> bool:
        return self._executor is not None

    def __enter__(self) -> "ParallelEngine":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def describe(self) -> str:
        return f"parallel({self.worker_count}, {self.partition_scheme})"

    def partition(self, examples: Sequence[Example]) -> List[List[Example]]:
        """Split ``examples`` into ``worker_count`` chunks; some may be empty."""

        n = self.worker_count
        if self.partition_scheme == "round_robin":
            return [list(examples[i::n]) for i in range(n)]
        bounds = np.array_split(np.arange(len(examples)), n)
        return [[examples[i] for i in idx] for idx in bounds]

    def compute_partials(
        self, network: Network, examples: Sequence[Example]
    ) -> List[EpochGradient]:
        """Per-worker results, in chunk order, once every worker has finished.

        If any worker raised, the first failure (in chunk order) is re-raised
        after the barrier and no result is returned.
        """

        if self._executor is None:
            raise RuntimeError("ParallelEngine.start() must be called before compute()")
        chunks = [chunk for chunk in self.partition(examples) if chunk]
        futures = [self._executor.submit(compute_chunk, network, chunk) for chunk in chunks]
        wait(futures, return_when=ALL_COMPLETED)

        failures = [exc for exc in (f.exception() for f in futures) if exc is not None]
        if failures:
            for extra in failures[1:]:
                logger.error("Additional worker failure in the same epoch: %r", extra)
            raise failures[0]
        return [future.result() for future in futures]

    def compute(self, network: Network, examples: Sequence[Example]) -> EpochGradient:
        return reduce_gradients(self.compute_partials(network, examples), network)


__all__ = [
    "EpochGradient",
    "GradientEngine",
    "ParallelEngine",
    "SequentialEngine",
    "PARTITIONS",
    "compute_chunk",
    "reduce_gradients",
]
