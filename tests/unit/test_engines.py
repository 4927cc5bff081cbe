import threading

import numpy as np
import pytest

from backpropnets.core.errors import ConfigurationError
from backpropnets.core.network import FeedForwardNetwork
from backpropnets.core.types import Example
from backpropnets.training.engines import (
    ParallelEngine,
    SequentialEngine,
    compute_chunk,
    reduce_gradients,
)


def _examples(n, d_in=3, d_out=2, seed=0):
    rng = np.random.default_rng(seed)
    return [
        Example(rng.uniform(-1, 1, d_in), rng.uniform(0, 1, d_out)) for _ in range(n)
    ]


def _network(seed=0):
    return FeedForwardNetwork(layer_dims=[3, 5, 2], bias_init="random", seed=seed)


class ExplodingNetwork(FeedForwardNetwork):
    """Raises from backprop for inputs whose first value is marked."""

    def backprop(self, inputs, expected):
        if inputs[0] >= 10.0:
            raise ArithmeticError(f"bad example {inputs[0]}")
        return super().backprop(inputs, expected)


class RecordingNetwork(FeedForwardNetwork):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.threads = set()

    def backprop(self, inputs, expected):
        self.threads.add(threading.current_thread().name)
        return super().backprop(inputs, expected)


@pytest.mark.parametrize("workers", [1, 2, 3, 4, 5])
@pytest.mark.parametrize("partition", ["contiguous", "round_robin"])
def test_parallel_matches_sequential(workers, partition):
    network = _network()
    examples = _examples(13)
    expected = SequentialEngine().compute(network, examples)

    with ParallelEngine(workers, partition=partition) as engine:
        got = engine.compute(network, examples)

    assert got.examples == expected.examples == 13
    assert got.total_error == pytest.approx(expected.total_error)
    assert got.delta.allclose(expected.delta)


def test_contiguous_partition_gives_each_worker_a_block():
    engine = ParallelEngine(4)
    examples = _examples(8)
    chunks = engine.partition(examples)
    assert [len(c) for c in chunks] == [2, 2, 2, 2]
    assert chunks[0] == examples[0:2]
    assert chunks[3] == examples[6:8]


def test_round_robin_partition_interleaves():
    engine = ParallelEngine(3, partition="round_robin")
    examples = _examples(7)
    chunks = engine.partition(examples)
    assert chunks[0] == [examples[0], examples[3], examples[6]]
    assert chunks[1] == [examples[1], examples[4]]
    assert chunks[2] == [examples[2], examples[5]]


def test_four_workers_eight_examples_reduce_four_partials():
    network = _network()
    examples = _examples(8)
    with ParallelEngine(4) as engine:
        partials = engine.compute_partials(network, examples)

    assert [p.examples for p in partials] == [2, 2, 2, 2]
    for idx, partial in enumerate(partials):
        own = compute_chunk(network, examples[2 * idx : 2 * idx + 2])
        assert partial.delta.allclose(own.delta)
    reduced = reduce_gradients(partials, network)
    assert reduced.delta.allclose(compute_chunk(network, examples).delta)


def test_more_workers_than_examples_skips_empty_chunks():
    network = _network()
    examples = _examples(2)
    with ParallelEngine(5) as engine:
        partials = engine.compute_partials(network, examples)
    assert [p.examples for p in partials] == [1, 1]


def test_worker_failure_is_raised_after_barrier_and_leaves_network_alone():
    network = ExplodingNetwork(layer_dims=[3, 5, 2], seed=0)
    examples = _examples(8)
    examples[5] = Example([10.0, 0.0, 0.0], [0.0, 1.0])
    examples[7] = Example([11.0, 0.0, 0.0], [0.0, 1.0])
    before = network.state_dict()

    with ParallelEngine(4) as engine:
        with pytest.raises(ArithmeticError, match="bad example 10"):
            engine.compute(network, examples)

    after = network.state_dict()
    assert all(np.array_equal(before[k], after[k]) for k in before)


def test_pool_is_reused_across_computations():
    network = RecordingNetwork(layer_dims=[3, 5, 2], seed=0)
    examples = _examples(6)
    engine = ParallelEngine(2)
    engine.start()
    try:
        executor = engine._executor
        for _ in range(5):
            engine.compute(network, examples)
        assert engine._executor is executor
    finally:
        engine.close()

    assert not engine.running
    assert all(name.startswith("backprop-worker") for name in network.threads)
    assert len(network.threads) <= 2


def test_compute_requires_start():
    engine = ParallelEngine(2)
    with pytest.raises(RuntimeError, match="start"):
        engine.compute(_network(), _examples(4))


def test_parallel_engine_validation():
    with pytest.raises(ConfigurationError):
        ParallelEngine(0)
    with pytest.raises(ConfigurationError):
        ParallelEngine(True)
    with pytest.raises(ConfigurationError):
        ParallelEngine(2, partition="striped")
    assert ParallelEngine().worker_count >= 1
    assert ParallelEngine(3, partition="round_robin").describe() == "parallel(3, round_robin)"
    assert SequentialEngine().describe() == "sequential"


def test_nested_start_keeps_pool_until_last_close():
    network = _network()
    examples = _examples(4)
    engine = ParallelEngine(2)
    engine.start()
    engine.start()
    engine.close()
    assert engine.running
    engine.compute(network, examples)
    engine.close()
    assert not engine.running
    engine.close()
    assert not engine.running
