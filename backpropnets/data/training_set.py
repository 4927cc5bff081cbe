"""In-memory training sets with a per-epoch iteration policy."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Sequence

import numpy as np

from ..core.types import Array, Example


class TrainingSet:
    """Ordered, read-only sequence of :class:`Example` pairs.

    ``shuffle=False`` keeps the stored order for every epoch. With
    ``shuffle=True`` each epoch is a permutation drawn from ``seed + epoch``, so
    two runs with the same seed visit examples in the same order.
    """

    def __init__(
        self,
        inputs: Array,
        expected: Array,
        *,
        shuffle: bool = False,
        seed: int = 0,
    ) -> None:
        x = np.asarray(inputs, dtype=np.float64)
        y = np.asarray(expected, dtype=np.float64)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        if y.ndim == 1:
            y = y.reshape(-1, 1)
        if x.shape[0] != y.shape[0]:
            raise ValueError(
                f"inputs and expected disagree on example count: {x.shape[0]} != {y.shape[0]}"
            )
        self._examples: List[Example] = [Example(a, b) for a, b in zip(x, y)]
        self._input_dim = int(x.shape[1]) if x.ndim == 2 else 0
        self._output_dim = int(y.shape[1]) if y.ndim == 2 else 0
        self.shuffle = shuffle
        self.seed = seed

    @classmethod
    def from_examples(
        cls, examples: Iterable[Example], *, shuffle: bool = False, seed: int = 0
    ) -> "TrainingSet":
        examples = list(examples)
        instance = cls(np.zeros((0, 0)), np.zeros((0, 0)), shuffle=shuffle, seed=seed)
        instance._examples = examples
        if examples:
            instance._input_dim = int(examples[0].inputs.size)
            instance._output_dim = int(examples[0].expected.size)
        return instance

    @classmethod
    def from_arrays(cls, inputs: Array, expected: Array, **kwargs: object) -> "TrainingSet":
        return cls(inputs, expected, **kwargs)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._examples)

    def __getitem__(self, index: int) -> Example:
        return self._examples[index]

    def __iter__(self) -> Iterator[Example]:
        return iter(self._examples)

    @property
    def input_dim(self) -> int:
        return self._input_dim

    @property
    def output_dim(self) -> int:
        return self._output_dim

    def order(self, epoch: int) -> Sequence[int]:
        """Example indices visited during ``epoch``."""

        if not self.shuffle:
            return range(len(self._examples))
        rng = np.random.default_rng(self.seed + epoch)
        return rng.permutation(len(self._examples)).tolist()

    def iter_epoch(self, epoch: int) -> Iterator[Example]:
        for idx in self.order(epoch):
            yield self._examples[idx]

    def inputs(self) -> Array:
        return np.stack([ex.inputs for ex in self._examples]) if self._examples else np.zeros((0, 0))

    def expected(self) -> Array:
        return (
            np.stack([ex.expected for ex in self._examples]) if self._examples else np.zeros((0, 0))
        )

    def split(self, holdout: float, *, seed: int = 0) -> tuple["TrainingSet", "TrainingSet"]:
        """Return ``(train, holdout)`` sets with a deterministic shuffle."""

        if not 0 < holdout < 1:
            raise ValueError("holdout must be in (0, 1)")
        rng = np.random.default_rng(seed)
        indices = rng.permutation(len(self._examples))
        cut = int(round(len(indices) * holdout))
        held = [self._examples[i] for i in indices[:cut]]
        kept = [self._examples[i] for i in indices[cut:]]
        return (
            TrainingSet.from_examples(kept, shuffle=self.shuffle, seed=self.seed),
            TrainingSet.from_examples(held, shuffle=False, seed=self.seed),
        )


__all__ = ["TrainingSet"]
