"""Core typing contracts for SigmoidNet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class LabeledExample:
    """A single feature vector paired with its one-hot target."""

    input: Array
    target: Array

    @classmethod
    def from_sequences(
        cls, values: Sequence[float], target: Sequence[float]
    ) -> "LabeledExample":
        return cls(
            input=np.asarray(values, dtype=np.float64),
            target=np.asarray(target, dtype=np.float64),
        )


@dataclass
class Gradients:
    """Per-layer bias and weight gradients shaped like a network's parameters."""

    biases: List[Array]
    weights: List[Array]

    @classmethod
    def zeros(cls, sizes: Sequence[int]) -> "Gradients":
        dims = list(sizes)
        return cls(
            biases=[np.zeros(out_dim) for out_dim in dims[1:]],
            weights=[
                np.zeros((out_dim, in_dim))
                for in_dim, out_dim in zip(dims[:-1], dims[1:])
            ],
        )

    def accumulate(self, other: "Gradients") -> None:
        """Add ``other`` into this accumulator in place."""

        assert len(other.biases) == len(self.biases), "layer count mismatch"
        for idx, grad in enumerate(other.biases):
            self.biases[idx] += grad
        for idx, grad in enumerate(other.weights):
            self.weights[idx] += grad


@dataclass(frozen=True)
class NetworkDescription:
    """Description of the fully-connected network architecture."""

    sizes: List[int]

    @property
    def parameter_count(self) -> int:
        dims = self.sizes
        return int(sum(dims[i] * dims[i + 1] + dims[i + 1] for i in range(len(dims) - 1)))


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`sigmoidnet.training.pipelines.run_training`."""

    epochs_run: int
    stop_reason: str
    best_score: int
    evaluation_size: int
    model_path: str
    metrics_path: str
    manifest_path: str


@dataclass(frozen=True)
class EpochRecord:
    """Outcome of one training epoch as handed to epoch callbacks.

    ``correct``, ``total`` and ``best`` stay ``None`` when the epoch ran
    without an evaluation set.
    """

    epoch: int
    correct: int | None = None
    total: int | None = None
    best: int | None = None

    FIELDS = ("epoch", "correct", "total", "accuracy", "best")

    @property
    def evaluated(self) -> bool:
        return self.correct is not None and bool(self.total)

    @property
    def accuracy(self) -> float | None:
        if not self.evaluated:
            return None
        return self.correct / self.total  # type: ignore[operator]

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.FIELDS}
