"""Epoch-level stochastic gradient descent with early stopping."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, MutableSequence, Sequence

import numpy as np

from ..core.network import Network
from ..core.types import EpochRecord, LabeledExample
from .batch import BatchProcessor
from .params import TrainingParameters

logger = logging.getLogger(__name__)


class StopReason(str, enum.Enum):
    EPOCHS_EXHAUSTED = "epochs_exhausted"
    NO_IMPROVEMENT = "no_improvement"


@dataclass
class TrainingResult:
    """Summary returned by :meth:`SGD.run`."""

    epochs_run: int
    stop_reason: StopReason
    best_score: int = 0
    history: List[int] = field(default_factory=list)


def iter_batches(
    data: Sequence[LabeledExample], batch_size: int
) -> Iterator[Sequence[LabeledExample]]:
    """Yield contiguous mini-batches; the last one is shorter when sizes don't divide."""

    for start in range(0, len(data), batch_size):
        yield data[start : start + batch_size]


class SGD:
    """Drive mini-batch gradient descent over a training set.

    Epochs shuffle the training data in place, apply batches strictly in order
    and, when an evaluation set is given, track the best score. Training stops
    early once more than ``improvement_patience`` consecutive epochs pass
    without a new best. Callbacks receive one :class:`EpochRecord` per epoch
    through ``on_epoch(record)``, or are called with it directly.
    """

    def __init__(
        self,
        network: Network,
        params: TrainingParameters,
        rng: np.random.Generator | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()
        self.callbacks = list(callbacks or [])

    def run(
        self,
        train: MutableSequence[LabeledExample],
        evaluation: Sequence[LabeledExample] | None = None,
    ) -> TrainingResult:
        params = self.params
        training_size = len(train)
        best = 0
        since_best = 0
        history: List[int] = []
        epochs_run = 0
        reason = StopReason.EPOCHS_EXHAUSTED

        with BatchProcessor(params) as processor:
            for epoch in range(params.epochs):
                self.rng.shuffle(train)
                for batch in iter_batches(train, params.batch_size):
                    processor.process(self.network, batch, training_size)
                epochs_run = epoch + 1
                logger.info("Epoch %d complete", epoch)

                if not evaluation:
                    self._emit_epoch(EpochRecord(epoch=epoch))
                    continue

                correct = self.network.evaluate(evaluation)
                history.append(correct)
                logger.info("Test: %d/%d", correct, len(evaluation))
                if correct > best:
                    best = correct
                    since_best = 0
                else:
                    since_best += 1
                self._emit_epoch(
                    EpochRecord(epoch=epoch, correct=correct, total=len(evaluation), best=best)
                )
                if since_best > params.improvement_patience:
                    logger.info("No improvement in %d rounds, stopping", since_best)
                    reason = StopReason.NO_IMPROVEMENT
                    break

        return TrainingResult(
            epochs_run=epochs_run,
            stop_reason=reason,
            best_score=best,
            history=history,
        )

    def _emit_epoch(self, record: EpochRecord) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(record)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(record)


def sgd(
    network: Network,
    train: MutableSequence[LabeledExample],
    params: TrainingParameters,
    evaluation: Sequence[LabeledExample] | None = None,
    rng: np.random.Generator | None = None,
) -> TrainingResult:
    """Functional entry point around :class:`SGD`."""

    return SGD(network, params, rng=rng).run(train, evaluation)


__all__ = ["SGD", "StopReason", "TrainingResult", "iter_batches", "sgd"]
