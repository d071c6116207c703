"""Hyper-parameters consumed by the SGD driver."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from ..core.costs import CostKind, resolve_kind


@dataclass(frozen=True)
class TrainingParameters:
    """Immutable training configuration.

    Attributes
    ----------
    epochs:
        Number of passes over the training set.
    batch_size:
        Examples per mini-batch. The final batch of an epoch may be smaller.
    learning_rate:
        Gradient-descent step size (``eta``).
    lmbda:
        L2 regularisation coefficient; weights decay by
        ``1 - eta * lmbda / n`` every batch, biases never decay.
    cost:
        Cost function used for the output-layer error.
    improvement_patience:
        Epochs without a new best evaluation score tolerated before stopping.
    workers:
        Threads used to backpropagate the examples of one mini-batch. ``1``
        keeps everything on the calling thread.
    """

    epochs: int = 30
    batch_size: int = 10
    learning_rate: float = 0.5
    lmbda: float = 5.0
    cost: CostKind = CostKind.CROSS_ENTROPY
    improvement_patience: int = 10
    workers: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "cost", resolve_kind(self.cost))
        if self.epochs < 0:
            raise ValueError(f"epochs must be >= 0, got {self.epochs}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.improvement_patience < 0:
            raise ValueError(
                f"improvement_patience must be >= 0, got {self.improvement_patience}"
            )
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "TrainingParameters":
        """Build parameters from a ``train`` config section, ignoring unknown keys."""

        defaults = cls()
        return cls(
            epochs=int(config.get("epochs", defaults.epochs)),
            batch_size=int(config.get("batch_size", defaults.batch_size)),
            learning_rate=float(config.get("learning_rate", defaults.learning_rate)),
            lmbda=float(config.get("lmbda", defaults.lmbda)),
            cost=config.get("cost", defaults.cost),
            improvement_patience=int(
                config.get("improvement_patience", defaults.improvement_patience)
            ),
            workers=int(config.get("workers", defaults.workers)),
        )

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["cost"] = self.cost.value
        return payload


__all__ = ["TrainingParameters"]
