"""Mini-batch SGD training for SigmoidNet."""

from .batch import BatchProcessor, process_batch
from .params import TrainingParameters
from .sgd import SGD, StopReason, TrainingResult, sgd

__all__ = [
    "BatchProcessor",
    "SGD",
    "StopReason",
    "TrainingParameters",
    "TrainingResult",
    "process_batch",
    "sgd",
]
