"""SigmoidNet public API."""

from .core import activations, costs, types  # noqa: F401
from .core.costs import CostKind
from .core.errors import (
    DatasetIO,
    DatasetMismatch,
    DimensionMismatch,
    InvalidTopology,
    SerializationError,
    SigmoidNetError,
)
from .core.network import Network, max_index
from .core.types import EpochRecord, LabeledExample
from .persistence import load_network, save_network
from .training import SGD, StopReason, TrainingParameters, sgd

__all__ = [
    "CostKind",
    "DatasetIO",
    "DatasetMismatch",
    "DimensionMismatch",
    "EpochRecord",
    "InvalidTopology",
    "LabeledExample",
    "Network",
    "SGD",
    "SerializationError",
    "SigmoidNetError",
    "StopReason",
    "TrainingParameters",
    "activations",
    "costs",
    "load_network",
    "max_index",
    "save_network",
    "sgd",
    "types",
]
