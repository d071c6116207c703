"""Exception taxonomy shared across SigmoidNet."""

from __future__ import annotations


class SigmoidNetError(Exception):
    """Base class for all SigmoidNet errors."""


class InvalidTopology(SigmoidNetError, ValueError):
    """Raised when a network is configured with an unusable set of layer sizes."""


class DimensionMismatch(SigmoidNetError, ValueError):
    """Raised when an input vector does not match the input layer."""

    def __init__(self, expected: int, actual: int | tuple) -> None:
        if isinstance(actual, tuple):
            message = (
                f"Input of shape {actual} is not a flat vector for input layer "
                f"(len {expected})"
            )
        else:
            message = (
                f"Input vector (len {actual}) does not match input layer (len {expected})"
            )
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class DatasetIO(SigmoidNetError, OSError):
    """Raised when dataset files are missing, truncated or malformed."""


class DatasetMismatch(SigmoidNetError, ValueError):
    """Raised when image and label files disagree on the number of items."""


class SerializationError(SigmoidNetError):
    """Raised when a persisted network cannot be written or read back."""


__all__ = [
    "DatasetIO",
    "DatasetMismatch",
    "DimensionMismatch",
    "InvalidTopology",
    "SerializationError",
    "SigmoidNetError",
]
