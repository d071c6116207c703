"""Activation utilities for SigmoidNet."""

from __future__ import annotations

import numpy as np

from .types import Array


def sigmoid(z: Array) -> Array:
    """Return the logistic sigmoid of ``z``."""

    # exp(-z) overflows to inf for very negative z, which still yields 0.0
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-z))


def sigmoid_prime(z: Array) -> Array:
    """Return the derivative of :func:`sigmoid` evaluated at ``z``."""

    s = sigmoid(z)
    return s * (1.0 - s)
