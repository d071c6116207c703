"""Cost functions and the output-layer error signal they produce.

Each cost is described by two pure functions:

``delta(z, a, y)``
    The output-layer error term fed straight into backpropagation. For the
    cross-entropy cost the sigmoid derivative cancels and the term is simply
    ``a - y``; the quadratic cost keeps it, giving ``(a - y) * sigmoid'(z)``.
``value(a, y)``
    The scalar cost of one example, used for reporting and gradient checks.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .activations import sigmoid_prime
from .types import Array

DeltaFn = Callable[[Array, Array, Array], Array]
ValueFn = Callable[[Array, Array], float]


class CostKind(str, enum.Enum):
    """Selector for the supported cost functions."""

    CROSS_ENTROPY = "cross_entropy"
    QUADRATIC = "quadratic"


@dataclass(frozen=True)
class Cost:
    """Pair of cost value and output-layer error functions."""

    kind: CostKind
    delta: DeltaFn
    value: ValueFn


def _cross_entropy_delta(z: Array, a: Array, y: Array) -> Array:
    return a - y


def _cross_entropy_value(a: Array, y: Array) -> float:
    # nan_to_num covers the 0 * log(0) terms at saturated outputs
    return float(np.sum(np.nan_to_num(-y * np.log(a) - (1.0 - y) * np.log(1.0 - a))))


def _quadratic_delta(z: Array, a: Array, y: Array) -> Array:
    return (a - y) * sigmoid_prime(z)


def _quadratic_value(a: Array, y: Array) -> float:
    return float(0.5 * np.sum(np.square(a - y)))


_TABLE: Dict[CostKind, Cost] = {
    CostKind.CROSS_ENTROPY: Cost(
        CostKind.CROSS_ENTROPY, _cross_entropy_delta, _cross_entropy_value
    ),
    CostKind.QUADRATIC: Cost(CostKind.QUADRATIC, _quadratic_delta, _quadratic_value),
}

_ALIASES = {"ce": CostKind.CROSS_ENTROPY, "mse": CostKind.QUADRATIC}


def get_cost(kind: CostKind | str) -> Cost:
    """Return the :class:`Cost` registered for ``kind``.

    ``kind`` may be a :class:`CostKind`, its value (``"cross_entropy"``) or one
    of the short aliases ``"ce"`` and ``"mse"``.
    """

    return _TABLE[resolve_kind(kind)]


def resolve_kind(kind: CostKind | str) -> CostKind:
    if isinstance(kind, CostKind):
        return kind
    key = str(kind).strip().lower().replace("-", "_")
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return CostKind(key)
    except ValueError as exc:
        available = ", ".join(names())
        raise KeyError(f"Unknown cost {kind!r}. Available costs: {available}") from exc


def names() -> Iterable[str]:
    return sorted(kind.value for kind in _TABLE)


__all__ = ["Cost", "CostKind", "get_cost", "names", "resolve_kind"]
