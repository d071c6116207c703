"""Fully-connected sigmoid network with a hand-derived backward pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

import numpy as np

from .activations import sigmoid, sigmoid_prime
from .costs import Cost, CostKind, get_cost
from .errors import DimensionMismatch, InvalidTopology
from .types import Array, Gradients, LabeledExample, NetworkDescription


def max_index(values: Sequence[float] | Array) -> int:
    """Return the index of the largest entry; the first maximum wins ties."""

    arr = np.asarray(values)
    if arr.size == 0:
        return 0
    return int(np.argmax(arr))


def _validate_sizes(sizes: Sequence[int]) -> List[int]:
    dims = [int(size) for size in sizes]
    if len(dims) < 2:
        raise InvalidTopology(
            f"A network needs at least an input and an output layer, got sizes {dims}"
        )
    if any(size <= 0 for size in dims):
        raise InvalidTopology(f"Layer sizes must be positive, got {dims}")
    return dims


@dataclass
class Network:
    """Multilayer perceptron holding one bias vector and weight matrix per layer.

    ``weights[l]`` has shape ``(sizes[l + 1], sizes[l])`` and ``biases[l]`` has
    shape ``(sizes[l + 1],)``; the input layer carries no parameters.
    """

    sizes: List[int]
    biases: List[Array] = field(repr=False)
    weights: List[Array] = field(repr=False)

    def __post_init__(self) -> None:
        self.sizes = _validate_sizes(self.sizes)
        self.biases = [np.array(b, dtype=np.float64) for b in self.biases]
        self.weights = [np.array(w, dtype=np.float64) for w in self.weights]
        layers = len(self.sizes) - 1
        if len(self.biases) != layers or len(self.weights) != layers:
            raise InvalidTopology(
                f"Expected {layers} bias vectors and weight matrices, got "
                f"{len(self.biases)} and {len(self.weights)}"
            )
        for idx, (in_dim, out_dim) in enumerate(zip(self.sizes[:-1], self.sizes[1:])):
            if self.biases[idx].shape != (out_dim,):
                raise InvalidTopology(
                    f"Bias {idx} has shape {self.biases[idx].shape}, expected {(out_dim,)}"
                )
            if self.weights[idx].shape != (out_dim, in_dim):
                raise InvalidTopology(
                    f"Weight {idx} has shape {self.weights[idx].shape}, "
                    f"expected {(out_dim, in_dim)}"
                )

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def random(
        cls,
        sizes: Sequence[int],
        rng: np.random.Generator | None = None,
        *,
        scale_weights: bool = True,
    ) -> "Network":
        """Draw biases and weights from a standard normal distribution.

        With ``scale_weights`` each weight is divided by the square root of
        its source layer's size, keeping initial activations out of the flat
        region of the sigmoid.
        """

        dims = _validate_sizes(sizes)
        rng = rng if rng is not None else np.random.default_rng()
        biases = [rng.standard_normal(out_dim) for out_dim in dims[1:]]
        weights = []
        for in_dim, out_dim in zip(dims[:-1], dims[1:]):
            W = rng.standard_normal((out_dim, in_dim))
            if scale_weights:
                W /= np.sqrt(in_dim)
            weights.append(W)
        return cls(sizes=dims, biases=biases, weights=weights)

    @classmethod
    def zeros(cls, sizes: Sequence[int]) -> "Network":
        dims = _validate_sizes(sizes)
        grads = Gradients.zeros(dims)
        return cls(sizes=dims, biases=grads.biases, weights=grads.weights)

    def copy(self) -> "Network":
        return Network(
            sizes=list(self.sizes),
            biases=[b.copy() for b in self.biases],
            weights=[w.copy() for w in self.weights],
        )

    def describe(self) -> NetworkDescription:
        return NetworkDescription(sizes=list(self.sizes))

    @property
    def num_layers(self) -> int:
        return len(self.sizes)

    # ------------------------------------------------------------------
    # Inference

    def feed_forward(self, a: Sequence[float] | Array) -> Array:
        """Propagate ``a`` through every layer and return the output activation."""

        activation = np.asarray(a, dtype=np.float64)
        if activation.ndim != 1:
            raise DimensionMismatch(self.sizes[0], activation.shape)
        if activation.shape[0] != self.sizes[0]:
            raise DimensionMismatch(self.sizes[0], activation.shape[0])
        for b, W in zip(self.biases, self.weights):
            activation = sigmoid(W @ activation + b)
        return activation

    def predict(self, a: Sequence[float] | Array) -> int:
        return max_index(self.feed_forward(a))

    def evaluate(self, examples: Iterable[LabeledExample]) -> int:
        """Count examples whose strongest output unit matches the target class."""

        correct = 0
        for example in examples:
            if self.predict(example.input) == max_index(example.target):
                correct += 1
        return correct

    # ------------------------------------------------------------------
    # Training support

    def backprop(
        self, example: LabeledExample, cost: Cost | CostKind | str = CostKind.CROSS_ENTROPY
    ) -> Gradients:
        """Return the gradient of ``cost`` for one example w.r.t. every parameter.

        The network is only read; the returned buffers are freshly allocated so
        concurrent calls on the same network never share state.
        """

        if not isinstance(cost, Cost):
            cost = get_cost(cost)

        x = np.asarray(example.input, dtype=np.float64)
        y = np.asarray(example.target, dtype=np.float64)
        assert x.shape == (self.sizes[0],), "input does not match input layer"
        assert y.shape == (self.sizes[-1],), "target does not match output layer"

        activation = x
        activations = [x]
        zs: List[Array] = []
        for b, W in zip(self.biases, self.weights):
            z = W @ activation + b
            zs.append(z)
            activation = sigmoid(z)
            activations.append(activation)

        bias_grads: List[Array] = [np.empty(0)] * len(self.biases)
        weight_grads: List[Array] = [np.empty(0)] * len(self.weights)

        delta = cost.delta(zs[-1], activations[-1], y)
        bias_grads[-1] = delta
        weight_grads[-1] = np.outer(delta, activations[-2])

        for layer in range(2, self.num_layers):
            delta = (self.weights[-layer + 1].T @ delta) * sigmoid_prime(zs[-layer])
            bias_grads[-layer] = delta
            weight_grads[-layer] = np.outer(delta, activations[-layer - 1])

        return Gradients(biases=bias_grads, weights=weight_grads)

    def total_cost(
        self,
        examples: Iterable[LabeledExample],
        cost: Cost | CostKind | str = CostKind.CROSS_ENTROPY,
        lmbda: float = 0.0,
    ) -> float:
        """Return the mean cost over ``examples`` plus the L2 penalty."""

        if not isinstance(cost, Cost):
            cost = get_cost(cost)
        total = 0.0
        count = 0
        for example in examples:
            total += cost.value(self.feed_forward(example.input), example.target)
            count += 1
        if count == 0:
            return 0.0
        penalty = 0.5 * (lmbda / count) * sum(float(np.sum(W * W)) for W in self.weights)
        return total / count + penalty


__all__ = ["Network", "max_index"]
