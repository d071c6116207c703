import numpy as np
import pytest

from sigmoidnet.core.costs import CostKind, get_cost
from sigmoidnet.core.network import Network
from sigmoidnet.core.types import LabeledExample

EPS = 1e-5


def _cost_at(net: Network, example: LabeledExample, kind: CostKind) -> float:
    cost = get_cost(kind)
    return cost.value(net.feed_forward(example.input), example.target)


@pytest.mark.parametrize("kind", [CostKind.CROSS_ENTROPY, CostKind.QUADRATIC])
def test_backprop_matches_finite_differences(kind):
    net = Network.random([2, 3, 1], np.random.default_rng(7))
    example = LabeledExample.from_sequences([0.3, 0.8], [1.0])
    grads = net.backprop(example, kind)

    for layer, W in enumerate(net.weights):
        for idx in np.ndindex(W.shape):
            original = W[idx]
            W[idx] = original + EPS
            plus = _cost_at(net, example, kind)
            W[idx] = original - EPS
            minus = _cost_at(net, example, kind)
            W[idx] = original
            numeric = (plus - minus) / (2 * EPS)
            assert abs(numeric - grads.weights[layer][idx]) < 1e-4

    for layer, b in enumerate(net.biases):
        for idx in range(b.shape[0]):
            original = b[idx]
            b[idx] = original + EPS
            plus = _cost_at(net, example, kind)
            b[idx] = original - EPS
            minus = _cost_at(net, example, kind)
            b[idx] = original
            numeric = (plus - minus) / (2 * EPS)
            assert abs(numeric - grads.biases[layer][idx]) < 1e-4


def test_backprop_deep_network_shapes_and_purity():
    net = Network.random([5, 4, 3, 2], np.random.default_rng(1))
    snapshot = net.copy()
    example = LabeledExample.from_sequences(np.linspace(0.1, 0.9, 5), [0.0, 1.0])
    grads = net.backprop(example)
    assert [g.shape for g in grads.biases] == [(4,), (3,), (2,)]
    assert [g.shape for g in grads.weights] == [(4, 5), (3, 4), (2, 3)]
    for w0, w1 in zip(snapshot.weights, net.weights):
        assert np.array_equal(w0, w1)


def test_output_error_terms():
    z = np.array([0.0, 2.0])
    a = 1.0 / (1.0 + np.exp(-z))
    y = np.array([1.0, 0.0])
    ce = get_cost("cross_entropy").delta(z, a, y)
    quad = get_cost("quadratic").delta(z, a, y)
    assert np.allclose(ce, a - y)
    assert np.allclose(quad, (a - y) * a * (1 - a))
