from concurrent.futures import ThreadPoolExecutor

import numpy as np

from sigmoidnet.core.network import Network
from sigmoidnet.core.types import LabeledExample
from sigmoidnet.training.batch import BatchProcessor, accumulate_gradients, process_batch
from sigmoidnet.training.params import TrainingParameters


def _examples(rng: np.random.Generator, count: int, n_in: int, n_out: int):
    eye = np.eye(n_out)
    return [
        LabeledExample(input=rng.random(n_in), target=eye[int(rng.integers(n_out))])
        for _ in range(count)
    ]


def test_single_example_update_is_plain_gradient_step():
    rng = np.random.default_rng(0)
    net = Network.random([3, 4, 2], rng)
    example = _examples(rng, 1, 3, 2)[0]
    params = TrainingParameters(epochs=1, batch_size=1, learning_rate=0.7, lmbda=0.0)

    grads = net.backprop(example, params.cost)
    expected_b = [b - 0.7 * g for b, g in zip(net.biases, grads.biases)]
    expected_w = [w - 0.7 * g for w, g in zip(net.weights, grads.weights)]

    process_batch(net, [example], total_size=100, params=params)
    for got, want in zip(net.biases, expected_b):
        assert np.allclose(got, want, rtol=0, atol=1e-12)
    for got, want in zip(net.weights, expected_w):
        assert np.allclose(got, want, rtol=0, atol=1e-12)


def test_weight_decay_applies_to_weights_only():
    net = Network.random([2, 3, 2], np.random.default_rng(1))
    before = net.copy()
    example = LabeledExample.from_sequences([0.5, 0.5], [1.0, 0.0])
    # A zero learning rate removes the gradient term and the decay together.
    params = TrainingParameters(batch_size=1, learning_rate=0.0, lmbda=50.0)
    process_batch(net, [example], total_size=10, params=params)
    for w0, w1 in zip(before.weights, net.weights):
        assert np.array_equal(w0, w1)

    params = TrainingParameters(batch_size=1, learning_rate=0.1, lmbda=5.0)
    grads = net.backprop(example, params.cost)
    decay = 1 - 0.1 * 5.0 / 10
    expected_w = [decay * w - 0.1 * g for w, g in zip(net.weights, grads.weights)]
    expected_b = [b - 0.1 * g for b, g in zip(net.biases, grads.biases)]
    process_batch(net, [example], total_size=10, params=params)
    for got, want in zip(net.weights, expected_w):
        assert np.allclose(got, want)
    for got, want in zip(net.biases, expected_b):
        assert np.allclose(got, want)


def test_batch_update_divides_by_batch_length():
    rng = np.random.default_rng(2)
    net = Network.random([4, 5, 3], rng)
    batch = _examples(rng, 6, 4, 3)
    params = TrainingParameters(batch_size=10, learning_rate=0.3, lmbda=0.0)
    total = accumulate_gradients(net, batch, params)
    expected = [b - 0.3 / 6 * g for b, g in zip(net.biases, total.biases)]
    process_batch(net, batch, total_size=60, params=params)
    for got, want in zip(net.biases, expected):
        assert np.allclose(got, want)


def test_parallel_accumulation_matches_sequential():
    rng = np.random.default_rng(3)
    net = Network.random([6, 5, 4], rng)
    batch = _examples(rng, 16, 6, 4)
    params = TrainingParameters(batch_size=16)
    sequential = accumulate_gradients(net, batch, params)
    with ThreadPoolExecutor(max_workers=4) as pool:
        parallel = accumulate_gradients(net, batch, params, pool)
    for a, b in zip(sequential.weights, parallel.weights):
        assert np.allclose(a, b, rtol=0, atol=1e-12)
    for a, b in zip(sequential.biases, parallel.biases):
        assert np.allclose(a, b, rtol=0, atol=1e-12)


def test_threaded_processor_matches_single_thread():
    rng = np.random.default_rng(4)
    base = Network.random([5, 6, 3], rng)
    batch = _examples(rng, 12, 5, 3)
    single, threaded = base.copy(), base.copy()
    with BatchProcessor(TrainingParameters(batch_size=12, workers=1)) as proc:
        proc.process(single, batch, total_size=120)
    with BatchProcessor(TrainingParameters(batch_size=12, workers=4)) as proc:
        proc.process(threaded, batch, total_size=120)
    for a, b in zip(single.weights, threaded.weights):
        assert np.allclose(a, b, rtol=0, atol=1e-12)


def test_empty_batch_is_noop():
    net = Network.random([2, 2], np.random.default_rng(5))
    before = net.copy()
    process_batch(net, [], total_size=10, params=TrainingParameters())
    assert np.array_equal(before.weights[0], net.weights[0])
