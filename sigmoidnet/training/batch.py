"""Mini-batch gradient aggregation and the regularised parameter update."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Iterable, Sequence

from ..core.costs import get_cost
from ..core.network import Network
from ..core.types import Gradients, LabeledExample
from .params import TrainingParameters

logger = logging.getLogger(__name__)


def accumulate_gradients(
    network: Network,
    batch: Sequence[LabeledExample],
    params: TrainingParameters,
    executor: Executor | None = None,
) -> Gradients:
    """Sum per-example gradients over ``batch``.

    With an ``executor`` every example is backpropagated as its own task. The
    results are collected in submission order, so the floating-point sum does
    not depend on which task finishes first. All tasks complete before this
    function returns.
    """

    cost = get_cost(params.cost)
    total = Gradients.zeros(network.sizes)
    if executor is None:
        results: Iterable[Gradients] = (network.backprop(x, cost) for x in batch)
    else:
        results = executor.map(lambda example: network.backprop(example, cost), batch)
    for grads in results:
        total.accumulate(grads)
    return total


def apply_update(
    network: Network,
    grads: Gradients,
    batch_size: int,
    total_size: int,
    params: TrainingParameters,
) -> None:
    """Apply one gradient-descent step with L2 weight decay to ``network`` in place."""

    step = params.learning_rate / batch_size
    decay = 1.0 - params.learning_rate * (params.lmbda / total_size)
    for idx, grad in enumerate(grads.biases):
        network.biases[idx] -= step * grad
    for idx, grad in enumerate(grads.weights):
        network.weights[idx] = decay * network.weights[idx] - step * grad


class BatchProcessor:
    """Apply mini-batches to a network, optionally fanning out over threads.

    The processor owns its thread pool; use it as a context manager (or call
    :meth:`close`) so worker threads are released when training ends.
    """

    def __init__(self, params: TrainingParameters) -> None:
        self.params = params
        self._executor: ThreadPoolExecutor | None = None
        if params.workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=params.workers, thread_name_prefix="backprop"
            )

    def process(
        self,
        network: Network,
        batch: Sequence[LabeledExample],
        total_size: int,
    ) -> None:
        """Backpropagate ``batch`` and update ``network`` once."""

        if not batch:
            return
        grads = accumulate_gradients(network, batch, self.params, self._executor)
        apply_update(network, grads, len(batch), total_size, self.params)
        logger.debug("Applied batch of %d examples", len(batch))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "BatchProcessor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def process_batch(
    network: Network,
    batch: Sequence[LabeledExample],
    total_size: int,
    params: TrainingParameters,
) -> None:
    """Convenience wrapper applying a single mini-batch with a throwaway processor."""

    with BatchProcessor(params) as processor:
        processor.process(network, batch, total_size)


__all__ = ["BatchProcessor", "accumulate_gradients", "apply_update", "process_batch"]
