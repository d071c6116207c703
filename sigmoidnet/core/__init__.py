"""Core numerical primitives for SigmoidNet."""

from . import activations, costs, errors, network, types

__all__ = ["activations", "costs", "errors", "network", "types"]
