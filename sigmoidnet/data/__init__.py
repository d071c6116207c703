"""Dataset loading and caching for SigmoidNet."""

from . import cache, mnist
from .cache import fetch_mnist
from .mnist import load, write_fixture

__all__ = ["cache", "fetch_mnist", "load", "mnist", "write_fixture"]
