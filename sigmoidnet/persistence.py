"""Save and restore trained networks as ``.npz`` archives."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import numpy as np

from .core.errors import InvalidTopology, SerializationError
from .core.network import Network

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def save_network(network: Network, path: str | Path) -> Path:
    """Write ``network`` to ``path`` and return the path actually written.

    ``numpy`` appends ``.npz`` to paths that lack it, so the return value may
    differ from the argument.
    """

    path = Path(path)
    if path.suffix != ".npz":
        path = path.with_name(path.name + ".npz")
    payload = {
        "format_version": np.asarray(FORMAT_VERSION),
        "sizes": np.asarray(network.sizes, dtype=np.int64),
    }
    for idx, (b, W) in enumerate(zip(network.biases, network.weights)):
        payload[f"b{idx}"] = b
        payload[f"w{idx}"] = W
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            np.savez_compressed(handle, **payload)
    except OSError as exc:
        raise SerializationError(f"Unable to write network to {path}: {exc}") from exc
    logger.info("Saved network %s to %s", network.sizes, path)
    return path


def load_network(path: str | Path) -> Network:
    """Read a network written by :func:`save_network`."""

    path = Path(path)
    if not path.exists() and path.suffix != ".npz":
        path = path.with_name(path.name + ".npz")
    try:
        with np.load(path, allow_pickle=False) as data:
            if "sizes" not in data.files:
                raise SerializationError(f"{path} does not contain layer sizes")
            version = int(data["format_version"]) if "format_version" in data.files else 0
            if version > FORMAT_VERSION:
                raise SerializationError(
                    f"{path} uses format version {version}; this build reads up to "
                    f"{FORMAT_VERSION}"
                )
            sizes = [int(size) for size in data["sizes"]]
            layers = len(sizes) - 1
            missing = [
                key
                for idx in range(max(layers, 0))
                for key in (f"b{idx}", f"w{idx}")
                if key not in data.files
            ]
            if missing:
                raise SerializationError(f"{path} is missing entries: {', '.join(missing)}")
            biases = [data[f"b{idx}"] for idx in range(layers)]
            weights = [data[f"w{idx}"] for idx in range(layers)]
    except (OSError, ValueError, KeyError, zipfile.BadZipFile) as exc:
        raise SerializationError(f"Unable to read network from {path}: {exc}") from exc

    try:
        network = Network(sizes=sizes, biases=biases, weights=weights)
    except InvalidTopology as exc:
        raise SerializationError(f"{path} holds an inconsistent network: {exc}") from exc
    logger.info("Loaded network %s from %s", network.sizes, path)
    return network


__all__ = ["FORMAT_VERSION", "load_network", "save_network"]
