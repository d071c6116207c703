"""Run manifest: what a training run was given and what it produced."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

import numpy as np

from ..core.types import NetworkDescription


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def _network_section(network: NetworkDescription | None) -> dict:
    if network is None:
        return {}
    return {"sizes": list(network.sizes), "parameter_count": network.parameter_count}


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    network: NetworkDescription | None = None,
    result: Mapping[str, object] | None = None,
) -> str:
    """Write ``manifest.json`` for a run and return its path.

    ``network`` records the trained topology and its parameter count;
    ``result`` carries the stop reason, score history and model location.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "network": _network_section(network),
        "result": dict(result or {}),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
    }
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)
