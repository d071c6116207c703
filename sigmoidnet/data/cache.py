"""Offline-first retrieval of the MNIST IDX archives."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping

from . import mnist

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path(
    os.environ.get("SIGMOIDNET_CACHE_DIR") or Path.home() / ".cache" / "sigmoidnet"
)
MANIFEST_NAME = "manifest.json"
FIXTURE_DIR = "fixture"
MIRRORS = (
    "https://storage.googleapis.com/cvdf-datasets/mnist/",
    "https://ossci-datasets.s3.amazonaws.com/mnist/",
)


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def offline_requested(offline: bool | None = None) -> bool:
    if offline is not None:
        return offline
    return str(os.environ.get("SIGMOIDNET_DATA_OFFLINE", "0")) == "1"


@dataclass
class CacheManifest:
    """Track cached files and where they came from."""

    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR)
    data: MutableMapping[str, Mapping[str, object]] = field(
        init=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        self.cache_dir = Path(self.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._path = self.cache_dir / MANIFEST_NAME
        if self._path.exists():
            try:
                self.data = json.loads(self._path.read_text())
            except json.JSONDecodeError:
                self.data = {}
        else:
            self.data = {}

    def record(self, name: str, metadata: Mapping[str, object]) -> None:
        snapshot = dict(metadata)
        snapshot.setdefault(
            "recorded_at", time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        )
        self.data[name] = snapshot
        self._path.write_text(json.dumps(self.data, indent=2, sort_keys=True))

    def get(self, name: str) -> Mapping[str, object] | None:
        return self.data.get(name)


def _required_files() -> list[str]:
    names: list[str] = []
    for image_name, label_name in mnist.FILES.values():
        names.extend([image_name, label_name])
    return names


def _present(location: Path, name: str) -> Path | None:
    for candidate in (location / name, location / f"{name}.gz"):
        if candidate.exists():
            return candidate
    return None


def _download(url: str, target: Path) -> Path:
    import urllib.request

    target.parent.mkdir(parents=True, exist_ok=True)
    with urllib.request.urlopen(url) as response, target.open("wb") as handle:
        handle.write(response.read())
    return target


def _record(name: str, url: str, path: Path, mode: str) -> Mapping[str, object]:
    return {
        "name": name,
        "url": url,
        "local_path": str(path),
        "checksum": _sha256(path),
        "mode": mode,
    }


def fetch_mnist(
    location: str | Path | None = None,
    *,
    offline: bool | None = None,
    mirrors: Iterable[str] = MIRRORS,
    retries: int = 2,
    fixture_sizes: tuple[int, int] = (256, 64),
) -> tuple[Path, Mapping[str, object]]:
    """Make sure the four MNIST IDX files exist under ``location``.

    Files already present are reused. In offline mode, or when every mirror
    fails, the deterministic fixture from :func:`mnist.write_fixture` is
    written to ``location / "fixture"`` and that directory is returned; files
    the caller already had under ``location`` are never touched. Returns the
    directory to read from and a provenance mapping.
    """

    location = Path(location or DEFAULT_CACHE_DIR / "mnist")
    location.mkdir(parents=True, exist_ok=True)
    manifest = CacheManifest(location)
    missing = [name for name in _required_files() if _present(location, name) is None]

    if not missing:
        return location, {"name": "mnist", "mode": "cache", "location": str(location)}

    if offline_requested(offline):
        return _build_fixture(location, manifest, fixture_sizes, "offline")

    last_error: Exception | None = None
    for name in missing:
        target = location / f"{name}.gz"
        fetched = False
        for mirror in mirrors:
            url = f"{mirror}{name}.gz"
            for attempt in range(retries + 1):
                try:
                    path = _download(url, target)
                    manifest.record(name, _record(name, url, path, "download"))
                    logger.info("Downloaded %s", url)
                    fetched = True
                    break
                except Exception as exc:  # pragma: no cover - network dependent
                    last_error = exc
                    logger.warning("Download of %s failed (attempt %d): %s", url, attempt + 1, exc)
                    time.sleep(min(2**attempt, 5))
            if fetched:
                break
        if not fetched:
            target.unlink(missing_ok=True)
            logger.warning("Falling back to offline fixture: %s", last_error)
            return _build_fixture(location, manifest, fixture_sizes, "offline-fallback")

    return location, {"name": "mnist", "mode": "download", "location": str(location)}


def _build_fixture(
    location: Path,
    manifest: CacheManifest,
    sizes: tuple[int, int],
    mode: str,
) -> tuple[Path, Mapping[str, object]]:
    target = mnist.write_fixture(
        location / FIXTURE_DIR, n_train=sizes[0], n_test=sizes[1]
    )
    for name in _required_files():
        manifest.record(
            f"{FIXTURE_DIR}/{name}", _record(name, "fixture://mnist", target / name, mode)
        )
    logger.info("Using %d/%d example fixture in %s", sizes[0], sizes[1], target)
    return target, {
        "name": "mnist",
        "mode": mode,
        "location": str(target),
        "n_train": sizes[0],
        "n_test": sizes[1],
    }


__all__ = ["FIXTURE_DIR", "CacheManifest", "fetch_mnist", "offline_requested"]
