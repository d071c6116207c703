"""Reader for the MNIST IDX image/label files.

Files are looked up under a storage location using their canonical names
(``train-images-idx3-ubyte`` and friends); a gzip-compressed copy with a
``.gz`` suffix is used when the plain file is absent.
"""

from __future__ import annotations

import gzip
import struct
from pathlib import Path
from typing import List, Mapping, Tuple

import numpy as np

from ..core.errors import DatasetIO, DatasetMismatch
from ..core.types import Array, LabeledExample

IMAGE_MAGIC = 0x00000803
LABEL_MAGIC = 0x00000801
WIDTH = 28
HEIGHT = 28
NUM_LABELS = 10
PIXEL_RANGE = 255

FILES: Mapping[str, Tuple[str, str]] = {
    "train": ("train-images-idx3-ubyte", "train-labels-idx1-ubyte"),
    "test": ("t10k-images-idx3-ubyte", "t10k-labels-idx1-ubyte"),
}
SPLIT_ALIASES = {"train": "train", "dev": "train", "test": "test"}


def _resolve(location: Path, name: str) -> Path:
    plain = location / name
    if plain.exists():
        return plain
    compressed = location / f"{name}.gz"
    if compressed.exists():
        return compressed
    raise DatasetIO(f"Dataset file not found: {plain}")


def _read_bytes(path: Path) -> bytes:
    try:
        if path.suffix == ".gz":
            with gzip.open(path, "rb") as handle:
                return handle.read()
        return path.read_bytes()
    except (OSError, EOFError) as exc:
        raise DatasetIO(f"Unable to read {path}: {exc}") from exc


def read_labels(path: str | Path) -> Array:
    """Return the labels stored in an IDX1 file as a ``uint8`` array."""

    path = Path(path)
    payload = _read_bytes(path)
    if len(payload) < 8:
        raise DatasetIO(f"Label file {path} is truncated")
    magic, count = struct.unpack(">ii", payload[:8])
    if magic != LABEL_MAGIC:
        raise DatasetIO(f"Label file {path} has bad magic number {magic:#010x}")
    labels = np.frombuffer(payload, dtype=np.uint8, offset=8)
    if labels.size < count:
        raise DatasetIO(f"Label file {path} holds {labels.size} of {count} labels")
    return labels[:count]


def read_images(path: str | Path) -> Array:
    """Return the images stored in an IDX3 file as ``(count, rows * cols)`` bytes."""

    path = Path(path)
    payload = _read_bytes(path)
    if len(payload) < 16:
        raise DatasetIO(f"Image file {path} is truncated")
    magic, count, rows, cols = struct.unpack(">iiii", payload[:16])
    if magic != IMAGE_MAGIC:
        raise DatasetIO(f"Image file {path} has bad magic number {magic:#010x}")
    pixels = rows * cols
    data = np.frombuffer(payload, dtype=np.uint8, offset=16)
    if data.size < count * pixels:
        raise DatasetIO(
            f"Image file {path} holds {data.size} bytes, expected {count * pixels}"
        )
    return data[: count * pixels].reshape(count, pixels)


def normalize(pixels: Array) -> Array:
    """Map raw intensities into ``[0.1, 1.0)``; a saturated pixel becomes 0.999."""

    scaled = pixels.astype(np.float64) / PIXEL_RANGE * 0.9 + 0.1
    return np.where(scaled >= 1.0, 0.999, scaled)


def denormalize(values: Array) -> Array:
    """Invert :func:`normalize` back to ``uint8`` intensities."""

    raw = (np.asarray(values, dtype=np.float64) - 0.1) / 0.9 * PIXEL_RANGE
    return np.clip(np.rint(raw), 0, PIXEL_RANGE).astype(np.uint8)


def prepare(
    images: Array, labels: Array, num_classes: int = NUM_LABELS
) -> List[LabeledExample]:
    """Pair normalised images with one-hot targets."""

    if len(images) != len(labels):
        raise DatasetMismatch(
            f"Image and label data length does not match ({len(images)} != {len(labels)})"
        )
    inputs = normalize(images)
    eye = np.eye(num_classes, dtype=np.float64)
    return [
        LabeledExample(input=inputs[idx], target=eye[int(label)])
        for idx, label in enumerate(labels)
    ]


def load(split: str, location: str | Path) -> List[LabeledExample]:
    """Load ``split`` (``train``, ``dev`` or ``test``) from ``location``."""

    if split not in SPLIT_ALIASES:
        raise ValueError(f"Unsupported split: {split}")
    image_name, label_name = FILES[SPLIT_ALIASES[split]]
    location = Path(location)
    labels = read_labels(_resolve(location, label_name))
    images = read_images(_resolve(location, image_name))
    return prepare(images, labels)


# ---------------------------------------------------------------------------
# Fixture writer


def write_idx_images(path: str | Path, images: Array) -> Path:
    path = Path(path)
    images = np.asarray(images, dtype=np.uint8)
    count = images.shape[0]
    header = struct.pack(">iiii", IMAGE_MAGIC, count, HEIGHT, WIDTH)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(header + images.reshape(count, -1).tobytes())
    return path


def write_idx_labels(path: str | Path, labels: Array) -> Path:
    path = Path(path)
    labels = np.asarray(labels, dtype=np.uint8)
    header = struct.pack(">ii", LABEL_MAGIC, labels.shape[0])
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(header + labels.tobytes())
    return path


def _fixture_split(count: int, offset: int) -> Tuple[Array, Array]:
    # Built from integer arithmetic only so the bytes never depend on the
    # NumPy RNG stream. Each label lights up its own band of rows.
    labels = (np.arange(count, dtype=np.int64) + offset) % NUM_LABELS
    images = np.zeros((count, HEIGHT, WIDTH), dtype=np.uint8)
    texture = (np.arange(HEIGHT * WIDTH).reshape(HEIGHT, WIDTH) * 7) % 64
    band = HEIGHT // NUM_LABELS
    for idx, label in enumerate(labels):
        start = int(label) * band
        images[idx] = texture
        images[idx, start : start + band + 1, :] = 255 - ((idx * 13) % 32)
    return images.reshape(count, -1), labels.astype(np.uint8)


def write_fixture(
    location: str | Path, n_train: int = 256, n_test: int = 64
) -> Path:
    """Write deterministic MNIST-shaped IDX files under ``location``."""

    location = Path(location)
    for split, count, offset in (("train", n_train, 0), ("test", n_test, 3)):
        image_name, label_name = FILES[split]
        images, labels = _fixture_split(count, offset)
        write_idx_images(location / image_name, images)
        write_idx_labels(location / label_name, labels)
    return location


__all__ = [
    "FILES",
    "denormalize",
    "load",
    "normalize",
    "prepare",
    "read_images",
    "read_labels",
    "write_fixture",
    "write_idx_images",
    "write_idx_labels",
]
