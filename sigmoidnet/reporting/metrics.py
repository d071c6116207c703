"""Per-epoch metric sinks fed by :class:`sigmoidnet.training.SGD`."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from ..core.types import EpochRecord
from .artifacts import git_sha


class JsonlSink:
    """One JSON object per epoch, tagged with the run's seed and commit."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "validation",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.seed = seed
        self.sha = sha or git_sha()

    def on_epoch(self, record: EpochRecord) -> None:
        line = {"split": self.split, "seed": self.seed, "sha": self.sha}
        line.update(record.as_dict())
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(line) + "\n")

    __call__ = on_epoch


class CsvSink:
    """Epoch table with a fixed column order; unevaluated epochs leave blanks."""

    COLUMNS = ("split",) + EpochRecord.FIELDS

    def __init__(self, path: str | Path, *, split: str = "validation") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.split = split
        with self.path.open("w", encoding="utf-8", newline="") as handle:
            csv.writer(handle).writerow(self.COLUMNS)

    def on_epoch(self, record: EpochRecord) -> None:
        values = dict(record.as_dict(), split=self.split)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            csv.writer(handle).writerow(
                "" if values[name] is None else values[name] for name in self.COLUMNS
            )

    __call__ = on_epoch
