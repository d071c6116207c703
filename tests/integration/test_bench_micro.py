import subprocess, sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def test_bench_micro_runs_quickly(tmp_path):
    out = tmp_path / "bench"
    subprocess.check_call(
        [
            sys.executable,
            str(ROOT / "scripts" / "bench_micro.py"),
            "--seeds", "123",
            "--workers", "1", "2",
            "--examples", "40",
            "--sizes", "16,8,4",
            "--out", str(out),
        ]
    )
    md = (out / "bench_micro.md").read_text(encoding="utf-8")
    assert "| 1 |" in md and "| 2 |" in md
