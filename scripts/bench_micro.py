from __future__ import annotations

import argparse
import csv
import json
import sys
import time
from pathlib import Path
from statistics import mean, pstdev


def _fmt_mu_sigma(vals):
    mu = mean(vals)
    sd = pstdev(vals) if len(vals) > 1 else 0.0
    return f"{mu:.4f} ± {sd:.4f}"


def _synthetic(rng, n, n_in, n_out):
    import numpy as np

    from sigmoidnet.core.types import LabeledExample

    eye = np.eye(n_out)
    return [
        LabeledExample(input=rng.random(n_in), target=eye[int(rng.integers(n_out))])
        for _ in range(n)
    ]


def time_epoch(workers, seed, n, batch, sizes):
    import numpy as np

    from sigmoidnet.core.network import Network
    from sigmoidnet.training.params import TrainingParameters
    from sigmoidnet.training.sgd import sgd

    rng = np.random.default_rng(seed)
    data = _synthetic(rng, n, sizes[0], sizes[-1])
    net = Network.random(sizes, rng)
    params = TrainingParameters(epochs=1, batch_size=batch, learning_rate=0.5, workers=workers)
    start = time.perf_counter()
    sgd(net, data, params, rng=rng)
    return time.perf_counter() - start


def main():
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    ap = argparse.ArgumentParser()
    ap.add_argument("--seeds", nargs="+", type=int, default=[123, 124, 125])
    ap.add_argument("--workers", nargs="+", type=int, default=[1, 2, 4])
    ap.add_argument("--examples", type=int, default=2000)
    ap.add_argument("--batch", type=int, default=10)
    ap.add_argument("--sizes", type=str, default="784,30,10")
    ap.add_argument("--out", type=str, default=".artifacts/bench")
    args = ap.parse_args()

    sizes = [int(s) for s in args.sizes.split(",")]
    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    runs = []
    for workers in args.workers:
        for s in args.seeds:
            seconds = time_epoch(workers, s, args.examples, args.batch, sizes)
            runs.append({"workers": workers, "seed": s, "seconds": seconds})
    (out / "results.jsonl").write_text(
        "\n".join(json.dumps(x) for x in runs), encoding="utf-8"
    )

    baseline = mean(r["seconds"] for r in runs if r["workers"] == args.workers[0])
    csv_path = out / "bench_micro.csv"
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["workers", "seeds", "examples", "seconds_mu", "seconds_sd", "speedup"])
        for workers in args.workers:
            secs = [r["seconds"] for r in runs if r["workers"] == workers]
            w.writerow(
                [
                    workers,
                    len(secs),
                    args.examples,
                    f"{mean(secs):.4f}",
                    f"{pstdev(secs) if len(secs) > 1 else 0.0:.4f}",
                    f"{baseline / mean(secs):.2f}",
                ]
            )

    md_path = out / "bench_micro.md"
    lines = []
    lines.append("### Micro-Benchmark: one SGD epoch by worker count")
    lines.append("")
    lines.append(
        f"- Seeds: `{args.seeds}`; Examples: `{args.examples}`; "
        f"Batch: `{args.batch}`; Sizes: `{sizes}`"
    )
    lines.append("")
    lines.append("| Workers | Epoch seconds (μ±σ) | Speedup | Seeds |")
    lines.append("|---:|---:|---:|---:|")
    for workers in args.workers:
        secs = [r["seconds"] for r in runs if r["workers"] == workers]
        lines.append(
            f"| {workers} | {_fmt_mu_sigma(secs)} | {baseline / mean(secs):.2f}x | {len(secs)} |"
        )
    md_path.write_text("\n".join(lines), encoding="utf-8")
    print("Wrote:", csv_path, md_path)


if __name__ == "__main__":
    main()
