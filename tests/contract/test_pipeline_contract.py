import json
from pathlib import Path

from sigmoidnet.persistence import load_network
from sigmoidnet.training import pipelines


def _fixture_config(tmp_path: Path, run: str = "run") -> dict:
    config = pipelines.load_preset("mnist-fixture")
    config["data"]["location"] = str(tmp_path / "data")
    config["train"].update(
        {
            "epochs": 2,
            "run_dir": str(tmp_path / run),
            "model_out": str(tmp_path / run / "network.npz"),
        }
    )
    return config


def test_training_pipeline_produces_artifacts(tmp_path):
    result = pipelines.run_training(_fixture_config(tmp_path))

    assert result.evaluation_size == 64
    assert 1 <= result.epochs_run <= 2
    assert Path(result.model_path).exists()
    assert load_network(result.model_path).sizes == [784, 16, 10]

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["cost"] == "cross_entropy"
    assert manifest["dataset"]["mode"] == "offline"
    assert manifest["result"]["epochs_run"] == result.epochs_run

    records = [
        json.loads(line) for line in Path(result.metrics_path).read_text().splitlines() if line
    ]
    assert len(records) == result.epochs_run
    assert all(record["total"] == 64 for record in records)
    assert (Path(result.metrics_path).parent / "metrics.csv").exists()


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_training(_fixture_config(tmp_path, "run1"))
    second = pipelines.run_training(_fixture_config(tmp_path, "run2"))
    a, b = load_network(first.model_path), load_network(second.model_path)
    for w1, w2 in zip(a.weights, b.weights):
        assert (w1 == w2).all()


def test_inference_scores_saved_model(tmp_path):
    result = pipelines.run_training(_fixture_config(tmp_path))
    correct, total = pipelines.run_inference(
        result.model_path, {"location": str(tmp_path / "data"), "offline": True}
    )
    assert total == 64
    assert 0 <= correct <= total


def test_presets_and_overrides(tmp_path):
    assert {"mnist-full", "mnist-quick", "mnist-fixture"} <= set(pipelines.presets())
    override = tmp_path / "override.json"
    override.write_text(json.dumps({"train": {"epochs": 1, "cost": "quadratic"}}))
    config = pipelines.merge(
        pipelines.load_preset("mnist-full"), pipelines.load_config_file(override)
    )
    assert config["train"]["epochs"] == 1
    assert config["train"]["batch_size"] == 10
    assert config["train"]["cost"] == "quadratic"


def test_validation_split_takes_the_tail():
    train, held_out = pipelines.split_validation(list(range(10)), 3)
    assert train == list(range(7))
    assert held_out == [7, 8, 9]
