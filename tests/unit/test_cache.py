import json

from sigmoidnet.data import cache, mnist
from sigmoidnet.data.cache import FIXTURE_DIR, CacheManifest, fetch_mnist


def test_offline_builds_fixture_and_records_manifest(tmp_path):
    location, provenance = fetch_mnist(tmp_path, offline=True, fixture_sizes=(12, 4))
    assert provenance["mode"] == "offline"
    assert len(mnist.load("train", location)) == 12
    assert len(mnist.load("test", location)) == 4
    manifest = json.loads((tmp_path / "manifest.json").read_text())
    assert location == tmp_path / FIXTURE_DIR
    assert set(manifest) == {
        f"{FIXTURE_DIR}/{name}" for pair in mnist.FILES.values() for name in pair
    }
    assert all(entry["mode"] == "offline" for entry in manifest.values())


def test_existing_files_are_reused(tmp_path):
    mnist.write_fixture(tmp_path, n_train=3, n_test=2)
    _, provenance = fetch_mnist(tmp_path, offline=False)
    assert provenance["mode"] == "cache"
    assert len(mnist.load("train", tmp_path)) == 3


def test_offline_mode_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("SIGMOIDNET_DATA_OFFLINE", "1")
    _, provenance = fetch_mnist(tmp_path / "env", fixture_sizes=(2, 2))
    assert provenance["mode"] == "offline"


def test_manifest_persists_records(tmp_path):
    manifest = CacheManifest(tmp_path)
    manifest.record("item", {"mode": "offline"})
    reloaded = CacheManifest(tmp_path)
    assert reloaded.get("item")["mode"] == "offline"
    assert "recorded_at" in reloaded.get("item")


def _snapshot(location):
    return {path.name: path.read_bytes() for path in location.iterdir() if path.is_file()}


def test_offline_fixture_never_replaces_existing_files(tmp_path):
    mnist.write_fixture(tmp_path, n_train=7, n_test=3)
    (tmp_path / mnist.FILES["test"][0]).unlink()
    before = _snapshot(tmp_path)

    location, provenance = fetch_mnist(tmp_path, offline=True, fixture_sizes=(12, 4))

    assert provenance["mode"] == "offline"
    assert location == tmp_path / FIXTURE_DIR
    after = _snapshot(tmp_path)
    for name, payload in before.items():
        if name != "manifest.json":
            assert after[name] == payload
    assert len(mnist.load("train", tmp_path)) == 7
    assert len(mnist.load("train", location)) == 12


def test_failed_download_falls_back_without_touching_existing_files(tmp_path, monkeypatch):
    mnist.write_fixture(tmp_path, n_train=5, n_test=2)
    for name in mnist.FILES["test"]:
        (tmp_path / name).unlink()
    train_images = (tmp_path / mnist.FILES["train"][0]).read_bytes()

    def _unreachable(url, target):
        raise OSError(f"unreachable: {url}")

    monkeypatch.setattr(cache, "_download", _unreachable)
    monkeypatch.setattr(cache.time, "sleep", lambda seconds: None)
    location, provenance = fetch_mnist(
        tmp_path,
        offline=False,
        mirrors=["http://mirror.invalid/"],
        retries=1,
        fixture_sizes=(6, 3),
    )

    assert provenance["mode"] == "offline-fallback"
    assert location == tmp_path / FIXTURE_DIR
    assert (tmp_path / mnist.FILES["train"][0]).read_bytes() == train_images
    assert not any((tmp_path / f"{name}.gz").exists() for name in mnist.FILES["test"])
    assert len(mnist.load("test", location)) == 3
