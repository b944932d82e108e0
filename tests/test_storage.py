import json
import os
import stat

from tripdesk.auth.storage import JsonFileStore, MemoryStore


def test_memory_store_get_set_remove() -> None:
    store = MemoryStore({"token": "abc"})

    assert store.get("token") == "abc"
    store.set("token", "def")
    assert store.get("token") == "def"
    store.remove("token")
    store.remove("token")
    assert store.get("token") is None


def test_json_file_store_persists_across_instances(tmp_path) -> None:
    path = tmp_path / "auth" / "credentials.json"

    JsonFileStore(path).set("token", "abc")

    assert JsonFileStore(path).get("token") == "abc"
    assert json.loads(path.read_text(encoding="utf-8")) == {"token": "abc"}


def test_json_file_store_keeps_other_keys(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "credentials.json")
    store.set("token", "abc")
    store.set("user", '{"name": "Sara"}')

    store.remove("token")

    assert store.get("token") is None
    assert store.get("user") == '{"name": "Sara"}'


def test_json_file_store_is_owner_only(tmp_path) -> None:
    path = tmp_path / "credentials.json"
    JsonFileStore(path).set("token", "abc")

    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_json_file_store_reads_corrupt_file_as_empty(tmp_path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("{oops", encoding="utf-8")
    store = JsonFileStore(path)

    assert store.get("token") is None
    store.set("token", "abc")
    assert store.get("token") == "abc"


def test_json_file_store_missing_file(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "nothing.json")

    assert store.get("token") is None
    store.remove("token")
    assert not (tmp_path / "nothing.json").exists()


def test_json_file_store_default_path_uses_data_dir(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("TRIPDESK_HOME", str(tmp_path))

    store = JsonFileStore()

    assert store.path == tmp_path / "auth" / "credentials.json"
