"""Tests for namespaced key/value stores."""

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from vaultmind.errors import ErrorCodes, StorageError
from vaultmind.storage import JsonFileStore, MemoryStore


def test_memory_store_roundtrip():
    store = MemoryStore()
    store.set("k", {"a": [1, 2]})

    assert store.get("k") == {"a": [1, 2]}
    assert store.get("missing") is None
    assert store.keys() == ["k"]

    store.delete("k")
    assert store.get("k") is None


def test_clear_only_touches_own_prefix():
    store = MemoryStore(prefix="vaultmind_")
    store._data["other_key"] = "1"
    store.set("a", 1)
    store.set("b", 2)

    store.clear()

    assert store.keys() == []
    assert store._data == {"other_key": "1"}


def test_cache_entries_expire():
    store = MemoryStore()
    store.set_cache("fresh", "value", ttl_seconds=3600)
    store.set_cache("forever", "value")
    store.set("cache_stale", {"data": "old", "timestamp": 0, "ttl": 1})

    assert store.get_cache("fresh") == "value"
    assert store.get_cache("forever") == "value"
    assert store.get_cache("stale") is None
    assert "cache_stale" not in store.keys()


def test_cleanup_removes_expired_and_corrupt_entries():
    store = MemoryStore()
    store.set("cache_old", {"data": "x", "timestamp": 0, "ttl": 1})
    store.set("cache_corrupt", "not an entry")
    store.set_cache("live", "y", ttl_seconds=3600)
    store.set("vault-index", {"notes": []})

    assert store.cleanup() == 2
    assert store.keys() == ["cache_live", "vault-index"]


def test_write_retries_after_cleanup():
    """A write over quota succeeds once expired cache entries are cleared."""
    store = MemoryStore(quota_bytes=250)
    store.set("cache_old", {"data": "x" * 100, "timestamp": 0, "ttl": 1})
    payload = {"data": "y" * 120}

    store.set("vault-index", payload)

    assert store.get("vault-index") == payload
    assert "cache_old" not in store.keys()


def test_write_raises_storage_error_when_still_full():
    store = MemoryStore(quota_bytes=100)

    with pytest.raises(StorageError) as exc_info:
        store.set("vault-index", {"data": "z" * 200})

    assert exc_info.value.code == ErrorCodes.STORAGE_ERROR
    assert isinstance(exc_info.value.cause, OSError)
    assert store.get("vault-index") is None


def test_json_file_store_layout(tmp_path: Path):
    state = tmp_path / ".vaultmind"
    store = JsonFileStore(state, prefix="vaultmind_")

    store.set("vault-index", {"version": 2})

    path = state / "vaultmind_vault-index.json"
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == {"version": 2}
    assert not list(state.glob("*.tmp"))

    # A fresh instance reads from disk rather than memory
    assert JsonFileStore(state).get("vault-index") == {"version": 2}
    assert store.keys() == ["vault-index"]


def test_json_file_store_prefixes_do_not_collide(tmp_path: Path):
    first = JsonFileStore(tmp_path, prefix="one_")
    second = JsonFileStore(tmp_path, prefix="two_")
    first.set("k", 1)
    second.set("k", 2)

    first.clear()

    assert JsonFileStore(tmp_path, prefix="one_").get("k") is None
    assert JsonFileStore(tmp_path, prefix="two_").get("k") == 2


def test_unreadable_json_is_discarded(tmp_path: Path):
    (tmp_path / "vaultmind_broken.json").write_text("{not json", encoding="utf-8")

    assert JsonFileStore(tmp_path).get("broken") is None


def test_json_file_store_on_missing_directory(tmp_path: Path):
    store = JsonFileStore(tmp_path / "nope")
    assert store.get("anything") is None
    assert store.keys() == []


def test_concurrent_writes_to_one_key_leave_a_whole_file(tmp_path: Path):
    store = JsonFileStore(tmp_path)
    payloads = [{"writer": n, "data": "x" * 2000} for n in range(16)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda payload: store.set("vault-index", payload), payloads))

    written = json.loads((tmp_path / "vaultmind_vault-index.json").read_text(encoding="utf-8"))
    assert written in payloads
    assert not list(tmp_path.glob("*.tmp"))
