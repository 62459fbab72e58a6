"""
Namespaced key/value storage for index snapshots and cached data.

Values are JSON documents. Every key is stored under a prefix so several
indexes (or tools) can share one backing directory without colliding.

Writes that fail (disk full, quota exceeded) are retried once after expired
cache entries are cleaned up; a second failure raises StorageError.
"""

from __future__ import annotations

import errno
import json
import logging
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .errors import StorageError

logger = logging.getLogger(__name__)

CACHE_PREFIX = "cache_"


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class NamespacedStore(ABC):
    """
    Base for stores: prefixing, a read-through memory cache, TTL cache entries
    and the cleanup-and-retry write policy.

    Subclasses only move serialized text in and out of the backing medium.
    """

    def __init__(self, prefix: str = "vaultmind_"):
        self.prefix = prefix
        self._memory: dict[str, Any] = {}

    # Backing medium -----------------------------------------------------

    @abstractmethod
    def _read(self, storage_key: str) -> str | None: ...

    @abstractmethod
    def _write(self, storage_key: str, text: str) -> None: ...

    @abstractmethod
    def _remove(self, storage_key: str) -> None: ...

    @abstractmethod
    def _keys(self) -> list[str]: ...

    # Public API ---------------------------------------------------------

    def storage_key(self, key: str) -> str:
        return self.prefix + key

    def get(self, key: str) -> Any | None:
        if key in self._memory:
            return self._memory[key]

        text = self._read(self.storage_key(key))
        if text is None:
            return None
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Discarding unreadable value for {key}: {e}")
            return None
        self._memory[key] = value
        return value

    def set(self, key: str, value: Any) -> None:
        text = json.dumps(value, ensure_ascii=False)
        storage_key = self.storage_key(key)
        try:
            self._write(storage_key, text)
        except OSError as first:
            logger.warning(f"Write of {key} failed ({first}); cleaning up and retrying")
            self.cleanup()
            try:
                self._write(storage_key, text)
            except OSError as e:
                raise StorageError(f"Failed to store {key}", cause=e) from e
        self._memory[key] = value

    def delete(self, key: str) -> None:
        self._memory.pop(key, None)
        self._remove(self.storage_key(key))

    def clear(self) -> None:
        """Remove every key under this store's prefix."""
        self._memory.clear()
        for storage_key in self._keys():
            self._remove(storage_key)
        logger.debug("Storage cleared")

    def keys(self) -> list[str]:
        return sorted(k[len(self.prefix) :] for k in self._keys())

    # Cache entries --------------------------------------------------------

    def set_cache(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        self.set(
            CACHE_PREFIX + key,
            {"data": value, "timestamp": time.time(), "ttl": ttl_seconds},
        )

    def get_cache(self, key: str) -> Any | None:
        entry = self.get(CACHE_PREFIX + key)
        if not isinstance(entry, dict):
            return None
        if self._expired(entry, time.time()):
            self.delete(CACHE_PREFIX + key)
            return None
        return entry.get("data")

    def delete_cache(self, key: str) -> None:
        self.delete(CACHE_PREFIX + key)

    @staticmethod
    def _expired(entry: Any, now: float) -> bool:
        try:
            ttl = entry.get("ttl")
            return bool(ttl) and now > float(entry["timestamp"]) + float(ttl)
        except (AttributeError, KeyError, TypeError, ValueError):
            # Corrupt entries count as expired
            return True

    def cleanup(self) -> int:
        """Delete expired cache entries. Returns how many were removed."""
        now = time.time()
        removed = 0
        for key in self.keys():
            if not key.startswith(CACHE_PREFIX):
                continue
            if self._expired(self.get(key), now):
                self.delete(key)
                removed += 1
        if removed:
            logger.debug(f"Cleaned up {removed} expired cache entries")
        return removed

    def size(self) -> int:
        """Approximate stored size in characters."""
        total = 0
        for storage_key in self._keys():
            total += len(storage_key) + len(self._read(storage_key) or "")
        return total


class MemoryStore(NamespacedStore):
    """In-process store. An optional quota makes oversized writes fail like a full disk."""

    def __init__(self, prefix: str = "vaultmind_", quota_bytes: int | None = None):
        super().__init__(prefix)
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def _read(self, storage_key: str) -> str | None:
        return self._data.get(storage_key)

    def _write(self, storage_key: str, text: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(k) + len(v) for k, v in self._data.items() if k != storage_key)
            if used + len(storage_key) + len(text) > self.quota_bytes:
                raise OSError(errno.ENOSPC, "storage quota exceeded")
        self._data[storage_key] = text

    def _remove(self, storage_key: str) -> None:
        self._data.pop(storage_key, None)

    def _keys(self) -> list[str]:
        return [k for k in self._data if k.startswith(self.prefix)]


class JsonFileStore(NamespacedStore):
    """
    One JSON file per key inside a directory:

        .vaultmind/vaultmind_vault-index.json

    Files are written to a temp file first and renamed into place.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path, prefix: str = "vaultmind_"):
        super().__init__(prefix)
        self.directory = directory

    def _path(self, storage_key: str) -> Path:
        return self.directory / f"{storage_key}{self.SUFFIX}"

    def _read(self, storage_key: str) -> str | None:
        path = self._path(storage_key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, storage_key: str, text: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(storage_key)
        temp_path: Path | None = None
        try:
            # A temp file per write, so concurrent writers never share one
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.directory,
                prefix=f".{storage_key}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as f:
                temp_path = Path(f.name)
                f.write(text)
            temp_path.replace(path)
        except OSError:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise

    def _remove(self, storage_key: str) -> None:
        self._path(storage_key).unlink(missing_ok=True)

    def _keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return [
            p.name[: -len(self.SUFFIX)]
            for p in self.directory.glob(f"{self.prefix}*{self.SUFFIX}")
            if p.is_file()
        ]
