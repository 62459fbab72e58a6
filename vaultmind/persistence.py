"""
Snapshot serialization for the vault index.

Snapshot shape (stored under the "vault-index" key):

    {
        "notes": [[path, note], ...],
        "tasks": [[task_id, task], ...],
        "goals": [[goal_id, goal], ...],
        "lastIndexed": "2024-05-01T12:00:00+00:00",
        "version": 2
    }

Maps become ordered [key, value] pair lists so any JSON-capable store can hold
them. Loading is lenient: malformed entries are skipped and missing fields fall
back to their defaults instead of failing the whole load.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, TypeVar

from .models import FORMAT_VERSION, Goal, IndexedNote, Task, VaultIndex, parse_datetime, utcnow
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

INDEX_KEY = "vault-index"

# Keys written by v1 snapshots that hold runtime-only data
_LEGACY_NOTE_KEYS = ("file", "backlinks", "embeddingVector", "embeddings")

T = TypeVar("T")


def serialize_index(index: VaultIndex) -> dict[str, Any]:
    """Convert the index to JSON-safe data."""
    return {
        "notes": [[path, note.to_dict()] for path, note in index.notes.items()],
        "tasks": [[task_id, task.to_dict()] for task_id, task in index.tasks.items()],
        "goals": [[goal_id, goal.to_dict()] for goal_id, goal in index.goals.items()],
        "lastIndexed": index.last_indexed.isoformat(),
        "version": FORMAT_VERSION,
    }


def _pairs(data: dict[str, Any], name: str) -> list[tuple[str, dict[str, Any]]]:
    raw = data.get(name)
    if isinstance(raw, dict):
        raw = list(raw.items())
    if not isinstance(raw, list):
        return []

    pairs = []
    for entry in raw:
        if isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[1], dict):
            pairs.append((str(entry[0]), entry[1]))
        else:
            logger.warning(f"Skipping malformed {name} entry in snapshot")
    return pairs


def _load_entries(pairs: list[tuple[str, dict[str, Any]]], build: Callable[[str, dict[str, Any]], T]) -> dict[str, T]:
    result: dict[str, T] = {}
    for key, value in pairs:
        try:
            result[key] = build(key, value)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping unreadable snapshot entry {key}: {e}")
    return result


def migrate_note(raw: dict[str, Any], tasks: dict[str, Task]) -> dict[str, Any]:
    """Normalize a note entry from any snapshot version to the current shape.

    v1 notes could carry a set of task ids or a list of inline task objects;
    inline tasks are hoisted into the task map and replaced by their ids.
    """
    note = {k: v for k, v in raw.items() if k not in _LEGACY_NOTE_KEYS}
    refs = note.get("tasks")
    if not isinstance(refs, list):
        note["tasks"] = []
        return note

    ids = []
    for ref in refs:
        if isinstance(ref, dict):
            task = Task.from_dict(ref)
            if not task.id:
                continue
            tasks.setdefault(task.id, task)
            ids.append(task.id)
        elif isinstance(ref, str):
            ids.append(ref)
    note["tasks"] = list(dict.fromkeys(ids))
    return note


def deserialize_index(data: Any) -> VaultIndex:
    """Rebuild an index from snapshot data written by any format version."""
    if not isinstance(data, dict):
        logger.warning("Snapshot is not a mapping; starting from an empty index")
        return VaultIndex()

    version = data.get("version")
    if not isinstance(version, int) or version <= 0:
        version = 1

    tasks = _load_entries(_pairs(data, "tasks"), lambda key, raw: Task.from_dict({"id": key, **raw}))
    notes = _load_entries(
        _pairs(data, "notes"),
        lambda key, raw: IndexedNote.from_dict(migrate_note(raw, tasks), path=key),
    )
    goals = _load_entries(_pairs(data, "goals"), lambda key, raw: Goal.from_dict({"id": key, **raw}))

    if version < FORMAT_VERSION:
        logger.info(f"Migrated index snapshot from version {version} to {FORMAT_VERSION}")

    return VaultIndex(
        notes=notes,
        tasks=tasks,
        goals=goals,
        last_indexed=snapshot_timestamp(data) or utcnow(),
        version=FORMAT_VERSION,
    )


def snapshot_timestamp(data: Any) -> datetime | None:
    """The snapshot's lastIndexed time, None when missing or unparseable."""
    if not isinstance(data, dict):
        return None
    return parse_datetime(data.get("lastIndexed"))


class IndexPersistence:
    """Saves and loads index snapshots through a key/value store.

    Saves are serialized: each one snapshots the index and finishes its write
    before the next starts, so writes land in call order.
    """

    def __init__(self, store: KeyValueStore, key: str = INDEX_KEY):
        self.store = store
        self.key = key
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def _write_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to one loop; CLI commands may run several in turn
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def load_raw(self) -> Any | None:
        return await asyncio.to_thread(self.store.get, self.key)

    async def load(self) -> VaultIndex | None:
        data = await self.load_raw()
        if data is None:
            return None
        return deserialize_index(data)

    async def save(self, index: VaultIndex) -> None:
        """Write a snapshot. Raises StorageError if the store gives up."""
        async with self._write_lock():
            snapshot = serialize_index(index)
            await asyncio.to_thread(self.store.set, self.key, snapshot)

    async def delete(self) -> None:
        async with self._write_lock():
            await asyncio.to_thread(self.store.delete, self.key)
