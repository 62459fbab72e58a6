"""Tests for the watchdog event bridge."""

import asyncio
from pathlib import Path

import pytest
from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from conftest import write_note

from vaultmind.indexer import VaultIndexer
from vaultmind.vault.documents import FileSystemVault
from vaultmind.watcher import VaultEventHandler, run_watch_loop


class RecordingCoordinator:
    """Stands in for UpdateCoordinator and records what it was told."""

    def __init__(self):
        self.events = []

    def on_created(self, document):
        self.events.append(("created", document.path))

    def on_modified(self, document):
        self.events.append(("modified", document.path))

    def on_deleted(self, path):
        self.events.append(("deleted", path))

    def on_renamed(self, document, old_path):
        self.events.append(("renamed", document.path, old_path))


@pytest.fixture
def vault(vault_path: Path) -> FileSystemVault:
    return FileSystemVault(vault_path)


def _dispatch(vault: FileSystemVault, *events) -> list:
    coordinator = RecordingCoordinator()

    async def scenario():
        handler = VaultEventHandler(vault, coordinator, asyncio.get_running_loop())
        for event in events:
            handler.dispatch(event)
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    return coordinator.events


def test_markdown_changes_are_forwarded(vault: FileSystemVault, vault_path: Path):
    inbox = str(vault_path / "inbox.md")
    write_note(vault_path, "new.md", "new")

    events = _dispatch(
        vault,
        FileModifiedEvent(inbox),
        FileCreatedEvent(str(vault_path / "new.md")),
        FileDeletedEvent(str(vault_path / "gone.md")),
    )

    assert events == [("modified", "inbox.md"), ("created", "new.md"), ("deleted", "gone.md")]


def test_irrelevant_events_are_ignored(vault: FileSystemVault, vault_path: Path):
    write_note(vault_path, "notes.txt", "text")

    events = _dispatch(
        vault,
        FileModifiedEvent(str(vault_path / "notes.txt")),
        FileModifiedEvent(str(vault_path / ".obsidian" / "workspace.md")),
        FileModifiedEvent(str(vault_path / ".vaultmind" / "vaultmind_vault-index.json")),
        DirModifiedEvent(str(vault_path / "projects")),
        # Vanished before it could be read
        FileCreatedEvent(str(vault_path / "ghost.md")),
    )

    assert events == []


def test_moves(vault: FileSystemVault, vault_path: Path):
    (vault_path / "inbox.md").rename(vault_path / "todo.md")
    (vault_path / "reading-list.md").rename(vault_path / "reading-list.txt")
    write_note(vault_path, "imported.md", "from outside")

    events = _dispatch(
        vault,
        FileMovedEvent(str(vault_path / "inbox.md"), str(vault_path / "todo.md")),
        FileMovedEvent(str(vault_path / "reading-list.md"), str(vault_path / "reading-list.txt")),
        FileMovedEvent(str(vault_path / "imported.txt"), str(vault_path / "imported.md")),
    )

    assert events == [
        ("renamed", "todo.md", "inbox.md"),
        ("deleted", "reading-list.md"),
        ("created", "imported.md"),
    ]


def test_run_watch_loop_initializes_and_stops(indexer: VaultIndexer):
    async def scenario():
        stop = asyncio.Event()
        watching = asyncio.create_task(run_watch_loop(indexer, indexer.source, stop))

        for _ in range(200):
            if indexer.get_index().notes:
                break
            await asyncio.sleep(0.05)

        stop.set()
        await asyncio.wait_for(watching, timeout=10)

    asyncio.run(scenario())

    assert len(indexer.get_index().notes) == 4
    assert indexer.updates.pending_paths == []
