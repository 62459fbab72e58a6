"""
File system watcher feeding vault changes into the index.

This module provides:
- Watchdog-based monitoring of markdown files in the vault
- Hand-off of events from the observer thread onto the asyncio loop
- A blocking-until-stopped watch loop for the CLI

Debouncing lives in UpdateCoordinator, not here: every relevant event is
forwarded as it arrives.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .coordinator import UpdateCoordinator
from .indexer import VaultIndexer
from .vault.documents import FileSystemVault

logger = logging.getLogger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """
    Translates watchdog events into UpdateCoordinator notifications.

    Runs on the observer thread; every notification is scheduled onto the
    event loop with call_soon_threadsafe.
    """

    def __init__(self, vault: FileSystemVault, coordinator: UpdateCoordinator, loop: asyncio.AbstractEventLoop):
        super().__init__()
        self.vault = vault
        self.coordinator = coordinator
        self.loop = loop

    def _is_relevant(self, path: str) -> bool:
        """Check if the file is a tracked markdown document."""
        p = Path(path)
        try:
            rel = p.resolve().relative_to(self.vault.root)
        except (ValueError, OSError):
            return False

        # Skip hidden files and directories (the state dir included)
        if any(part.startswith(".") for part in rel.parts):
            return False

        return p.suffix.lower() in FileSystemVault.EXTENSIONS

    def _relative(self, path: str) -> str:
        return Path(path).resolve().relative_to(self.vault.root).as_posix()

    def _post(self, callback, *args) -> None:
        self.loop.call_soon_threadsafe(callback, *args)

    def _post_document(self, path: str, callback) -> None:
        try:
            document = self.vault.document_for(path)
        except OSError as e:
            # Gone again before we could stat it; a delete event follows
            logger.debug(f"Skipping event for {path}: {e}")
            return
        if document is not None:
            self._post(callback, document)

    def on_created(self, event: FileCreatedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._post_document(event.src_path, self.coordinator.on_created)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._post_document(event.src_path, self.coordinator.on_modified)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._post(self.coordinator.on_deleted, self._relative(event.src_path))

    def on_moved(self, event: FileMovedEvent) -> None:
        """Handle file rename/move."""
        if event.is_directory:
            return

        src_relevant = self._is_relevant(event.src_path)
        dest_relevant = self._is_relevant(event.dest_path)

        if src_relevant and dest_relevant:
            document = self.vault.document_for(event.dest_path)
            if document is not None:
                self._post(self.coordinator.on_renamed, document, self._relative(event.src_path))
        elif src_relevant:
            # Moved out of the vault (or renamed away from .md) - treat as delete
            self._post(self.coordinator.on_deleted, self._relative(event.src_path))
        elif dest_relevant:
            # Moved into the vault - treat as create
            self._post_document(event.dest_path, self.coordinator.on_created)


def watch_vault(
    vault: FileSystemVault,
    coordinator: UpdateCoordinator,
    loop: asyncio.AbstractEventLoop,
    recursive: bool = True,
) -> tuple[Observer, VaultEventHandler]:
    """
    Start watching a vault for file system events.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = VaultEventHandler(vault, coordinator, loop)

    observer = Observer()
    observer.schedule(handler, str(vault.root), recursive=recursive)
    observer.start()

    return observer, handler


async def run_watch_loop(
    indexer: VaultIndexer,
    vault: FileSystemVault,
    stop: asyncio.Event | None = None,
) -> None:
    """
    Keep the index current until `stop` is set (or the task is cancelled).

    The stored index is loaded (and rebuilt if stale) before watching starts.
    Pending debounced updates are flushed on the way out.
    """
    loop = asyncio.get_running_loop()
    stop = stop or asyncio.Event()

    await indexer.initialize()
    observer, _ = watch_vault(vault, indexer.updates, loop)
    logger.info(f"Watching {vault.root}")

    try:
        await stop.wait()
    finally:
        observer.stop()
        await asyncio.to_thread(observer.join)
        await indexer.updates.drain()
