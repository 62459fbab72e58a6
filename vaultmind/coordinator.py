"""
Routes document change notifications into index operations.

Modifications are debounced per path: each new notification for a path
cancels its pending timer and starts a fresh one, so a burst of saves to the
same document produces a single re-index once the burst is quiet for
`delay` seconds. Creations, deletions and renames apply immediately.

All methods run on the asyncio event loop thread; notifications from other
threads must be handed over with loop.call_soon_threadsafe().
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable

if TYPE_CHECKING:
    from .indexer import VaultIndexer
    from .vault.documents import Document

logger = logging.getLogger(__name__)


class UpdateCoordinator:
    """Per-path debounce timers plus the background tasks they spawn."""

    def __init__(self, indexer: VaultIndexer, delay: float = 1.0):
        self.indexer = indexer
        self.delay = delay
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task] = set()

    @property
    def pending_paths(self) -> list[str]:
        return sorted(self._timers)

    def schedule_update(self, document: Document) -> None:
        """(Re)start the debounce timer for a document."""
        loop = asyncio.get_running_loop()
        self.cancel(document.path)
        self._timers[document.path] = loop.call_later(self.delay, self._fire, document)

    def cancel(self, path: str) -> bool:
        """Drop a pending update. Returns True if one was pending."""
        handle = self._timers.pop(path, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for path in list(self._timers):
            self.cancel(path)

    def _fire(self, document: Document) -> None:
        self._timers.pop(document.path, None)
        self._spawn(self.indexer.refresh_file(document), f"update {document.path}")

    def _spawn(self, work: Awaitable, label: str) -> None:
        task = asyncio.ensure_future(self._guard(work, label))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _guard(self, work: Awaitable, label: str) -> None:
        # Nobody awaits background work, so failures end here
        try:
            await work
        except Exception:
            logger.exception(f"Background {label} failed")

    async def drain(self) -> None:
        """Wait until no timers are pending and no spawned work is running."""
        while self._timers or self._running:
            if self._running:
                await asyncio.gather(*list(self._running), return_exceptions=True)
            else:
                await asyncio.sleep(self.delay / 4 or 0.01)

    # Host notifications ---------------------------------------------------

    def on_created(self, document: Document) -> None:
        self._spawn(self.indexer.refresh_file(document), f"index {document.path}")

    def on_modified(self, document: Document) -> None:
        self.schedule_update(document)

    def on_deleted(self, path: str) -> None:
        self.cancel(path)
        self._spawn(self.indexer.remove_from_index(path), f"remove {path}")

    def on_renamed(self, document: Document, old_path: str) -> None:
        self._spawn(self.indexer.rename(document, old_path), f"rename {old_path} -> {document.path}")
