"""
Vault indexer: builds and maintains the in-memory index of notes, tasks and goals.

Lifecycle:
- initialize() loads the last snapshot and rebuilds when missing or outdated
- index_vault() rebuilds everything, in batches, one rebuild at a time
- update_index() schedules a debounced re-index of one document
- remove_from_index() / rename() keep the index in step with the vault

Every mutation ends with a snapshot write. A failed write is logged and the
in-memory index is kept; save_index() surfaces the failure to callers that
need it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Callable

from .config import IndexerConfig
from .coordinator import UpdateCoordinator
from .errors import IndexingError, StorageError
from .models import Goal, IndexedNote, VaultIndex, utcnow
from .persistence import IndexPersistence, deserialize_index, snapshot_timestamp
from .storage import KeyValueStore
from .vault.documents import Document, DocumentMetadata, DocumentSource, parse_frontmatter
from .vault.goals import parse_goals
from .vault.parser import count_words
from .vault.tasks import extract_tasks

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 50


def _dedupe(values) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


def collect_tags(metadata: DocumentMetadata | None) -> list[str]:
    """Inline tags plus front-matter `tags` (list or comma-separated string)."""
    if metadata is None:
        return []
    tags = [t.lstrip("#") for t in metadata.tags]

    fm_tags = metadata.frontmatter.get("tags")
    if isinstance(fm_tags, list):
        tags.extend(str(t).lstrip("#") for t in fm_tags if t is not None)
    elif isinstance(fm_tags, str):
        tags.extend(t.strip().lstrip("#") for t in fm_tags.split(","))

    return _dedupe(tags)


def collect_links(metadata: DocumentMetadata | None) -> list[str]:
    if metadata is None:
        return []
    return _dedupe([*metadata.links, *metadata.embeds])


class VaultIndexer:
    """Owns the VaultIndex and every operation that mutates or ranks it."""

    def __init__(
        self,
        source: DocumentSource,
        store: KeyValueStore,
        config: IndexerConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.source = source
        self.config = config or IndexerConfig()
        self.persistence = IndexPersistence(store)
        self.clock = clock
        self.index = VaultIndex(last_indexed=clock())
        self.updates = UpdateCoordinator(self, delay=self.config.debounce_seconds)
        self._indexing = False

    @property
    def indexing(self) -> bool:
        return self._indexing

    async def initialize(self) -> VaultIndex:
        """Load the stored snapshot; rebuild if there is none or it is outdated."""
        raw = await self.persistence.load_raw()
        if raw is not None:
            self.index = deserialize_index(raw)
            logger.debug(f"Loaded index snapshot: {len(self.index.notes)} notes, {len(self.index.tasks)} tasks")

        # A snapshot without a usable timestamp cannot be trusted as fresh
        if raw is None or snapshot_timestamp(raw) is None or self.is_index_outdated():
            await self.index_vault()
        return self.index

    # ------------------------------------------------------------------
    # Full rebuild
    # ------------------------------------------------------------------

    async def index_vault(self) -> VaultIndex:
        """Rebuild the index from every document in the vault.

        A call made while a rebuild is already running returns the current
        index immediately; it neither waits nor queues.
        """
        if self._indexing:
            logger.debug("Indexing already in progress")
            return self.index

        self._indexing = True
        started = time.monotonic()
        try:
            logger.debug("Starting vault indexing")
            self.index.notes.clear()
            self.index.tasks.clear()

            documents = await self.source.list_documents()
            total = len(documents)
            processed = 0
            size = self.config.batch_size

            for start in range(0, total, size):
                batch = documents[start : start + size]
                pending = [asyncio.ensure_future(self._index_in_rebuild(doc)) for doc in batch]
                try:
                    await asyncio.gather(*pending)
                except BaseException:
                    # Siblings of a failed document must not write into the index afterwards
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    raise

                processed += len(batch)
                if processed % PROGRESS_EVERY == 0 or processed == total:
                    logger.debug(f"Indexed {processed}/{total} files")

            self.index.last_indexed = self.clock()
            self.sweep_stale_goals({doc.path for doc in documents})
            await self._persist()

            elapsed = (time.monotonic() - started) * 1000
            logger.info(
                f"Indexed {len(self.index.notes)} notes, {len(self.index.tasks)} tasks, "
                f"{len(self.index.goals)} goals in {elapsed:.0f}ms"
            )
            return self.index
        except IndexingError:
            raise
        except Exception as e:
            logger.error(f"Indexing failed: {e}")
            raise IndexingError("Failed to index vault", cause=e) from e
        finally:
            self._indexing = False

    async def _index_in_rebuild(self, document: Document) -> IndexedNote | None:
        if self.config.fail_fast:
            return await self.index_file(document)
        try:
            return await self.index_file(document)
        except Exception as e:
            logger.warning(f"Skipping {document.path}: {e}")
            return None

    def sweep_stale_goals(self, existing_paths: set[str]) -> list[str]:
        """Drop goals whose source document is gone. Returns the removed ids."""
        stale = [gid for gid, goal in self.index.goals.items() if goal.path not in existing_paths]
        for gid in stale:
            goal = self.index.goals.pop(gid)
            logger.debug(f"Removing stale goal {goal.title!r}: source not found: {goal.path}")
        return stale

    # ------------------------------------------------------------------
    # Single documents
    # ------------------------------------------------------------------

    async def index_file(self, document: Document) -> IndexedNote:
        """Parse one document and upsert its note, tasks and goals.

        Task ids from a previous version of the document are not removed here;
        use refresh_file() for documents that may already be indexed.
        """
        content, metadata = await self.source.read_with_metadata(document)
        frontmatter = metadata.frontmatter if metadata else parse_frontmatter(content)

        tasks = extract_tasks(content, document, metadata.list_items if metadata else None)
        goals = parse_goals(document, content, frontmatter)

        note = IndexedNote(
            path=document.path,
            title=document.basename,
            content=content[: self.config.excerpt_length],
            frontmatter=frontmatter,
            last_modified=document.mtime,
            word_count=count_words(content),
            tasks=[task.id for task in tasks],
            tags=collect_tags(metadata),
            links=collect_links(metadata),
        )

        self.index.notes[document.path] = note
        for task in tasks:
            self.index.tasks[task.id] = task
        for goal in goals:
            self.index.goals[goal.id] = goal
        return note

    def _forget_tasks(self, path: str) -> IndexedNote | None:
        note = self.index.notes.get(path)
        if note is not None:
            for task_id in note.tasks:
                self.index.tasks.pop(task_id, None)
        return note

    def _forget_goals(self, path: str) -> list[Goal]:
        goals = self.index.goals_for(path)
        for goal in goals:
            del self.index.goals[goal.id]
        return goals

    async def refresh_file(self, document: Document) -> IndexedNote:
        """Re-index a document that may already be indexed, then persist.

        Old task ids (and goals) of the document are removed first so edits
        never leave orphans behind.
        """
        logger.debug(f"Updating index for {document.path}")
        self._forget_tasks(document.path)
        self._forget_goals(document.path)
        note = await self.index_file(document)
        await self._persist()
        return note

    def update_index(self, document: Document) -> None:
        """Debounced refresh_file(); fire-and-forget. Must run inside the event loop."""
        self.updates.schedule_update(document)

    async def remove_from_index(self, path: str) -> bool:
        """Remove a note and its tasks. Goals stay until the next rebuild's sweep.

        Returns False when the path was not indexed.
        """
        self.updates.cancel(path)
        note = self._forget_tasks(path)
        if note is None:
            return False
        del self.index.notes[path]
        await self._persist()
        logger.debug(f"Removed {path} from index")
        return True

    async def rename(self, document: Document, old_path: str) -> IndexedNote:
        """Move a document's entries from old_path to document.path.

        Removal runs before indexing. Task and goal ids are recomputed for the
        new path; nothing keyed to old_path survives.
        """
        self.updates.cancel(old_path)
        self._forget_goals(old_path)
        await self.remove_from_index(old_path)
        self._forget_tasks(document.path)
        note = await self.index_file(document)
        await self._persist()
        return note

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_index(self) -> VaultIndex:
        return self.index

    def relevance(self, note: IndexedNote, query: str, now: datetime | None = None) -> int:
        """Score a note for a lowercased query."""
        cfg = self.config
        now = now or self.clock()
        score = 0

        if query in note.title.lower():
            score += cfg.title_weight

        if any(query in tag.lower() for tag in note.tags):
            score += cfg.tag_weight

        score += note.content.lower().count(query) * cfg.content_weight

        if now - note.last_modified < timedelta(days=cfg.recency_days):
            score += cfg.recency_bonus

        return score

    def search(self, query: str) -> list[IndexedNote]:
        """Case-insensitive substring search over title, excerpt and tags.

        Results are ordered by relevance (ties keep index order) and capped at
        search_limit.
        """
        needle = query.lower().strip()
        if not needle:
            return []

        now = self.clock()
        scored = []
        for note in self.index.notes.values():
            haystack = f"{note.title} {note.content} {' '.join(note.tags)}".lower()
            if needle in haystack:
                scored.append((self.relevance(note, needle, now), note))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [note for _, note in scored[: self.config.search_limit]]

    def is_index_outdated(self, now: datetime | None = None) -> bool:
        now = now or self.clock()
        return now - self.index.last_indexed > timedelta(hours=self.config.stale_after_hours)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save_index(self) -> None:
        """Write a snapshot; raises StorageError on failure."""
        await self.persistence.save(self.index)

    async def _persist(self) -> bool:
        try:
            await self.save_index()
        except StorageError as e:
            logger.error(f"Failed to save index: {e}")
            return False
        return True
