"""Document references and the filesystem-backed vault they come from."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Protocol, runtime_checkable

import frontmatter
import yaml

from .parser import ListItem, extract_embeds, extract_links, extract_tags, scan_list_items

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A reference to one document in the vault. Holds no content."""

    path: str  # vault-relative, forward slashes
    ctime: datetime
    mtime: datetime

    @property
    def basename(self) -> str:
        return PurePosixPath(self.path).stem

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lstrip(".").lower()


@dataclass
class DocumentMetadata:
    """Side-channel metadata computed from a document alongside its raw text."""

    frontmatter: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)  # inline tags, no leading '#'
    links: list[str] = field(default_factory=list)
    embeds: list[str] = field(default_factory=list)
    list_items: list[ListItem] = field(default_factory=list)


@runtime_checkable
class DocumentSource(Protocol):
    """The host document store the indexer reads from."""

    async def list_documents(self) -> list[Document]: ...

    async def read(self, document: Document) -> str: ...

    async def get_metadata(self, document: Document) -> DocumentMetadata | None: ...

    async def read_with_metadata(self, document: Document) -> tuple[str, DocumentMetadata | None]: ...

    async def get(self, path: str) -> Document | None: ...

    async def exists(self, path: str) -> bool: ...


def parse_frontmatter(text: str) -> dict[str, Any]:
    """Front-matter as a dict; malformed YAML yields an empty map."""
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        logger.warning(f"Ignoring malformed front-matter: {e}")
        return {}
    metadata = post.metadata
    return metadata if isinstance(metadata, dict) else {}


def build_metadata(text: str) -> DocumentMetadata:
    """Compute the side channel for a document's text."""
    return DocumentMetadata(
        frontmatter=parse_frontmatter(text),
        tags=extract_tags(text),
        links=extract_links(text),
        embeds=extract_embeds(text),
        list_items=scan_list_items(text),
    )


def _birth_time(stat) -> float:
    # st_birthtime is only reported on some platforms; st_ctime is the fallback
    return getattr(stat, "st_birthtime", None) or stat.st_ctime


class FileSystemVault:
    """Markdown files under a directory, served as a DocumentSource.

    Hidden files and directories (names starting with '.') are skipped,
    which also keeps the index state directory out of the vault.
    """

    EXTENSIONS = {".md"}

    def __init__(self, root: Path):
        self.root = root.resolve()

    def _is_relevant(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return False
        if any(part.startswith(".") for part in rel.parts):
            return False
        return path.suffix.lower() in self.EXTENSIONS

    def relative(self, path: Path | str) -> str:
        """Vault-relative POSIX path for an absolute or relative filesystem path."""
        p = Path(path)
        if p.is_absolute():
            p = p.resolve().relative_to(self.root)
        return p.as_posix()

    def absolute(self, rel_path: str) -> Path:
        return self.root / PurePosixPath(rel_path)

    def _document(self, path: Path) -> Document:
        stat = path.stat()
        return Document(
            path=path.relative_to(self.root).as_posix(),
            ctime=datetime.fromtimestamp(_birth_time(stat), tz=timezone.utc),
            mtime=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def _scan(self) -> list[Document]:
        documents = []
        for md_file in sorted(self.root.rglob("*.md")):
            if md_file.is_file() and self._is_relevant(md_file):
                documents.append(self._document(md_file))
        return documents

    def document_for(self, path: Path | str) -> Document | None:
        """Synchronous lookup, for callers outside the event loop (the watcher)."""
        p = Path(path).resolve() if Path(path).is_absolute() else self.absolute(str(path))
        if not p.is_file() or not self._is_relevant(p):
            return None
        return self._document(p)

    async def list_documents(self) -> list[Document]:
        return await asyncio.to_thread(self._scan)

    async def read(self, document: Document) -> str:
        return await asyncio.to_thread(self.absolute(document.path).read_text, encoding="utf-8")

    async def get_metadata(self, document: Document) -> DocumentMetadata | None:
        text = await self.read(document)
        return build_metadata(text)

    async def read_with_metadata(self, document: Document) -> tuple[str, DocumentMetadata | None]:
        """Raw text and its metadata from a single read."""
        text = await self.read(document)
        return text, build_metadata(text)

    async def get(self, path: str) -> Document | None:
        return await asyncio.to_thread(self.document_for, path)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.absolute(path).is_file)
