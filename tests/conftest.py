"""Pytest configuration and fixtures."""

from __future__ import annotations

import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

from vaultmind.config import IndexerConfig
from vaultmind.indexer import VaultIndexer
from vaultmind.storage import MemoryStore
from vaultmind.vault.documents import Document, FileSystemVault

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_document(path: str = "note.md", when: datetime = FIXED_TIME) -> Document:
    """A document reference with fixed timestamps."""
    return Document(path=path, ctime=when, mtime=when)


def write_note(vault_path: Path, rel_path: str, text: str) -> Path:
    """Write a markdown file into a vault, creating folders as needed."""
    path = vault_path / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def fixture_vault_path() -> Path:
    """Path to the sample fixture vault (read-only)."""
    return Path(__file__).parent / "fixtures" / "sample_vault"


@pytest.fixture
def vault_path(tmp_path: Path, fixture_vault_path: Path) -> Path:
    """A writable copy of the sample vault."""
    target = tmp_path / "vault"
    shutil.copytree(fixture_vault_path, target)
    return target


@pytest.fixture
def empty_vault_path(tmp_path: Path) -> Path:
    path = tmp_path / "empty"
    path.mkdir()
    return path


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def config() -> IndexerConfig:
    """Defaults with a short debounce so coordinator tests stay fast."""
    return IndexerConfig(debounce_seconds=0.05)


@pytest.fixture
def indexer(vault_path: Path, store: MemoryStore, config: IndexerConfig) -> VaultIndexer:
    return VaultIndexer(FileSystemVault(vault_path), store, config)


@pytest.fixture
def empty_indexer(empty_vault_path: Path, store: MemoryStore, config: IndexerConfig) -> VaultIndexer:
    return VaultIndexer(FileSystemVault(empty_vault_path), store, config)
