"""CLI command implementations."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from ..config import IndexerConfig, load_config
from ..indexer import VaultIndexer
from ..storage import JsonFileStore
from ..vault.documents import FileSystemVault


def open_indexer(vault_path: Path, *, keep_going: bool = False) -> tuple[VaultIndexer, FileSystemVault]:
    """Wire an indexer to a vault directory and its state directory."""
    config: IndexerConfig = load_config(vault_path)
    if keep_going:
        config = replace(config, fail_fast=False)

    vault = FileSystemVault(vault_path)
    store = JsonFileStore(vault.root / config.state_dir, prefix=config.storage_prefix)
    return VaultIndexer(vault, store, config), vault
