"""Watch command - keep the index current while the vault changes."""

from __future__ import annotations

import asyncio
from pathlib import Path

from rich.console import Console

from ..watcher import run_watch_loop
from . import open_indexer


def run_watch(vault_path: Path, *, keep_going: bool = False) -> None:
    """
    Watch the vault and update the index as files change.

    This is a blocking command that runs until interrupted (Ctrl+C).
    The index is stored in the vault's state directory.
    """
    console = Console(stderr=True)
    indexer, vault = open_indexer(vault_path, keep_going=keep_going)

    console.print(f"[bold]Watching[/bold] {vault.root}")
    console.print(f"  Debounce: {indexer.config.debounce_seconds:g}s")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    try:
        asyncio.run(run_watch_loop(indexer, vault))
    except KeyboardInterrupt:
        console.print()

    index = indexer.get_index()
    console.print(
        f"[bold]Stopped.[/bold] {len(index.notes)} notes, {len(index.tasks)} tasks, {len(index.goals)} goals indexed."
    )
