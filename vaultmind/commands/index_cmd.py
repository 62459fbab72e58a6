"""Index command - rebuild the vault index and report on it."""

from __future__ import annotations

import asyncio
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..engines import TaskEngine
from ..indexer import VaultIndexer
from . import open_indexer


def _summary_table(indexer: VaultIndexer, title: str) -> Table:
    index = indexer.get_index()
    stats = TaskEngine(indexer).statistics()

    table = Table(title=title)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Notes", str(len(index.notes)))
    table.add_row("Tasks", str(stats.total))
    table.add_row("  completed", str(stats.completed))
    table.add_row("  overdue", str(stats.overdue))
    table.add_row("  due today", str(stats.due_today))
    table.add_row("Goals", str(len(index.goals)))
    table.add_row("", "")
    table.add_row("Last indexed", index.last_indexed.strftime("%Y-%m-%d %H:%M:%S %Z"))
    table.add_row("Outdated", "yes" if indexer.is_index_outdated() else "no")
    return table


def run_index(vault_path: Path, *, force: bool = False, keep_going: bool = False) -> int:
    """
    Load the stored index and rebuild it if needed (always, with force).

    Returns exit code (0 = success).
    """
    console = Console()
    indexer, _ = open_indexer(vault_path, keep_going=keep_going)

    async def build() -> None:
        await indexer.initialize()
        if force:
            await indexer.index_vault()
        # Surface storage failures here; background saves only log them
        await indexer.save_index()

    asyncio.run(build())
    console.print(_summary_table(indexer, "Vault Index"))
    return 0


def run_status(vault_path: Path) -> int:
    """Report on the stored snapshot without rebuilding it."""
    console = Console()
    indexer, _ = open_indexer(vault_path)

    loaded = asyncio.run(indexer.persistence.load())
    if loaded is None:
        console.print("[dim]No index stored yet. Run 'vaultmind index'.[/dim]")
        return 1

    indexer.index = loaded
    console.print(_summary_table(indexer, "Stored Index"))
    return 0
