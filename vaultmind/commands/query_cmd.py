"""Query commands - search notes, list tasks and goals."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..engines import GoalEngine, TaskEngine, TaskFilter
from ..indexer import VaultIndexer
from . import open_indexer

PRIORITY_STYLE = {"high": "red", "medium": "yellow", "low": "dim"}


def _loaded_indexer(vault_path: Path) -> VaultIndexer:
    indexer, _ = open_indexer(vault_path)
    asyncio.run(indexer.initialize())
    return indexer


def run_search(vault_path: Path, query: str, *, output_json: bool = False) -> int:
    """Search notes; returns 1 when nothing matched."""
    console = Console()
    indexer = _loaded_indexer(vault_path)
    results = indexer.search(query)

    if output_json:
        payload = [
            {"path": note.path, "title": note.title, "score": indexer.relevance(note, query.lower().strip())}
            for note in results
        ]
        console.out(json.dumps(payload), highlight=False)
        return 0 if results else 1

    if not results:
        console.print(f"[dim]No notes match {escape(repr(query))}.[/dim]")
        return 1

    table = Table(title=f"Search: {escape(query)}")
    table.add_column("Score", justify="right")
    table.add_column("Note", style="bold")
    table.add_column("Tags")
    for note in results:
        table.add_row(
            str(indexer.relevance(note, query.lower().strip())),
            escape(note.path),
            ", ".join(note.tags),
        )
    console.print(table)
    return 0


def run_tasks(
    vault_path: Path,
    *,
    completed: bool | None = None,
    priority: str | None = None,
    tags: list[str] | None = None,
    output_json: bool = False,
) -> int:
    console = Console()
    indexer = _loaded_indexer(vault_path)
    task_filter = TaskFilter(completed=completed, priority=priority, tags=list(tags or []))
    tasks = sorted(TaskEngine(indexer).get_tasks(task_filter), key=lambda t: (t.path, t.line))

    if output_json:
        console.out(json.dumps([t.to_dict() for t in tasks]), highlight=False)
        return 0

    if not tasks:
        console.print("[dim]No tasks found.[/dim]")
        return 0

    table = Table(title=f"Tasks ({len(tasks)})")
    table.add_column("", width=3)
    table.add_column("Task")
    table.add_column("Due")
    table.add_column("Priority")
    table.add_column("Source", style="dim")
    for task in tasks:
        priority_cell = task.priority or ""
        if task.priority:
            priority_cell = f"[{PRIORITY_STYLE[task.priority]}]{task.priority}[/{PRIORITY_STYLE[task.priority]}]"
        table.add_row(
            "[green]x[/green]" if task.completed else "[ ]",
            escape(task.content),
            task.due_date.isoformat() if task.due_date else "",
            priority_cell,
            f"{task.path}:{task.line}",
        )
    console.print(table, highlight=False)
    return 0


def run_goals(vault_path: Path, *, output_json: bool = False) -> int:
    console = Console()
    indexer = _loaded_indexer(vault_path)
    goals = asyncio.run(GoalEngine(indexer).scan_goals())

    if output_json:
        console.out(json.dumps([g.to_dict() for g in goals]), highlight=False)
        return 0

    if not goals:
        console.print("[dim]No goals found.[/dim]")
        return 0

    table = Table(title=f"Goals ({len(goals)})")
    table.add_column("Goal", style="bold")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Milestones", justify="right")
    table.add_column("Source", style="dim")
    for goal in goals:
        done = sum(1 for m in goal.milestones if m.completed)
        table.add_row(
            escape(goal.title),
            goal.status,
            f"{goal.progress}%",
            f"{done}/{len(goal.milestones)}" if goal.milestones else "",
            goal.path,
        )
    console.print(table)
    return 0
