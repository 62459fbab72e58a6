"""Task extraction from checkbox lines.

Supported inline metadata, checked in this order:

    - [ ] Ship release 📅 2024-05-01 ⏫ #work ⏱ 2h
    - [ ] Ship release due:: 2024-05-01 priority:: high #work time:: 120m

Every recognized marker is removed from the display text.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Iterable

from ..models import Task
from .parser import ListItem

if TYPE_CHECKING:
    from .documents import Document

CHECKBOX_PATTERN = re.compile(r"^\s*[-*+]\s+\[([ xX])\]\s+(.*)$")
# Any status character; used for list items reported through metadata
ANY_CHECKBOX_PATTERN = re.compile(r"^\s*[-*+]\s+\[.\]\s+(.*)$")

DUE_DATE_PATTERN = re.compile(r"(?:\U0001F4C5|\U0001F5D3\uFE0F?|due::)\s*(\d{4}-\d{2}-\d{2})", re.IGNORECASE)
PRIORITY_EMOJI = {
    "\u23eb": "high",  # ⏫
    "\U0001F53C": "medium",  # 🔼
    "\U0001F53D": "low",  # 🔽
}
PRIORITY_TEXT_PATTERN = re.compile(r"priority::\s*(high|medium|low)", re.IGNORECASE)
TAG_PATTERN = re.compile(r"(?<![\w#&])#([A-Za-z0-9_][\w/-]*)")
ESTIMATE_PATTERN = re.compile(r"(?:\u23f1\uFE0F?|time::)\s*(\d+)\s*([hm])[a-z]*", re.IGNORECASE)


@dataclass
class TaskMetadata:
    """Metadata pulled out of a task line."""

    content: str
    due_date: date | None = None
    priority: str | None = None
    tags: list[str] = field(default_factory=list)
    estimated_minutes: int | None = None


def task_id(path: str, line: int) -> str:
    """Stable id for the task on `line` (1-based) of `path`."""
    digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:10]
    return f"task_{digest}_{line}"


def parse_task_metadata(text: str) -> TaskMetadata:
    """Extract due date, priority, tags and estimate from the text after the checkbox."""
    clean = text
    meta = TaskMetadata(content=text)

    due = DUE_DATE_PATTERN.search(text)
    if due:
        try:
            meta.due_date = date.fromisoformat(due.group(1))
        except ValueError:
            meta.due_date = None
        clean = clean.replace(due.group(0), "", 1)

    for emoji, priority in PRIORITY_EMOJI.items():
        if emoji in text:
            meta.priority = priority
            clean = clean.replace(emoji, "", 1)
            break

    # The text key is a fallback; it is stripped even when an emoji won
    priority_text = PRIORITY_TEXT_PATTERN.search(text)
    if priority_text:
        if meta.priority is None:
            meta.priority = priority_text.group(1).lower()
        clean = clean.replace(priority_text.group(0), "", 1)

    for match in TAG_PATTERN.finditer(text):
        tag = match.group(1).rstrip("/-")
        if tag and tag not in meta.tags:
            meta.tags.append(tag)
    clean = TAG_PATTERN.sub("", clean)

    estimate = ESTIMATE_PATTERN.search(text)
    if estimate:
        value = int(estimate.group(1))
        meta.estimated_minutes = value * 60 if estimate.group(2).lower() == "h" else value
        clean = clean.replace(estimate.group(0), "", 1)

    meta.content = " ".join(clean.split())
    return meta


def _build_task(document: Document, line_number: int, text: str, completed: bool) -> Task:
    meta = parse_task_metadata(text)
    return Task(
        id=task_id(document.path, line_number),
        content=meta.content,
        path=document.path,
        line=line_number,
        completed=completed,
        created_at=document.ctime,
        due_date=meta.due_date,
        priority=meta.priority,  # type: ignore[arg-type]
        tags=meta.tags,
        estimated_minutes=meta.estimated_minutes,
        completed_at=document.mtime if completed else None,
    )


def parse_checkbox_task(line: str, document: Document, line_number: int) -> Task | None:
    """Parse one line; None unless it is a `- [ ]` / `- [x]` checkbox."""
    match = CHECKBOX_PATTERN.match(line)
    if not match:
        return None
    return _build_task(document, line_number, match.group(2), match.group(1) != " ")


def extract_tasks(
    content: str,
    document: Document,
    list_items: Iterable[ListItem] | None = None,
) -> list[Task]:
    """Extract every task in a document.

    Args:
        content: Raw document text, front-matter included (line numbers count it)
        document: The source document
        list_items: Optional pre-parsed list items; task items the line scan
            missed (custom status characters such as `[/]`) are added

    Returns:
        Tasks in line order, at most one per line
    """
    lines = content.split("\n")
    tasks: list[Task] = []
    seen: set[str] = set()

    for index, line in enumerate(lines):
        task = parse_checkbox_task(line, document, index + 1)
        if task:
            tasks.append(task)
            seen.add(task.id)

    extra = []
    for item in list_items or ():
        if item.task is None or not 0 <= item.line < len(lines):
            continue
        match = ANY_CHECKBOX_PATTERN.match(lines[item.line])
        if not match:
            continue
        task = _build_task(document, item.line + 1, match.group(1), item.task in ("x", "X"))
        if task.id not in seen:
            seen.add(task.id)
            extra.append(task)

    if extra:
        tasks = sorted(tasks + extra, key=lambda t: t.line)
    return tasks
