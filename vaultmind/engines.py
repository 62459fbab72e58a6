"""Task and goal queries over the vault index."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from typing import Any

from .errors import NotFoundError
from .indexer import VaultIndexer
from .models import Goal, Task, utcnow

logger = logging.getLogger(__name__)


@dataclass
class TaskFilter:
    completed: bool | None = None
    priority: str | None = None
    tags: list[str] = field(default_factory=list)  # any of
    goal_id: str | None = None
    due_before: date | None = None
    due_after: date | None = None

    def matches(self, task: Task) -> bool:
        if self.completed is not None and task.completed != self.completed:
            return False
        if self.priority and task.priority != self.priority:
            return False
        if self.tags and not any(tag in task.tags for tag in self.tags):
            return False
        if self.goal_id and task.goal_id != self.goal_id:
            return False
        if self.due_before or self.due_after:
            if task.due_date is None:
                return False
            if self.due_before and task.due_date > self.due_before:
                return False
            if self.due_after and task.due_date < self.due_after:
                return False
        return True


@dataclass
class TaskStatistics:
    total: int = 0
    completed: int = 0
    overdue: int = 0
    due_today: int = 0
    upcoming: int = 0
    completion_rate: float = 0.0  # percent
    average_completion_hours: float = 0.0


def _percent(done: int, total: int) -> int:
    return math.floor(done / total * 100 + 0.5)


def _changes(target: Any, changes: dict[str, Any]) -> Any:
    known = {f.name for f in fields(target)} - {"id"}
    unknown = set(changes) - known
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    return replace(target, **changes)


class TaskEngine:
    """Reads and in-memory edits of indexed tasks."""

    def __init__(self, indexer: VaultIndexer):
        self.indexer = indexer

    @property
    def _tasks(self) -> dict[str, Task]:
        return self.indexer.get_index().tasks

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def get_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        tasks = list(self._tasks.values())
        if task_filter is None:
            return tasks
        return [t for t in tasks if task_filter.matches(t)]

    def update_task(self, task_id: str, **changes: Any) -> Task:
        """Apply field changes to a task in the index (the note on disk is untouched)."""
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        updated = _changes(task, changes)
        self._tasks[task_id] = updated
        return updated

    def statistics(self, now: datetime | None = None) -> TaskStatistics:
        now = now or utcnow()
        today = now.date()
        tasks = list(self._tasks.values())
        completed = [t for t in tasks if t.completed]
        open_with_due = [t for t in tasks if not t.completed and t.due_date is not None]

        durations = [
            (t.completed_at - t.created_at).total_seconds() / 3600
            for t in completed
            if t.completed_at is not None
        ]

        return TaskStatistics(
            total=len(tasks),
            completed=len(completed),
            overdue=sum(1 for t in open_with_due if t.due_date < today),
            due_today=sum(1 for t in open_with_due if t.due_date == today),
            upcoming=sum(1 for t in open_with_due if t.due_date > today),
            completion_rate=(len(completed) / len(tasks) * 100) if tasks else 0.0,
            average_completion_hours=(sum(durations) / len(durations)) if durations else 0.0,
        )


class GoalEngine:
    """Goal lookups, progress and task linking."""

    def __init__(self, indexer: VaultIndexer, tasks: TaskEngine | None = None):
        self.indexer = indexer
        self.tasks = tasks or TaskEngine(indexer)

    @property
    def _goals(self) -> dict[str, Goal]:
        return self.indexer.get_index().goals

    async def scan_goals(self) -> list[Goal]:
        """Goals whose source document still exists."""
        valid = []
        for goal in self._goals.values():
            if not goal.path or await self.indexer.source.exists(goal.path):
                valid.append(goal)
            else:
                logger.debug(f"Ignoring stale goal {goal.title!r}: source not found: {goal.path}")
        return valid

    def get_goal(self, goal_id: str) -> Goal | None:
        return self._goals.get(goal_id)

    def get_goals(self) -> list[Goal]:
        return list(self._goals.values())

    def _require(self, goal_id: str) -> Goal:
        goal = self._goals.get(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal {goal_id} not found")
        return goal

    def update_goal(self, goal_id: str, **changes: Any) -> Goal:
        goal = self._require(goal_id)
        updated = _changes(goal, changes)
        updated.updated_at = utcnow()
        self._goals[goal_id] = updated
        return updated

    def calculate_progress(self, goal_id: str) -> int:
        """Milestone ratio, else linked-task ratio, else the declared progress."""
        goal = self._goals.get(goal_id)
        if goal is None:
            return 0

        if goal.milestones:
            done = sum(1 for m in goal.milestones if m.completed)
            return _percent(done, len(goal.milestones))

        if goal.linked_tasks:
            linked = [t for t in (self.tasks.get_task(tid) for tid in goal.linked_tasks) if t is not None]
            if not linked:
                return 0
            return _percent(sum(1 for t in linked if t.completed), len(linked))

        return goal.progress

    def link_task(self, goal_id: str, task_id: str) -> Goal:
        goal = self._require(goal_id)
        task = self.tasks.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if task_id in goal.linked_tasks:
            return goal

        goal.linked_tasks.append(task_id)
        self.tasks.update_task(task_id, goal_id=goal_id)
        return self.update_goal(goal_id, progress=self.calculate_progress(goal_id))
