"""Data models for indexed notes, tasks and goals."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Literal

Priority = Literal["high", "medium", "low"]
GoalStatus = Literal["active", "completed", "paused", "cancelled"]

PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
GOAL_STATUSES: tuple[str, ...] = ("active", "completed", "paused", "cancelled")

# Snapshot format written by this version; v1 stored inline task objects on notes
FORMAT_VERSION = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO string (or date/datetime) into an aware datetime, None if unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> date | None:
    """Parse a calendar date; datetimes are truncated to their date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            parsed = parse_datetime(text)
            return parsed.date() if parsed else None
    return None


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def jsonable(value: Any) -> Any:
    """Coerce front-matter values (YAML dates, sets, ...) into JSON-safe data."""
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [jsonable(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _str_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return []


def _int_or(value: Any, default: int | None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Task:
    """A checkbox line found in a note."""

    id: str
    content: str  # display text, metadata markers stripped
    path: str
    line: int  # 1-based
    completed: bool
    created_at: datetime
    due_date: date | None = None
    priority: Priority | None = None
    tags: list[str] = field(default_factory=list)
    estimated_minutes: int | None = None
    completed_at: datetime | None = None
    goal_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "filePath": self.path,
            "line": self.line,
            "completed": self.completed,
            "dueDate": _iso(self.due_date),
            "priority": self.priority,
            "tags": list(self.tags),
            "estimatedTime": self.estimated_minutes,
            "createdAt": _iso(self.created_at),
            "completedAt": _iso(self.completed_at),
            "goalId": self.goal_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        priority = data.get("priority")
        return cls(
            id=str(data.get("id", "")),
            content=str(data.get("content", "")),
            path=str(data.get("filePath") or data.get("path") or ""),
            line=_int_or(data.get("line"), 0) or 0,
            completed=bool(data.get("completed", False)),
            created_at=parse_datetime(data.get("createdAt")) or utcnow(),
            due_date=parse_date(data.get("dueDate")),
            priority=priority if priority in PRIORITIES else None,
            tags=_str_list(data.get("tags")),
            estimated_minutes=_int_or(data.get("estimatedTime"), None),
            completed_at=parse_datetime(data.get("completedAt")),
            goal_id=data.get("goalId") or None,
        )


@dataclass
class Milestone:
    """A checklist item owned by a goal."""

    id: str
    title: str
    completed: bool = False
    completed_at: datetime | None = None
    target_date: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "completedAt": _iso(self.completed_at),
            "targetDate": _iso(self.target_date),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> Milestone:
        return cls(
            id=str(data.get("id") or f"milestone-{index}"),
            title=str(data.get("title") or data.get("name") or f"Milestone {index + 1}"),
            completed=bool(data.get("completed", False)),
            completed_at=parse_datetime(data.get("completedAt")),
            target_date=parse_date(data.get("targetDate")),
        )


@dataclass
class Goal:
    """A higher-level objective declared in a note."""

    id: str
    title: str
    path: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    category: str = ""  # origin syntax unless declared: frontmatter, objective, tag, goal, ...
    status: GoalStatus = "active"
    progress: int = 0  # 0-100
    target_date: date | None = None
    completed_at: datetime | None = None
    milestones: list[Milestone] = field(default_factory=list)
    linked_tasks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "filePath": self.path,
            "category": self.category,
            "status": self.status,
            "progress": self.progress,
            "targetDate": _iso(self.target_date),
            "completedAt": _iso(self.completed_at),
            "milestones": [m.to_dict() for m in self.milestones],
            "linkedTasks": list(self.linked_tasks),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Goal:
        status = data.get("status")
        raw_milestones = data.get("milestones")
        milestones = [
            Milestone.from_dict(m, i)
            for i, m in enumerate(raw_milestones if isinstance(raw_milestones, list) else [])
            if isinstance(m, dict)
        ]
        created = parse_datetime(data.get("createdAt")) or utcnow()
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            path=str(data.get("filePath") or data.get("path") or ""),
            created_at=created,
            updated_at=parse_datetime(data.get("updatedAt")) or created,
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            status=status if status in GOAL_STATUSES else "active",
            progress=max(0, min(100, _int_or(data.get("progress"), 0) or 0)),
            target_date=parse_date(data.get("targetDate")),
            completed_at=parse_datetime(data.get("completedAt")),
            milestones=milestones,
            linked_tasks=_str_list(data.get("linkedTasks")),
        )


@dataclass
class IndexedNote:
    """Indexed view of one document. Only an excerpt of the content is kept."""

    path: str
    title: str
    content: str  # first excerpt_length characters
    frontmatter: dict[str, Any]
    last_modified: datetime
    word_count: int = 0
    tasks: list[str] = field(default_factory=list)  # task ids, in line order
    tags: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.path,
            "title": self.title,
            "content": self.content,
            "frontmatter": jsonable(self.frontmatter),
            "tasks": list(self.tasks),
            "tags": list(self.tags),
            "links": list(self.links),
            "lastModified": _iso(self.last_modified),
            "wordCount": self.word_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "") -> IndexedNote:
        frontmatter = data.get("frontmatter")
        return cls(
            path=str(data.get("filePath") or path),
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            frontmatter=frontmatter if isinstance(frontmatter, dict) else {},
            last_modified=parse_datetime(data.get("lastModified")) or utcnow(),
            word_count=_int_or(data.get("wordCount"), 0) or 0,
            tasks=_str_list(data.get("tasks")),
            tags=_str_list(data.get("tags")),
            links=_str_list(data.get("links")),
        )


@dataclass
class VaultIndex:
    """The in-memory aggregate: notes by path, tasks and goals by id."""

    notes: dict[str, IndexedNote] = field(default_factory=dict)
    tasks: dict[str, Task] = field(default_factory=dict)
    goals: dict[str, Goal] = field(default_factory=dict)
    last_indexed: datetime = field(default_factory=utcnow)
    version: int = FORMAT_VERSION

    def tasks_for(self, path: str) -> list[Task]:
        """Tasks currently indexed for a note, in line order."""
        note = self.notes.get(path)
        if note is None:
            return []
        return [self.tasks[tid] for tid in note.tasks if tid in self.tasks]

    def goals_for(self, path: str) -> list[Goal]:
        return [g for g in self.goals.values() if g.path == path]
