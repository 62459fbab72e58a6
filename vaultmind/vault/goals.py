"""Goal extraction.

Goals can be declared four ways, all of which are scanned:

1. Front-matter:    goal: "Ship v1"  /  goals: [{title: ..., progress: 50}]
                    objective(s): "Improve coding skills"
2. Headings:        ## Goal: Master plugin development
3. Bracket markers: [GOAL] Publish plugin   (also [OBJECTIVE], [TARGET])
4. Tags:            #goal/fitness-journey

Checklist lines near a goal's title become its milestones, and milestone
completion always overrides any declared progress.
"""

from __future__ import annotations

import logging
import math
import re
from typing import TYPE_CHECKING, Any

from ..models import GOAL_STATUSES, Goal, Milestone, parse_date, parse_datetime

if TYPE_CHECKING:
    from .documents import Document

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r"^#{1,6}\s+(Goal|Objective|Target|Milestone):\s*(.+)$", re.IGNORECASE | re.MULTILINE)
BRACKET_PATTERN = re.compile(r"\[(GOAL|OBJECTIVE|TARGET)\]\s*(.+?)(?:\n|$)", re.IGNORECASE)
TAG_PATTERN = re.compile(r"#goal/([a-zA-Z0-9_-]+)")
PROGRESS_PATTERN = re.compile(r"progress[:\s]+(\d+)%?", re.IGNORECASE)
MILESTONE_PATTERN = re.compile(r"- \[([ xX])\] (?:Milestone:\s*)?(.+)", re.IGNORECASE)
PROGRESS_LINE_PATTERN = re.compile(r"- \[[ xX]\]\s*progress[:\s]+(\d+)%?", re.IGNORECASE)

PROGRESS_WINDOW = 300  # chars after a marker searched for "Progress: NN%"
MILESTONE_WINDOW = 500  # chars after a title searched for checklist lines


def goal_id(path: str, title: str) -> str:
    """Goal identity; the same title twice in one document yields the same id."""
    slug = re.sub(r"\s+", "-", title.lower())
    return f"goal-{path}-{slug}"


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def _progress_near(content: str, start: int) -> int | None:
    match = PROGRESS_PATTERN.search(content[start : start + PROGRESS_WINDOW])
    return _clamp(int(match.group(1))) if match else None


def create_goal(document: Document, title: str, category: str, data: dict[str, Any] | None = None) -> Goal:
    """Build a goal, applying any structured fields from a front-matter object."""
    data = data or {}

    milestones = []
    raw_milestones = data.get("milestones")
    for index, raw in enumerate(raw_milestones if isinstance(raw_milestones, list) else []):
        if isinstance(raw, str):
            milestones.append(Milestone(id=f"milestone-{index}", title=raw))
        elif isinstance(raw, dict):
            milestones.append(
                Milestone(
                    id=str(raw.get("id") or f"milestone-{index}"),
                    title=str(raw.get("title") or raw.get("name") or f"Milestone {index + 1}"),
                    completed=bool(raw.get("completed", False)),
                    completed_at=parse_datetime(raw.get("completedAt") or raw.get("completed_at")),
                    target_date=parse_date(raw.get("targetDate") or raw.get("target_date") or raw.get("date")),
                )
            )

    status = str(data.get("status") or "active").lower()
    try:
        progress = _clamp(int(data.get("progress") or 0))
    except (TypeError, ValueError):
        progress = 0

    return Goal(
        id=goal_id(document.path, title),
        title=title,
        path=document.path,
        created_at=document.ctime,
        updated_at=document.mtime,
        description=str(data.get("description") or ""),
        category=str(data.get("category") or category),
        status=status if status in GOAL_STATUSES else "active",  # type: ignore[arg-type]
        progress=progress,
        target_date=parse_date(data.get("targetDate") or data.get("target_date")),
        completed_at=parse_datetime(data.get("completedDate") or data.get("completed_date")),
        milestones=milestones,
    )


def _frontmatter_goals(document: Document, frontmatter: dict[str, Any]) -> list[Goal]:
    goals = []

    goal_data = frontmatter.get("goal") or frontmatter.get("goals")
    if isinstance(goal_data, (str, dict)):
        goal_data = [goal_data]
    if isinstance(goal_data, list):
        for entry in goal_data:
            if isinstance(entry, str) and entry.strip():
                goals.append(create_goal(document, entry.strip(), "frontmatter"))
            elif isinstance(entry, dict):
                title = entry.get("title") or entry.get("name")
                if title:
                    goals.append(create_goal(document, str(title).strip(), "frontmatter", entry))

    objectives = frontmatter.get("objective") or frontmatter.get("objectives")
    if isinstance(objectives, str):
        objectives = [objectives]
    if isinstance(objectives, list):
        for entry in objectives:
            if isinstance(entry, str) and entry.strip():
                goals.append(create_goal(document, entry.strip(), "objective"))

    return goals


def _attach_milestones(goal: Goal, content: str) -> None:
    start = content.find(goal.title)
    # Titles derived from tag slugs rarely occur verbatim; scan from the top instead
    start = max(start, 0)
    nearby = content[start : start + MILESTONE_WINDOW]

    found = []
    for match in MILESTONE_PATTERN.finditer(nearby):
        text = match.group(2).strip()
        if text.lower().startswith("progress:"):
            continue
        found.append(
            Milestone(
                id=f"milestone-{len(found)}",
                title=text,
                completed=match.group(1) in ("x", "X"),
            )
        )
    if found:
        goal.milestones = found

    progress_line = PROGRESS_LINE_PATTERN.search(nearby)
    if progress_line and not goal.progress:
        goal.progress = _clamp(int(progress_line.group(1)))
        logger.debug(f"Progress {goal.progress}% from checkbox line for goal {goal.title!r}")


def parse_goals(document: Document, content: str, frontmatter: dict[str, Any] | None = None) -> list[Goal]:
    """Extract all goals declared in a document.

    Strategies are not exclusive: a goal declared both in front-matter and in a
    heading is returned twice (and collapses to one entry once keyed by id).
    """
    goals: list[Goal] = []

    if frontmatter:
        goals.extend(_frontmatter_goals(document, frontmatter))

    for match in HEADING_PATTERN.finditer(content):
        title = match.group(2).strip()
        if title:
            goals.append(create_goal(document, title, match.group(1).lower()))

    for match in BRACKET_PATTERN.finditer(content):
        title = match.group(2).strip()
        if not title:
            continue
        goal = create_goal(document, title, match.group(1).lower())
        progress = _progress_near(content, match.start())
        if progress is not None:
            goal.progress = progress
            logger.debug(f"Progress {progress}% for goal {title!r}")
        goals.append(goal)

    for match in TAG_PATTERN.finditer(content):
        title = match.group(1).replace("-", " ").replace("_", " ").strip()
        if not title:
            continue
        goal = create_goal(document, title, "tag")
        progress = _progress_near(content, match.start())
        if progress is not None:
            goal.progress = progress
            logger.debug(f"Progress {progress}% for goal tag {title!r}")
        goals.append(goal)

    for goal in goals:
        _attach_milestones(goal, content)

    for goal in goals:
        if goal.milestones:
            completed = sum(1 for m in goal.milestones if m.completed)
            # Half-up rounding: 1 of 8 done is 13%, not 12%
            goal.progress = math.floor(100 * completed / len(goal.milestones) + 0.5)

    return goals
