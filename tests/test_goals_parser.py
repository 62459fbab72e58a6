"""Tests for goal extraction across the four declaration styles."""

import logging
from datetime import date

from conftest import FIXED_TIME, make_document

from vaultmind.vault.documents import parse_frontmatter
from vaultmind.vault.goals import goal_id, parse_goals


def _goals(content: str, path: str = "goals.md"):
    return parse_goals(make_document(path), content, parse_frontmatter(content))


def test_goal_id_format():
    assert goal_id("a/b.md", "Run A  Marathon") == "goal-a/b.md-run-a-marathon"


def test_frontmatter_string_goal():
    goals = _goals("---\ngoal: Ship v1\n---\nBody\n")

    assert len(goals) == 1
    goal = goals[0]
    assert goal.title == "Ship v1"
    assert goal.category == "frontmatter"
    assert goal.status == "active"
    assert goal.path == "goals.md"
    assert goal.created_at == FIXED_TIME
    assert goal.updated_at == FIXED_TIME


def test_frontmatter_goal_objects():
    content = "\n".join(
        [
            "---",
            "goals:",
            "  - title: Learn Go",
            "    progress: 150",
            "    status: paused",
            "    targetDate: 2024-06-01",
            "    category: skills",
            "  - title: Odd status",
            "    status: weird",
            "  - nothing: here",
            "---",
            "",
        ]
    )

    goals = {g.title: g for g in _goals(content)}

    assert set(goals) == {"Learn Go", "Odd status"}
    assert goals["Learn Go"].progress == 100
    assert goals["Learn Go"].status == "paused"
    assert goals["Learn Go"].target_date == date(2024, 6, 1)
    assert goals["Learn Go"].category == "skills"
    assert goals["Odd status"].status == "active"


def test_frontmatter_milestones_set_progress():
    content = "\n".join(
        [
            "---",
            "goal:",
            "  title: Run a marathon",
            "  milestones:",
            "    - title: Run 10k",
            "      completed: true",
            "    - Run half marathon",
            "---",
            "",
        ]
    )

    (goal,) = _goals(content)

    assert [m.title for m in goal.milestones] == ["Run 10k", "Run half marathon"]
    assert [m.id for m in goal.milestones] == ["milestone-0", "milestone-1"]
    assert goal.progress == 50


def test_frontmatter_objectives():
    goals = _goals("---\nobjectives:\n  - Improve coding skills\n  - Sleep more\n---\n")

    assert [g.title for g in goals] == ["Improve coding skills", "Sleep more"]
    assert all(g.category == "objective" for g in goals)


def test_heading_goals():
    content = "# Plan\n\n## Goal: Master plugin development\n\n### Milestone: First release\n"

    goals = _goals(content)

    assert [(g.title, g.category) for g in goals] == [
        ("Master plugin development", "goal"),
        ("First release", "milestone"),
    ]


def test_bracket_goal_progress_overridden_by_milestones():
    """Declared progress (40%) gives way to milestone completion (1 of 2)."""
    content = "[GOAL] Publish plugin\nProgress: 40%\n- [x] Design\n- [ ] Build\n"

    (goal,) = _goals(content)

    assert goal.category == "goal"
    assert [m.title for m in goal.milestones] == ["Design", "Build"]
    assert [m.completed for m in goal.milestones] == [True, False]
    assert goal.progress == 50


def test_bracket_goal_keeps_declared_progress_without_milestones():
    (goal,) = _goals("[OBJECTIVE] Write a book\nProgress: 35%\n")

    assert goal.category == "objective"
    assert goal.progress == 35
    assert goal.milestones == []


def test_declared_progress_is_clamped():
    (goal,) = _goals("[TARGET] Overachieve\nprogress: 250%\n")
    assert goal.progress == 100


def test_tag_goal():
    content = "Working on #goal/fitness-journey this spring.\nProgress: 20%\n"

    (goal,) = _goals(content)

    assert goal.title == "fitness journey"
    assert goal.category == "tag"
    assert goal.progress == 20


def test_progress_checkbox_line():
    """A `- [ ] Progress: NN%` line sets progress and is not a milestone."""
    (goal,) = _goals("## Goal: Learn Rust\n- [ ] Progress: 70%\n")

    assert goal.milestones == []
    assert goal.progress == 70


def test_milestone_prefix_is_stripped():
    (goal,) = _goals("[GOAL] Launch\n- [x] Milestone: Beta\n- [ ] Milestone: GA\n")

    assert [m.title for m in goal.milestones] == ["Beta", "GA"]


def test_milestone_progress_rounds_half_up():
    lines = ["[GOAL] Eight steps", "- [x] step 1"] + [f"- [ ] step {i}" for i in range(2, 9)]

    (goal,) = _goals("\n".join(lines))

    assert len(goal.milestones) == 8
    assert goal.progress == 13


def test_same_title_twice_shares_an_id():
    content = "## Goal: Ship it\n\n[GOAL] Ship it\n"

    goals = _goals(content)

    assert len(goals) == 2
    assert len({g.id for g in goals}) == 1


def test_no_goals():
    assert _goals("# Just a note\n\n- [ ] a task\n") == []


def test_declared_progress_is_logged(caplog):
    content = "[GOAL] Write a book\nProgress: 40%\n\n#goal/learn-piano progress: 10%\n"

    with caplog.at_level(logging.DEBUG, logger="vaultmind"):
        _goals(content)

    assert "Progress 40% for goal 'Write a book'" in caplog.text
    assert "Progress 10% for goal tag 'learn piano'" in caplog.text
