"""Tests for checkbox task extraction."""

from datetime import date

from conftest import FIXED_TIME, make_document

from vaultmind.vault.parser import scan_list_items
from vaultmind.vault.tasks import extract_tasks, parse_checkbox_task, parse_task_metadata, task_id


def test_checkbox_variants():
    """Open, done (either case), indented and alternate bullets are tasks; malformed boxes are not."""
    doc = make_document("inbox.md")
    content = "\n".join(
        [
            "- [ ] open",
            "- [x] done",
            "- [X] done upper",
            "    - [ ] nested",
            "* [ ] star bullet",
            "+ [x] plus bullet",
            "-[ ] no space",
            "- [] empty box",
            "- plain bullet",
            "[ ] not a list item",
        ]
    )

    tasks = extract_tasks(content, doc)

    assert [t.line for t in tasks] == [1, 2, 3, 4, 5, 6]
    assert [t.completed for t in tasks] == [False, True, True, False, False, True]
    assert tasks[3].content == "nested"


def test_task_fields_from_document():
    doc = make_document("projects/site.md")
    task = parse_checkbox_task("- [x] Ship it", doc, 7)

    assert task is not None
    assert task.id == task_id("projects/site.md", 7)
    assert task.path == "projects/site.md"
    assert task.line == 7
    assert task.created_at == FIXED_TIME
    assert task.completed_at == FIXED_TIME
    assert task.goal_id is None


def test_open_task_has_no_completion_time():
    task = parse_checkbox_task("- [ ] Later", make_document(), 1)
    assert task is not None
    assert task.completed_at is None


def test_task_id_is_stable_per_path_and_line():
    assert task_id("a.md", 3) == task_id("a.md", 3)
    assert task_id("a.md", 3) != task_id("b.md", 3)
    assert task_id("a.md", 3) != task_id("a.md", 4)
    assert task_id("a.md", 3).startswith("task_")
    assert task_id("a.md", 3).endswith("_3")


def test_due_date_emoji_and_text_key():
    emoji = parse_task_metadata("Call the plumber \U0001F4C5 2030-01-15")
    text = parse_task_metadata("Draft newsletter due:: 2030-02-01")

    assert emoji.due_date == date(2030, 1, 15)
    assert emoji.content == "Call the plumber"
    assert text.due_date == date(2030, 2, 1)
    assert text.content == "Draft newsletter"


def test_invalid_due_date_is_dropped_from_text():
    meta = parse_task_metadata("Broken due:: 2024-13-45")
    assert meta.due_date is None
    assert meta.content == "Broken"


def test_priority_emoji():
    assert parse_task_metadata("a \u23eb").priority == "high"
    assert parse_task_metadata("b \U0001F53C").priority == "medium"
    assert parse_task_metadata("c \U0001F53D").priority == "low"
    assert parse_task_metadata("d").priority is None


def test_priority_emoji_wins_over_text_key():
    """The emoji takes precedence, and the text key still leaves the display text."""
    meta = parse_task_metadata("Ship \U0001F53D priority:: high")

    assert meta.priority == "low"
    assert meta.content == "Ship"


def test_priority_text_key_is_case_insensitive():
    meta = parse_task_metadata("Renew passport priority:: HIGH")
    assert meta.priority == "high"
    assert meta.content == "Renew passport"


def test_tags_are_collected_and_stripped():
    meta = parse_task_metadata("Review #work/deep PR #review and issue#12 #work/deep")

    assert meta.tags == ["work/deep", "review"]
    assert meta.content == "Review PR and issue#12"


def test_time_estimates_in_minutes():
    assert parse_task_metadata("Write \u23f1 2h").estimated_minutes == 120
    assert parse_task_metadata("Write time:: 45m").estimated_minutes == 45
    assert parse_task_metadata("Write").estimated_minutes is None


def test_time_estimates_with_unit_suffixes():
    assert parse_task_metadata("Run \u23f1\ufe0f 30min").estimated_minutes == 30
    assert parse_task_metadata("Write time:: 2hrs").estimated_minutes == 120
    assert parse_task_metadata("Read time:: 45mins").estimated_minutes == 45
    assert parse_task_metadata("Plan time:: 1 hour").estimated_minutes == 60
    assert parse_task_metadata("Run \u23f1\ufe0f 30min today").content == "Run today"


def test_all_markers_removed_from_content():
    meta = parse_task_metadata("Ship release \U0001F4C5 2024-05-01 \u23eb #work \u23f1 2h")

    assert meta.content == "Ship release"
    assert meta.due_date == date(2024, 5, 1)
    assert meta.priority == "high"
    assert meta.tags == ["work"]
    assert meta.estimated_minutes == 120


def test_custom_status_items_come_from_list_metadata():
    """A `[/]` item is only a task when reported through list-item metadata."""
    doc = make_document()
    content = "- [/] Half done\n- [ ] Open"

    assert [t.line for t in extract_tasks(content, doc)] == [2]

    tasks = extract_tasks(content, doc, scan_list_items(content))
    assert [t.line for t in tasks] == [1, 2]
    assert tasks[0].content == "Half done"
    assert tasks[0].completed is False


def test_list_metadata_never_duplicates_line_scan():
    doc = make_document()
    content = "- [ ] One\n- [x] Two\n- plain"

    tasks = extract_tasks(content, doc, scan_list_items(content))

    assert len(tasks) == 2
    assert len({t.id for t in tasks}) == 2


def test_line_numbers_count_front_matter():
    content = "---\ntitle: x\n---\n- [ ] After front-matter"
    tasks = extract_tasks(content, make_document())
    assert [t.line for t in tasks] == [4]
