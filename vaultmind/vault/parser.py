"""Markdown parsing utilities for wiki-links, tags, list items and word counts."""

import re
from dataclasses import dataclass

# Match [[target]], [[target|display]], [[target#section]], [[target#section|display]]
WIKILINK_PATTERN = re.compile(r"(!?)\[\[([^\]|#]+)(?:#[^\]|]+)?(?:\|[^\]]+)?\]\]")

# Inline #tag, nested tags (#goal/fitness) kept whole; "# Heading" has a space and never matches
TAG_PATTERN = re.compile(r"(?<![\w#&/])#([A-Za-z_][\w/-]*)")

# "- item", "* [ ] task", "1. item", "2) [x] task"
LIST_ITEM_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(?:\[(.)\](?=\s|$))?")

FRONTMATTER_PATTERN = re.compile(r"^---[\s\S]*?---\n")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")
WORD_PATTERN = re.compile(r"\b\w+\b")
MARKDOWN_PUNCTUATION = re.compile(r"[#*_~`\[\]()]")


@dataclass(frozen=True)
class ListItem:
    """A list item position; task is the checkbox character, None for plain bullets."""

    line: int  # 0-based
    task: str | None = None


def _dedupe(values: list[str]) -> list[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def extract_links(content: str, lowercase: bool = False) -> list[str]:
    """Extract wiki-link targets (embeds excluded), deduplicated in order of appearance."""
    matches = [m.group(2).strip() for m in WIKILINK_PATTERN.finditer(content) if not m.group(1)]
    if lowercase:
        matches = [m.lower() for m in matches]
    return _dedupe(matches)


def extract_embeds(content: str) -> list[str]:
    """Extract ![[embed]] targets."""
    return _dedupe([m.group(2).strip() for m in WIKILINK_PATTERN.finditer(content) if m.group(1)])


def strip_frontmatter(content: str) -> str:
    return FRONTMATTER_PATTERN.sub("", content, count=1)


def _body_lines(content: str):
    """Yield (line_number, line) outside front-matter and fenced code blocks."""
    lines = content.split("\n")
    start = 0
    if lines and lines[0].strip() == "---":
        for i in range(1, len(lines)):
            if lines[i].strip() == "---":
                start = i + 1
                break

    in_fence = False
    for i in range(start, len(lines)):
        line = lines[i]
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            continue
        if not in_fence:
            yield i, line


def extract_tags(content: str) -> list[str]:
    """Extract inline #tags (without the leading #), ignoring code fences and front-matter."""
    tags = []
    for _, line in _body_lines(content):
        # Inline code spans never carry tags
        line = re.sub(r"`[^`]*`", "", line)
        tags.extend(m.group(1).rstrip("/-") for m in TAG_PATTERN.finditer(line))
    return _dedupe([t for t in tags if t])


def scan_list_items(content: str) -> list[ListItem]:
    """Locate every list item, recording the checkbox status character if present."""
    items = []
    for number, line in _body_lines(content):
        match = LIST_ITEM_PATTERN.match(line)
        if match:
            items.append(ListItem(line=number, task=match.group(1)))
    return items


def count_words(content: str) -> int:
    """Count words after removing front-matter and markdown punctuation."""
    plain = MARKDOWN_PUNCTUATION.sub("", strip_frontmatter(content))
    return len(WORD_PATTERN.findall(plain))
