"""Vault access and parsing utilities."""

from .documents import Document, DocumentMetadata, DocumentSource, FileSystemVault, build_metadata
from .goals import parse_goals
from .parser import ListItem, count_words, extract_links, extract_tags
from .tasks import extract_tasks, parse_task_metadata

__all__ = [
    "Document",
    "DocumentMetadata",
    "DocumentSource",
    "FileSystemVault",
    "ListItem",
    "build_metadata",
    "count_words",
    "extract_links",
    "extract_tags",
    "extract_tasks",
    "parse_goals",
    "parse_task_metadata",
]
