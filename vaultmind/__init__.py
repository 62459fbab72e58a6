"""vaultmind - task, goal and note index for a markdown vault."""

__version__ = "0.1.0"

from .errors import ConfigError, ErrorCodes, IndexingError, NotFoundError, StorageError, VaultMindError
from .indexer import VaultIndexer
from .models import Goal, IndexedNote, Milestone, Task, VaultIndex

__all__ = [
    "__version__",
    "ConfigError",
    "ErrorCodes",
    "Goal",
    "IndexedNote",
    "IndexingError",
    "Milestone",
    "NotFoundError",
    "StorageError",
    "Task",
    "VaultIndex",
    "VaultIndexer",
    "VaultMindError",
]
