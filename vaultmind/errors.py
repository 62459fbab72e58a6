"""Typed errors raised by the indexer, the stores and the query engines."""

from __future__ import annotations


class ErrorCodes:
    INDEXING_FAILED = "INDEXING_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFIG_ERROR = "CONFIG_ERROR"


class VaultMindError(Exception):
    """Base error carrying a stable code and the underlying cause."""

    code = "VAULTMIND_ERROR"

    def __init__(self, message: str, code: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class IndexingError(VaultMindError):
    """A document could not be enumerated, read or parsed during a rebuild."""

    code = ErrorCodes.INDEXING_FAILED


class StorageError(VaultMindError):
    """A snapshot write failed even after cleanup and retry."""

    code = ErrorCodes.STORAGE_ERROR


class NotFoundError(VaultMindError, KeyError):
    """Lookup of an unknown task or goal id."""

    code = ErrorCodes.NOT_FOUND

    def __str__(self) -> str:
        return self.message


class ConfigError(VaultMindError, ValueError):
    code = ErrorCodes.CONFIG_ERROR
