"""Indexer configuration, optionally overridden by vaultmind.toml at the vault root."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError

CONFIG_FILENAME = "vaultmind.toml"


@dataclass(frozen=True)
class IndexerConfig:
    batch_size: int = 10
    debounce_seconds: float = 1.0
    excerpt_length: int = 5000
    stale_after_hours: float = 24
    search_limit: int = 20

    # Search scoring
    title_weight: int = 10
    tag_weight: int = 5
    content_weight: int = 1  # per occurrence, uncapped
    recency_bonus: int = 2
    recency_days: float = 7

    # False: skip unreadable documents during a rebuild instead of aborting it
    fail_fast: bool = True

    state_dir: str = ".vaultmind"
    storage_prefix: str = "vaultmind_"

    def __post_init__(self):
        if self.batch_size <= 0:
            raise ConfigError("batch_size must be a positive integer")
        if self.debounce_seconds < 0:
            raise ConfigError("debounce_seconds must not be negative")
        if self.excerpt_length <= 0:
            raise ConfigError("excerpt_length must be a positive integer")
        if self.search_limit <= 0:
            raise ConfigError("search_limit must be a positive integer")


def _coerce(name: str, expected: type, value: Any) -> Any:
    # bool is an int subclass; never accept it where a number is expected
    if expected is bool:
        if isinstance(value, bool):
            return value
    elif expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(value, expected):
        return value
    raise ConfigError(f"{name} must be of type {expected.__name__}, got {value!r}")


def config_from_dict(data: dict[str, Any], base: IndexerConfig | None = None) -> IndexerConfig:
    """Apply a mapping of overrides on top of `base` (defaults when omitted)."""
    base = base or IndexerConfig()
    types = {f.name: {"int": int, "float": float, "bool": bool, "str": str}[str(f.type)] for f in fields(IndexerConfig)}

    unknown = sorted(set(data) - set(types))
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    overrides = {name: _coerce(name, types[name], value) for name, value in data.items()}
    return replace(base, **overrides)


def load_config(vault_path: Path) -> IndexerConfig:
    """Load `vaultmind.toml` from the vault root; defaults when the file is absent.

    Settings may sit at the top level or under an [indexer] table.
    """
    path = vault_path / CONFIG_FILENAME
    if not path.exists():
        return IndexerConfig()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {path}", cause=e) from e

    section = data.get("indexer", data)
    if not isinstance(section, dict):
        raise ConfigError("[indexer] must be a table")
    return config_from_dict(section)
