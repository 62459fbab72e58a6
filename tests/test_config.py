"""Tests for indexer configuration loading."""

from pathlib import Path

import pytest

from vaultmind.config import CONFIG_FILENAME, IndexerConfig, config_from_dict, load_config
from vaultmind.errors import ConfigError


def test_defaults_when_file_missing(tmp_path: Path):
    config = load_config(tmp_path)

    assert config == IndexerConfig()
    assert config.batch_size == 10
    assert config.debounce_seconds == 1.0
    assert config.excerpt_length == 5000
    assert config.search_limit == 20
    assert config.fail_fast is True


def test_indexer_table(tmp_path: Path):
    (tmp_path / CONFIG_FILENAME).write_text(
        "[indexer]\nbatch_size = 25\ndebounce_seconds = 2\nfail_fast = false\n",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.batch_size == 25
    assert config.debounce_seconds == 2.0
    assert config.fail_fast is False
    assert config.search_limit == 20


def test_top_level_keys(tmp_path: Path):
    (tmp_path / CONFIG_FILENAME).write_text('state_dir = ".index"\n', encoding="utf-8")

    assert load_config(tmp_path).state_dir == ".index"


def test_invalid_toml(tmp_path: Path):
    (tmp_path / CONFIG_FILENAME).write_text("batch_size = = 3", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_and_mistyped_keys():
    with pytest.raises(ConfigError, match="Unknown config keys: colour"):
        config_from_dict({"colour": "red"})
    with pytest.raises(ConfigError, match="batch_size"):
        config_from_dict({"batch_size": "ten"})
    with pytest.raises(ConfigError, match="fail_fast"):
        config_from_dict({"fail_fast": 1})
    with pytest.raises(ConfigError, match="search_limit"):
        config_from_dict({"search_limit": True})


def test_values_are_validated():
    with pytest.raises(ConfigError):
        IndexerConfig(batch_size=0)
    with pytest.raises(ConfigError):
        IndexerConfig(debounce_seconds=-1)
    with pytest.raises(ConfigError):
        config_from_dict({"excerpt_length": 0})
