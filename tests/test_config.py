"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from timelog.config import (
    DEFAULT_TICKET_PATTERNS,
    TIMELOG_DIR_ENV,
    TimelogConfig,
    default_timelog_dir,
    load_config,
)
from timelog.errors import ConfigError


def write_config(directory: Path, content: str) -> None:
    """Helper to write config.json."""
    (directory / "config.json").write_text(content, encoding="utf-8")


class TestDefaultTimelogDir:
    """Tests for default_timelog_dir."""

    def test_env_override(self, monkeypatch, tmp_path):
        """CLAUDE_TIMELOG_DIR wins when set."""
        monkeypatch.setenv(TIMELOG_DIR_ENV, str(tmp_path))
        assert default_timelog_dir() == tmp_path

    def test_home_default(self, monkeypatch):
        """Without the env var, use ~/.claude/timelog."""
        monkeypatch.delenv(TIMELOG_DIR_ENV, raising=False)
        assert default_timelog_dir() == Path.home() / ".claude" / "timelog"


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_when_no_file(self, tmp_path):
        """No config.json gives the defaults."""
        config = load_config(tmp_path)
        assert config.ticket_patterns == DEFAULT_TICKET_PATTERNS
        assert config.project_source == "git-root"
        assert config.break_threshold == 1800
        assert config.break_ms == 1_800_000

    def test_merges_user_config(self, tmp_path):
        """User values override defaults; others keep their default."""
        write_config(tmp_path, json.dumps({"breakThreshold": 3600, "projectSource": "cwd"}))

        config = load_config(tmp_path)
        assert config.break_threshold == 3600
        assert config.break_ms == 3_600_000
        assert config.project_source == "cwd"
        assert config.ticket_patterns == DEFAULT_TICKET_PATTERNS

    def test_accepts_python_names(self, tmp_path):
        """Snake-case keys work as well as the camelCase ones."""
        write_config(tmp_path, json.dumps({"break_threshold": 600}))
        assert load_config(tmp_path).break_threshold == 600

    def test_unknown_keys_ignored(self, tmp_path):
        """Keys the tool does not know about are ignored."""
        write_config(tmp_path, json.dumps({"theme": "dark", "breakThreshold": 900}))
        assert load_config(tmp_path).break_threshold == 900

    def test_project_pattern(self, tmp_path):
        """projectPattern is read; it is unset by default."""
        assert load_config(tmp_path).project_pattern is None
        write_config(tmp_path, json.dumps({"projectPattern": "/projects/([^/]+)/"}))
        assert load_config(tmp_path).project_pattern == "/projects/([^/]+)/"

    def test_invalid_json_falls_back(self, tmp_path, caplog):
        """Unparseable config logs a warning and uses defaults."""
        write_config(tmp_path, "{ invalid json }")

        config = load_config(tmp_path)
        assert config == TimelogConfig()
        assert "Ignoring config file" in caplog.text

    def test_invalid_values_fall_back(self, tmp_path):
        """Values failing validation give the defaults."""
        write_config(tmp_path, json.dumps({"breakThreshold": -5}))
        assert load_config(tmp_path).break_threshold == 1800

    def test_non_object_falls_back(self, tmp_path):
        write_config(tmp_path, "[1, 2, 3]")
        assert load_config(tmp_path) == TimelogConfig()

    def test_strict_raises(self, tmp_path):
        """strict=True surfaces the problem as ConfigError."""
        write_config(tmp_path, json.dumps({"projectSource": "svn"}))
        with pytest.raises(ConfigError, match="config.json"):
            load_config(tmp_path, strict=True)

    def test_uses_env_dir_by_default(self, monkeypatch, tmp_path):
        """Without an argument, config.json is read from the env directory."""
        monkeypatch.setenv(TIMELOG_DIR_ENV, str(tmp_path))
        write_config(tmp_path, json.dumps({"breakThreshold": 120}))
        assert load_config().break_threshold == 120
