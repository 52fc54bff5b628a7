"""Timelog configuration.

Settings live in ``<timelog dir>/config.json`` and are merged over the
defaults below. The timelog directory comes from ``CLAUDE_TIMELOG_DIR``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from timelog.errors import ConfigError

logger = logging.getLogger(__name__)

TIMELOG_DIR_ENV = "CLAUDE_TIMELOG_DIR"
CONFIG_FILENAME = "config.json"

DEFAULT_TICKET_PATTERNS = [r"([A-Z][A-Z0-9]+-\d+)"]


def default_timelog_dir() -> Path:
    """Directory holding the day files and config.json."""
    env = os.environ.get(TIMELOG_DIR_ENV)
    if env:
        return Path(env)
    return Path.home() / ".claude" / "timelog"


class TimelogConfig(BaseModel):
    """User settings.

    Attributes:
        ticket_patterns: Regexes tried in order; group 1 (or the whole match)
            is the ticket id.
        project_source: "git-root" uses the repository root name, "cwd" the
            working directory name.
        break_threshold: Longest gap in seconds still counted as working.
        project_pattern: Optional regex applied to file paths from the
            session transcript; group 1 (or the whole match) is the project.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ticket_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TICKET_PATTERNS), alias="ticketPatterns"
    )
    project_source: Literal["git-root", "cwd"] = Field(default="git-root", alias="projectSource")
    break_threshold: int = Field(default=1800, gt=0, alias="breakThreshold")
    project_pattern: str | None = Field(default=None, alias="projectPattern")

    @property
    def break_ms(self) -> int:
        return self.break_threshold * 1000


def load_config(timelog_dir: Path | None = None, *, strict: bool = False) -> TimelogConfig:
    """Load config.json from the timelog directory, merged over defaults.

    Args:
        timelog_dir: Directory to read from (default: default_timelog_dir()).
        strict: Raise ConfigError instead of falling back to defaults.

    Returns:
        The effective configuration. A missing file gives the defaults.

    Raises:
        ConfigError: If strict and the file is unreadable JSON or invalid.
    """
    if timelog_dir is None:
        timelog_dir = default_timelog_dir()
    path = timelog_dir / CONFIG_FILENAME

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return TimelogConfig()

    try:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{path}: invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a JSON object")
        try:
            return TimelogConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"{path}: {e}") from e
    except ConfigError as e:
        if strict:
            raise
        logger.warning(f"Ignoring config file, using defaults: {e}")
        return TimelogConfig()
