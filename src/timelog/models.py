"""Data models for timelog events, slices and aggregates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SESSION_START = "SessionStart"
USER_PROMPT_SUBMIT = "UserPromptSubmit"
SESSION_END = "SessionEnd"


def parse_timestamp(ts: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp to an aware UTC datetime.

    Naive timestamps are taken to be UTC. Returns None when the value is
    missing or unparseable.
    """
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Event(BaseModel):
    """One line of a timelog file.

    Field aliases match the on-disk format written by the capture hook
    (``ts``, ``event``, ``session``). Unknown fields such as ``cwd`` or
    ``prompt`` are kept as extras.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    timestamp: str | None = Field(default=None, alias="ts")
    kind: str | None = Field(default=None, alias="event")
    session_id: str | None = Field(default=None, alias="session")
    project: str | None = None
    ticket: str | None = None
    model: str | None = None

    @field_validator("timestamp", "kind", "session_id", "project", "ticket", "model", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> str | None:
        """Numbers become strings; other non-string values become None."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (bool, int, float)):
            return str(value)
        return None

    @property
    def parsed_timestamp(self) -> datetime | None:
        return parse_timestamp(self.timestamp)

    @property
    def is_prompt(self) -> bool:
        return self.kind == USER_PROMPT_SUBMIT


class Slice(BaseModel):
    """Elapsed time attributed to the event that starts it."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    project: str | None = None
    ticket: str | None = None
    model: str | None = None
    date: str
    seconds: float = 0.0
    is_prompt: bool = False


class GroupStats(BaseModel):
    """Counters for one aggregation key."""

    model_config = ConfigDict(frozen=True)

    session_count: int = 0
    prompt_count: int = 0
    active_seconds: float = 0.0


class RollupGroup(GroupStats):
    """GroupStats with nested groups for the next rollup level."""

    children: dict[str, RollupGroup] = Field(default_factory=dict)
