"""Recording hook events as timelog lines."""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from timelog.config import TimelogConfig
from timelog.errors import CaptureError
from timelog.models import SESSION_END, SESSION_START, USER_PROMPT_SUBMIT, Event

logger = logging.getLogger(__name__)

PROMPT_MAX_CHARS = 500
GIT_TIMEOUT_SECONDS = 5
TRANSCRIPT_TAIL_BYTES = 16384
TOOL_PATH_KEYS = ("file_path", "path", "notebook_path")


class HookPayload(BaseModel):
    """JSON object a Claude Code hook receives on stdin."""

    model_config = ConfigDict(extra="ignore")

    hook_event_name: str
    session_id: str | None = None
    cwd: str | None = None
    model: str | None = None
    source: str | None = None
    prompt: str | None = None
    reason: str | None = None


def match_ticket(text: str | None, patterns: list[str]) -> str | None:
    """Return the first ticket id found in text.

    Patterns are tried in order. The first capture group is used when the
    pattern has one, otherwise the whole match. Invalid patterns are skipped.
    """
    if not text:
        return None
    for pattern in patterns:
        try:
            match = re.search(pattern, text)
        except re.error:
            logger.debug(f"Skipping invalid ticket pattern: {pattern!r}")
            continue
        if match:
            if match.groups() and match.group(1):
                return match.group(1)
            return match.group(0)
    return None


def _git(cwd: str, *args: str) -> str | None:
    """Run a git command in cwd, returning stripped stdout or None on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
            check=True,
        )
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug(f"git {' '.join(args)} failed in {cwd}: {e}")
        return None
    return result.stdout.strip() or None


def extract_project_from_path(path: str | None, pattern: str | None) -> str | None:
    """Project name matched by pattern in a file path, or None."""
    if not path or not pattern:
        return None
    try:
        match = re.search(pattern, path)
    except re.error:
        logger.debug(f"Skipping invalid project pattern: {pattern!r}")
        return None
    if not match:
        return None
    if match.groups() and match.group(1):
        return match.group(1)
    return match.group(0)


def extract_file_paths(record: Any) -> list[str]:
    """Absolute file paths touched by tool calls in one transcript record."""
    if not isinstance(record, dict):
        return []
    message = record.get("message")
    if not isinstance(message, dict) or not isinstance(message.get("content"), list):
        return []

    paths = []
    for block in message["content"]:
        if not isinstance(block, dict) or block.get("type") != "tool_use":
            continue
        tool_input = block.get("input")
        if not isinstance(tool_input, dict):
            continue
        for key in TOOL_PATH_KEYS:
            value = tool_input.get(key)
            if isinstance(value, str) and value.startswith("/"):
                paths.append(value)
    return paths


def transcript_path(cwd: str, session_id: str) -> Path:
    """Where Claude Code keeps the transcript for a session started in cwd."""
    return Path.home() / ".claude" / "projects" / cwd.replace("/", "-") / f"{session_id}.jsonl"


def read_tail(path: Path, size: int = TRANSCRIPT_TAIL_BYTES) -> str:
    """Last size bytes of a file as text; empty if it cannot be read."""
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            f.seek(max(0, f.tell() - size))
            data = f.read()
    except OSError as e:
        logger.debug(f"Cannot read transcript {path}: {e}")
        return ""
    return data.decode("utf-8", errors="replace")


def detect_project_from_transcript(cwd: str, session_id: str | None, config: TimelogConfig) -> str | None:
    """Project from the newest transcript file path matching project_pattern.

    Only the tail of the transcript is read, and records are tried newest first.
    """
    if not config.project_pattern or not session_id:
        return None
    tail = read_tail(transcript_path(cwd, session_id))

    for line in reversed(tail.splitlines()):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        for path in extract_file_paths(record):
            project = extract_project_from_path(path, config.project_pattern)
            if project:
                return project
    return None


def detect_project(cwd: str, config: TimelogConfig, session_id: str | None = None) -> str:
    """Project name: from transcript file paths, else git root name or cwd name."""
    project = detect_project_from_transcript(cwd, session_id, config)
    if project:
        return project
    if config.project_source == "cwd":
        return Path(cwd).name
    root = _git(cwd, "rev-parse", "--show-toplevel")
    return Path(root or cwd).name


def detect_ticket(cwd: str, config: TimelogConfig) -> str | None:
    """Ticket id from the current git branch name."""
    branch = _git(cwd, "branch", "--show-current")
    if not branch:
        return None
    return match_ticket(branch, config.ticket_patterns)


def build_event(
    payload: dict[str, Any],
    config: TimelogConfig,
    *,
    now: datetime | None = None,
) -> Event:
    """Turn a hook payload into the event to append.

    Args:
        payload: Parsed hook input.
        config: Effective configuration.
        now: Timestamp override for testing (defaults to UTC now).

    Raises:
        CaptureError: If the payload lacks required fields.
    """
    try:
        hook = HookPayload.model_validate(payload)
    except ValidationError as e:
        raise CaptureError(f"invalid hook payload: {e}") from e

    if now is None:
        now = datetime.now(timezone.utc)
    cwd = hook.cwd or str(Path.cwd())

    fields: dict[str, Any] = {
        "ts": now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z",
        "event": hook.hook_event_name,
        "session": hook.session_id,
        "project": detect_project(cwd, config, hook.session_id),
        "ticket": detect_ticket(cwd, config),
        "cwd": cwd,
    }

    if hook.hook_event_name == SESSION_START:
        fields["model"] = hook.model
        fields["source"] = hook.source
    elif hook.hook_event_name == USER_PROMPT_SUBMIT:
        if hook.prompt:
            fields["prompt"] = hook.prompt[:PROMPT_MAX_CHARS]
        if not fields["ticket"]:
            fields["ticket"] = match_ticket(hook.prompt, config.ticket_patterns)
    elif hook.hook_event_name == SESSION_END:
        fields["reason"] = hook.reason

    return Event.model_validate({k: v for k, v in fields.items() if v is not None})


def append_event(timelog_dir: Path, event: Event) -> Path:
    """Append an event to the day file for its timestamp. Returns the file path."""
    ts = event.parsed_timestamp
    if ts is None:
        raise CaptureError(f"event has no valid timestamp: {event.timestamp!r}")

    timelog_dir.mkdir(parents=True, exist_ok=True)
    path = timelog_dir / f"{ts.date().isoformat()}.jsonl"
    line = json.dumps(event.model_dump(by_alias=True, exclude_none=True))
    with open(path, "a", encoding="utf-8") as f:
        f.write(line + "\n")
    return path
