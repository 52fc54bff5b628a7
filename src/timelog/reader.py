"""Reading timelog JSONL files."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import date
from pathlib import Path

from pydantic import BaseModel, ValidationError

from timelog.models import Event

logger = logging.getLogger(__name__)

LOG_FILE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.jsonl$")


class ParseResult(BaseModel):
    """Events read from a set of files plus the number of lines dropped."""

    events: list[Event]
    skipped: int = 0


def _parse_line(line: str) -> Event | None:
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return Event.model_validate(data)
    except ValidationError:
        return None


def parse_entries(paths: Iterable[Path]) -> ParseResult:
    """Parse JSONL files into events.

    Events are returned in file order, then line order. Blank lines are
    ignored; lines that are not a JSON object are skipped and counted.
    Missing files contribute nothing.

    Args:
        paths: Files to read, already selected by the caller.

    Returns:
        ParseResult with the events and the skipped-line count.
    """
    events: list[Event] = []
    skipped = 0

    for path in paths:
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                for line_number, line in enumerate(f, 1):
                    stripped = line.strip()
                    if not stripped:
                        continue
                    event = _parse_line(stripped)
                    if event is None:
                        logger.debug(f"{path}:{line_number}: skipping malformed line")
                        skipped += 1
                        continue
                    events.append(event)
        except FileNotFoundError:
            logger.debug(f"Log file does not exist: {path}")

    return ParseResult(events=events, skipped=skipped)


def find_log_files(log_dir: Path, start: date, end: date) -> list[Path]:
    """Find day files whose date falls within [start, end].

    Args:
        log_dir: Timelog directory containing YYYY-MM-DD.jsonl files
        start: First day (inclusive)
        end: Last day (inclusive)

    Returns:
        Matching paths sorted by date.
    """
    if not log_dir.is_dir():
        logger.debug(f"Timelog directory does not exist: {log_dir}")
        return []

    start_key = start.isoformat()
    end_key = end.isoformat()
    files = []
    for path in log_dir.iterdir():
        match = LOG_FILE_RE.match(path.name)
        if not match or not path.is_file():
            continue
        if start_key <= match.group(1) <= end_key:
            files.append(path)

    return sorted(files, key=lambda p: p.name)
