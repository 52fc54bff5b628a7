"""Event-level time slicing.

Events are grouped by session and walked in timestamp order. Each pair of
consecutive events closer together than the break threshold becomes an active
slice attributed to the earlier (anchor) event's project, ticket and model.
A gap at or above the threshold is a break: no time is attributed across it,
but a prompt that precedes it still yields a zero-second slice so it is
counted. A session's final prompt is counted the same way.

Because every slice carries the attribution of its own anchor, a mid-session
switch of ticket or project splits time correctly, and concurrent sessions
never bleed into each other.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta

from timelog.models import Event, Slice

logger = logging.getLogger(__name__)

DEFAULT_BREAK_MS = 1_800_000  # 30 minutes

_ONE_MS = timedelta(milliseconds=1)


def _make_slice(anchor: Event, anchor_ts: datetime, seconds: float) -> Slice:
    return Slice(
        session_id=anchor.session_id,
        project=anchor.project,
        ticket=anchor.ticket,
        model=anchor.model,
        date=anchor_ts.date().isoformat(),
        seconds=seconds,
        is_prompt=anchor.is_prompt,
    )


def _session_slices(events: list[tuple[datetime, Event]], break_ms: int) -> list[Slice]:
    """Slice one session's events, already sorted by timestamp."""
    slices: list[Slice] = []

    for (curr_ts, curr), (next_ts, _) in zip(events, events[1:]):
        delta = next_ts - curr_ts
        gap_ms = delta / _ONE_MS

        if 0 <= gap_ms < break_ms:
            slices.append(_make_slice(curr, curr_ts, delta.total_seconds()))
        elif curr.is_prompt:
            # Break after a prompt: count the prompt, not the idle time
            slices.append(_make_slice(curr, curr_ts, 0.0))

    last_ts, last = events[-1]
    if last.is_prompt:
        slices.append(_make_slice(last, last_ts, 0.0))

    return slices


def build_slices(events: Iterable[Event], break_ms: int = DEFAULT_BREAK_MS) -> list[Slice]:
    """Convert events into attributed time slices.

    Args:
        events: Events in any order, possibly from many sessions.
        break_ms: Gaps of this many milliseconds or more count as breaks.

    Returns:
        Slices grouped by session (sessions in order of first appearance),
        chronological within each session.
    """
    by_session: defaultdict[str, list[tuple[datetime, Event]]] = defaultdict(list)
    untimed = 0

    for event in events:
        if not event.session_id:
            continue
        ts = event.parsed_timestamp
        if ts is None:
            # Cannot be ordered within the session, so it bounds no pair
            untimed += 1
            continue
        by_session[event.session_id].append((ts, event))

    if untimed:
        logger.debug(f"Ignored {untimed} events with missing or invalid timestamps")

    slices: list[Slice] = []
    for session_events in by_session.values():
        # sorted() is stable, so equal timestamps keep input order
        session_events = sorted(session_events, key=lambda pair: pair[0])
        slices.extend(_session_slices(session_events, break_ms))

    return slices


def _matches(value: str | None, needle: str) -> bool:
    return needle.lower() in (value or "").lower()


def filter_slices(
    slices: Iterable[Slice],
    *,
    project: str | None = None,
    ticket: str | None = None,
) -> list[Slice]:
    """Keep slices whose project and ticket contain the given substrings.

    Matching is case-insensitive and a missing field matches as "". Options
    left as None (or empty) do not filter.
    """
    result = list(slices)
    if project:
        result = [s for s in result if _matches(s.project, project)]
    if ticket:
        result = [s for s in result if _matches(s.ticket, ticket)]
    return result
