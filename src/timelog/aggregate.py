"""Keyed aggregation and multi-level rollups of slices."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from timelog.models import GroupStats, RollupGroup, Slice

UNKNOWN = "(unknown)"
NO_TICKET = "(no ticket)"
UNTRACKED = "(untracked)"

KeyFn = Callable[[Slice], str | None]


def project_key(s: Slice) -> str:
    return s.project or UNKNOWN


def ticket_key(s: Slice) -> str:
    return s.ticket or NO_TICKET


def model_key(s: Slice) -> str:
    return s.model or UNKNOWN


def day_key(s: Slice) -> str:
    return s.date


def untracked_ticket_key(s: Slice) -> str:
    return s.ticket or UNTRACKED


class _Accumulator:
    """Mutable counters for one group, frozen once the fold is done."""

    def __init__(self) -> None:
        self.sessions: set[str] = set()
        self.prompts = 0
        self.active = 0.0
        self.children: dict[str, _Accumulator] = {}

    def add(self, s: Slice) -> None:
        self.sessions.add(s.session_id)
        if s.is_prompt:
            self.prompts += 1
        self.active += s.seconds

    def stats(self) -> GroupStats:
        return GroupStats(
            session_count=len(self.sessions),
            prompt_count=self.prompts,
            active_seconds=self.active,
        )

    def rollup(self) -> RollupGroup:
        return RollupGroup(
            session_count=len(self.sessions),
            prompt_count=self.prompts,
            active_seconds=self.active,
            children={key: child.rollup() for key, child in self.children.items()},
        )


def aggregate(slices: Iterable[Slice], key_fn: KeyFn) -> dict[str, GroupStats]:
    """Group slices by key and count sessions, prompts and active seconds.

    Args:
        slices: Slices to fold.
        key_fn: Maps a slice to its group key. A None or empty key drops the
            slice from every group.

    Returns:
        Dict mapping key to GroupStats, in first-seen key order. The session
        count is the number of distinct sessions, not slices.
    """
    groups: dict[str, _Accumulator] = {}
    for s in slices:
        key = key_fn(s)
        if not key:
            continue
        if key not in groups:
            groups[key] = _Accumulator()
        groups[key].add(s)
    return {key: acc.stats() for key, acc in groups.items()}


def summarize(slices: Iterable[Slice]) -> GroupStats:
    """Totals across all slices."""
    acc = _Accumulator()
    for s in slices:
        acc.add(s)
    return acc.stats()


def rollup(slices: Iterable[Slice], key_fns: Sequence[KeyFn]) -> dict[str, RollupGroup]:
    """Aggregate slices into nested groups, one level per key function.

    Every level is updated in the same pass with the same counting rules as
    aggregate(), so the prompt and active totals of a group's children add up
    to the group's own totals. Key functions must not return None here.
    """
    root = _Accumulator()
    for s in slices:
        node = root
        for key_fn in key_fns:
            key = key_fn(s)
            if key not in node.children:
                node.children[key] = _Accumulator()
            node = node.children[key]
            node.add(s)
    return {key: child.rollup() for key, child in root.children.items()}


def build_day_project_ticket(slices: Iterable[Slice]) -> dict[str, RollupGroup]:
    """Rollup by date, then project, then ticket."""
    return rollup(slices, [day_key, project_key, untracked_ticket_key])


def build_timesheet(slices: Iterable[Slice]) -> dict[str, RollupGroup]:
    """Rollup by project, then ticket."""
    return rollup(slices, [project_key, untracked_ticket_key])
