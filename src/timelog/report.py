"""Rendering aggregates as fixed-width tables or JSON."""

from __future__ import annotations

from datetime import date
from typing import Any, NamedTuple

from timelog.models import GroupStats, RollupGroup

SEPARATOR_CHAR = "─"
ELLIPSIS = "…"


def format_duration(seconds: float) -> str:
    """Format seconds as 'Hh MMm' or 'Mm', rounded down to the minute.

    Args:
        seconds: Duration in seconds.

    Returns:
        Formatted duration string, '0m' for zero.
    """
    if not seconds:
        return "0m"
    total_minutes = int(seconds // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"


def format_date(day: str) -> str:
    """Format 'YYYY-MM-DD' as 'Tue 10 Feb'."""
    d = date.fromisoformat(day)
    return f"{d.strftime('%a')} {d.day:>2} {d.strftime('%b')}"


def truncate(text: str, width: int) -> str:
    """Cut text to width characters, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: width - 1] + ELLIPSIS


class Column(NamedTuple):
    header: str
    width: int
    align: str = "left"


def _cell(value: Any, column: Column) -> str:
    text = truncate(str(value), column.width)
    if column.align == "right":
        return text.rjust(column.width)
    return text.ljust(column.width)


def _row(columns: list[Column], values: list[Any]) -> str:
    return "  ".join(_cell(v, c) for v, c in zip(values, columns)).rstrip()


def _header(columns: list[Column]) -> list[str]:
    return [
        _row(columns, [c.header for c in columns]),
        _separator(columns),
    ]


def _separator(columns: list[Column]) -> str:
    return "  ".join(SEPARATOR_CHAR * c.width for c in columns)


def by_active(groups: dict[str, GroupStats]) -> list[tuple[str, GroupStats]]:
    """Groups sorted by descending active time (stable for ties)."""
    return sorted(groups.items(), key=lambda item: -item[1].active_seconds)


def render_summary(period_label: str, totals: GroupStats) -> list[str]:
    """Report title and overall totals."""
    return [
        f"Timelog Report ({period_label})",
        f"Total: {totals.session_count} sessions, {totals.prompt_count} prompts, "
        f"{format_duration(totals.active_seconds)} active",
        "",
    ]


def render_group_table(label: str, groups: dict[str, GroupStats]) -> list[str]:
    """One row per group: key, active time, sessions, prompts."""
    columns = [
        Column(label, 22),
        Column("Active", 7, "right"),
        Column("Sess", 4, "right"),
        Column("Prompts", 7, "right"),
    ]
    lines = _header(columns)
    for key, stats in by_active(groups):
        lines.append(
            _row(
                columns,
                [key, format_duration(stats.active_seconds), stats.session_count, stats.prompt_count],
            )
        )
    lines.append("")
    return lines


DAY_PROJECT_COLUMNS = [
    Column("Date", 10),
    Column("Project / Ticket", 24),
    Column("Active", 8, "right"),
    Column("Prompts", 7, "right"),
]


def render_day_project(days: dict[str, RollupGroup]) -> list[str]:
    """Day -> project -> ticket table.

    Days are listed chronologically and the date is shown only on a day's
    first row. Projects and their tickets are sorted by active time.
    """
    columns = DAY_PROJECT_COLUMNS
    lines = _header(columns)

    for day in sorted(days):
        show_date = True
        for project, project_group in by_active(days[day].children):
            lines.append(
                _row(
                    columns,
                    [
                        format_date(day) if show_date else "",
                        project,
                        format_duration(project_group.active_seconds),
                        project_group.prompt_count,
                    ],
                )
            )
            show_date = False
            for ticket, ticket_group in by_active(project_group.children):
                lines.append(
                    _row(
                        columns,
                        [
                            "",
                            "  " + truncate(ticket, columns[1].width - 2),
                            format_duration(ticket_group.active_seconds),
                            ticket_group.prompt_count,
                        ],
                    )
                )

    lines.append("")
    return lines


TIMESHEET_COLUMNS = [
    Column("Project / Ticket", 28),
    Column("Active", 8, "right"),
    Column("Sess", 4, "right"),
    Column("Prompts", 7, "right"),
]


def render_timesheet(projects: dict[str, RollupGroup], totals: GroupStats) -> list[str]:
    """Project -> ticket table closed by a total row."""
    columns = TIMESHEET_COLUMNS

    def stats_row(label: str, stats: GroupStats) -> str:
        return _row(
            columns,
            [label, format_duration(stats.active_seconds), stats.session_count, stats.prompt_count],
        )

    lines = _header(columns)
    for project, project_group in by_active(projects):
        lines.append(stats_row(project, project_group))
        for ticket, ticket_group in by_active(project_group.children):
            lines.append(stats_row("  " + truncate(ticket, columns[0].width - 2), ticket_group))

    lines.append(_separator(columns))
    lines.append(stats_row("Total", totals))
    lines.append("")
    return lines


def _groups_json(groups: dict[str, GroupStats]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, stats in by_active(groups):
        entry: dict[str, Any] = {
            "session_count": stats.session_count,
            "prompt_count": stats.prompt_count,
            "active_seconds": stats.active_seconds,
        }
        if isinstance(stats, RollupGroup):
            entry["children"] = _groups_json(stats.children)
        result[key] = entry
    return result


def build_json_report(
    *,
    start: date,
    end: date,
    totals: GroupStats,
    views: dict[str, dict[str, GroupStats]],
    skipped_lines: int = 0,
) -> dict[str, Any]:
    """JSON-serializable report.

    Every group of every view is included with its three counters, and
    rollup groups carry their nested ``children``.

    Args:
        start: First day of the period.
        end: Last day of the period.
        totals: Overall totals.
        views: View name to groups, e.g. {"by_project": aggregate(...)}.
        skipped_lines: Malformed lines dropped while reading.
    """
    output: dict[str, Any] = {
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "total": totals.model_dump(),
        "skipped_lines": skipped_lines,
    }
    for name, groups in views.items():
        output[name] = _groups_json(groups)
    return output
