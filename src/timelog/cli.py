"""CLI entry point for timelog."""

from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import click

from timelog.aggregate import (
    aggregate,
    build_day_project_ticket,
    build_timesheet,
    day_key,
    model_key,
    project_key,
    summarize,
    ticket_key,
)
from timelog.capture import append_event, build_event
from timelog.config import default_timelog_dir, load_config
from timelog.errors import CaptureError
from timelog.reader import find_log_files, parse_entries
from timelog.report import (
    build_json_report,
    render_day_project,
    render_group_table,
    render_summary,
    render_timesheet,
)
from timelog.slicing import build_slices, filter_slices

logger = logging.getLogger(__name__)


def get_week_start(day: date | None = None) -> date:
    """Monday of the week containing day (default: today, local time)."""
    if day is None:
        day = datetime.now().astimezone().date()
    return day - timedelta(days=day.weekday())


def get_month_start(day: date | None = None) -> date:
    """First day of the month containing day (default: today, local time)."""
    if day is None:
        day = datetime.now().astimezone().date()
    return day.replace(day=1)


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string. Raises ValueError on bad input."""
    return datetime.strptime(value, "%Y-%m-%d").date()


dir_option = click.option(
    "--dir",
    "timelog_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Timelog directory (default: $CLAUDE_TIMELOG_DIR or ~/.claude/timelog)",
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def main(verbose: bool) -> None:
    """Timelog: timesheets from Claude Code session events."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@main.command("report")
@dir_option
@click.option("--week", is_flag=True, help="This week, from Monday (default)")
@click.option("--month", is_flag=True, help="This month")
@click.option("--from", "from_date", help="Start date (YYYY-MM-DD)")
@click.option("--to", "to_date", help="End date (YYYY-MM-DD, default: today)")
@click.option("--by-project", is_flag=True, help="Group by project")
@click.option("--by-ticket", is_flag=True, help="Group by ticket")
@click.option("--by-model", is_flag=True, help="Group by model")
@click.option("--by-day", is_flag=True, help="Group by day")
@click.option("--timesheet", is_flag=True, help="Project -> ticket breakdown")
@click.option("--project", "project_filter", help="Only projects containing this text")
@click.option("--ticket", "ticket_filter", help="Only tickets containing this text")
@click.option(
    "--break-threshold",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds of inactivity counted as a break (default: from config, 1800)",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def report_command(
    timelog_dir: Path | None,
    week: bool,
    month: bool,
    from_date: str | None,
    to_date: str | None,
    by_project: bool,
    by_ticket: bool,
    by_model: bool,
    by_day: bool,
    timesheet: bool,
    project_filter: str | None,
    ticket_filter: str | None,
    break_threshold: int | None,
    output_json: bool,
) -> None:
    """Show a timesheet built from recorded session events.

    Time between consecutive events of a session counts as active unless the
    gap reaches the break threshold. With no grouping flag, shows a
    day -> project -> ticket breakdown.

    Example:
        timelog report --week --by-ticket
        timelog report --from 2026-02-01 --to 2026-02-14
        timelog report --timesheet --project my-app
    """
    if timelog_dir is None:
        timelog_dir = default_timelog_dir()

    dates: dict[str, date | None] = {"--from": None, "--to": None}
    for option, value in (("--from", from_date), ("--to", to_date)):
        if value is None:
            continue
        try:
            dates[option] = parse_day(value)
        except ValueError:
            click.echo(f"Invalid date format for {option}: {value}. Use YYYY-MM-DD.", err=True)
            sys.exit(1)

    end = dates["--to"] or datetime.now().astimezone().date()
    if dates["--from"] is not None:
        start = dates["--from"]
        period_label = f"{start.isoformat()} to {end.isoformat()}"
    else:
        period = "month" if month else "week"
        start = get_month_start() if period == "month" else get_week_start()
        period_label = f"{period} starting {start.isoformat()}"

    files = find_log_files(timelog_dir, start, end)
    if not files:
        click.echo(f"No timelog data for {start.isoformat()} to {end.isoformat()}.", err=True)
        click.echo("Run 'timelog record' from Claude Code hooks to capture events.", err=True)
        sys.exit(1)

    config = load_config(timelog_dir)
    break_ms = break_threshold * 1000 if break_threshold else config.break_ms

    parsed = parse_entries(files)
    if parsed.skipped:
        logger.debug(f"Skipped {parsed.skipped} malformed lines in {len(files)} files")

    slices = filter_slices(
        build_slices(parsed.events, break_ms),
        project=project_filter,
        ticket=ticket_filter,
    )
    totals = summarize(slices)
    show_default = not (by_project or by_ticket or by_model or by_day or timesheet)

    if output_json:
        views = {}
        if by_project or show_default:
            views["by_project"] = aggregate(slices, project_key)
        if by_ticket:
            views["by_ticket"] = aggregate(slices, ticket_key)
        if by_model:
            views["by_model"] = aggregate(slices, model_key)
        if by_day:
            views["by_day"] = aggregate(slices, day_key)
        if timesheet:
            views["timesheet"] = build_timesheet(slices)
        if show_default:
            views["days"] = build_day_project_ticket(slices)
        output = build_json_report(
            start=start,
            end=end,
            totals=totals,
            views=views,
            skipped_lines=parsed.skipped,
        )
        click.echo(json.dumps(output, indent=2))
        return

    lines = render_summary(period_label, totals)
    if timesheet:
        lines += render_timesheet(build_timesheet(slices), totals)
    if show_default:
        lines += render_day_project(build_day_project_ticket(slices))
    if by_project:
        lines += render_group_table("Project", aggregate(slices, project_key))
    if by_ticket:
        lines += render_group_table("Ticket", aggregate(slices, ticket_key))
    if by_model:
        lines += render_group_table("Model", aggregate(slices, model_key))
    if by_day:
        lines += render_group_table("Day", aggregate(slices, day_key))

    for line in lines:
        click.echo(line)


@main.command("record")
@dir_option
def record_command(timelog_dir: Path | None) -> None:
    """Record one Claude Code hook event.

    Reads the hook JSON from stdin and appends an event line to today's file.
    Register it for the SessionStart, UserPromptSubmit and SessionEnd hooks.

    Example:
        echo '{"hook_event_name": "SessionStart", "session_id": "abc"}' | timelog record
    """
    if timelog_dir is None:
        timelog_dir = default_timelog_dir()
    config = load_config(timelog_dir)

    raw = sys.stdin.read()
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        click.echo(f"Warning: invalid hook input: {e}", err=True)
        sys.exit(1)

    try:
        event = build_event(payload, config)
        append_event(timelog_dir, event)
    except CaptureError as e:
        click.echo(f"Warning: {e}", err=True)
        sys.exit(1)

    click.echo("{}")


if __name__ == "__main__":
    main()
