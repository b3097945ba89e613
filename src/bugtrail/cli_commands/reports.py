"""CLI commands for reports: export, analytics, stats."""

from __future__ import annotations

import json as json_mod
from datetime import UTC, datetime
from pathlib import Path

import click

from bugtrail.analytics import build_report, get_overview
from bugtrail.cli_common import fail, filter_params, get_db
from bugtrail.errors import InvalidFilterError, PersistenceError
from bugtrail.export import export_csv, export_filename
from bugtrail.filters import normalize_filter


def _filter_options(fn: click.decorators.FC) -> click.decorators.FC:
    """Shared filter flags for report commands."""
    for decorator in reversed(
        [
            click.option("--status", default=None, help="Filter by status"),
            click.option("--priority", "-p", default=None, help="Filter by priority"),
            click.option("--type", "bug_type", default=None, help="Filter by type"),
            click.option("--assignee", default=None, help="Filter by assignee user ID"),
            click.option("--reporter", default=None, help="Filter by reporter user ID"),
            click.option("--unassigned", is_flag=True, help="Only bugs with no assignee"),
            click.option("--search", "-s", default=None, help="Text in title or description"),
        ]
    ):
        fn = decorator(fn)
    return fn


@click.command("export")
@_filter_options
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Output file (default bugs-export-<date>.csv)")
@click.option("--stdout", "to_stdout", is_flag=True, help="Write CSV to stdout instead of a file")
def export_cmd(output: Path | None, to_stdout: bool, **filters: object) -> None:
    """Export filtered bugs as CSV."""
    with get_db() as db:
        try:
            text = export_csv(db, normalize_filter(filter_params(**filters)))
        except (InvalidFilterError, PersistenceError) as e:
            fail(str(e))
    if to_stdout:
        click.echo(text)
        return
    path = output or Path(export_filename(datetime.now(UTC)))
    path.write_text(text, encoding="utf-8")
    click.echo(f"Exported to {path}")


@click.command()
@_filter_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def analytics(as_json: bool, **filters: object) -> None:
    """Bug counts, distributions, top assignees and monthly trend."""
    with get_db() as db:
        try:
            report = build_report(db, normalize_filter(filter_params(**filters)))
        except (InvalidFilterError, PersistenceError) as e:
            fail(str(e), as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps(report, indent=2))
        return

    click.echo(f"Total:        {report['total_bugs']}")
    click.echo(f"Open:         {report['open_bugs']}")
    click.echo(f"In progress:  {report['in_progress_bugs']}")
    click.echo(f"Resolved:     {report['resolved_bugs']}")
    click.echo(f"Closed:       {report['closed_bugs']}")
    click.echo(f"High:         {report['high_priority_bugs']}")
    click.echo(f"Critical:     {report['critical_bugs']}")
    click.echo(f"Last 7 days:  {report['recent_bugs']}")
    if report["assignee_stats"]:
        click.echo("\nTop assignees:")
        for a in report["assignee_stats"]:
            click.echo(f"  {a['value']:>4}  {a['name']}")
    if report["monthly_trend"]:
        click.echo("\nMonthly trend:")
        for m in report["monthly_trend"]:
            click.echo(f"  {m['month']}  {m['count']}")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(as_json: bool) -> None:
    """Overview: totals, resolve rate, and status/priority/type breakdown."""
    with get_db() as db:
        try:
            overview = get_overview(db)
        except PersistenceError as e:
            fail(str(e), as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps(overview, indent=2))
        return

    click.echo(f"Total:  {overview['total_bugs']}")
    click.echo(f"Open:   {overview['open_bugs']}")
    click.echo(f"Closed: {overview['closed_bugs']} ({overview['resolve_rate']}% resolved)")
    for chart in ("status", "priority", "type"):
        points = overview["charts"][chart]  # type: ignore[literal-required]
        if points:
            click.echo(f"\nBy {chart}:")
            for p in points:
                click.echo(f"  {p['name']:<12} {p['value']}")


def register(cli: click.Group) -> None:
    """Register report commands with the CLI group."""
    cli.add_command(export_cmd, "export")
    cli.add_command(analytics)
    cli.add_command(stats)
