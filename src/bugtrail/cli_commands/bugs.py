"""CLI commands for bug CRUD and listing: create, show, update, delete, list."""

from __future__ import annotations

import json as json_mod
from typing import Any

import click

from bugtrail.cli_common import fail, filter_params, get_db
from bugtrail.db_base import BUG_TYPES, PRIORITIES, STATUSES
from bugtrail.errors import InvalidFilterError, InvalidPaginationError, PersistenceError
from bugtrail.query import UNASSIGNED_LABEL, UNKNOWN_REPORTER_LABEL, list_bugs_from_params


@click.command()
@click.argument("title")
@click.option("--description", "-d", required=True, help="Description")
@click.option("--reporter", "reporter_id", required=True, help="Reporter user ID")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default="medium", help="Priority (default medium)")
@click.option("--type", "bug_type", type=click.Choice(BUG_TYPES), default="bug", help="Bug type (default bug)")
@click.option("--assignee", default=None, help="Assignee user ID")
@click.option("--tag", "-t", multiple=True, help="Tags (repeatable)")
@click.option("--estimate", type=float, default=None, help="Estimated hours")
@click.option("--due", default=None, help="Due date (ISO-8601, must be in the future)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create(
    title: str,
    description: str,
    reporter_id: str,
    priority: str,
    bug_type: str,
    assignee: str | None,
    tag: tuple[str, ...],
    estimate: float | None,
    due: str | None,
    as_json: bool,
) -> None:
    """Create a new bug."""
    with get_db() as db:
        try:
            bug = db.create_bug(
                title,
                description,
                reporter_id=reporter_id,
                priority=priority,
                type=bug_type,
                assignee_id=assignee,
                tags=list(tag) if tag else None,
                estimated_hours=estimate,
                due_date=due,
            )
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(bug.to_dict(), indent=2, default=str))
        else:
            click.echo(f"Created {bug.id}: {bug.title}")


@click.command()
@click.argument("bug_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(bug_id: str, as_json: bool) -> None:
    """Show bug details."""
    with get_db() as db:
        try:
            bug = db.get_bug(bug_id)
        except KeyError:
            fail(f"Not found: {bug_id}", as_json=as_json)

        if as_json:
            click.echo(json_mod.dumps(bug.to_dict(), indent=2, default=str))
            return

        click.echo(f"ID:       {bug.id}")
        click.echo(f"Title:    {bug.title}")
        click.echo(f"Status:   {bug.status}")
        click.echo(f"Priority: {bug.priority}")
        click.echo(f"Type:     {bug.type}")
        click.echo(f"Assignee: {db.display_name(bug.assignee_id, UNASSIGNED_LABEL)}")
        click.echo(f"Reporter: {db.display_name(bug.reporter_id, UNKNOWN_REPORTER_LABEL)}")
        click.echo(f"Created:  {bug.created_at}")
        if bug.resolved_at:
            click.echo(f"Resolved: {bug.resolved_at}")
        if bug.due_date:
            click.echo(f"Due:      {bug.due_date}")
        if bug.tags:
            click.echo(f"Tags:     {', '.join(bug.tags)}")
        if bug.description:
            click.echo(f"\n{bug.description}")


@click.command()
@click.argument("bug_id")
@click.option("--title", default=None, help="New title")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--status", type=click.Choice(STATUSES), default=None, help="New status")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default=None, help="New priority")
@click.option("--type", "bug_type", type=click.Choice(BUG_TYPES), default=None, help="New type")
@click.option("--assignee", default=None, help="Assignee user ID ('' to unassign)")
@click.option("--actual", type=float, default=None, help="Actual hours spent")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update(
    bug_id: str,
    title: str | None,
    description: str | None,
    status: str | None,
    priority: str | None,
    bug_type: str | None,
    assignee: str | None,
    actual: float | None,
    as_json: bool,
) -> None:
    """Update a bug."""
    changes: dict[str, Any] = {}
    if assignee is not None:
        changes["assignee_id"] = assignee
    if actual is not None:
        changes["actual_hours"] = actual
    with get_db() as db:
        try:
            bug = db.update_bug(
                bug_id,
                title=title,
                description=description,
                status=status,
                priority=priority,
                type=bug_type,
                **changes,
            )
        except KeyError:
            fail(f"Not found: {bug_id}", as_json=as_json)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(bug.to_dict(), indent=2, default=str))
        else:
            click.echo(f"Updated {bug.id}: {bug.title} [{bug.status}]")


@click.command()
@click.argument("bug_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def delete(bug_id: str, yes: bool) -> None:
    """Delete a bug."""
    if not yes:
        click.confirm(f"Delete {bug_id}?", abort=True)
    with get_db() as db:
        try:
            db.delete_bug(bug_id)
        except KeyError:
            fail(f"Not found: {bug_id}")
    click.echo(f"Deleted {bug_id}")


@click.command("list")
@click.option("--status", default=None, help="Filter by status")
@click.option("--priority", "-p", default=None, help="Filter by priority")
@click.option("--type", "bug_type", default=None, help="Filter by type")
@click.option("--assignee", default=None, help="Filter by assignee user ID")
@click.option("--reporter", default=None, help="Filter by reporter user ID")
@click.option("--unassigned", is_flag=True, help="Only bugs with no assignee (overrides --assignee)")
@click.option("--search", "-s", default=None, help="Case-insensitive text in title or description")
@click.option("--page", default=None, type=int, help="Page number (default 1)")
@click.option("--limit", default=None, type=int, help="Page size, 1-100 (default from config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_bugs(
    status: str | None,
    priority: str | None,
    bug_type: str | None,
    assignee: str | None,
    reporter: str | None,
    unassigned: bool,
    search: str | None,
    page: int | None,
    limit: int | None,
    as_json: bool,
) -> None:
    """List bugs with optional filters, newest first."""
    params: dict[str, Any] = filter_params(
        status=status,
        priority=priority,
        bug_type=bug_type,
        assignee=assignee,
        reporter=reporter,
        unassigned=unassigned,
        search=search,
    )
    if page is not None:
        params["page"] = page
    if limit is not None:
        params["limit"] = limit

    with get_db() as db:
        try:
            listing = list_bugs_from_params(db, params)
        except (InvalidFilterError, InvalidPaginationError, PersistenceError) as e:
            fail(str(e), as_json=as_json)

        if as_json:
            click.echo(json_mod.dumps(listing.to_dict(), indent=2, default=str))
            return

        for item in listing.to_dict()["bugs"]:
            click.echo(f"{item['id']} {item['priority']:<8} {item['status']:<12} {item['title']}  ({item['assignee_name']})")
        p = listing.pagination
        click.echo(f"\nPage {p['current_page']}/{p['total_pages']} ({p['total_count']} bugs)")


def register(cli: click.Group) -> None:
    """Register bug commands with the CLI group."""
    cli.add_command(create)
    cli.add_command(show)
    cli.add_command(update)
    cli.add_command(delete)
    cli.add_command(list_bugs, "list")
