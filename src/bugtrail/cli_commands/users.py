"""CLI commands for the user directory: user-add, users."""

from __future__ import annotations

import json as json_mod

import click

from bugtrail.cli_common import fail, get_db
from bugtrail.db_base import ROLES


@click.command("user-add")
@click.argument("email")
@click.option("--first", "first_name", required=True, help="First name")
@click.option("--last", "last_name", required=True, help="Last name")
@click.option("--role", type=click.Choice(ROLES), default="developer", help="Role (default developer)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def user_add(email: str, first_name: str, last_name: str, role: str, as_json: bool) -> None:
    """Add a user who can report or be assigned bugs."""
    with get_db() as db:
        try:
            user = db.create_user(email, first_name=first_name, last_name=last_name, role=role)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(user.to_dict(), indent=2))
        else:
            click.echo(f"Created {user.id}: {user.display_name} <{user.email}>")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def users(as_json: bool) -> None:
    """List users."""
    with get_db() as db:
        found = db.list_users()
        if as_json:
            click.echo(json_mod.dumps([u.to_dict() for u in found], indent=2))
            return
        for u in found:
            click.echo(f"{u.id} {u.role:<10} {u.display_name} <{u.email}>")
        click.echo(f"\n{len(found)} users")


def register(cli: click.Group) -> None:
    """Register user commands with the CLI group."""
    cli.add_command(user_add)
    cli.add_command(users)
