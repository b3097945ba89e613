"""CLI commands for admin: init, dashboard."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from bugtrail.core import (
    BUGTRAIL_DIR_NAME,
    DB_FILENAME,
    BugTrailDB,
    read_config,
    write_config,
)

_DASHBOARD_HINT = 'Dashboard requires extra dependencies. Install with: pip install "bugtrail[dashboard]"'


@click.command()
@click.option("--prefix", default=None, help="ID prefix for bugs (default: directory name)")
def init(prefix: str | None) -> None:
    """Initialize .bugtrail/ in the current directory."""
    cwd = Path.cwd()
    bugtrail_dir = cwd / BUGTRAIL_DIR_NAME

    if bugtrail_dir.exists():
        click.echo(f"{BUGTRAIL_DIR_NAME}/ already exists in {cwd}")
        # Still ensure DB is initialized
        config = read_config(bugtrail_dir)
        db = BugTrailDB(bugtrail_dir / DB_FILENAME, prefix=config.get("prefix", "bugtrail"))
        db.initialize()
        db.close()
        return

    prefix = prefix or cwd.name
    bugtrail_dir.mkdir()
    write_config(bugtrail_dir, {"prefix": prefix, "version": 1})

    db = BugTrailDB(bugtrail_dir / DB_FILENAME, prefix=prefix)
    db.initialize()
    db.close()

    click.echo(f"Initialized {BUGTRAIL_DIR_NAME}/ in {cwd}")
    click.echo(f"  Prefix: {prefix}")
    click.echo(f"  Database: {bugtrail_dir / DB_FILENAME}")
    click.echo("\nNext: bugtrail user-add <email> --first <name> --last <name>")


@click.command()
@click.option("--port", default=8390, type=int, help="Server port (default 8390)")
@click.option("--no-browser", is_flag=True, help="Don't auto-open browser")
def dashboard(port: int, no_browser: bool) -> None:
    """Launch the HTTP API (requires bugtrail[dashboard])."""
    from bugtrail.dashboard import main as dashboard_main

    try:
        dashboard_main(port=port, no_browser=no_browser)
    except ImportError:
        # fastapi and uvicorn are imported lazily on startup
        click.echo(_DASHBOARD_HINT, err=True)
        sys.exit(1)
    except FileNotFoundError as e:
        click.echo(str(e), err=True)
        sys.exit(1)


def register(cli: click.Group) -> None:
    """Register admin commands with the CLI group."""
    cli.add_command(init)
    cli.add_command(dashboard)
