"""Shared CLI helpers.

Provides ``get_db()`` and ``fail()`` so that ``cli.py`` and the
``cli_commands/*.py`` modules can use them without circular imports.
"""

from __future__ import annotations

import json as json_mod
import sys
from typing import NoReturn

import click

from bugtrail.core import BUGTRAIL_DIR_NAME, BugTrailDB, find_bugtrail_root
from bugtrail.logging import setup_logging


def get_db() -> BugTrailDB:
    """Discover .bugtrail/ and return an initialized BugTrailDB."""
    try:
        bugtrail_dir = find_bugtrail_root()
    except FileNotFoundError:
        click.echo(f"No {BUGTRAIL_DIR_NAME}/ found. Run 'bugtrail init' first.", err=True)
        sys.exit(1)
    setup_logging(bugtrail_dir)
    return BugTrailDB.from_project(bugtrail_dir.parent)


def fail(message: str, *, as_json: bool = False) -> NoReturn:
    """Report *message* (as ``{"error": ...}`` in JSON mode) and exit 1."""
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def filter_params(**options: object) -> dict[str, object]:
    """Map CLI filter options onto the raw filter keys the engine accepts."""
    keys = {
        "status": "status",
        "priority": "priority",
        "bug_type": "type",
        "assignee": "assignedTo",
        "reporter": "reporter",
        "unassigned": "unassigned",
        "search": "search",
    }
    return {keys[k]: v for k, v in options.items() if k in keys and v is not None and v is not False}
