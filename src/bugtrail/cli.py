"""CLI for the bugtrail bug tracker.

Convention-based: discovers .bugtrail/ by walking up from cwd.

Usage:
    bugtrail init                                          # Initialize .bugtrail/ in cwd
    bugtrail user-add ada@example.com --first Ada --last Lovelace
    bugtrail users                                         # List users
    bugtrail create "Login fails" -d "..." --reporter <id> # Create bug
    bugtrail show <id>                                     # Show bug details
    bugtrail update <id> --status=closed                   # Update bug
    bugtrail delete <id>                                   # Delete bug
    bugtrail list --status=open --search=login             # Filtered, paginated listing
    bugtrail export --priority=high                        # CSV export
    bugtrail analytics                                     # Analytics report
    bugtrail stats                                         # Overview statistics
    bugtrail dashboard                                     # HTTP API server
"""

from __future__ import annotations

import click

from bugtrail import __version__
from bugtrail.cli_commands import admin, bugs, reports, users


@click.group()
@click.version_option(version=__version__, prog_name="bugtrail")
def cli() -> None:
    """bugtrail — local-first bug tracker."""


admin.register(cli)
users.register(cli)
bugs.register(cli)
reports.register(cli)


if __name__ == "__main__":
    cli()
