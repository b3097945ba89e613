"""CSV export of filtered bugs.

Rows are joined with a bare ``\\n`` and the output has no trailing newline.
Fields are quoted only when they contain a comma, a double quote or a
newline.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from bugtrail.db_query import BugReader
from bugtrail.query import UNASSIGNED_LABEL, UNKNOWN_REPORTER_LABEL, fetch_all

if TYPE_CHECKING:
    from bugtrail.core import Bug, BugTrailDB
    from bugtrail.filters import BugFilter

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "ID",
    "Title",
    "Description",
    "Status",
    "Priority",
    "Type",
    "Assigned To",
    "Reporter",
    "Created At",
    "Updated At",
]

_NEEDS_QUOTING = (",", '"', "\n", "\r")


def escape_csv_field(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(ch in text for ch in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def _row(fields: Iterable[Any]) -> str:
    return ",".join(escape_csv_field(f) for f in fields)


def format_csv(bugs: Iterable[Bug], resolve_name: Callable[[str | None, str], str]) -> str:
    """Render *bugs* as CSV text.

    *resolve_name(user_id, fallback)* maps a user reference to a display
    name, returning *fallback* when the reference is absent or dangling.
    """
    lines = [_row(CSV_HEADER)]
    for bug in bugs:
        lines.append(
            _row(
                [
                    bug.id,
                    bug.title,
                    bug.description or "",
                    bug.status,
                    bug.priority,
                    bug.type,
                    resolve_name(bug.assignee_id, UNASSIGNED_LABEL),
                    resolve_name(bug.reporter_id, UNKNOWN_REPORTER_LABEL),
                    bug.created_at,
                    bug.updated_at,
                ]
            )
        )
    return "\n".join(lines)


def export_csv(db: BugTrailDB, bug_filter: BugFilter) -> str:
    """All bugs matching *bug_filter* as CSV, in listing order."""
    t0 = time.monotonic()
    bugs = fetch_all(db, bug_filter)
    names = BugReader(db.conn).display_names([b.assignee_id for b in bugs] + [b.reporter_id for b in bugs])
    text = format_csv(bugs, lambda uid, fallback: names.get(uid or "", fallback))
    logger.info(
        "bug_export",
        extra={
            "operation": "export",
            "filter": bug_filter.to_dict(),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        },
    )
    return text


def export_filename(now: datetime) -> str:
    return f"bugs-export-{now:%Y-%m-%d}.csv"
