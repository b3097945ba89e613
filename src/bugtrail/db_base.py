"""Shared utilities, constants, and Protocol for DB mixins."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from bugtrail.core import Bug, EngineSettings, User

Priority = Literal["low", "medium", "high", "critical"]
Status = Literal["open", "in-progress", "resolved", "closed", "reopened"]
BugType = Literal["bug", "feature", "improvement", "task"]
Role = Literal["admin", "developer", "tester", "manager"]

# Tuples keep declaration order for distributions and help text.
PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
STATUSES: tuple[str, ...] = ("open", "in-progress", "resolved", "closed", "reopened")
BUG_TYPES: tuple[str, ...] = ("bug", "feature", "improvement", "task")
ROLES: tuple[str, ...] = ("admin", "developer", "tester", "manager")

VALID_PRIORITIES = frozenset(PRIORITIES)
VALID_STATUSES = frozenset(STATUSES)
VALID_BUG_TYPES = frozenset(BUG_TYPES)
VALID_ROLES = frozenset(ROLES)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _to_iso(dt: datetime) -> str:
    """Normalize an aware or naive datetime to the stored UTC ISO form."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat()


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self.get_bug(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by BugTrailDB at composition time.
    """

    db_path: Path
    prefix: str
    settings: EngineSettings
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def get_bug(self, bug_id: str) -> Bug: ...

    def get_user(self, user_id: str) -> User: ...

    def _generate_unique_id(self, table: str, infix: str = "") -> str: ...
