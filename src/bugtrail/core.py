"""Core database operations for the bug tracker.

Single source of truth for all SQLite operations. The CLI, the dashboard,
and the query engine all import from this module. No daemon, no sync — just
direct SQLite with WAL mode.

Convention-based discovery: each project has a `.bugtrail/` directory
containing `bugtrail.db` (SQLite) and `config.json` (prefix, engine settings).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bugtrail.db_bugs import BugsMixin
from bugtrail.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from bugtrail.db_users import UsersMixin
from bugtrail.types.core import BugDict, ProjectConfig, UserDict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

BUGTRAIL_DIR_NAME = ".bugtrail"
DB_FILENAME = "bugtrail.db"
CONFIG_FILENAME = "config.json"


def find_bugtrail_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .bugtrail/ directory.

    Returns the .bugtrail/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / BUGTRAIL_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {BUGTRAIL_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(bugtrail_dir: Path) -> ProjectConfig:
    """Read .bugtrail/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(prefix="bugtrail", version=1)
    config_path = bugtrail_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(result, dict):
        logger.warning("Ignoring %s: expected a JSON object", config_path)
        return defaults
    config: ProjectConfig = result  # type: ignore[assignment]
    return config


def write_config(bugtrail_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .bugtrail/config.json."""
    config_path = bugtrail_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


# ---------------------------------------------------------------------------
# Engine settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for the query and analytics engine."""

    default_page_size: int = 10
    read_workers: int = 4
    read_timeout_seconds: float = 10.0
    recent_days: int = 7
    trend_months: int = 6
    top_assignees: int = 5


_INT_SETTINGS = ("default_page_size", "read_workers", "recent_days", "trend_months", "top_assignees")
_ENV_OVERRIDES = {
    "BUGTRAIL_READ_WORKERS": ("read_workers", int),
    "BUGTRAIL_READ_TIMEOUT": ("read_timeout_seconds", float),
}


def resolve_settings(config: ProjectConfig | None = None) -> EngineSettings:
    """Resolve engine settings from project config + env.

    Env vars win over config.json.  Values of the wrong type or below their
    floor are logged and skipped so a typo never takes the tracker down.
    """
    values: dict[str, Any] = {}
    raw = dict(config or {})
    for name in _INT_SETTINGS:
        if name not in raw:
            continue
        value = raw[name]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            logger.warning("Ignoring config %s=%r: expected a positive integer", name, value)
            continue
        values[name] = value
    if "read_timeout_seconds" in raw:
        timeout = raw["read_timeout_seconds"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            logger.warning("Ignoring config read_timeout_seconds=%r: expected a positive number", timeout)
        else:
            values["read_timeout_seconds"] = float(timeout)

    for env_name, (name, cast) in _ENV_OVERRIDES.items():
        env_raw = os.getenv(env_name)
        if env_raw is None:
            continue
        try:
            parsed = cast(env_raw)
        except ValueError:
            logger.warning("Unparseable %s=%r, ignoring", env_name, env_raw)
            continue
        if parsed <= 0:
            logger.warning("Ignoring %s=%r: must be positive", env_name, env_raw)
            continue
        values[name] = parsed

    if "default_page_size" in values and values["default_page_size"] > 100:
        logger.warning("default_page_size=%d exceeds 100, clamping", values["default_page_size"])
        values["default_page_size"] = 100
    return EngineSettings(**values)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Bug:
    id: str
    title: str
    reporter_id: str
    description: str = ""
    status: str = "open"
    priority: str = "medium"
    type: str = "bug"
    assignee_id: str | None = None
    tags: list[str] = field(default_factory=list)
    estimated_hours: float | None = None
    actual_hours: float | None = None
    due_date: str | None = None
    resolved_at: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> BugDict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "type": self.type,
            "assignee_id": self.assignee_id,
            "reporter_id": self.reporter_id,
            "tags": list(self.tags),
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "due_date": self.due_date,  # type: ignore[typeddict-item]
            "resolved_at": self.resolved_at,  # type: ignore[typeddict-item]
            "created_at": self.created_at,  # type: ignore[typeddict-item]
            "updated_at": self.updated_at,  # type: ignore[typeddict-item]
        }


@dataclass
class User:
    id: str
    email: str
    first_name: str
    last_name: str
    role: str = "developer"
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> UserDict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at,  # type: ignore[typeddict-item]
            "updated_at": self.updated_at,  # type: ignore[typeddict-item]
        }


def bug_from_row(row: sqlite3.Row) -> Bug:
    """Build a Bug from a ``SELECT * FROM bugs`` row."""
    try:
        tags = json.loads(row["tags"] or "[]")
    except json.JSONDecodeError:
        logger.warning("Corrupt tags JSON on bug %s, treating as empty", row["id"])
        tags = []
    return Bug(
        id=row["id"],
        title=row["title"],
        reporter_id=row["reporter_id"],
        description=row["description"] or "",
        status=row["status"],
        priority=row["priority"],
        type=row["type"],
        assignee_id=row["assignee_id"],
        tags=tags if isinstance(tags, list) else [],
        estimated_hours=row["estimated_hours"],
        actual_hours=row["actual_hours"],
        due_date=row["due_date"],
        resolved_at=row["resolved_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=row["role"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _contains_ci(haystack: str | None, needle: str | None) -> int:
    """SQL function: case-insensitive substring test (Unicode-aware, unlike LIKE)."""
    if haystack is None or needle is None:
        return 0
    return 1 if needle.casefold() in haystack.casefold() else 0


def _configure_connection(conn: sqlite3.Connection) -> None:
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)


# ---------------------------------------------------------------------------
# BugTrailDB
# ---------------------------------------------------------------------------


class BugTrailDB(BugsMixin, UsersMixin):
    """Direct SQLite operations. No daemon, no sync. Importable by CLI and dashboard."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        prefix: str = "bugtrail",
        settings: EngineSettings | None = None,
        check_same_thread: bool = True,
    ) -> None:
        self.db_path = Path(db_path)
        self.prefix = prefix
        self.settings = settings or EngineSettings()
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread

    @classmethod
    def from_project(cls, project_path: Path | None = None) -> BugTrailDB:
        """Create a BugTrailDB by discovering .bugtrail/ from project_path (or cwd)."""
        bugtrail_dir = find_bugtrail_root(project_path)
        config = read_config(bugtrail_dir)
        db = cls(
            bugtrail_dir / DB_FILENAME,
            prefix=config.get("prefix", "bugtrail"),
            settings=resolve_settings(config),
        )
        db.initialize()
        return db

    def __enter__(self) -> BugTrailDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level="DEFERRED",
                check_same_thread=self._check_same_thread,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            _configure_connection(self._conn)
        return self._conn

    def reconnect(self, *, check_same_thread: bool) -> None:
        """Close and reopen the shared connection with a new threading mode."""
        self.close()
        self._check_same_thread = check_same_thread

    @contextlib.contextmanager
    def read_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a short-lived, query-only connection for a worker thread.

        WAL mode lets these run alongside the shared connection; each one sees
        the latest committed state when its first statement runs.
        """
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        try:
            _configure_connection(conn)
            conn.execute("PRAGMA query_only=ON")
            yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create tables for a fresh database and stamp the schema version."""
        if self.get_schema_version() == 0:
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
        self.conn.commit()

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _generate_unique_id(self, table: str, infix: str = "") -> str:
        """Generate a unique ID using O(1) EXISTS checks against the PK index.

        *table* is always a hardcoded literal at the call site (never user input).
        """
        sep = f"-{infix}-" if infix else "-"
        for _ in range(10):
            candidate = f"{self.prefix}{sep}{uuid.uuid4().hex[:10]}"
            if self.conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (candidate,)).fetchone() is None:
                return candidate
        return f"{self.prefix}{sep}{uuid.uuid4().hex[:16]}"
