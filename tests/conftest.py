"""Shared pytest fixtures for bugtrail tests."""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from click.testing import CliRunner

from bugtrail.core import BUGTRAIL_DIR_NAME, DB_FILENAME, BugTrailDB, write_config
from tests._db_factory import add_bug, add_user, make_db


@dataclass
class PopulatedDB:
    """A seeded database plus the ids of everything in it."""

    db: BugTrailDB
    ids: dict[str, str] = field(default_factory=dict)


@pytest.fixture
def db(tmp_path: Path) -> Generator[BugTrailDB, None, None]:
    """Fresh BugTrailDB for each test."""
    d = make_db(tmp_path)
    yield d
    d.close()


@pytest.fixture
def sequential_db(tmp_path: Path) -> Generator[BugTrailDB, None, None]:
    """BugTrailDB that runs every read on the shared connection."""
    d = make_db(tmp_path, read_workers=1)
    yield d
    d.close()


@pytest.fixture
def populated_db(db: BugTrailDB) -> PopulatedDB:
    """BugTrailDB pre-populated with a representative bug set.

    Creates:
    - users: Alice Smith, Bob Jones, Carol White (no bugs), Rita Reporter
    - 6 bugs reported by Rita:
        login   open        high      bug      -> Alice
        crash   in-progress critical  bug      -> Bob
        typo    closed      low       bug      unassigned
        export  resolved    medium    task     -> Alice
        dark    open        medium    feature  unassigned
        dupes   reopened    high      bug      -> Bob
    """
    alice = add_user(db, "Alice", "Smith")
    bob = add_user(db, "Bob", "Jones")
    carol = add_user(db, "Carol", "White", role="tester")
    rita = add_user(db, "Rita", "Reporter", role="manager")

    login = add_bug(db, "Login page broken", reporter=rita, priority="high", assignee_id=alice.id)
    crash = add_bug(db, "Crash on save", reporter=rita, status="in-progress", priority="critical", assignee_id=bob.id)
    typo = add_bug(db, "Typo in footer", reporter=rita, status="closed", priority="low")
    export = add_bug(db, "Export is slow", reporter=rita, status="resolved", type="task", assignee_id=alice.id)
    dark = add_bug(db, "Add dark mode", reporter=rita, type="feature")
    dupes = add_bug(db, "Search returns duplicates", reporter=rita, status="reopened", priority="high", assignee_id=bob.id)

    return PopulatedDB(
        db=db,
        ids={
            "alice": alice.id,
            "bob": bob.id,
            "carol": carol.id,
            "rita": rita.id,
            "login": login.id,
            "crash": crash.id,
            "typo": typo.id,
            "export": export.id,
            "dark": dark.id,
            "dupes": dupes.id,
        },
    )


@pytest.fixture
def bugtrail_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a bugtrail project (.bugtrail/ with config + db).

    Returns the project root (parent of .bugtrail/).
    """
    bugtrail_dir = tmp_path / BUGTRAIL_DIR_NAME
    bugtrail_dir.mkdir()
    write_config(bugtrail_dir, {"prefix": "proj", "version": 1})

    d = BugTrailDB(bugtrail_dir / DB_FILENAME, prefix="proj")
    d.initialize()
    d.close()
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
