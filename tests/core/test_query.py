"""Tests for the store read primitives and concurrent read dispatch."""

from __future__ import annotations

import sqlite3
import threading
import time
from datetime import UTC, datetime

import pytest

from bugtrail.core import BugTrailDB
from bugtrail.db_query import BugReader, gather_reads
from bugtrail.errors import PersistenceError
from bugtrail.filters import BugFilter
from tests._db_factory import add_bug, add_user
from tests.conftest import PopulatedDB


class TestBugReader:
    def test_find_newest_first(self, populated_db: PopulatedDB) -> None:
        reader = BugReader(populated_db.db.conn)
        titles = [b.title for b in reader.find(None)]
        assert titles[0] == "Search returns duplicates"
        assert titles[-1] == "Login page broken"

    def test_find_window(self, populated_db: PopulatedDB) -> None:
        reader = BugReader(populated_db.db.conn)
        everything = reader.find(None)
        assert reader.find(None, skip=2, limit=2) == everything[2:4]
        assert reader.find(None, skip=4) == everything[4:]

    def test_same_timestamp_breaks_ties_by_insertion(self, db: BugTrailDB) -> None:
        rita = add_user(db, "Rita", "Reporter")
        stamp = datetime(2026, 3, 1, tzinfo=UTC)
        first = add_bug(db, "First", reporter=rita, created_at=stamp)
        second = add_bug(db, "Second", reporter=rita, created_at=stamp)
        assert [b.id for b in BugReader(db.conn).find(None)] == [second.id, first.id]

    def test_count_with_extra_constraint(self, populated_db: PopulatedDB) -> None:
        reader = BugReader(populated_db.db.conn)
        assert reader.count(None) == 6
        assert reader.count(None, priority="high") == 2
        assert reader.count(BugFilter(priority="high"), status="open") == 1
        assert reader.count(BugFilter(status="open"), status="closed") == 0

    def test_count_unassigned(self, populated_db: PopulatedDB) -> None:
        reader = BugReader(populated_db.db.conn)
        assert reader.count(BugFilter(unassigned=True)) == 2

    def test_group_count_sparse(self, populated_db: PopulatedDB) -> None:
        reader = BugReader(populated_db.db.conn)
        assert reader.group_count("type", None) == {"bug": 4, "task": 1, "feature": 1}

    def test_group_count_rejects_unknown_field(self, populated_db: PopulatedDB) -> None:
        with pytest.raises(ValueError):
            BugReader(populated_db.db.conn).group_count("title", None)

    def test_assignee_workload(self, populated_db: PopulatedDB) -> None:
        rows = BugReader(populated_db.db.conn).assignee_workload(None, limit=5)
        assert {r["name"]: r["value"] for r in rows} == {"Alice Smith": 2, "Bob Jones": 2}
        assert all(set(r) == {"id", "name", "value"} for r in rows)

    def test_assignee_workload_limit(self, populated_db: PopulatedDB) -> None:
        assert len(BugReader(populated_db.db.conn).assignee_workload(None, limit=1)) == 1

    def test_display_names(self, populated_db: PopulatedDB) -> None:
        ids = populated_db.ids
        names = BugReader(populated_db.db.conn).display_names([ids["alice"], None, "test-u-ffffffffff"])
        assert names == {ids["alice"]: "Alice Smith"}

    def test_store_error_becomes_persistence_error(self, db: BugTrailDB) -> None:
        db.conn.execute("DROP TABLE bugs")
        with pytest.raises(PersistenceError) as exc_info:
            BugReader(db.conn).count(None)
        assert exc_info.value.operation == "count"
        assert exc_info.value.__cause__ is None
        assert exc_info.value.__context__ is None


class TestGatherReads:
    def test_results_by_name(self, populated_db: PopulatedDB) -> None:
        results = gather_reads(
            populated_db.db,
            {
                "total": lambda r: r.count(None),
                "closed": lambda r: r.count(None, status="closed"),
            },
        )
        assert results == {"total": 6, "closed": 1}

    def test_sequential_matches_concurrent(self, populated_db: PopulatedDB, sequential_db: BugTrailDB) -> None:
        tasks = {
            "total": lambda r: r.count(None),
            "types": lambda r: r.group_count("type", None),
        }
        concurrent = gather_reads(populated_db.db, tasks)
        populated_db.db.settings = sequential_db.settings
        assert gather_reads(populated_db.db, tasks) == concurrent

    def test_workers_use_separate_connections(self, populated_db: PopulatedDB) -> None:
        seen: set[int] = set()
        lock = threading.Lock()

        def record(reader: BugReader) -> int:
            with lock:
                seen.add(id(reader.conn))
            return reader.count(None)

        gather_reads(populated_db.db, {"a": record, "b": record, "c": record})
        assert id(populated_db.db.conn) not in seen

    def test_worker_connections_are_read_only(self, populated_db: PopulatedDB) -> None:
        def write(reader: BugReader) -> None:
            reader.conn.execute("DELETE FROM bugs")

        with pytest.raises(PersistenceError) as exc_info:
            gather_reads(populated_db.db, {"noop": lambda r: r.count(None), "write": write})
        assert exc_info.value.operation == "write"
        assert BugReader(populated_db.db.conn).count(None) == 6

    def test_failure_names_task(self, populated_db: PopulatedDB) -> None:
        def broken(reader: BugReader) -> int:
            raise sqlite3.OperationalError("disk I/O error")

        with pytest.raises(PersistenceError) as exc_info:
            gather_reads(populated_db.db, {"ok": lambda r: r.count(None), "broken": broken})
        assert exc_info.value.operation == "broken"
        assert "disk I/O error" in exc_info.value.reason
        assert not exc_info.value.timed_out
        assert exc_info.value.__context__ is None

    def test_sequential_failure_names_task(self, sequential_db: BugTrailDB) -> None:
        def broken(reader: BugReader) -> int:
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(PersistenceError) as exc_info:
            gather_reads(sequential_db, {"ok": lambda r: r.count(None), "broken": broken})
        assert exc_info.value.operation == "broken"
        assert exc_info.value.__cause__ is None
        assert exc_info.value.__context__ is None

    def test_timeout(self, populated_db: PopulatedDB) -> None:
        def slow(reader: BugReader) -> int:
            time.sleep(1.0)
            return 0

        t0 = time.monotonic()
        with pytest.raises(PersistenceError) as exc_info:
            gather_reads(populated_db.db, {"slow": slow, "also_slow": slow}, timeout=0.05)
        assert exc_info.value.timed_out
        assert exc_info.value.operation == "slow"
        assert time.monotonic() - t0 < 0.9

    def test_empty(self, db: BugTrailDB) -> None:
        assert gather_reads(db, {}) == {}

    def test_programming_errors_propagate(self, populated_db: PopulatedDB) -> None:
        def buggy(reader: BugReader) -> int:
            raise ZeroDivisionError

        with pytest.raises(ZeroDivisionError):
            gather_reads(populated_db.db, {"ok": lambda r: r.count(None), "buggy": buggy})
