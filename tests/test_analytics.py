"""Tests for the analytics report and overview statistics."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime, timedelta

import pytest

from bugtrail.analytics import build_report, get_overview, months_before
from bugtrail.core import BugTrailDB, EngineSettings
from bugtrail.db_query import BugReader
from bugtrail.errors import PersistenceError
from bugtrail.filters import BugFilter
from tests._db_factory import add_bug, add_user, set_created_at
from tests.conftest import PopulatedDB

NOW = datetime(2026, 8, 31, 12, 0, tzinfo=UTC)


class TestMonthsBefore:
    def test_simple(self) -> None:
        assert months_before(datetime(2026, 10, 18, tzinfo=UTC), 6) == datetime(2026, 4, 18, tzinfo=UTC)

    def test_day_clamped(self) -> None:
        assert months_before(datetime(2026, 8, 31, tzinfo=UTC), 6) == datetime(2026, 2, 28, tzinfo=UTC)

    def test_crosses_year(self) -> None:
        assert months_before(datetime(2026, 3, 15, tzinfo=UTC), 6) == datetime(2025, 9, 15, tzinfo=UTC)

    def test_leap_year(self) -> None:
        assert months_before(datetime(2024, 8, 29, tzinfo=UTC), 6) == datetime(2024, 2, 29, tzinfo=UTC)


class TestBuildReport:
    def test_flat_counters(self, populated_db: PopulatedDB) -> None:
        report = build_report(populated_db.db)
        assert report["total_bugs"] == 6
        assert report["open_bugs"] == 2
        assert report["in_progress_bugs"] == 1
        assert report["resolved_bugs"] == 1
        assert report["closed_bugs"] == 1
        assert report["high_priority_bugs"] == 2
        assert report["critical_bugs"] == 1
        assert report["recent_bugs"] == 6

    def test_reopened_only_in_distribution(self, populated_db: PopulatedDB) -> None:
        report = build_report(populated_db.db)
        assert {"status": "reopened", "name": "reopened", "value": 1} in report["status_distribution"]
        assert "reopened_bugs" not in report

    def test_distributions_sum_to_total(self, populated_db: PopulatedDB) -> None:
        report = build_report(populated_db.db)
        assert sum(d["value"] for d in report["status_distribution"]) == report["total_bugs"]
        assert sum(d["value"] for d in report["priority_distribution"]) == report["total_bugs"]

    def test_distributions_sparse(self, db: BugTrailDB) -> None:
        rita = add_user(db, "Rita", "Reporter")
        add_bug(db, "Only one", reporter=rita, priority="low")
        report = build_report(db)
        assert report["status_distribution"] == [{"status": "open", "name": "open", "value": 1}]
        assert report["priority_distribution"] == [{"priority": "low", "name": "low", "value": 1}]

    def test_assignee_stats(self, populated_db: PopulatedDB) -> None:
        ids = populated_db.ids
        stats = build_report(populated_db.db)["assignee_stats"]
        assert sorted(stats, key=lambda s: s["id"]) == sorted(
            [
                {"id": ids["alice"], "name": "Alice Smith", "value": 2},
                {"id": ids["bob"], "name": "Bob Jones", "value": 2},
            ],
            key=lambda s: s["id"],
        )

    def test_assignee_stats_top_five_desc(self, db: BugTrailDB) -> None:
        rita = add_user(db, "Rita", "Reporter")
        devs = [add_user(db, f"Dev{i}", "X") for i in range(7)]
        for i, dev in enumerate(devs):
            for _ in range(i + 1):
                add_bug(db, f"Bug for {dev.first_name}", reporter=rita, assignee_id=dev.id)
        stats = build_report(db)["assignee_stats"]
        assert [s["value"] for s in stats] == [7, 6, 5, 4, 3]
        assert stats[0]["name"] == "Dev6 X"

    def test_assignee_stats_skip_missing_users(self, populated_db: PopulatedDB) -> None:
        db, ids = populated_db.db, populated_db.ids
        db.conn.execute("PRAGMA foreign_keys=OFF")
        db.conn.execute("UPDATE bugs SET assignee_id = 'test-u-dead00beef' WHERE id = ?", (ids["dark"],))
        db.conn.commit()
        stats = build_report(db)["assignee_stats"]
        assert "test-u-dead00beef" not in {s["id"] for s in stats}

    def test_recent_window(self, db: BugTrailDB) -> None:
        rita = add_user(db, "Rita", "Reporter")
        add_bug(db, "Fresh", reporter=rita, created_at=NOW - timedelta(days=1))
        add_bug(db, "Edge", reporter=rita, created_at=NOW - timedelta(days=7))
        add_bug(db, "Old", reporter=rita, created_at=NOW - timedelta(days=8))
        assert build_report(db, now=NOW)["recent_bugs"] == 2

    def test_monthly_trend(self, db: BugTrailDB) -> None:
        rita = add_user(db, "Rita", "Reporter")
        add_bug(db, "Too old", reporter=rita, created_at=datetime(2026, 2, 27, tzinfo=UTC))
        add_bug(db, "Cutoff", reporter=rita, created_at=datetime(2026, 2, 28, 12, 0, tzinfo=UTC))
        add_bug(db, "March", reporter=rita, created_at=datetime(2026, 3, 10, tzinfo=UTC))
        add_bug(db, "June a", reporter=rita, created_at=datetime(2026, 6, 1, tzinfo=UTC))
        add_bug(db, "June b", reporter=rita, created_at=datetime(2026, 6, 30, tzinfo=UTC))
        add_bug(db, "August", reporter=rita, created_at=datetime(2026, 8, 30, tzinfo=UTC))
        trend = build_report(db, now=NOW)["monthly_trend"]
        assert trend == [
            {"month": "2026-02", "count": 1},
            {"month": "2026-03", "count": 1},
            {"month": "2026-06", "count": 2},
            {"month": "2026-08", "count": 1},
        ]

    def test_filter_applies_to_every_aggregate(self, populated_db: PopulatedDB) -> None:
        ids = populated_db.ids
        report = build_report(populated_db.db, BugFilter(assignee_id=ids["bob"]))
        assert report["total_bugs"] == 2
        assert report["open_bugs"] == 0
        assert report["in_progress_bugs"] == 1
        assert report["critical_bugs"] == 1
        assert report["high_priority_bugs"] == 1
        assert report["assignee_stats"] == [{"id": ids["bob"], "name": "Bob Jones", "value": 2}]
        assert sum(d["value"] for d in report["status_distribution"]) == 2

    def test_filter_status_conflicts_with_counter(self, populated_db: PopulatedDB) -> None:
        report = build_report(populated_db.db, BugFilter(status="open"))
        assert report["open_bugs"] == 2
        assert report["closed_bugs"] == 0

    def test_empty_store(self, db: BugTrailDB) -> None:
        report = build_report(db, now=NOW)
        assert report["total_bugs"] == 0
        assert report["status_distribution"] == []
        assert report["assignee_stats"] == []
        assert report["monthly_trend"] == []
        assert report["generated_at"] == NOW.isoformat()

    def test_windows_from_settings(self, db: BugTrailDB) -> None:
        rita = add_user(db, "Rita", "Reporter")
        bug = add_bug(db, "Two days old", reporter=rita)
        set_created_at(db, bug.id, NOW - timedelta(days=2))
        db.settings = EngineSettings(recent_days=1)
        assert build_report(db, now=NOW)["recent_bugs"] == 0

    def test_sequential_identical(self, populated_db: PopulatedDB) -> None:
        db = populated_db.db
        concurrent = build_report(db, now=NOW)
        db.settings = EngineSettings(read_workers=1)
        sequential = build_report(db, now=NOW)
        concurrent["assignee_stats"].sort(key=lambda s: s["id"])
        sequential["assignee_stats"].sort(key=lambda s: s["id"])
        assert sequential == concurrent


class TestReportFailures:
    def test_sub_aggregate_failure_fails_report(self, populated_db: PopulatedDB, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(self: BugReader, predicate: object, *, limit: int) -> list[object]:
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(BugReader, "assignee_workload", broken)
        with pytest.raises(PersistenceError) as exc_info:
            build_report(populated_db.db)
        assert exc_info.value.operation == "analytics.assignee_stats"

    def test_store_failure_in_reader(self, populated_db: PopulatedDB) -> None:
        db = populated_db.db
        db.conn.execute("PRAGMA foreign_keys=OFF")
        db.conn.execute("DROP TABLE users")
        with pytest.raises(PersistenceError) as exc_info:
            build_report(db)
        assert exc_info.value.operation == "analytics.assignee_stats"

    def test_timeout_fails_report(self, populated_db: PopulatedDB, monkeypatch: pytest.MonkeyPatch) -> None:
        import time

        def slow(self: BugReader, predicate: object, *, since: str) -> list[object]:
            time.sleep(2.0)
            return []

        monkeypatch.setattr(BugReader, "monthly_counts", slow)
        populated_db.db.settings = EngineSettings(read_timeout_seconds=0.5)
        with pytest.raises(PersistenceError) as exc_info:
            build_report(populated_db.db)
        assert exc_info.value.timed_out
        assert exc_info.value.operation == "analytics.monthly_trend"


class TestOverview:
    def test_overview(self, populated_db: PopulatedDB) -> None:
        stats = get_overview(populated_db.db)
        assert stats["total_bugs"] == 6
        assert stats["closed_bugs"] == 1
        assert stats["open_bugs"] == 5
        assert stats["resolve_rate"] == 17
        assert stats["charts"]["type"] == [
            {"name": "bug", "value": 4},
            {"name": "feature", "value": 1},
            {"name": "task", "value": 1},
        ]
        assert [p["name"] for p in stats["charts"]["status"]] == sorted(p["name"] for p in stats["charts"]["status"])

    def test_overview_empty(self, db: BugTrailDB) -> None:
        stats = get_overview(db)
        assert stats["resolve_rate"] == 0
        assert stats["charts"] == {"status": [], "priority": [], "type": []}

    def test_overview_filtered(self, populated_db: PopulatedDB) -> None:
        stats = get_overview(populated_db.db, BugFilter(type="bug"))
        assert stats["total_bugs"] == 4
        assert stats["charts"]["type"] == [{"name": "bug", "value": 4}]
