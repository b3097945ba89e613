"""Analytics and overview reports for bugtrail.

Separate module from core, operates on BugTrailDB read-only.  A report is a
set of independent sub-aggregates run through ``gather_reads``; any one of
them failing fails the whole report.
"""

from __future__ import annotations

import calendar
import logging
import time
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from bugtrail.db_base import PRIORITIES, STATUSES, _to_iso
from bugtrail.db_query import BugReader, gather_reads
from bugtrail.types.api import (
    AnalyticsReport,
    ChartPoint,
    MonthlyCount,
    OverviewStats,
    PriorityCount,
    StatusCount,
)
from bugtrail.types.core import ISOTimestamp

if TYPE_CHECKING:
    from collections.abc import Callable

    from bugtrail.core import BugTrailDB
    from bugtrail.filters import BugFilter

logger = logging.getLogger(__name__)


def months_before(moment: datetime, months: int) -> datetime:
    """Shift *moment* back by calendar months, clamping the day to the target month.

    ``months_before(2026-08-31, 6)`` is ``2026-02-28``.
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _ordered(counts: dict[str, int], order: tuple[str, ...]) -> list[tuple[str, int]]:
    """Known values in declaration order, then anything unexpected."""
    known = [(k, counts[k]) for k in order if k in counts]
    extra = sorted((k, v) for k, v in counts.items() if k not in order)
    return known + extra


def build_report(
    db: BugTrailDB,
    bug_filter: BugFilter | None = None,
    *,
    now: datetime | None = None,
) -> AnalyticsReport:
    """Compute the analytics report over bugs matching *bug_filter*.

    *now* is captured once and shared by the recent-bugs window and the
    monthly-trend cutoff.

    Raises:
        PersistenceError: a sub-aggregate failed or timed out.
    """
    settings = db.settings
    now = now or datetime.now(UTC)
    recent_since = _to_iso(now - timedelta(days=settings.recent_days))
    trend_since = _to_iso(months_before(now, settings.trend_months))
    f = bug_filter

    tasks: dict[str, Callable[[BugReader], Any]] = {
        "analytics.total_bugs": lambda r: r.count(f),
        "analytics.open_bugs": lambda r: r.count(f, status="open"),
        "analytics.in_progress_bugs": lambda r: r.count(f, status="in-progress"),
        "analytics.resolved_bugs": lambda r: r.count(f, status="resolved"),
        "analytics.closed_bugs": lambda r: r.count(f, status="closed"),
        "analytics.high_priority_bugs": lambda r: r.count(f, priority="high"),
        "analytics.critical_bugs": lambda r: r.count(f, priority="critical"),
        "analytics.status_distribution": lambda r: r.group_count("status", f),
        "analytics.priority_distribution": lambda r: r.group_count("priority", f),
        "analytics.recent_bugs": lambda r: r.count(f, created_since=recent_since),
        "analytics.assignee_stats": lambda r: r.assignee_workload(f, limit=settings.top_assignees),
        "analytics.monthly_trend": lambda r: r.monthly_counts(f, since=trend_since),
    }

    t0 = time.monotonic()
    results = gather_reads(db, tasks)
    logger.info(
        "analytics_report",
        extra={
            "operation": "analytics",
            "filter": f.to_dict() if f is not None else {},
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        },
    )

    return {
        "total_bugs": results["analytics.total_bugs"],
        "open_bugs": results["analytics.open_bugs"],
        "in_progress_bugs": results["analytics.in_progress_bugs"],
        "resolved_bugs": results["analytics.resolved_bugs"],
        "closed_bugs": results["analytics.closed_bugs"],
        "high_priority_bugs": results["analytics.high_priority_bugs"],
        "critical_bugs": results["analytics.critical_bugs"],
        "recent_bugs": results["analytics.recent_bugs"],
        "status_distribution": [
            StatusCount(status=k, name=k, value=v)
            for k, v in _ordered(results["analytics.status_distribution"], STATUSES)
        ],
        "priority_distribution": [
            PriorityCount(priority=k, name=k, value=v)
            for k, v in _ordered(results["analytics.priority_distribution"], PRIORITIES)
        ],
        "assignee_stats": results["analytics.assignee_stats"],
        "monthly_trend": [MonthlyCount(month=m, count=c) for m, c in results["analytics.monthly_trend"]],
        "generated_at": ISOTimestamp(_to_iso(now)),
    }


def _chart(counts: dict[str, int]) -> list[ChartPoint]:
    return [ChartPoint(name=k, value=v) for k, v in sorted(counts.items())]


def get_overview(db: BugTrailDB, bug_filter: BugFilter | None = None) -> OverviewStats:
    """Headline counts plus status/priority/type charts for the dashboard."""
    f = bug_filter
    results = gather_reads(
        db,
        {
            "overview.total_bugs": lambda r: r.count(f),
            "overview.closed_bugs": lambda r: r.count(f, status="closed"),
            "overview.status": lambda r: r.group_count("status", f),
            "overview.priority": lambda r: r.group_count("priority", f),
            "overview.type": lambda r: r.group_count("type", f),
        },
    )
    total: int = results["overview.total_bugs"]
    closed: int = results["overview.closed_bugs"]
    return {
        "total_bugs": total,
        "open_bugs": total - closed,
        "closed_bugs": closed,
        "resolve_rate": round(closed / total * 100) if total else 0,
        "charts": {
            "status": _chart(results["overview.status"]),
            "priority": _chart(results["overview.priority"]),
            "type": _chart(results["overview.type"]),
        },
    }
