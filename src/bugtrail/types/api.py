"""TypedDicts for engine results and dashboard route API responses."""

from __future__ import annotations

from typing import Any, TypedDict

from bugtrail.types.core import BugDict, ISOTimestamp

# ---------------------------------------------------------------------------
# Shared types
# ---------------------------------------------------------------------------


class ErrorBody(TypedDict):
    message: str
    code: str
    details: dict[str, Any]


class ErrorResponse(TypedDict):
    """Standard error envelope returned by dashboard error paths."""

    error: ErrorBody


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class PaginationEnvelope(TypedDict):
    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool


class ListedBug(BugDict):
    """Bug row enriched with resolved display names for list views."""

    assignee_name: str
    reporter_name: str


class BugListResponse(TypedDict):
    bugs: list[ListedBug]
    pagination: PaginationEnvelope


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class StatusCount(TypedDict):
    status: str
    name: str
    value: int


class PriorityCount(TypedDict):
    priority: str
    name: str
    value: int


class AssigneeStat(TypedDict):
    id: str
    name: str
    value: int


class MonthlyCount(TypedDict):
    month: str
    count: int


class AnalyticsReport(TypedDict):
    total_bugs: int
    open_bugs: int
    in_progress_bugs: int
    resolved_bugs: int
    closed_bugs: int
    high_priority_bugs: int
    critical_bugs: int
    recent_bugs: int
    status_distribution: list[StatusCount]
    priority_distribution: list[PriorityCount]
    assignee_stats: list[AssigneeStat]
    monthly_trend: list[MonthlyCount]
    generated_at: ISOTimestamp


class ChartPoint(TypedDict):
    name: str
    value: int


class OverviewCharts(TypedDict):
    status: list[ChartPoint]
    priority: list[ChartPoint]
    type: list[ChartPoint]


class OverviewStats(TypedDict):
    total_bugs: int
    open_bugs: int
    closed_bugs: int
    resolve_rate: int
    charts: OverviewCharts
