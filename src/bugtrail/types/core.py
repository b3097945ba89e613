"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .bugtrail/config.json."""

    prefix: str
    version: int
    default_page_size: int
    read_workers: int
    read_timeout_seconds: float
    recent_days: int
    trend_months: int
    top_assignees: int


class BugDict(TypedDict):
    id: str
    title: str
    description: str
    status: str
    priority: str
    type: str
    assignee_id: str | None
    reporter_id: str
    tags: list[str]
    estimated_hours: float | None
    actual_hours: float | None
    due_date: ISOTimestamp | None
    resolved_at: ISOTimestamp | None
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class UserDict(TypedDict):
    id: str
    email: str
    first_name: str
    last_name: str
    display_name: str
    role: str
    is_active: bool
    created_at: ISOTimestamp
    updated_at: ISOTimestamp
