# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin; this prevents circular imports.
"""Typed return-value contracts for bugtrail core and API layers."""

from __future__ import annotations

from bugtrail.types.api import (
    AnalyticsReport,
    AssigneeStat,
    BugListResponse,
    ListedBug,
    MonthlyCount,
    OverviewStats,
    PaginationEnvelope,
)
from bugtrail.types.core import BugDict, ISOTimestamp, ProjectConfig, UserDict

__all__ = [
    "AnalyticsReport",
    "AssigneeStat",
    "BugDict",
    "BugListResponse",
    "ISOTimestamp",
    "ListedBug",
    "MonthlyCount",
    "OverviewStats",
    "PaginationEnvelope",
    "ProjectConfig",
    "UserDict",
]
