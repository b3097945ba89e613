"""Query planning and execution for bug listings and exports.

A listing is two independent reads under one predicate: the page window and
the total count.  They run concurrently through ``gather_reads``; a write
landing between them can make the count and the page disagree, which is
accepted.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bugtrail.db_query import BugReader, gather_reads
from bugtrail.filters import BugFilter, normalize_filter
from bugtrail.pagination import PageRequest, paginate, parse_pagination
from bugtrail.types.api import BugListResponse, ListedBug, PaginationEnvelope

if TYPE_CHECKING:
    from bugtrail.core import Bug, BugTrailDB

logger = logging.getLogger(__name__)

UNASSIGNED_LABEL = "Unassigned"
UNKNOWN_REPORTER_LABEL = "Unknown"


@dataclass(frozen=True)
class BugQuery:
    """A planned read: predicate plus window.  ``limit=None`` means unwindowed."""

    predicate: BugFilter
    skip: int = 0
    limit: int | None = None

    def run(self, reader: BugReader) -> list[Bug]:
        return reader.find(self.predicate, skip=self.skip, limit=self.limit)


def plan_listing(bug_filter: BugFilter, page_request: PageRequest) -> BugQuery:
    return BugQuery(bug_filter, skip=page_request.skip, limit=page_request.page_size)


def plan_export(bug_filter: BugFilter) -> BugQuery:
    return BugQuery(bug_filter)


@dataclass
class BugListing:
    bugs: list[Bug]
    pagination: PaginationEnvelope
    names: dict[str, str]

    def to_dict(self) -> BugListResponse:
        return {
            "bugs": [enrich(b, self.names) for b in self.bugs],
            "pagination": self.pagination,
        }


def enrich(bug: Bug, names: Mapping[str, str]) -> ListedBug:
    """Bug dict plus ``assignee_name`` / ``reporter_name`` for list views."""
    data = bug.to_dict()
    return ListedBug(
        **data,
        assignee_name=names.get(bug.assignee_id or "", UNASSIGNED_LABEL),
        reporter_name=names.get(bug.reporter_id, UNKNOWN_REPORTER_LABEL),
    )


def list_bugs(db: BugTrailDB, bug_filter: BugFilter, page_request: PageRequest) -> BugListing:
    """Return one page of bugs matching *bug_filter*, newest first."""
    t0 = time.monotonic()
    query = plan_listing(bug_filter, page_request)
    results = gather_reads(
        db,
        {
            "listing.find": query.run,
            "listing.count": lambda r: r.count(bug_filter),
        },
    )
    bugs: list[Bug] = results["listing.find"]
    total: int = results["listing.count"]
    names = BugReader(db.conn).display_names([b.assignee_id for b in bugs] + [b.reporter_id for b in bugs])
    logger.info(
        "bug_listing",
        extra={
            "operation": "listing",
            "filter": bug_filter.to_dict(),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        },
    )
    return BugListing(bugs=bugs, pagination=paginate(total, page_request.page, page_request.page_size), names=names)


def fetch_all(db: BugTrailDB, bug_filter: BugFilter) -> list[Bug]:
    """Every bug matching *bug_filter*, in listing order."""
    return plan_export(bug_filter).run(BugReader(db.conn))


def list_bugs_from_params(db: BugTrailDB, params: Mapping[str, Any]) -> BugListing:
    """Normalize filter and pagination from one raw mapping, then list."""
    bug_filter = normalize_filter(params)
    page_request = parse_pagination(params, default_page_size=db.settings.default_page_size)
    return list_bugs(db, bug_filter, page_request)
