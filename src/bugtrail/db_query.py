"""Read primitives for the query engine, plus concurrent dispatch.

``BugReader`` wraps one sqlite connection and exposes the handful of reads
that listing, export and analytics are built from.  Every read takes a
``BugFilter`` and translates it with the same ``_predicate_sql`` so that a
filter means the same thing on every path.

``gather_reads`` runs a batch of named reads on a thread pool, each worker
on its own query-only connection, and joins them all-or-nothing.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Any, TypeVar

from bugtrail.core import Bug, bug_from_row
from bugtrail.errors import PersistenceError

if TYPE_CHECKING:
    from bugtrail.core import BugTrailDB
    from bugtrail.filters import BugFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Newest first; rowid breaks ties between bugs created in the same instant.
ORDER_BY = "b.created_at DESC, b.rowid DESC"

_GROUPABLE = frozenset({"status", "priority", "type"})


def _predicate_sql(predicate: BugFilter | None) -> tuple[list[str], list[Any]]:
    """Translate a ``BugFilter`` into WHERE conditions over alias ``b``."""
    conditions: list[str] = []
    params: list[Any] = []
    if predicate is None:
        return conditions, params
    if predicate.status is not None:
        conditions.append("b.status = ?")
        params.append(predicate.status)
    if predicate.priority is not None:
        conditions.append("b.priority = ?")
        params.append(predicate.priority)
    if predicate.type is not None:
        conditions.append("b.type = ?")
        params.append(predicate.type)
    if predicate.unassigned:
        conditions.append("b.assignee_id IS NULL")
    elif predicate.assignee_id is not None:
        conditions.append("b.assignee_id = ?")
        params.append(predicate.assignee_id)
    if predicate.reporter_id is not None:
        conditions.append("b.reporter_id = ?")
        params.append(predicate.reporter_id)
    if predicate.search is not None:
        conditions.append("(contains_ci(b.title, ?) OR contains_ci(b.description, ?))")
        params.extend([predicate.search, predicate.search])
    return conditions, params


def _where(conditions: list[str]) -> str:
    return f" WHERE {' AND '.join(conditions)}" if conditions else ""


class BugReader:
    """Store reads over a single connection.

    Driver errors are logged here and re-raised as ``PersistenceError`` with
    no reference to the driver exception.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _fetch(self, operation: str, sql: str, params: list[Any]) -> list[sqlite3.Row]:
        t0 = time.monotonic()
        try:
            rows = self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("store_read_failed", extra={"operation": operation, "error": str(exc)}, exc_info=True)
            failure = PersistenceError(operation, str(exc))
        else:
            logger.debug(
                "store_read",
                extra={"operation": operation, "duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )
            return rows
        # Raised outside the handler so the driver error is not chained.
        raise failure

    def find(self, predicate: BugFilter | None, *, skip: int = 0, limit: int | None = None) -> list[Bug]:
        conditions, params = _predicate_sql(predicate)
        sql = f"SELECT b.* FROM bugs b{_where(conditions)} ORDER BY {ORDER_BY}"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, skip])
        elif skip:
            sql += " LIMIT -1 OFFSET ?"
            params.append(skip)
        return [bug_from_row(r) for r in self._fetch("find", sql, params)]

    def count(
        self,
        predicate: BugFilter | None,
        *,
        status: str | None = None,
        priority: str | None = None,
        created_since: str | None = None,
    ) -> int:
        """Count matching bugs, optionally ANDing one extra constraint set."""
        conditions, params = _predicate_sql(predicate)
        if status is not None:
            conditions.append("b.status = ?")
            params.append(status)
        if priority is not None:
            conditions.append("b.priority = ?")
            params.append(priority)
        if created_since is not None:
            conditions.append("b.created_at >= ?")
            params.append(created_since)
        rows = self._fetch("count", f"SELECT COUNT(*) AS cnt FROM bugs b{_where(conditions)}", params)
        return int(rows[0]["cnt"])

    def group_count(self, field: str, predicate: BugFilter | None) -> dict[str, int]:
        """Counts per distinct value of *field*.  Values with no bugs are absent."""
        if field not in _GROUPABLE:
            msg = f"Cannot group by {field!r}"
            raise ValueError(msg)
        conditions, params = _predicate_sql(predicate)
        sql = f"SELECT b.{field} AS k, COUNT(*) AS cnt FROM bugs b{_where(conditions)} GROUP BY b.{field}"
        return {r["k"]: r["cnt"] for r in self._fetch(f"group_count.{field}", sql, params)}

    def assignee_workload(self, predicate: BugFilter | None, *, limit: int) -> list[dict[str, Any]]:
        """Top assignees by bug count.  Assignees without a user row are left out."""
        conditions, params = _predicate_sql(predicate)
        conditions.append("b.assignee_id IS NOT NULL")
        sql = (
            "SELECT u.id AS id, u.first_name AS first_name, u.last_name AS last_name, COUNT(*) AS cnt "
            f"FROM bugs b JOIN users u ON u.id = b.assignee_id{_where(conditions)} "
            "GROUP BY u.id ORDER BY cnt DESC, u.id LIMIT ?"
        )
        params.append(limit)
        return [
            {"id": r["id"], "name": f"{r['first_name']} {r['last_name']}".strip(), "value": r["cnt"]}
            for r in self._fetch("assignee_workload", sql, params)
        ]

    def monthly_counts(self, predicate: BugFilter | None, *, since: str) -> list[tuple[str, int]]:
        """``(YYYY-MM, count)`` pairs for bugs created at or after *since*, ascending."""
        conditions, params = _predicate_sql(predicate)
        conditions.append("b.created_at >= ?")
        params.append(since)
        sql = (
            f"SELECT substr(b.created_at, 1, 7) AS month, COUNT(*) AS cnt FROM bugs b{_where(conditions)} "
            "GROUP BY month ORDER BY month"
        )
        return [(r["month"], r["cnt"]) for r in self._fetch("monthly_counts", sql, params)]

    def display_names(self, user_ids: Iterable[str | None]) -> dict[str, str]:
        """Map each known user id to its display name.  Unknown ids are absent."""
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        placeholders = ",".join("?" * len(ids))
        rows = self._fetch(
            "display_names",
            f"SELECT id, first_name, last_name FROM users WHERE id IN ({placeholders})",
            ids,
        )
        return {r["id"]: f"{r['first_name']} {r['last_name']}".strip() for r in rows}


# ---------------------------------------------------------------------------
# Concurrent dispatch
# ---------------------------------------------------------------------------


def _run_sequential(db: BugTrailDB, tasks: dict[str, Callable[[BugReader], T]]) -> dict[str, T]:
    reader = BugReader(db.conn)
    results: dict[str, T] = {}
    for name, task in tasks.items():
        failure: PersistenceError | None = None
        try:
            results[name] = task(reader)
        except PersistenceError as exc:
            failure = PersistenceError(name, exc.reason, timed_out=exc.timed_out)
        except sqlite3.Error as exc:
            logger.error("store_read_failed", extra={"operation": name, "error": str(exc)}, exc_info=True)
            failure = PersistenceError(name, str(exc))
        if failure is not None:
            raise failure
    return results


def gather_reads(
    db: BugTrailDB,
    tasks: dict[str, Callable[[BugReader], T]],
    *,
    timeout: float | None = None,
) -> dict[str, T]:
    """Run independent named reads and return ``{name: result}``.

    Each task receives a ``BugReader`` on its own query-only connection.  The
    first failure (or the deadline passing) cancels tasks that have not
    started, interrupts the ones in flight, and raises ``PersistenceError``
    naming the task.  No partial result is ever returned.

    With ``read_workers <= 1`` the tasks run one after another on the shared
    connection; *timeout* is not enforced in that mode.
    """
    if not tasks:
        return {}
    workers = min(db.settings.read_workers, len(tasks))
    if workers <= 1:
        return _run_sequential(db, tasks)
    if timeout is None:
        timeout = db.settings.read_timeout_seconds

    live: set[sqlite3.Connection] = set()
    lock = threading.Lock()

    def _worker(task: Callable[[BugReader], T]) -> T:
        with db.read_connection() as conn:
            with lock:
                live.add(conn)
            try:
                return task(BugReader(conn))
            finally:
                with lock:
                    live.discard(conn)

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bugtrail-read")
    futures: dict[Future[T], str] = {}
    try:
        for name, task in tasks.items():
            futures[executor.submit(_worker, task)] = name
        done, not_done = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)

        failed = next((f for f in futures if f in done and f.exception() is not None), None)
        if failed is not None or not_done:
            for f in not_done:
                f.cancel()
            with lock:
                for conn in live:
                    conn.interrupt()

        if failed is not None:
            name = futures[failed]
            exc = failed.exception()
            if isinstance(exc, PersistenceError):
                raise PersistenceError(name, exc.reason, timed_out=exc.timed_out)
            if isinstance(exc, sqlite3.Error):
                logger.error("store_read_failed", extra={"operation": name, "error": str(exc)})
                raise PersistenceError(name, str(exc))
            raise exc  # type: ignore[misc]

        if not_done:
            name = next(futures[f] for f in futures if f in not_done)
            logger.error(
                "store_read_timeout",
                extra={"operation": name, "timed_out": True, "error": f"no result within {timeout}s"},
            )
            raise PersistenceError(name, f"timed out after {timeout}s", timed_out=True)

        return {name: f.result() for f, name in futures.items()}
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
