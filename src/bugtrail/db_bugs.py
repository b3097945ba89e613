"""BugsMixin — bug CRUD.

All methods access ``self.conn``, ``self.get_user()``, etc. via Python's MRO
when composed into ``BugTrailDB``.  Listing, search and analytics live in the
query engine (``bugtrail.query`` / ``bugtrail.analytics``), not here.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from bugtrail.db_base import VALID_BUG_TYPES, VALID_PRIORITIES, VALID_STATUSES, DBMixinProtocol, _now_iso, _to_iso
from bugtrail.validation import (
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    check_choice,
    normalize_tags,
    parse_timestamp,
    sanitize_hours,
    sanitize_text,
)

if TYPE_CHECKING:
    from bugtrail.core import Bug

logger = logging.getLogger(__name__)

# Marks "argument not supplied" for fields where None means "clear it".
_UNSET: Any = object()


def _check(err: str | None) -> None:
    if err:
        raise ValueError(err)


class BugsMixin(DBMixinProtocol):
    """Bug creation, retrieval, update and deletion.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``BugTrailDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From UsersMixin
        def user_exists(self, user_id: str) -> bool: ...

    def _require_user(self, user_id: str, name: str) -> None:
        if not self.user_exists(user_id):
            msg = f"{name} references unknown user: {user_id}"
            raise ValueError(msg)

    def create_bug(
        self,
        title: str,
        description: str,
        *,
        reporter_id: str,
        priority: str = "medium",
        type: str = "bug",
        assignee_id: str | None = None,
        tags: list[str] | None = None,
        estimated_hours: float | None = None,
        due_date: str | datetime | None = None,
    ) -> Bug:
        title, err = sanitize_text(title, "title", max_length=MAX_TITLE_LENGTH)
        _check(err)
        description, err = sanitize_text(description, "description", max_length=MAX_DESCRIPTION_LENGTH)
        _check(err)
        _check(check_choice(priority, "priority", VALID_PRIORITIES))
        _check(check_choice(type, "type", VALID_BUG_TYPES))
        clean_tags, err = normalize_tags(tags)
        _check(err)
        hours, err = sanitize_hours(estimated_hours, "estimated_hours")
        _check(err)
        due, err = parse_timestamp(due_date, "due_date")
        _check(err)
        if due is not None and due <= datetime.now(UTC):
            msg = "due_date must be in the future"
            raise ValueError(msg)

        self._require_user(reporter_id, "reporter_id")
        assignee_id = assignee_id or None
        if assignee_id is not None:
            self._require_user(assignee_id, "assignee_id")

        bug_id = self._generate_unique_id("bugs")
        now = _now_iso()
        try:
            self.conn.execute(
                "INSERT INTO bugs (id, title, description, priority, status, type, assignee_id, reporter_id, "
                "tags, estimated_hours, due_date, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, 'open', ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    bug_id,
                    title,
                    description,
                    priority,
                    type,
                    assignee_id,
                    reporter_id,
                    json.dumps(clean_tags),
                    hours,
                    _to_iso(due) if due is not None else None,
                    now,
                    now,
                ),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

        logger.debug("Created bug %s", bug_id)
        return self.get_bug(bug_id)

    def get_bug(self, bug_id: str) -> Bug:
        from bugtrail.core import bug_from_row

        row = self.conn.execute("SELECT * FROM bugs WHERE id = ?", (bug_id,)).fetchone()
        if row is None:
            msg = f"Bug not found: {bug_id}"
            raise KeyError(msg)
        return bug_from_row(row)

    def update_bug(
        self,
        bug_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        type: str | None = None,
        assignee_id: str | None = _UNSET,
        tags: list[str] | None = None,
        estimated_hours: float | None = _UNSET,
        actual_hours: float | None = _UNSET,
        due_date: str | datetime | None = _UNSET,
    ) -> Bug:
        """Apply a partial update.

        ``assignee_id``, the hour fields and ``due_date`` accept ``None`` (or
        ``""``) to clear the value; omitting them leaves the value untouched.
        """
        current = self.get_bug(bug_id)

        # --- Validate all inputs BEFORE any writes ---
        updates: list[str] = []
        params: list[Any] = []

        if title is not None:
            title, err = sanitize_text(title, "title", max_length=MAX_TITLE_LENGTH)
            _check(err)
            if title != current.title:
                updates.append("title = ?")
                params.append(title)

        if description is not None:
            description, err = sanitize_text(description, "description", max_length=MAX_DESCRIPTION_LENGTH)
            _check(err)
            if description != current.description:
                updates.append("description = ?")
                params.append(description)

        if priority is not None and priority != current.priority:
            _check(check_choice(priority, "priority", VALID_PRIORITIES))
            updates.append("priority = ?")
            params.append(priority)

        if type is not None and type != current.type:
            _check(check_choice(type, "type", VALID_BUG_TYPES))
            updates.append("type = ?")
            params.append(type)

        if status is not None and status != current.status:
            _check(check_choice(status, "status", VALID_STATUSES))
            updates.append("status = ?")
            params.append(status)
            if status == "closed":
                if current.resolved_at is None:
                    updates.append("resolved_at = ?")
                    params.append(_now_iso())
            elif current.resolved_at is not None:
                updates.append("resolved_at = NULL")

        if assignee_id is not _UNSET:
            new_assignee = assignee_id or None
            if new_assignee is not None and new_assignee != current.assignee_id:
                self._require_user(new_assignee, "assignee_id")
            if new_assignee != current.assignee_id:
                updates.append("assignee_id = ?")
                params.append(new_assignee)

        if tags is not None:
            clean_tags, err = normalize_tags(tags)
            _check(err)
            if clean_tags != current.tags:
                updates.append("tags = ?")
                params.append(json.dumps(clean_tags))

        for name, value in (("estimated_hours", estimated_hours), ("actual_hours", actual_hours)):
            if value is _UNSET:
                continue
            hours, err = sanitize_hours(value, name)
            _check(err)
            updates.append(f"{name} = ?")
            params.append(hours)

        if due_date is not _UNSET:
            due, err = parse_timestamp(due_date, "due_date")
            _check(err)
            updates.append("due_date = ?")
            params.append(_to_iso(due) if due is not None else None)

        if not updates:
            return current

        updates.append("updated_at = ?")
        params.append(_now_iso())
        params.append(bug_id)
        try:
            self.conn.execute(f"UPDATE bugs SET {', '.join(updates)} WHERE id = ?", params)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

        return self.get_bug(bug_id)

    def delete_bug(self, bug_id: str) -> None:
        try:
            cursor = self.conn.execute("DELETE FROM bugs WHERE id = ?", (bug_id,))
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        if cursor.rowcount == 0:
            msg = f"Bug not found: {bug_id}"
            raise KeyError(msg)
        logger.debug("Deleted bug %s", bug_id)
