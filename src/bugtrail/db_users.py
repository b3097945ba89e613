"""UsersMixin — the user directory that bugs reference.

Bugs carry ``assignee_id`` / ``reporter_id``; this mixin owns the rows those
point at and the display-name lookup used by listings and export.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from bugtrail.db_base import VALID_ROLES, DBMixinProtocol, _now_iso
from bugtrail.validation import MAX_NAME_LENGTH, check_choice, sanitize_text, validate_email

if TYPE_CHECKING:
    from bugtrail.core import User

logger = logging.getLogger(__name__)


class UsersMixin(DBMixinProtocol):
    """User creation and lookup.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    """

    def create_user(
        self,
        email: str,
        *,
        first_name: str,
        last_name: str,
        role: str = "developer",
    ) -> User:
        email, err = validate_email(email)
        if err:
            raise ValueError(err)
        first, err = sanitize_text(first_name, "first_name", max_length=MAX_NAME_LENGTH)
        if err:
            raise ValueError(err)
        last, err = sanitize_text(last_name, "last_name", max_length=MAX_NAME_LENGTH)
        if err:
            raise ValueError(err)
        err = check_choice(role, "role", VALID_ROLES)
        if err:
            raise ValueError(err)

        user_id = self._generate_unique_id("users", infix="u")
        now = _now_iso()
        try:
            self.conn.execute(
                "INSERT INTO users (id, email, first_name, last_name, role, is_active, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, 1, ?, ?)",
                (user_id, email, first, last, role, now, now),
            )
            self.conn.commit()
        except sqlite3.IntegrityError:
            self.conn.rollback()
            msg = f"A user with email '{email}' already exists"
            raise ValueError(msg) from None
        except Exception:
            self.conn.rollback()
            raise

        logger.debug("Created user %s", user_id)
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> User:
        from bugtrail.core import user_from_row

        row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            msg = f"User not found: {user_id}"
            raise KeyError(msg)
        return user_from_row(row)

    def list_users(self, *, active_only: bool = False) -> list[User]:
        from bugtrail.core import user_from_row

        sql = "SELECT * FROM users"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY first_name, last_name, id"
        return [user_from_row(r) for r in self.conn.execute(sql).fetchall()]

    def user_exists(self, user_id: str) -> bool:
        return self.conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is not None

    def display_name(self, user_id: str | None, fallback: str) -> str:
        """Return "first last" for *user_id*, or *fallback* when absent or dangling."""
        if not user_id:
            return fallback
        row = self.conn.execute("SELECT first_name, last_name FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return fallback
        return f"{row['first_name']} {row['last_name']}".strip() or fallback
