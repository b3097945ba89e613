"""Database schema definitions for the bugtrail store.

Contains the canonical SQL schema and the current schema version constant.
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    email       TEXT NOT NULL UNIQUE,
    first_name  TEXT NOT NULL,
    last_name   TEXT NOT NULL,
    role        TEXT NOT NULL DEFAULT 'developer',
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,

    CHECK (role IN ('admin', 'developer', 'tester', 'manager'))
);

CREATE TABLE IF NOT EXISTS bugs (
    id               TEXT PRIMARY KEY,
    title            TEXT NOT NULL,
    description      TEXT NOT NULL DEFAULT '',
    priority         TEXT NOT NULL DEFAULT 'medium',
    status           TEXT NOT NULL DEFAULT 'open',
    type             TEXT NOT NULL DEFAULT 'bug',
    assignee_id      TEXT REFERENCES users(id) ON DELETE SET NULL,
    reporter_id      TEXT NOT NULL REFERENCES users(id),
    tags             TEXT NOT NULL DEFAULT '[]',
    estimated_hours  REAL,
    actual_hours     REAL,
    due_date         TEXT,
    resolved_at      TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,

    CHECK (priority IN ('low', 'medium', 'high', 'critical')),
    CHECK (status IN ('open', 'in-progress', 'resolved', 'closed', 'reopened')),
    CHECK (type IN ('bug', 'feature', 'improvement', 'task')),
    CHECK (estimated_hours IS NULL OR estimated_hours BETWEEN 0 AND 1000),
    CHECK (actual_hours IS NULL OR actual_hours BETWEEN 0 AND 1000)
);

CREATE INDEX IF NOT EXISTS idx_bugs_status_priority ON bugs(status, priority);
CREATE INDEX IF NOT EXISTS idx_bugs_assignee ON bugs(assignee_id);
CREATE INDEX IF NOT EXISTS idx_bugs_reporter ON bugs(reporter_id);
CREATE INDEX IF NOT EXISTS idx_bugs_created ON bugs(created_at DESC);
"""

CURRENT_SCHEMA_VERSION = 1
