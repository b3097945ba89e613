"""Structured JSON logging for bugtrail.

Writes one JSON object per line to .bugtrail/bugtrail.log, rotated at 5MB
with 3 backups.  Engine code attaches context through ``extra=``; the keys
listed in ``ENGINE_FIELDS`` are lifted into the entry, everything else on the
record is ignored.

The level defaults to INFO.  ``BUGTRAIL_LOG_LEVEL=DEBUG`` turns on the
per-read ``store_read`` lines emitted by the query engine.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "bugtrail.log"
LOG_LEVEL_ENV = "BUGTRAIL_LOG_LEVEL"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3

# Context keys the engine passes via ``extra=``, in output order.
ENGINE_FIELDS = ("operation", "filter", "duration_ms", "timed_out", "error")

_LEVELS = {"DEBUG": logging.DEBUG, "INFO": logging.INFO, "WARNING": logging.WARNING, "ERROR": logging.ERROR}


class EngineJsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg`` plus engine context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in ENGINE_FIELDS if hasattr(record, key)})
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["exception"] = f"{type(exc).__name__}: {exc}"
        return json.dumps(entry, default=str)


def resolve_log_level(raw: str | None = None) -> int:
    """Map a level name (default: ``$BUGTRAIL_LOG_LEVEL``) to a logging level.

    Unknown names fall back to INFO.
    """
    if raw is None:
        raw = os.getenv(LOG_LEVEL_ENV)
    if not raw:
        return logging.INFO
    level = _LEVELS.get(raw.strip().upper())
    if level is None:
        logging.getLogger(__name__).warning("Unknown %s=%r, using INFO", LOG_LEVEL_ENV, raw)
        return logging.INFO
    return level


def setup_logging(bugtrail_dir: Path, *, level: str | None = None) -> logging.Logger:
    """Attach the JSONL file handler for *bugtrail_dir* to the ``bugtrail`` logger.

    Safe to call repeatedly and from several threads: a handler for the same
    file is reused, one for a different project is closed and replaced.  The
    level is re-applied on every call.
    """
    logger = logging.getLogger("bugtrail")
    log_path = bugtrail_dir / LOG_FILENAME
    target_filename = os.path.abspath(str(log_path))
    resolved = resolve_log_level(level)

    with _setup_lock:
        logger.setLevel(resolved)
        for h in logger.handlers[:]:
            if not isinstance(h, RotatingFileHandler):
                continue
            if h.baseFilename == target_filename:
                return logger
            # Another project's log file.
            logger.removeHandler(h)
            h.close()

        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(EngineJsonFormatter())
        logger.addHandler(handler)
    return logger
