"""Structured logging helpers for the ISO catalog.

Console output stays terse (``LEVEL: message`` on stderr) while a rotating
JSON-lines file keeps the structured context (``stage``, ``entry``, ``url``)
that modules attach through ``extra=``.  Files older than the retention window
are compressed, and compressed archives older than the window are deleted.
"""

from __future__ import annotations

import gzip
import json
import logging
import shutil
import sys
from datetime import datetime, timedelta, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

LOGGER_NAME = "Pim.IsoCatalog"
LOG_FILE_PREFIX = "pim-iso"
_STRUCTURED_FIELDS = ("stage", "entry", "url", "path", "bytes", "status_code")

__all__ = ["JSONFormatter", "LOGGER_NAME", "setup_logging"]


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _is_expired(path: Path, cutoff: datetime) -> bool:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc) < cutoff


def _gzip_in_place(path: Path) -> Path:
    archive = path.with_name(f"{path.name}.gz")
    with path.open("rb") as raw, gzip.open(archive, "wb") as packed:
        shutil.copyfileobj(raw, packed)
    path.unlink(missing_ok=True)
    return archive


def _prune_log_dir(log_dir: Path, retention_days: int) -> List[Path]:
    """Archive stale ``*.jsonl`` logs and delete archives past retention.

    Returns the paths that were archived or removed.
    """

    cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
    touched: List[Path] = []
    for stale in sorted(log_dir.glob(f"{LOG_FILE_PREFIX}-*.jsonl")):
        if _is_expired(stale, cutoff):
            _gzip_in_place(stale)
            touched.append(stale)
    for archive in sorted(log_dir.glob(f"{LOG_FILE_PREFIX}-*.jsonl.gz")):
        if _is_expired(archive, cutoff):
            archive.unlink(missing_ok=True)
            touched.append(archive)
    return touched


def setup_logging(
    *,
    level: str = "WARNING",
    log_dir: Optional[Path] = None,
    retention_days: int = 30,
    max_log_size_mb: int = 10,
) -> logging.Logger:
    """Configure console and JSON file handlers on the package logger.

    Calling this repeatedly replaces the handlers installed by earlier calls.

    Args:
        level: Console and logger level name.
        log_dir: Directory for JSON logs; file logging is skipped when ``None``.
        retention_days: Age after which log files are compressed or removed.
        max_log_size_mb: Rotation threshold for the active log file.

    Returns:
        The configured ``Pim.IsoCatalog`` logger.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        if getattr(handler, "_pim_managed", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper(), logging.WARNING))
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console_handler._pim_managed = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        _prune_log_dir(log_dir, retention_days)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            log_dir / f"{LOG_FILE_PREFIX}-{today}.jsonl",
            maxBytes=int(max_log_size_mb * 1024 * 1024),
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        file_handler._pim_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger
