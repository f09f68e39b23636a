"""Logging setup for LoadClimb.

Engine log calls attach run context through ``extra``: ``round``,
``concurrency``, ``url``, ``rounds_completed`` and ``outcome``. The JSON
formatter emits those as top-level keys so a run can be filtered by level
without parsing messages. Both formatters stamp records with RFC 3339 local
time.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime

RUN_FIELDS = ("round", "concurrency", "url", "rounds_completed", "outcome")


def _rfc3339(created: float) -> str:
    return datetime.fromtimestamp(created).astimezone().isoformat(timespec="milliseconds")


class _ConsoleFormatter(logging.Formatter):
    """Human-readable ``<time> <LEVEL> <logger>: <message>`` lines."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-5s %(name)s: %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        return _rfc3339(record.created)


class _JsonFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Emits one-line JSON objects with keys: timestamp, level, logger, message,
    plus any run fields present on the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": _rfc3339(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in RUN_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root LoadClimb logger.

    Installs one stderr handler on the ``loadclimb`` logger namespace.
    Repeated calls reuse that handler, updating its level and switching its
    formatter, so consecutive runs in one process can change output mode.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit one JSON object per line carrying the run
            fields. If False, emit console lines.

    Returns:
        The configured ``loadclimb`` root logger.
    """
    logger = logging.getLogger("loadclimb")
    logger.setLevel(level)

    formatter: logging.Formatter = _JsonFormatter() if json_format else _ConsoleFormatter()

    if logger.handlers:
        handler = logger.handlers[0]
    else:
        handler = logging.StreamHandler(sys.stderr)
        logger.addHandler(handler)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    # Avoid duplicate output through the root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``loadclimb`` namespace."""
    return logging.getLogger(f"loadclimb.{name}")
