"""Loggers and event records for dbmap.

Pool, SQL and mapping activity is logged as named events (``pool.connection.reuse``,
``sql.execute``, ...) with their details attached as ``extra_fields``.
:class:`StructuredFormatter` renders such records as one JSON object per line.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

from dbmap._serialization import encode_json

__all__ = (
    "POOL_LOGGER_NAME",
    "ROOT_LOGGER_NAME",
    "SQL_LOGGER_NAME",
    "StructuredFormatter",
    "correlation_id_var",
    "get_logger",
    "log_with_context",
)

ROOT_LOGGER_NAME = "dbmap"
POOL_LOGGER_NAME = "dbmap.pool"
SQL_LOGGER_NAME = "dbmap.sql"

correlation_id_var: ContextVar[str | None] = ContextVar("dbmap_correlation_id", default=None)
"""Identifier of the unit of work in progress, copied onto every event record."""

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


class StructuredFormatter(logging.Formatter):
    """Render a record as JSON: event name, logger, level, correlation id and event fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is not None:
            entry["correlation_id"] = correlation_id
        entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the ``dbmap`` namespace.

    ``get_logger("pool")`` and ``get_logger("dbmap.pool")`` return the same logger;
    no name gives the package root logger.
    """
    if name is None or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit ``event`` with ``fields`` attached to the record as ``extra_fields``.

    The record also carries the current ``correlation_id``. Nothing is built when the
    logger is not enabled for ``level``.
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, event, extra={"extra_fields": fields, "correlation_id": correlation_id_var.get()})
