"""Logging setup for torrentmeta.

The library only logs; it never installs handlers on import. Applications
call :func:`setup_logging` (directly or through the config manager) to get
Rich console output or JSON lines, an optional rotating log file, and a
correlation ID stamped on every record.
"""

from __future__ import annotations

import json
import logging
import logging.config
import time
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any

from torrentmeta.utils.exceptions import TorrentMetaError
from torrentmeta.utils.rich_logging import create_rich_handler

if TYPE_CHECKING:  # pragma: no cover
    from torrentmeta.models import ObservabilityConfig

PACKAGE_LOGGER = "torrentmeta"
NO_CORRELATION_ID = "no-correlation-id"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName", "correlation_id"}


class CorrelationFilter(logging.Filter):
    """Stamp records with the correlation ID of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": record.created,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        corr_id = getattr(record, "correlation_id", None)
        if corr_id is not None:
            entry["correlation_id"] = corr_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS:
                entry[key] = value

        return json.dumps(entry, default=str)


def _console_handler(structured: bool) -> dict[str, Any]:
    if structured:
        return {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "json",
        }
    return {"()": create_rich_handler}


def _file_handler(path: str, structured: bool) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": path,
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
        "encoding": "utf-8",
        "formatter": "json" if structured else "plain",
    }


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure the ``torrentmeta`` logger from observability settings.

    Console output goes through Rich unless ``structured_logging`` is set, in
    which case JSON lines are written to stderr. A rotating file handler is
    added when ``log_file`` is configured. Other loggers are left alone.
    """
    level = config.log_level.value
    handlers = {"console": _console_handler(config.structured_logging)}
    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _file_handler(config.log_file, config.structured_logging)
    for handler in handlers.values():
        handler["level"] = level
        handler["filters"] = ["correlation"]

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": StructuredFormatter},
                "plain": {
                    "format": "%(asctime)s [%(correlation_id)s] %(levelname)s %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "filters": {"correlation": {"()": CorrelationFilter}},
            "handlers": handlers,
            "loggers": {
                PACKAGE_LOGGER: {
                    "level": level,
                    "handlers": list(handlers),
                    "propagate": False,
                },
            },
        }
    )

    if config.log_correlation_id:
        set_correlation_id()


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the ``torrentmeta`` namespace."""
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def set_correlation_id(corr_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if needed."""
    corr_id = corr_id or str(uuid.uuid4())
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str | None:
    return correlation_id.get()


class LoggingContext:
    """Time an operation and log its outcome at DEBUG.

    Keyword arguments are attached to both records as ``extra`` fields. A
    correlation ID is created for the context if none is bound yet.
    """

    def __init__(self, operation: str, logger: logging.Logger | None = None, **kwargs: Any):
        self.operation = operation
        self.kwargs = kwargs
        self.logger = logger or get_logger(__name__)
        self.start_time: float | None = None

    def __enter__(self) -> LoggingContext:
        if correlation_id.get() is None:
            set_correlation_id()
        self.start_time = time.perf_counter()
        self.logger.debug("Starting %s", self.operation, extra=self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        elapsed = time.perf_counter() - (self.start_time or time.perf_counter())
        if exc_type is None:
            self.logger.debug(
                "Completed %s in %.3fs", self.operation, elapsed, extra=self.kwargs
            )
        else:
            self.logger.debug(
                "Failed %s in %.3fs: %s",
                self.operation,
                elapsed,
                exc_val,
                extra=self.kwargs,
            )
        return False


def log_exception(logger: logging.Logger, exc: Exception, context: str = "") -> None:
    """Log ``exc`` at ERROR with traceback, including library error details."""
    if isinstance(exc, TorrentMetaError):
        logger.error(
            "%s: %s", context, exc.message, extra={"details": exc.details}, exc_info=True
        )
    else:
        logger.error("%s: %s", context, exc, exc_info=True)
