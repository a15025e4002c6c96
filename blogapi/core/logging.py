"""Structured logging helpers, correlation context and the application logger."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Final

from blogapi.core.errors import AppError
from blogapi.core.records import ErrorLogRecord, RequestContext, RequestLogRecord

HTTP: Final[int] = 15
logging.addLevelName(HTTP, "HTTP")

CORRELATION_ID_CTX: Final[ContextVar[str | None]] = ContextVar("correlation_id", default=None)

_LOGGING_CONFIGURED: bool = False


class JsonLogFormatter(logging.Formatter):
    """Serialize log records into a JSON structure suitable for log aggregation."""

    RESERVED_ATTRS: Final[frozenset[str]] = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "module",
            "msecs",
            "message",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "taskName",
            "thread",
            "threadName",
            "correlation_id",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        extra_fields = self._extract_extra_fields(record)
        if extra_fields:
            log_entry.update(extra_fields)

        if record.exc_info:
            # Replace newlines with space to keep single-line JSON
            exc_text = self.formatException(record.exc_info)
            log_entry["exc_info"] = exc_text.replace("\n", " | ")

        if record.stack_info:
            stack_text = self.formatStack(record.stack_info)
            log_entry["stack_info"] = stack_text.replace("\n", " | ")

        return json.dumps(log_entry, ensure_ascii=True, separators=(",", ":"), default=str)

    def _extract_extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS or key.startswith("_"):
                continue
            if value is None:
                continue
            extras[key] = self._normalize_value(value)
        return extras

    @staticmethod
    def _normalize_value(value: object) -> object:
        if isinstance(value, (str, int, float, bool)):
            return value
        if isinstance(value, (list, dict)):
            try:
                json.dumps(value)
                return value
            except (TypeError, ValueError):
                return str(value)
        return str(value)


class _ExactLevelFilter(logging.Filter):
    """Let through a single severity, used for the request log sink."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno == self.level


def configure_logging(
    level_name: str,
    *,
    log_dir: str | Path | None = None,
    retention_days: int = 14,
) -> None:
    """Configure root logging once: stdout always, rotating files per severity."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    resolved_level = _resolve_level(level_name)
    formatter = JsonLogFormatter()

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(resolved_level)

    if log_dir is not None:
        for file_handler in _build_file_handlers(Path(log_dir), retention_days):
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.captureWarnings(True)
    _LOGGING_CONFIGURED = True


def _build_file_handlers(log_dir: Path, retention_days: int) -> list[logging.Handler]:
    log_dir.mkdir(parents=True, exist_ok=True)

    def rotating(filename: str, level: int) -> TimedRotatingFileHandler:
        file_handler = TimedRotatingFileHandler(
            log_dir / filename,
            when="midnight",
            backupCount=retention_days,
            encoding="utf-8",
            utc=True,
        )
        file_handler.setLevel(level)
        return file_handler

    requests_handler = rotating("requests.log", HTTP)
    requests_handler.addFilter(_ExactLevelFilter(HTTP))

    return [
        rotating("application.log", logging.INFO),
        requests_handler,
        rotating("error.log", logging.ERROR),
    ]


def _resolve_level(level_name: str) -> int:
    try:
        level_value: int | str = logging.getLevelName(level_name.upper())
    except AttributeError:
        return logging.INFO

    if isinstance(level_value, str):
        return logging.INFO
    return int(level_value)


def bind_correlation_id(correlation_id: str) -> Token[str | None]:
    """Bind a correlation id to the current context."""
    return CORRELATION_ID_CTX.set(correlation_id)


def get_correlation_id() -> str | None:
    """Return the correlation id bound to the current context, if any."""
    return CORRELATION_ID_CTX.get()


def reset_correlation_id(token: Token[str | None]) -> None:
    """Reset the correlation id context using the provided token."""
    CORRELATION_ID_CTX.reset(token)


class AppLogger:
    """Request, error and fault logging that never raises into its caller.

    One instance is built at application start and handed to the components
    that log on the request path (middlewares, boundary responder) and to the
    fault monitor.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("blogapi")

    def log_request(self, record: RequestLogRecord) -> None:
        try:
            self.logger.log(HTTP, "HTTP Request", extra=record.as_extra())
        except Exception as exc:  # noqa: BLE001
            _write_last_resort("request log", exc, record)

    def log_error(self, error: AppError, context: RequestContext | None = None) -> None:
        record = ErrorLogRecord(error=error, context=context)
        try:
            self.logger.error("Error Occurred", extra=record.as_extra())
        except Exception as exc:  # noqa: BLE001
            _write_last_resort("error log", exc, record)

    def log_fault(self, error: AppError, source: str) -> None:
        record = ErrorLogRecord(error=error, source=source)
        try:
            self.logger.error("Process fault: %s", source, extra=record.as_extra())
        except Exception as exc:  # noqa: BLE001
            _write_last_resort("fault log", exc, record)


def write_last_resort(message: str) -> None:
    """Write straight to stderr, bypassing the logging machinery."""
    try:
        sys.stderr.write(message.rstrip("\n") + "\n")
        sys.stderr.flush()
    except Exception:  # noqa: BLE001, S110
        # stderr itself is gone; nothing left to report to.
        pass


def _write_last_resort(what: str, failure: BaseException, payload: object) -> None:
    write_last_resort(f"Logging failed while writing {what}: {failure!r}; original entry: {payload!r}")


__all__ = [
    "AppLogger",
    "CORRELATION_ID_CTX",
    "HTTP",
    "JsonLogFormatter",
    "bind_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "reset_correlation_id",
    "write_last_resort",
]
