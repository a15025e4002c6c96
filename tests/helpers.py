from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from blogapi.core.config import Settings
from blogapi.core.logging import HTTP, AppLogger

_TEST_SETTINGS: dict[str, Any] = {
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "METRICS_ENABLED": False,
}


class RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    @property
    def request_records(self) -> list[logging.LogRecord]:
        return [record for record in self.records if record.levelno == HTTP]

    @property
    def error_records(self) -> list[logging.LogRecord]:
        return [record for record in self.records if record.levelno >= logging.ERROR]


def recording_app_logger() -> tuple[AppLogger, RecordingHandler]:
    logger = logging.getLogger(f"blogapi.tests.{uuid4().hex}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = RecordingHandler()
    logger.addHandler(handler)
    return AppLogger(logger), handler


def make_settings(**overrides: Any) -> Settings:
    values = {**_TEST_SETTINGS, **overrides}
    return Settings(**values)
