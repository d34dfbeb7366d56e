"""Component loggers that emit one JSON line per call."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

ROOT_LOGGER_NAME = "deep_researcher"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ConsoleStreamHandler(logging.Handler):
    """Write warnings and errors to stderr, everything else to stdout.

    Streams are looked up on every emit so redirected ``sys.stdout`` and
    ``sys.stderr`` are honoured.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = sys.stderr if record.levelno >= logging.WARNING else sys.stdout
            stream.write(self.format(record) + "\n")
            stream.flush()
        except Exception:  # noqa: BLE001
            self.handleError(record)


def _ensure_console_handler() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(isinstance(handler, ConsoleStreamHandler) for handler in root.handlers):
        handler = ConsoleStreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.setLevel(logging.DEBUG)
        root.propagate = False
    return root


class Logger:
    """Structured logger bound to one component name."""

    def __init__(self, component: str) -> None:
        self.component = component
        _ensure_console_handler()
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")

    def debug(self, message: str, details: Optional[Mapping[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, details)

    def info(self, message: str, details: Optional[Mapping[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, details)

    def warn(self, message: str, details: Optional[Mapping[str, Any]] = None) -> None:
        self._log(LogLevel.WARN, message, details)

    def error(self, message: str, details: Optional[Mapping[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, message, details)

    def build_record(self, level: LogLevel, message: str, details: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": level.value,
            "message": message,
            "component": self.component,
        }
        if details:
            record.update(details)
        return record

    def _log(self, level: LogLevel, message: str, details: Optional[Mapping[str, Any]]) -> None:
        stdlib_level = _STDLIB_LEVELS[level]
        if not self._logger.isEnabledFor(stdlib_level):
            return
        record = self.build_record(level, message, details)
        self._logger.log(stdlib_level, json.dumps(record, default=str))


def get_logger(component: str) -> Logger:
    return Logger(component)
