# src/replykit/core/logging/formatters.py

"""
Custom logging formatters.

  - JsonFormatter: one JSON object per record for log collectors. Observability fields
    (service, env, version, request_id) are always present; extras passed through
    `extra={...}` are included and stringified when they are not JSON-serializable.

  - ColorFormatter: compact ANSI-colored lines for a developer terminal.

The builder (dictConfig) picks one of them per handler based on LOG_FORMAT.
"""

import json
import logging
from typing import Any
from logging import LogRecord
from replykit.utils.logging import get_project_version

PROJECT_VERSION = get_project_version()

# Attributes every LogRecord carries; anything else on the record came in through `extra`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "request_id", "taskName"}

COLOR_CODES = {
    "DEBUG": "\033[1;36;47m",   # bold cyan on white
    "INFO": "\033[32m",         # green
    "WARNING": "\033[33m",      # yellow
    "ERROR": "\033[31m",        # red
    "CRITICAL": "\033[1;41m",   # bold on red background
    "RESET": "\033[0m",
}


def colorize(text: str, level: str = "ERROR") -> str:
    """
    Wrap `text` in the ANSI color used for `level`.

    Used for short human-facing lines such as "404 Workflow not found" that are
    logged in development mode.
    """
    color = COLOR_CODES.get(level.upper(), "")
    if not color:
        return text
    return f"{color}{text}{COLOR_CODES['RESET']}"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    env and service are fixed at construction (dictConfig passes them from Settings);
    datefmt is handed to logging.Formatter for the timestamp.

    format() never raises: an extra that json cannot encode is replaced by str(value).
    """

    def __init__(self, *, env: str | None = None, service: str = "replykit", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def _base_fields(self, record: LogRecord) -> dict[str, Any]:
        return {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

    @staticmethod
    def _extras(record: LogRecord) -> dict[str, Any]:
        extras = {}
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            extras[key] = value
        return extras

    def format(self, record: LogRecord) -> str:
        payload = self._base_fields(record)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        for key, value in self._extras(record).items():
            payload.setdefault(key, value)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """Terminal lines: TIMESTAMP | LEVEL | LOGGER | REQUEST_ID | MESSAGE, level in color."""

    def format(self, record: LogRecord) -> str:
        level = colorize(f"{record.levelname:<8}", record.levelname)
        parts = [
            self.formatTime(record, self.datefmt),
            level,
            f"{record.name:<30}",
            f"{getattr(record, 'request_id', '-'):<10}",
            record.getMessage(),
        ]
        line = " | ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
