# src/replykit/core/logging/builder.py
"""
Turn Settings into a running logging setup.

make_dict_config(settings) returns a plain dictConfig mapping, so it can be inspected in
tests without touching global state; setup_logging(settings) applies it.

Settings read: ENV, LOG_LEVEL, LOG_FORMAT, LOG_TO_STDOUT, LOG_DIR, LOG_MAX_BYTES,
LOG_BACKUP_COUNT, ENABLE_SQL_LOGGING and, when present, SERVICE_NAME. Any object with
those attributes is accepted.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any

from replykit.config.settings import Settings

from .filters import RedactFilter, RequestIdFilter
from .formatters import ColorFormatter, JsonFormatter
from .handlers import (
    get_console_handler,
    get_error_console_handler,
    get_error_file_handler,
    get_file_handler,
)

TEXT_LINE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"


def _writes_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


def _build_handlers(settings: Settings) -> dict[str, dict]:
    handlers = {"console": get_console_handler(settings)}
    if _writes_files(settings):
        handlers.update(
            file=get_file_handler(settings),
            error_file=get_error_file_handler(settings),
        )
    else:
        handlers["error_console"] = get_error_console_handler(settings)
    return handlers


def _logger(level: str, handlers: list[str], propagate: bool = False) -> dict[str, Any]:
    return {"level": level, "handlers": handlers, "propagate": propagate}


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping for `settings`.

    Handlers: "console" always; "file" + "error_file" when logging to LOG_DIR,
    "error_console" otherwise. The root logger and uvicorn.error write to all of them;
    access logs and SQL echo only go to the console.
    """
    handlers = _build_handlers(settings)
    all_handlers = list(handlers)

    # SQL echo includes bound parameters, keep it opt-in
    sql_level = "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
                "format": TEXT_LINE_FORMAT,
            },
            "json": {
                "()": JsonFormatter,
                "env": settings.ENV,
                "service": getattr(settings, "SERVICE_NAME", "replykit"),
            },
        },
        "filters": {
            "request_id": {"()": RequestIdFilter},
            "redact": {"()": RedactFilter},
        },
        "handlers": handlers,
        "loggers": {
            "": _logger(settings.LOG_LEVEL, all_handlers, propagate=True),
            "uvicorn.error": _logger(settings.LOG_LEVEL, all_handlers),
            "uvicorn.access": _logger("INFO", ["console"]),
            "sqlalchemy.engine": _logger(sql_level, ["console"]),
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the logging configuration for `settings`.

    LOG_DIR is created first when logs go to files. A RequestIdFilter is also put on the
    root logger so handlers added later by third parties can use %(request_id)s.
    """
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
    logging.getLogger().addFilter(RequestIdFilter())
