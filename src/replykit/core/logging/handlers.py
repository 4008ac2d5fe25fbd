# src/replykit/core/logging/handlers.py
"""
Handler entries for the dictConfig mapping.

The formatter names ("json", "standard") and filter names ("request_id", "redact")
are declared by the builder.
"""

from pathlib import Path

from replykit.config.settings import Settings

APP_LOG_FILE = "app.log"
ERROR_LOG_FILE = "errors.log"

_FILTERS = ("request_id", "redact")


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def _stream(level: str, formatter: str) -> dict:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": list(_FILTERS),
    }


def _rotating(settings: Settings, filename: str, level: str, formatter: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filters": list(_FILTERS),
        "filename": str(Path(settings.LOG_DIR) / filename),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
    }


def get_console_handler(settings: Settings) -> dict:
    """stderr at LOG_LEVEL, in the LOG_FORMAT style."""
    return _stream(settings.LOG_LEVEL, _formatter_name(settings))


def get_file_handler(settings: Settings) -> dict:
    return _rotating(settings, APP_LOG_FILE, settings.LOG_LEVEL, _formatter_name(settings))


# ERROR and above are always JSON so alerting has one structured source to tail.
def get_error_file_handler(settings: Settings) -> dict:
    return _rotating(settings, ERROR_LOG_FILE, "ERROR", "json")


def get_error_console_handler(settings: Settings) -> dict:
    return _stream("ERROR", "json")
