"""
Core pytest configuration for the entire test suite.

Shared building blocks (fake driver errors, requests, sinks, an in-memory SQLite engine)
live in tests/test_fixtures/error_fixtures.py and are imported here so every test module
can use them without imports.
"""

from __future__ import annotations

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Keep this block above the project imports: it silences noisy third-party loggers
# before they are configured during collection.
import logging

NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest

from replykit.api.response_helper import Dispatcher, get_dispatcher
from replykit.config.settings import Settings, get_settings

from replykit.tests.test_fixtures.error_fixtures import (  # noqa: F401 - fixtures registered by import
    RecordingReporter,
    reporter,
    request_factory,
    sink_factory,
    sqlite_engine,
)


@pytest.fixture(autouse=True)
def clear_cached_settings():
    """
    get_settings() and get_dispatcher() are cached per process; tests that change the
    environment must not leak into each other.
    """
    get_settings.cache_clear()
    get_dispatcher.cache_clear()
    yield
    get_settings.cache_clear()
    get_dispatcher.cache_clear()


@pytest.fixture()
def restore_root_logging():
    """
    setup_logging() replaces the root logger's handlers with streams bound to the
    current test's captured stderr; put the previous state back afterwards.
    """
    root = logging.getLogger()
    handlers, level, filters = list(root.handlers), root.level, list(root.filters)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    root.filters[:] = filters


@pytest.fixture()
def dev_settings() -> Settings:
    return Settings(ENV="development", LOG_FORMAT="json")


@pytest.fixture()
def prod_settings() -> Settings:
    return Settings(ENV="production", LOG_FORMAT="json")


@pytest.fixture()
def dispatcher(reporter: RecordingReporter, prod_settings: Settings) -> Dispatcher:
    return Dispatcher(reporter=reporter, settings=prod_settings)


@pytest.fixture()
def dev_dispatcher(reporter: RecordingReporter, dev_settings: Settings) -> Dispatcher:
    return Dispatcher(reporter=reporter, settings=dev_settings)
