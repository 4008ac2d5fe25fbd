"""
Error reporting for failed requests.

The dispatcher forwards unexpected failures to an ErrorReporter. Any object with an
`error(exc)` method will do (an APM client adapter, a test double); the default writes a
structured ERROR record with the traceback through the logging system.
"""

import logging
from typing import Protocol, runtime_checkable


@runtime_checkable
class ErrorReporter(Protocol):
    def error(self, error: BaseException) -> None: ...


class LoggingErrorReporter:
    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def error(self, error: BaseException) -> None:
        self.logger.error(
            "Unhandled error while processing request: %s",
            error,
            exc_info=(type(error), error, error.__traceback__),
            extra={"error_type": type(error).__name__},
        )


__all__ = ["ErrorReporter", "LoggingErrorReporter"]
