# replykit/api/
# ├─ response_helper.py     # send(), Dispatcher, success / error envelopes
# ├─ sink.py                # ResponseSink over Starlette responses
# ├─ pages.py               # HTML pages for the form trigger error cases
# ├─ reporting.py           # ErrorReporter protocol + logging implementation
# └─ error_handlers.py      # FastAPI exception handlers using the same envelope

from .response_helper import (
    UNIQUE_CONSTRAINT_MESSAGE,
    Dispatcher,
    ErrorEnvelope,
    get_dispatcher,
    report_error,
    send,
    send_error_response,
    send_success_response,
)
from .reporting import ErrorReporter, LoggingErrorReporter
from .sink import ResponseSink
from .error_handlers import register_exception_handlers

__all__ = [
    "UNIQUE_CONSTRAINT_MESSAGE",
    "Dispatcher",
    "ErrorEnvelope",
    "ErrorReporter",
    "LoggingErrorReporter",
    "ResponseSink",
    "get_dispatcher",
    "register_exception_handlers",
    "report_error",
    "send",
    "send_error_response",
    "send_success_response",
]
