from replykit.api import Dispatcher, ResponseSink, send, send_error_response, send_success_response
from replykit.exceptions import is_unique_constraint_error

__all__ = [
    "Dispatcher",
    "ResponseSink",
    "is_unique_constraint_error",
    "send",
    "send_error_response",
    "send_success_response",
]
