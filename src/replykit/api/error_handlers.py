# replykit/api/error_handlers.py
"""
FastAPI exception handlers producing the same error envelope as `send()`.

Routes registered with `dispatcher.endpoint(...)` never let an exception escape. Plain
FastAPI routes do; these handlers catch what they raise so clients see one error shape
across the whole application.

Note: Starlette routes the `Exception` handler through ServerErrorMiddleware, which sends
our response and then re-raises so the server still logs the crash.
"""

import logging

from fastapi import FastAPI, Request
from sqlalchemy.exc import DBAPIError
from starlette.responses import Response

from replykit.exceptions.base import ExternalApiError, ResponseError
from .response_helper import Dispatcher, get_dispatcher
from .sink import ResponseSink

logger = logging.getLogger(__name__)


def _error_response(dispatcher: Dispatcher, request: Request, exc: Exception) -> Response:
    sink = ResponseSink(request)
    dispatcher.handle_error(sink, exc)
    return sink.to_response()


def register_exception_handlers(app: FastAPI, dispatcher: Dispatcher | None = None) -> None:
    dispatcher = dispatcher or get_dispatcher()

    async def response_error_handler(request: Request, exc: ResponseError) -> Response:
        logger.info(
            "%s for %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            extra={"status_code": exc.http_status_code, "error_code": exc.error_code},
        )
        return _error_response(dispatcher, request, exc)

    async def external_api_error_handler(request: Request, exc: ExternalApiError) -> Response:
        logger.warning("External API error for %s %s: %s", request.method, request.url.path, exc.message)
        return _error_response(dispatcher, request, exc)

    async def database_error_handler(request: Request, exc: DBAPIError) -> Response:
        # raw driver text stays in DEBUG; clients get the formatted envelope
        logger.debug("Database error for %s %s", request.method, request.url.path, extra={"raw": str(exc.orig)})
        return _error_response(dispatcher, request, exc)

    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        return _error_response(dispatcher, request, exc)

    # Most specific first
    app.add_exception_handler(ResponseError, response_error_handler)
    app.add_exception_handler(ExternalApiError, external_api_error_handler)
    app.add_exception_handler(DBAPIError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = ["register_exception_handlers"]
