"""
Request completion: success envelopes, error envelopes and the dispatcher tying them together.

Wrap a handler with `send()` (or `Dispatcher.send()`) and every request it serves ends in
one of two shapes:

    success:  {"data": <payload>}            (or the bare payload with raw=True)
    failure:  {"code": 0, "message": "...", "hint"?: ..., "meta"?: ..., "stacktrace"?: ...}

Usage:
```
from fastapi import FastAPI
from replykit.api.response_helper import Dispatcher

dispatcher = Dispatcher()
app = FastAPI()

async def get_workflow(request, sink):
    workflow = await repository.get(request.path_params["id"])
    if workflow is None:
        raise NotFoundError("Workflow not found")
    return workflow

app.add_api_route("/workflows/{id}", dispatcher.endpoint(get_workflow), methods=["GET"])
```
"""

import inspect
import logging
import traceback
from functools import lru_cache, wraps
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import DBAPIError
from starlette.requests import Request
from starlette.responses import Response

from replykit.config.settings import Settings, get_settings
from replykit.core.logging.formatters import colorize
from replykit.exceptions.base import ExternalApiError, ResponseError
from replykit.exceptions.integrity_classifier import driver_error_message, is_unique_constraint_error
from .pages import FORM_TRIGGER_404, FORM_TRIGGER_409
from .reporting import ErrorReporter, LoggingErrorReporter
from .sink import ResponseSink, is_stream

logger = logging.getLogger(__name__)

UNIQUE_CONSTRAINT_MESSAGE = "There is already an entry with this name"
UNKNOWN_ERROR_MESSAGE = "Unknown error"

# Domain errors up to and including 404 are expected client mistakes, not incidents.
MAX_UNREPORTED_STATUS = 404

Handler = Callable[[Request, ResponseSink], Any]
WrappedHandler = Callable[[Request, ResponseSink], Awaitable[None]]


class ErrorEnvelope(BaseModel):
    """
    Body of every JSON error response. Optional keys are left out when unset,
    never sent as null.
    """

    model_config = ConfigDict(extra="allow")

    code: int = 0
    message: str
    hint: Any = None
    stacktrace: str | None = None
    meta: Mapping[Any, Any] | None = None

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def send_success_response(
    sink: ResponseSink,
    data: Any,
    raw: bool = False,
    status_code: int | None = None,
    headers: Mapping[str, str] | None = None,
) -> None:
    """
    Write a successful result.

    Streams (file objects, generators, async iterables) are piped as they are and never
    wrapped. Otherwise the payload is sent as {"data": data}, or bare with raw=True
    (strings as text, anything else as JSON).
    """
    if status_code is not None:
        sink.status(status_code)

    if headers:
        sink.set_headers(headers)

    if is_stream(data):
        sink.pipe(data)
        return

    if raw:
        if isinstance(data, str):
            sink.send(data)
        else:
            sink.json(data)
    else:
        sink.json({"data": data})


def error_message(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    if isinstance(error, DBAPIError):
        return driver_error_message(error)
    return str(error) or UNKNOWN_ERROR_MESSAGE


def _first_path_segment(path: str) -> str:
    parts = path.split("/")
    return parts[1] if len(parts) > 1 else ""


def _format_stacktrace(error: BaseException) -> str:
    # an error that was never raised has no frames; keep at least its type and message
    if error.__traceback__ is None:
        return "".join(traceback.format_exception_only(error))
    return "".join(traceback.format_exception(error))


def send_error_response(
    sink: ResponseSink,
    error: BaseException,
    *,
    settings: Settings | None = None,
    log: logging.Logger | None = None,
) -> None:
    """
    Format `error` into an error envelope and write it with the matching status.

    - ResponseError: its HTTP status, its error code as `code`, plus hint and meta when
      present. Two form trigger cases render an HTML page instead of JSON.
    - ExternalApiError: its allow-listed diagnostic fields are merged into the envelope.
    - anything else: status 500, code 0.

    Stack traces are attached only in development mode (just the exception line when the
    error was never raised). Missing optional fields are left out of the envelope.
    """
    settings = settings or get_settings()
    log = log or logger
    in_development = settings.in_development

    http_status_code = 500
    response: dict[str, Any] = {
        "code": 0,
        "message": error_message(error),
    }

    if isinstance(error, ResponseError):
        if in_development:
            log.error(colorize(f"{error.http_status_code} {error.message}"))

        path = sink.path
        if error.error_code == 404 and path:
            base_path = _first_path_segment(path)
            is_legacy_form_trigger = settings.FORM_TRIGGER_PATH_IDENTIFIER in path
            is_form_trigger = "form" in base_path

            if is_form_trigger or is_legacy_form_trigger:
                sink.status(404)
                sink.render(FORM_TRIGGER_404, {"is_test_webhook": "test" in base_path})
                return

        if error.error_code == 409 and path and "form-waiting" in path:
            # any status other than 200 breaks the redirect to the form-waiting page
            sink.render(FORM_TRIGGER_409, {"message": error.message})
            return

        http_status_code = error.http_status_code

        if error.error_code:
            response["code"] = error.error_code
        if error.hint:
            response["hint"] = error.hint
        if error.meta:
            response["meta"] = error.meta

    if isinstance(error, ExternalApiError):
        if in_development:
            log.error(f"{colorize(error.name)} {error.message}")

        response.update(error.envelope_fields())

    if in_development:
        response["stacktrace"] = _format_stacktrace(error)

    envelope = ErrorEnvelope.model_validate(response)
    sink.status(http_status_code)
    sink.json(envelope.to_body())


class Dispatcher:
    """
    Runs request handlers and turns their outcome into a response.

    Collaborators are passed in rather than looked up globally:
      - reporter: receives unexpected failures (default: LoggingErrorReporter)
      - settings: development-mode flag and form trigger marker (default: get_settings())
      - logger: development-mode diagnostics
    """

    def __init__(
        self,
        reporter: ErrorReporter | None = None,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ):
        self.reporter = reporter or LoggingErrorReporter()
        self.settings = settings or get_settings()
        self.logger = logger or logging.getLogger(__name__)

    def report_error(self, error: BaseException) -> None:
        if isinstance(error, ResponseError) and error.http_status_code <= MAX_UNREPORTED_STATUS:
            return
        try:
            self.reporter.error(error)
        except Exception:
            self.logger.exception("Failed to report error", extra={"error_type": type(error).__name__})

    def send_error_response(self, sink: ResponseSink, error: BaseException) -> None:
        send_error_response(sink, error, settings=self.settings, log=self.logger)

    def handle_error(self, sink: ResponseSink, error: BaseException) -> None:
        """
        Report `error`, hide raw unique-constraint text behind a fixed message and write
        the error response. Never raises.
        """
        self.report_error(error)

        if is_unique_constraint_error(error):
            error.message = UNIQUE_CONSTRAINT_MESSAGE

        if sink.headers_sent:
            self.logger.warning(
                "Handler failed after its response was sent",
                extra={"error_type": type(error).__name__},
            )
            return

        try:
            self.send_error_response(sink, error)
        except Exception:
            self.logger.exception("Failed to build error response")
            if not sink.headers_sent:
                sink.status(500)
                sink.json(ErrorEnvelope(message=UNKNOWN_ERROR_MESSAGE).to_body())

    def send(self, handler: Handler, raw: bool = False) -> WrappedHandler:
        """
        Wrap `handler(request, sink)` so its return value becomes a success envelope and
        any exception becomes an error envelope. The wrapped coroutine never raises.

        A handler that wrote to the sink itself (e.g. a stream) keeps its response.
        """

        @wraps(handler)
        async def wrapped(request: Request, sink: ResponseSink) -> None:
            try:
                data = handler(request, sink)
                if inspect.isawaitable(data):
                    data = await data

                if not sink.headers_sent:
                    send_success_response(sink, data, raw)
            except Exception as error:
                self.handle_error(sink, error)

        return wrapped

    def endpoint(self, handler: Handler, raw: bool = False) -> Callable[[Request], Awaitable[Response]]:
        """
        Adapt `handler` into a Starlette / FastAPI endpoint: one ResponseSink per request,
        returned as a Starlette Response.
        """
        wrapped = self.send(handler, raw)

        # no functools.wraps: FastAPI would read the handler's (request, sink) signature
        async def endpoint(request: Request) -> Response:
            sink = ResponseSink(request)
            await wrapped(request, sink)
            return sink.to_response()

        endpoint.__name__ = getattr(handler, "__name__", endpoint.__name__)
        endpoint.__doc__ = handler.__doc__
        return endpoint


@lru_cache()
def get_dispatcher() -> Dispatcher:
    """Process-wide dispatcher built from get_settings()."""
    return Dispatcher()


def report_error(error: BaseException) -> None:
    get_dispatcher().report_error(error)


def send(handler: Handler, raw: bool = False) -> WrappedHandler:
    return get_dispatcher().send(handler, raw)


__all__ = [
    "UNIQUE_CONSTRAINT_MESSAGE",
    "ErrorEnvelope",
    "Dispatcher",
    "get_dispatcher",
    "send_success_response",
    "send_error_response",
    "report_error",
    "send",
]
