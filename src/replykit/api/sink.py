"""
ResponseSink: the write side of a request.

Handlers wrapped by the dispatcher receive a sink next to the Starlette request. They can
return a value (and let the dispatcher wrap it) or write the response themselves, e.g. to
stream. Exactly one body can be written; `headers_sent` tells whether that happened.
After the handler finishes, `to_response()` hands the Starlette Response to the framework.
"""

import inspect
import io
import json
from collections.abc import Iterator, Mapping
from typing import Any, Callable

from fastapi.encoders import jsonable_encoder
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response, StreamingResponse

from .pages import render_page

STREAM_CHUNK_SIZE = 64 * 1024


class ResponseAlreadySentError(RuntimeError):
    """Raised when a second body is written to the same sink."""


def is_stream(data: Any) -> bool:
    """
    True for values that are piped instead of serialized: open file objects,
    generators and async iterables.
    """
    return (
        isinstance(data, io.IOBase)
        or inspect.isgenerator(data)
        or inspect.isasyncgen(data)
        or hasattr(data, "__aiter__")
    )


def _read_chunks(fileobj: io.IOBase) -> Iterator[bytes | str]:
    try:
        while chunk := fileobj.read(STREAM_CHUNK_SIZE):
            yield chunk
    finally:
        fileobj.close()


class ResponseSink:
    def __init__(self, request: Request | None = None, renderer: Callable[..., str] = render_page):
        self.request = request
        self.status_code = 200
        self.headers: dict[str, str] = {}
        self._renderer = renderer
        self._response: Response | None = None

    @property
    def headers_sent(self) -> bool:
        return self._response is not None

    @property
    def path(self) -> str | None:
        """Request path including the query string, or None without a request."""
        if self.request is None:
            return None
        url = self.request.url
        return f"{url.path}?{url.query}" if url.query else url.path

    def status(self, status_code: int) -> "ResponseSink":
        self.status_code = status_code
        return self

    def set_headers(self, headers: Mapping[str, str]) -> "ResponseSink":
        self.headers.update({str(key): str(value) for key, value in headers.items()})
        return self

    def json(self, body: Any) -> None:
        self._commit(JSONResponse(jsonable_encoder(body), status_code=self.status_code, headers=self.headers))

    def send(self, body: str | bytes) -> None:
        self._commit(PlainTextResponse(body, status_code=self.status_code, headers=self.headers))

    def pipe(self, stream: Any) -> None:
        content = _read_chunks(stream) if isinstance(stream, io.IOBase) else stream
        self._commit(StreamingResponse(content, status_code=self.status_code, headers=self.headers))

    def render(self, name: str, context: dict[str, Any] | None = None) -> None:
        self._commit(HTMLResponse(self._renderer(name, context), status_code=self.status_code, headers=self.headers))

    def to_response(self) -> Response:
        if self._response is None:
            return Response(status_code=self.status_code, headers=self.headers)
        return self._response

    @property
    def body(self) -> Any:
        """Decoded JSON body of a committed JSONResponse (None otherwise)."""
        if isinstance(self._response, JSONResponse):
            return json.loads(self._response.body)
        return None

    def _commit(self, response: Response) -> None:
        if self._response is not None:
            raise ResponseAlreadySentError("A response has already been sent for this request")
        self._response = response


__all__ = ["ResponseSink", "ResponseAlreadySentError", "is_stream"]
