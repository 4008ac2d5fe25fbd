# src/replykit/core/logging/middleware.py
"""
Request ID middleware for FastAPI / Starlette.

Each request is associated with an id taken from the incoming `X-Request-ID` header or
freshly generated. The id is stored in the request-id context var (picked up by
RequestIdFilter) and echoed back in the `X-Request-ID` response header.

Incoming values are only accepted when they are short and printable, so a client cannot
inject newlines or megabytes into log lines.
"""

import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from .filters import set_request_id, reset_request_id

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def _accept_request_id(value: str | None) -> str | None:
    if not value or len(value) > MAX_REQUEST_ID_LENGTH or not value.isprintable():
        return None
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = _accept_request_id(request.headers.get(REQUEST_ID_HEADER)) or str(uuid.uuid4())

        token = set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            reset_request_id(token)
