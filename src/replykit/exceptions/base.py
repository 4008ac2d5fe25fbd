"""
Error kinds understood by the response helper.

Every error a handler raises falls into one of these buckets:

  - ResponseError (and subclasses): a domain error that knows its HTTP status and its
    numeric application error code, and may carry a hint and a meta mapping.
  - ExternalApiError: a failure proxied from a third-party API; it carries extra
    diagnostic fields that are copied into the error envelope (allow-listed).
  - anything else: formatted with status 500 and code 0.

The kind is fixed when the error is constructed; the response helper only checks the
class, never which attributes happen to be present.
"""

from typing import Any, ClassVar


class ResponseError(Exception):
    """
    Base class for errors that map directly onto an HTTP error response.

    - message: human-friendly message (sent to clients)
    - http_status_code: HTTP status of the response
    - error_code: numeric application error code placed in the envelope's `code` field;
      defaults to the HTTP status
    - hint: optional short instruction for the client
    - meta: optional mapping sent verbatim to the client (e.g. {"eulaUrl": "..."})
    """

    http_status_code: ClassVar[int] = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: int | None = None,
        hint: str | None = None,
        meta: dict[str, Any] | None = None,
        http_status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        if http_status_code is not None:
            self.http_status_code = http_status_code
        self.error_code = error_code if error_code is not None else self.http_status_code
        self.hint = hint
        self.meta = meta

    def __str__(self) -> str:
        return self.message


class BadRequestError(ResponseError):
    http_status_code = 400


class UnauthorizedError(ResponseError):
    http_status_code = 401


class ForbiddenError(ResponseError):
    http_status_code = 403


class NotFoundError(ResponseError):
    http_status_code = 404


class ConflictError(ResponseError):
    http_status_code = 409


class UnprocessableRequestError(ResponseError):
    http_status_code = 422


class InternalServerError(ResponseError):
    http_status_code = 500

    def __init__(self, message: str = "Internal server error", **kwargs: Any):
        super().__init__(message, **kwargs)


class LicenseEulaRequiredError(BadRequestError):
    """Raised when a license can only be activated after the EULA is accepted."""

    def __init__(self, message: str, meta: dict[str, Any] | None = None):
        super().__init__(message, meta=meta)


class ExternalApiError(Exception):
    """
    Failure returned by a third-party API called on the client's behalf.

    Only the attributes named in ENVELOPE_FIELDS are merged into the error envelope;
    whatever else the error carries stays server side.
    """

    ENVELOPE_FIELDS: ClassVar[tuple[str, ...]] = (
        "name",
        "message",
        "description",
        "http_code",
        "context",
        "level",
        "timestamp",
    )

    def __init__(
        self,
        message: str,
        *,
        description: str | None = None,
        http_code: str | None = None,
        context: dict[str, Any] | None = None,
        level: str = "warning",
        timestamp: float | None = None,
        error_response: Any = None,
    ):
        super().__init__(message)
        self.name = type(self).__name__
        self.message = message
        self.description = description
        self.http_code = http_code
        self.context = context
        self.level = level
        self.timestamp = timestamp
        # raw upstream response body, for logs only
        self.error_response = error_response

    def __str__(self) -> str:
        return self.message

    def envelope_fields(self) -> dict[str, Any]:
        """Allow-listed, non-empty fields to copy into the error envelope."""
        fields = {}
        for key in self.ENVELOPE_FIELDS:
            value = getattr(self, key, None)
            if value is not None:
                fields[key] = value
        return fields


__all__ = [
    "ResponseError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "UnprocessableRequestError",
    "InternalServerError",
    "LicenseEulaRequiredError",
    "ExternalApiError",
]
