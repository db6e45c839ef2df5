"""
Natours Backend — Custom Exception Hierarchy
==============================================

What:  Defines the operational errors raised across the application and the
       report type the global error handler classifies every failure into.
How:   Each exception carries a message, an HTTP status code and optional
       context. `natours.error_handler` turns any raised exception into an
       `ErrorReport` and renders it.
Who:   Raised by middleware stages, services and route groups.
When:  Wherever a precondition fails during request processing.

Exception Hierarchy:
    AppError (base, operational)
    ├── BadRequestError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── PayloadTooLargeError     → 413 Payload Too Large
    └── RateLimitExceededError   → 429 Too Many Requests

Status string:
    4xx codes report "fail" (the client can fix the request), everything else
    reports "error".

Anything that is not an AppError is a programming or runtime fault. The
handler logs it and answers with a masked 500 instead of its message.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional


def status_for(status_code: int) -> str:
    """Map an HTTP status code to the JSON `status` field."""
    return "fail" if 400 <= status_code < 500 else "error"


class AppError(Exception):
    """
    Base class for operational errors.

    Attributes:
        message:         Client-facing description (returned verbatim)
        status_code:     HTTP status code for the response
        status:          "fail" for 4xx, "error" otherwise
        is_operational:  Always True; the handler trusts the message
        context:         Extra debug info (logged with the error, never returned)
    """

    is_operational = True

    def __init__(
        self,
        message: str = "Something went wrong",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.status = status_for(status_code)
        self.context = context or {}
        super().__init__(self.message)


class BadRequestError(AppError):
    """Malformed input: invalid JSON, bad filter values, failed validation."""

    def __init__(self, message: str = "Bad request", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, context=context)


class NotFoundError(AppError):
    """
    The requested resource or route does not exist.

    The unmatched-route fallback raises this with the original URL; services
    raise it when a lookup by id or slug comes back empty.
    """

    def __init__(
        self,
        message: str = "The requested resource was not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, status_code=404, context=context)

    @classmethod
    def for_url(cls, original_url: str) -> "NotFoundError":
        return cls(
            message=f"Can't find {original_url} on this server! ",
            context={"url": original_url},
        )


class ConflictError(AppError):
    """A unique value is already taken (e.g. signup with a known email)."""

    def __init__(self, message: str = "Resource already exists", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=409, context=context)


class PayloadTooLargeError(AppError):
    """Raised by the body parsing stage when a body exceeds the size cap."""

    def __init__(self, limit: int, received: Optional[int] = None):
        ctx: Dict[str, Any] = {"limit": limit}
        if received is not None:
            ctx["received"] = received
        super().__init__(
            message=f"Request entity too large. The limit is {limit // 1024}kb.",
            status_code=413,
            context=ctx,
        )
        self.limit = limit


class RateLimitExceededError(AppError):
    """
    Raised when a client exceeds the per-address request limit.

    The message is the configured fixed string; `retry_after` becomes the
    Retry-After header.
    """

    def __init__(self, message: str, retry_after: int, limit: int):
        super().__init__(
            message=message,
            status_code=429,
            context={"retry_after": retry_after, "limit": limit},
        )
        self.retry_after = retry_after
        self.limit = limit


# ══════════════════════════════════════════════════════════════════════════
# Error Classification
# ══════════════════════════════════════════════════════════════════════════

GENERIC_ERROR_MESSAGE = "Something went very wrong!"


class ErrorKind(str, enum.Enum):
    OPERATIONAL = "operational"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ErrorReport:
    """
    What the client is told about a failure.

    Built through `operational()` or `unexpected()` only, so the handler
    never has to inspect exception types when rendering.
    """

    kind: ErrorKind
    status_code: int
    message: str
    error: BaseException
    headers: Optional[Dict[str, str]] = None

    @property
    def status(self) -> str:
        return status_for(self.status_code)

    @property
    def is_operational(self) -> bool:
        return self.kind is ErrorKind.OPERATIONAL

    @classmethod
    def operational(
        cls,
        error: BaseException,
        status_code: int,
        message: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> "ErrorReport":
        return cls(ErrorKind.OPERATIONAL, status_code, message, error, headers)

    @classmethod
    def unexpected(cls, error: BaseException) -> "ErrorReport":
        return cls(ErrorKind.UNEXPECTED, 500, GENERIC_ERROR_MESSAGE, error)
