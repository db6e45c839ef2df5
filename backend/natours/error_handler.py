"""
Natours Backend — Global Error Handler
========================================

What:  The single place where failures become HTTP responses.
How:   `classify()` turns any exception into an `ErrorReport`; `render()`
       picks the response format; `global_error_handler()` does both and
       logs. Middleware calls it directly, FastAPI calls it through the
       handlers `register_exception_handlers()` installs.
Who:   Every error path: pipeline stages, rate limiting, route groups,
       request-model validation and the unmatched-route fallback.

Classification:
    AppError                    → operational, status/message verbatim
    RequestValidationError      → operational 400 "Invalid input data. ..."
    IntegrityError (unique)     → operational 400 "Duplicate field value. ..."
    HTTPException               → operational, its status and detail
    anything else               → unexpected, logged, 500 masked

Response format:
    /api/* or non-HTML clients  → JSON {"status": ..., "message": ...}
    browser navigations         → rendered error.html

    NODE_ENV=development adds the error type, detail and traceback to JSON
    responses and shows real messages on the error page. Production never
    exposes them.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from natours.config import Settings, settings as default_settings
from natours.exceptions import (
    AppError,
    ErrorReport,
    RateLimitExceededError,
)
from natours.templating import templates

logger = logging.getLogger(__name__)

ERROR_PAGE_TITLE = "Something went wrong!"
ERROR_PAGE_MASKED_MESSAGE = "Please try again later."


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "Invalid input data. " + ". ".join(parts)


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return "unique" in text or "duplicate" in text


def classify(exc: BaseException) -> ErrorReport:
    """Decide whether `exc` is safe to report and with which status."""
    if isinstance(exc, RateLimitExceededError):
        return ErrorReport.operational(
            exc, exc.status_code, exc.message,
            headers={"Retry-After": str(exc.retry_after)},
        )
    if isinstance(exc, AppError):
        return ErrorReport.operational(exc, exc.status_code, exc.message)
    if isinstance(exc, RequestValidationError):
        return ErrorReport.operational(exc, 400, _validation_message(exc))
    if isinstance(exc, IntegrityError) and _is_unique_violation(exc):
        return ErrorReport.operational(
            exc, 400, "Duplicate field value. Please use another value!"
        )
    if isinstance(exc, StarletteHTTPException):
        return ErrorReport.operational(
            exc, exc.status_code, str(exc.detail), headers=exc.headers
        )
    return ErrorReport.unexpected(exc)


def wants_json(request: Request) -> bool:
    """API paths always get JSON; other paths get HTML only if they accept it."""
    if request.url.path.startswith("/api"):
        return True
    return "text/html" not in request.headers.get("accept", "")


def _settings_for(request: Request) -> Settings:
    app = request.scope.get("app")
    state = getattr(app, "state", None)
    return getattr(state, "settings", None) or default_settings


def _development_details(report: ErrorReport) -> Dict[str, Any]:
    error = report.error
    return {
        "error": {
            "type": type(error).__name__,
            "detail": str(error),
            "statusCode": report.status_code,
            "isOperational": report.is_operational,
        },
        "stack": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
    }


def render(request: Request, report: ErrorReport, config: Optional[Settings] = None) -> Response:
    """Build the JSON body or the error page for `report`."""
    config = config or _settings_for(request)

    if wants_json(request):
        message = report.message
        if config.is_development and not report.is_operational:
            message = str(report.error) or report.message
        body: Dict[str, Any] = {"status": report.status, "message": message}
        if config.is_development:
            body.update(_development_details(report))
        return JSONResponse(
            status_code=report.status_code,
            content=body,
            headers=report.headers,
        )

    if report.is_operational or config.is_development:
        message = report.message if report.is_operational else str(report.error)
    else:
        message = ERROR_PAGE_MASKED_MESSAGE
    return templates.TemplateResponse(
        request,
        "error.html",
        {"title": ERROR_PAGE_TITLE, "msg": message},
        status_code=report.status_code,
        headers=report.headers,
    )


async def global_error_handler(request: Request, exc: BaseException) -> Response:
    """
    Terminal handler for every failure.

    Always returns a response; never re-raises.
    """
    report = classify(exc)

    if report.is_operational:
        level = logging.WARNING if report.status_code >= 500 else logging.INFO
        context = exc.context if isinstance(exc, AppError) else {}
        logger.log(
            level,
            "%s %s → %d %s%s",
            request.method,
            request.url.path,
            report.status_code,
            report.message,
            f" {context}" if context else "",
        )
    else:
        logger.error(
            "Unexpected error on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=(type(exc), exc, exc.__traceback__),
        )

    try:
        return render(request, report)
    except Exception:
        # A broken template must not take the error path down with it
        logger.exception("Error page rendering failed")
        return JSONResponse(
            status_code=report.status_code,
            content={"status": report.status, "message": report.message},
        )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Route FastAPI's own exception dispatch to the global handler.

    Exceptions without a registered type (programming errors) propagate to
    the pipeline middleware, which calls `global_error_handler` itself.
    """
    app.add_exception_handler(AppError, global_error_handler)
    app.add_exception_handler(RequestValidationError, global_error_handler)
    app.add_exception_handler(StarletteHTTPException, global_error_handler)
    app.add_exception_handler(IntegrityError, global_error_handler)
