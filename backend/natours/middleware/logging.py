"""
Natours Backend — Request Logging Middleware
==============================================

What:  One access-log line per request: method, path, status, duration,
       response length.
How:   Times the downstream call and logs on the `natours.access` logger.
Who:   Only registered when NODE_ENV=development; production relies on the
       server's own access log. Logging never changes the response.

Log Format:
    GET /api/v1/tours 200 12.345 ms - 1532

Level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("natours.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request after its response has been produced."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # perf_counter: monotonic, sub-microsecond resolution
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.3f ms - %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            response.headers.get("content-length", "-"),
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 3),
            },
        )

        return response
