"""
Natours Backend — Rate Limiting Middleware
============================================

What:  Per-address request budget for the API.
How:   Asks the injected `RateLimiter` for a decision on every request whose
       path starts with the configured prefix (default "/api"). Views and
       static assets are never counted.
Who:   Fourth entry in the middleware list, after request logging.

Response on rate limit:
    HTTP 429 rendered by the global error handler, carrying the fixed
    configured message:
        {"status": "fail",
         "message": "Too many requests from this IP, please try again in an hour!"}
    Retry-After: seconds until the window resets

Every counted response carries X-RateLimit-Limit, X-RateLimit-Remaining and
X-RateLimit-Reset.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from natours.context import client_address
from natours.error_handler import global_error_handler
from natours.exceptions import RateLimitExceededError
from natours.services.rate_limiter import RateLimiter, RateLimitInfo

logger = logging.getLogger(__name__)


def _limit_headers(info: RateLimitInfo) -> dict:
    return {
        "X-RateLimit-Limit": str(info.limit),
        "X-RateLimit-Remaining": str(info.remaining),
        "X-RateLimit-Reset": str(int(info.reset_at)),
    }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window rate limiter scoped to a path prefix.

    Args:
        limiter:      Counting service (in-memory or Redis-backed)
        message:      Fixed 429 message
        prefix:       Only paths under this prefix are counted
        trust_proxy:  Identify clients by X-Forwarded-For
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        message: str,
        prefix: str = "/api",
        trust_proxy: bool = False,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.message = message
        self.prefix = prefix
        self.trust_proxy = trust_proxy

    def _applies_to(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix.rstrip("/") + "/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._applies_to(request.url.path):
            return await call_next(request)

        client_ip = client_address(request.scope, request.headers, self.trust_proxy)
        info = await self.limiter.hit(client_ip)

        if not info.allowed:
            logger.warning(
                "Rate limit exceeded for IP %s: limit %d per %dms",
                client_ip,
                info.limit,
                self.limiter.window_ms,
            )
            response = await global_error_handler(
                request,
                RateLimitExceededError(
                    message=self.message,
                    retry_after=info.retry_after,
                    limit=info.limit,
                ),
            )
        else:
            response = await call_next(request)

        response.headers.update(_limit_headers(info))
        return response
