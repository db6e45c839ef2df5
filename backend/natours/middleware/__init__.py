"""
Natours Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request, declared once as an
       ordered list.
How:   `build_middleware()` returns `(name, Middleware)` pairs in execution
       order; the app factory passes them to FastAPI(middleware=[...]), where
       the first entry is the outermost layer.

Middleware Chain (order matters!):
    Request → [static] → [security_headers] → [request_logging]*
            → [rate_limit] → [pipeline] → Router

    * development only

    pipeline runs, in order:
        parse_body → parse_cookies → sanitize_nosql → sanitize_xss
        → prevent_pollution → stamp_request_time
"""

from typing import List, Tuple

from starlette.middleware import Middleware

from natours.config import Settings
from natours.middleware.logging import RequestLoggingMiddleware
from natours.middleware.pipeline import RequestPipelineMiddleware
from natours.middleware.rate_limit import RateLimitMiddleware
from natours.middleware.security_headers import SecurityHeadersMiddleware
from natours.middleware.stages import build_stages
from natours.middleware.static import StaticAssetsMiddleware
from natours.services.rate_limiter import RateLimiter

NamedMiddleware = Tuple[str, Middleware]


def build_middleware(
    settings: Settings,
    limiter: RateLimiter,
    static_dir: str,
) -> List[NamedMiddleware]:
    """The application's middleware, outermost first."""
    stack: List[NamedMiddleware] = [
        ("static", Middleware(StaticAssetsMiddleware, directory=static_dir)),
        ("security_headers", Middleware(SecurityHeadersMiddleware)),
    ]

    if settings.is_development:
        stack.append(("request_logging", Middleware(RequestLoggingMiddleware)))

    stack.append((
        "rate_limit",
        Middleware(
            RateLimitMiddleware,
            limiter=limiter,
            message=settings.rate_limit_message,
            prefix=settings.rate_limit_prefix,
            trust_proxy=settings.trust_proxy,
        ),
    ))
    stack.append((
        "pipeline",
        Middleware(
            RequestPipelineMiddleware,
            stages=build_stages(settings.body_limit_bytes, settings.hpp_whitelist),
            body_limit=settings.body_limit_bytes,
            trust_proxy=settings.trust_proxy,
        ),
    ))
    return stack
