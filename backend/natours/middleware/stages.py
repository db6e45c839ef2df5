"""
Natours Backend — Request Pipeline Stages
===========================================

What:  The request transformations that run after rate limiting and before
       routing, each a plain function `(RequestContext) -> RequestContext`.
How:   A stage returns an updated copy of the context or raises an
       `AppError`; `RequestPipelineMiddleware` runs them in the order
       `build_stages()` declares and stops at the first error.
Who:   Built by `natours.middleware.build_middleware`.

Stage order (order matters!):
    1. parse_body          JSON / URL-encoded, capped at body_limit_bytes
    2. parse_cookies       Cookie header → dict
    3. sanitize_nosql      drop "$..." and dotted keys
    4. sanitize_xss        escape markup in strings
    5. prevent_pollution   collapse repeated params outside the whitelist
    6. stamp_request_time  ISO-8601 UTC timestamp

    Sanitizing runs before the pollution guard so values kept in arrays are
    already clean.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from starlette.datastructures import Headers
from starlette.requests import cookie_parser

from natours.context import RequestContext
from natours.exceptions import BadRequestError, PayloadTooLargeError
from natours.utils.querystring import parse_nested
from natours.utils.sanitize import escape_html, strip_operator_keys

logger = logging.getLogger(__name__)

StageFn = Callable[[RequestContext], RequestContext]


class Stage(NamedTuple):
    name: str
    run: StageFn


JSON_TYPES = ("application/json",)
FORM_TYPES = ("application/x-www-form-urlencoded",)


def body_kind(headers: Headers) -> Optional[str]:
    """Classify the request body by Content-Type: "json", "form" or None."""
    content_type = headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in JSON_TYPES or content_type.endswith("+json"):
        return "json"
    if content_type in FORM_TYPES:
        return "form"
    return None


# ── 1. Body parsing ───────────────────────────────────────────────────────

def parse_body(limit: int) -> StageFn:
    """Parse buffered JSON / URL-encoded bodies; reject anything over `limit`."""

    def stage(ctx: RequestContext) -> RequestContext:
        kind = body_kind(ctx.headers)
        if kind is None:
            return ctx
        if len(ctx.raw_body) > limit:
            raise PayloadTooLargeError(limit=limit, received=len(ctx.raw_body))
        if not ctx.raw_body.strip():
            return replace(ctx, body={}, body_type=kind)

        if kind == "form":
            body = parse_nested(ctx.raw_body)
        else:
            try:
                body = json.loads(ctx.raw_body)
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise BadRequestError(
                    "Invalid JSON in request body",
                    context={"reason": str(e)},
                ) from e
            # Only objects and arrays are accepted as JSON bodies
            if not isinstance(body, (dict, list)):
                raise BadRequestError("JSON body must be an object or an array")
        return replace(ctx, body=body, body_type=kind)

    return stage


# ── 2. Cookies ────────────────────────────────────────────────────────────

def parse_cookies(ctx: RequestContext) -> RequestContext:
    cookie_header = ctx.headers.get("cookie")
    if not cookie_header:
        return ctx
    return replace(ctx, cookies=cookie_parser(cookie_header))


# ── 3. NoSQL operator injection ───────────────────────────────────────────

def sanitize_nosql(ctx: RequestContext) -> RequestContext:
    query, removed_query = strip_operator_keys(ctx.query)
    body, removed_body = strip_operator_keys(ctx.body)
    params, removed_params = strip_operator_keys(ctx.params)
    for where, removed in (("query", removed_query), ("body", removed_body), ("params", removed_params)):
        if removed:
            logger.warning(
                "Stripped operator keys from %s of %s %s: %s",
                where, ctx.method, ctx.path, ", ".join(removed),
            )
    return replace(ctx, query=query, body=body, params=params)


# ── 4. Cross-site scripting ───────────────────────────────────────────────

def sanitize_xss(ctx: RequestContext) -> RequestContext:
    return replace(
        ctx,
        query=escape_html(ctx.query),
        body=escape_html(ctx.body),
        params=escape_html(ctx.params),
    )


# ── 5. Parameter pollution ────────────────────────────────────────────────

def _collapse(
    values: Dict[str, Any], whitelist: Iterable[str]
) -> Tuple[Dict[str, Any], Dict[str, List[Any]]]:
    allowed = set(whitelist)
    collapsed: Dict[str, Any] = {}
    polluted: Dict[str, List[Any]] = {}
    for key, value in values.items():
        if isinstance(value, list) and key not in allowed:
            polluted[key] = value
            collapsed[key] = value[-1] if value else ""
        else:
            collapsed[key] = value
    return collapsed, polluted


def prevent_pollution(whitelist: Iterable[str]) -> StageFn:
    """
    Collapse repeated parameters to their last value.

    Whitelisted keys keep their arrays, so `?price=397&price=997` still
    filters on both prices. URL-encoded bodies get the same treatment; JSON
    bodies are left alone because arrays there are intentional.
    """
    whitelist = tuple(whitelist)

    def stage(ctx: RequestContext) -> RequestContext:
        query, polluted = _collapse(ctx.query, whitelist)
        body = ctx.body
        if ctx.body_type == "form" and isinstance(body, dict):
            body, _ = _collapse(body, whitelist)
        return replace(ctx, query=query, query_polluted=polluted, body=body)

    return stage


# ── 6. Request timestamp ──────────────────────────────────────────────────

def utc_timestamp() -> str:
    """Current UTC time as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stamp_request_time(ctx: RequestContext) -> RequestContext:
    return replace(ctx, request_time=utc_timestamp())


def build_stages(body_limit: int, hpp_whitelist: Iterable[str]) -> List[Stage]:
    """The pipeline stages in execution order."""
    return [
        Stage("parse_body", parse_body(body_limit)),
        Stage("parse_cookies", parse_cookies),
        Stage("sanitize_nosql", sanitize_nosql),
        Stage("sanitize_xss", sanitize_xss),
        Stage("prevent_pollution", prevent_pollution(hpp_whitelist)),
        Stage("stamp_request_time", stamp_request_time),
    ]
