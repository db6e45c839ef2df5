"""
Natours Backend — Request Context
===================================

What:  The per-request bag the middleware pipeline fills in and route
       handlers read: parsed query, sanitized body, cookies, the request
       timestamp and the untouched original URL.
How:   The pipeline middleware builds a `RequestContext` from the ASGI scope,
       runs its stages over it and stores the result in `scope["state"]`,
       which Starlette exposes as `request.state.context`.
Who:   Created by `RequestPipelineMiddleware`; read through the
       `get_request_context` dependency.
When:  Created at request entry, discarded with the request.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.types import Scope

from natours.utils.querystring import parse_nested
from natours.utils.sanitize import sanitize_values

STATE_KEY = "context"


def client_address(scope: Scope, headers: Headers, trust_proxy: bool = False) -> str:
    """Best-effort client identity: socket peer, or first X-Forwarded-For hop."""
    if trust_proxy:
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    client = scope.get("client")
    return client[0] if client else "unknown"


@dataclass
class RequestContext:
    """
    Mutable per-request state shared by the middleware stages.

    Attributes:
        original_url:    Path plus the raw query string, before any rewriting
        query:           Nested query values (see natours.utils.querystring)
        query_polluted:  Values the pollution guard collapsed, by key
        raw_body:        Buffered body bytes (JSON and URL-encoded only)
        body:            Parsed body, None when there was nothing to parse
        body_type:       "json", "form" or None
        cookies:         Parsed Cookie header
        params:          Sanitized path params (filled once routing is done)
        request_time:    ISO-8601 UTC timestamp, set once by the last stage
    """

    method: str
    path: str
    original_url: str
    client_ip: str
    headers: Headers
    query: Dict[str, Any] = field(default_factory=dict)
    query_polluted: Dict[str, List[Any]] = field(default_factory=dict)
    raw_body: bytes = b""
    body: Any = None
    body_type: Optional[str] = None
    cookies: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    request_time: Optional[str] = None

    @classmethod
    def from_scope(cls, scope: Scope, trust_proxy: bool = False) -> "RequestContext":
        headers = Headers(scope=scope)
        raw_query = scope.get("query_string", b"").decode("latin-1")
        path = scope.get("raw_path", b"").decode("latin-1") or scope["path"]
        original_url = f"{path}?{raw_query}" if raw_query else path
        return cls(
            method=scope["method"],
            path=scope["path"],
            original_url=original_url,
            client_ip=client_address(scope, headers, trust_proxy),
            headers=headers,
            query=parse_nested(raw_query),
        )


def get_request_context(request: Request) -> RequestContext:
    """
    FastAPI dependency returning the context built by the pipeline.

    Path params only exist after routing, so they are sanitized here, on
    first access, with the same stages the pipeline applies to query and body.
    """
    ctx: Optional[RequestContext] = getattr(request.state, STATE_KEY, None)
    if ctx is None:
        # Apps assembled without the pipeline still get a usable context
        ctx = RequestContext.from_scope(request.scope)
        setattr(request.state, STATE_KEY, ctx)
    if request.path_params and not ctx.params:
        ctx.params = sanitize_values(dict(request.path_params))
    return ctx
