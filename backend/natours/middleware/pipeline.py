"""
Natours Backend — Request Pipeline Middleware
===============================================

What:  Runs the body / cookie / sanitization / pollution / timestamp stages
       and forwards the request with the sanitized query and body.
How:   Pure ASGI middleware. It buffers JSON and URL-encoded bodies (never
       more than the size cap), runs each stage over a `RequestContext`,
       then rewrites `query_string` and replays the re-serialized body so
       FastAPI parameters and request models only ever see sanitized data.
Who:   Innermost entry of the middleware list, directly around the router.

Error boundary:
    Any exception raised by a stage or by the application below (routes,
    dependencies, services) is handed to the global error handler, as long
    as no response has started. The handler is terminal, so nothing escapes
    to the server's generic 500 page.
"""

import json
import logging
from typing import Any, Dict, List, Sequence, Tuple

from starlette.requests import ClientDisconnect, Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from natours.context import STATE_KEY, RequestContext
from natours.error_handler import global_error_handler
from natours.exceptions import PayloadTooLargeError
from natours.middleware.stages import Stage, body_kind
from natours.utils.querystring import encode_nested

logger = logging.getLogger(__name__)


async def read_body(receive: Receive, limit: int) -> bytes:
    """
    Buffer the request body, refusing to hold more than `limit` bytes.

    Raises:
        PayloadTooLargeError: the body grew past `limit`
        ClientDisconnect:     the client went away mid-body
    """
    chunks: List[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise ClientDisconnect()
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError(limit=limit, received=size)
        chunks.append(chunk)
        if not message.get("more_body", False):
            return b"".join(chunks)


def _declared_length(scope: Scope) -> int:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return -1
    return -1


class RequestPipelineMiddleware:
    """
    Runs an ordered list of `Stage`s over each HTTP request.

    Args:
        app:          Downstream ASGI application
        stages:       Stages in execution order (see `build_stages`)
        body_limit:   Maximum buffered body size in bytes
        trust_proxy:  Take the client address from X-Forwarded-For
    """

    def __init__(
        self,
        app: ASGIApp,
        stages: Sequence[Stage],
        body_limit: int,
        trust_proxy: bool = False,
    ) -> None:
        self.app = app
        self.stages = list(stages)
        self.body_limit = body_limit
        self.trust_proxy = trust_proxy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_scope(scope, trust_proxy=self.trust_proxy)
        state: Dict[str, Any] = scope.setdefault("state", {})
        state[STATE_KEY] = ctx

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            if body_kind(ctx.headers) is not None:
                if _declared_length(scope) > self.body_limit:
                    raise PayloadTooLargeError(
                        limit=self.body_limit, received=_declared_length(scope)
                    )
                ctx.raw_body = await read_body(receive, self.body_limit)

            for stage in self.stages:
                ctx = stage.run(ctx)
            state[STATE_KEY] = ctx

            inner_scope, inner_receive = self._rewrite(scope, receive, ctx)
            await self.app(inner_scope, inner_receive, send_wrapper)
        except ClientDisconnect:
            logger.info("Client disconnected during %s %s", ctx.method, ctx.path)
        except Exception as exc:
            if response_started:
                raise
            response = await global_error_handler(Request(scope), exc)
            await response(scope, receive, send)

    def _rewrite(
        self, scope: Scope, receive: Receive, ctx: RequestContext
    ) -> Tuple[Scope, Receive]:
        inner_scope = dict(scope)
        inner_scope["query_string"] = encode_nested(ctx.query).encode("latin-1")

        if ctx.body_type is None or not ctx.raw_body.strip():
            if ctx.body_type is None:
                return inner_scope, receive
            body = ctx.raw_body
        elif ctx.body_type == "json":
            body = json.dumps(ctx.body).encode("utf-8")
        else:
            body = encode_nested(ctx.body).encode("latin-1")

        inner_scope["headers"] = [
            (name, value) for name, value in scope.get("headers", [])
            if name != b"content-length"
        ] + [(b"content-length", str(len(body)).encode("latin-1"))]

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        return inner_scope, replay
