"""
Natours Backend — Static Asset Middleware
===========================================

What:  Serves files from the static directory before anything else runs.
How:   GET/HEAD requests are looked up in the directory with Starlette's
       StaticFiles. A hit is answered immediately (the rest of the chain,
       including security headers, is skipped); a miss falls through.
Who:   Outermost entry of the middleware list.

Files are served from the site root: static/css/style.css is /css/style.css.
"""

import logging

from starlette.exceptions import HTTPException
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class StaticAssetsMiddleware:
    def __init__(self, app: ASGIApp, directory: str) -> None:
        self.app = app
        # check_dir=False: a missing directory simply serves nothing
        self.files = StaticFiles(directory=directory, check_dir=False)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in ("GET", "HEAD"):
            await self.app(scope, receive, send)
            return

        try:
            response = await self.files.get_response(self.files.get_path(scope), scope)
        except HTTPException as exc:
            if exc.status_code not in (401, 404):
                raise
            await self.app(scope, receive, send)
            return

        await response(scope, receive, send)
