"""
Catch-all route, included after every route group.

Any method on any path no group claimed becomes a 404 operational error
naming the URL exactly as the client sent it.
"""

from fastapi import APIRouter, Depends

from natours.context import RequestContext, get_request_context
from natours.exceptions import NotFoundError

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter(include_in_schema=False)


@router.api_route("/{path:path}", methods=ALL_METHODS)
async def unmatched_route(ctx: RequestContext = Depends(get_request_context)):
    raise NotFoundError.for_url(ctx.original_url)
