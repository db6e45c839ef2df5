"""
Natours Backend — View Routes
===============================

What:  Server-rendered pages: the tour overview, one tour, and the signup
       form the signup client script drives.
How:   Jinja2 templates from natours/templates. Missing tours raise the same
       NotFoundError as the API; the error handler renders error.html for
       browser requests.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from natours.context import RequestContext, get_request_context
from natours.database import get_db_session
from natours.services.tour_service import tour_service
from natours.templating import templates

router = APIRouter(tags=["Views"], include_in_schema=False)


@router.get("/", response_class=HTMLResponse)
async def overview(request: Request, db: AsyncSession = Depends(get_db_session)):
    tours = await tour_service.overview(db)
    return templates.TemplateResponse(
        request, "overview.html", {"title": "All Tours", "tours": tours}
    )


@router.get("/tour/{slug}", response_class=HTMLResponse)
async def tour_page(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
):
    tour = await tour_service.get_tour_by_slug(db, ctx.params["slug"])
    return templates.TemplateResponse(
        request, "tour.html", {"title": f"{tour.name} Tour", "tour": tour}
    )


@router.get("/signup", response_class=HTMLResponse)
async def signup_page(request: Request):
    return templates.TemplateResponse(
        request, "signup.html", {"title": "Create your account!"}
    )
