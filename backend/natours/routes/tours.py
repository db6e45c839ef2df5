"""
Natours Backend — Tour Route Handlers
=======================================

What:  /api/v1/tours: list, top-5-cheap alias, CRUD and the nested reviews
       of one tour.
How:   Thin handlers. List filters come from the sanitized request context
       (nested `price[lt]=...` notation), bodies from the request models.

Routes:
    GET    /api/v1/tours                     list with filter/sort/fields/paging
    GET    /api/v1/tours/top-5-cheap         five best rated, cheapest first
    POST   /api/v1/tours                     create (201)
    GET    /api/v1/tours/{tour_id}           detail
    PATCH  /api/v1/tours/{tour_id}           partial update
    DELETE /api/v1/tours/{tour_id}           delete (204)
    GET    /api/v1/tours/{tour_id}/reviews   reviews of one tour
    POST   /api/v1/tours/{tour_id}/reviews   review this tour (201)
"""

import logging
import uuid
from typing import Any, Dict, Mapping

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from natours.context import RequestContext, get_request_context
from natours.database import get_db_session
from natours.schemas.common import ErrorResponse, envelope
from natours.schemas.review import ReviewCreate, ReviewOut
from natours.schemas.tour import TourCreate, TourOut, TourUpdate
from natours.services.review_service import review_service
from natours.services.tour_service import TOP_CHEAP_QUERY, tour_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tours"])

NOT_FOUND = {404: {"description": "No tour with that ID", "model": ErrorResponse}}


async def _list(db: AsyncSession, ctx: RequestContext, query: Mapping[str, Any]) -> Dict[str, Any]:
    tours = await tour_service.list_tours(db, query)
    body = envelope({"tours": tours}, results=len(tours))
    body["requestedAt"] = ctx.request_time
    return body


@router.get("", summary="List tours")
async def list_tours(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    return await _list(db, ctx, ctx.query)


@router.get("/top-5-cheap", summary="Five best rated tours, cheapest first")
async def top_five_cheap(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    return await _list(db, ctx, {**ctx.query, **TOP_CHEAP_QUERY})


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a tour")
async def create_tour(
    payload: TourCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    tour = await tour_service.create_tour(db, payload)
    return envelope({"tour": TourOut.model_validate(tour).to_api()})


@router.get("/{tour_id}", responses=NOT_FOUND, summary="Get one tour")
async def get_tour(
    tour_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    tour = await tour_service.get_tour(db, tour_id)
    return envelope({"tour": TourOut.model_validate(tour).to_api()})


@router.patch("/{tour_id}", responses=NOT_FOUND, summary="Update a tour")
async def update_tour(
    tour_id: uuid.UUID,
    payload: TourUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    tour = await tour_service.update_tour(db, tour_id, payload)
    return envelope({"tour": TourOut.model_validate(tour).to_api()})


@router.delete(
    "/{tour_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
    summary="Delete a tour",
)
async def delete_tour(
    tour_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await tour_service.delete_tour(db, tour_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Nested reviews ────────────────────────────────────────────────────────

@router.get("/{tour_id}/reviews", responses=NOT_FOUND, summary="Reviews of one tour")
async def list_tour_reviews(
    tour_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    await tour_service.get_tour(db, tour_id)
    reviews = await review_service.list_reviews(db, tour_id=tour_id)
    return envelope(
        {"reviews": [ReviewOut.model_validate(r).to_api() for r in reviews]},
        results=len(reviews),
    )


@router.post(
    "/{tour_id}/reviews",
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Review a tour",
)
async def create_tour_review(
    tour_id: uuid.UUID,
    payload: ReviewCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    review = await review_service.create_review(db, payload, tour_id=tour_id)
    return envelope({"review": ReviewOut.model_validate(review).to_api()})
