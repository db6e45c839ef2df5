"""
Natours Backend — Review Route Handlers
=========================================

What:  /api/v1/reviews: list (optionally for one tour), create, get, delete.
       Creating or deleting a review updates the tour's rating statistics.
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.schemas.common import ErrorResponse, envelope
from natours.schemas.review import ReviewCreate, ReviewOut
from natours.services.review_service import review_service

router = APIRouter(tags=["Reviews"])

NOT_FOUND = {404: {"description": "No review with that ID", "model": ErrorResponse}}


@router.get("", summary="List reviews")
async def list_reviews(
    tour: Optional[uuid.UUID] = Query(default=None, description="Only reviews of this tour"),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    reviews = await review_service.list_reviews(db, tour_id=tour)
    return envelope(
        {"reviews": [ReviewOut.model_validate(r).to_api() for r in reviews]},
        results=len(reviews),
    )


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a review")
async def create_review(
    payload: ReviewCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    review = await review_service.create_review(db, payload)
    return envelope({"review": ReviewOut.model_validate(review).to_api()})


@router.get("/{review_id}", responses=NOT_FOUND, summary="Get one review")
async def get_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    review = await review_service.get_review(db, review_id)
    return envelope({"review": ReviewOut.model_validate(review).to_api()})


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
    summary="Delete a review",
)
async def delete_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await review_service.delete_review(db, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
