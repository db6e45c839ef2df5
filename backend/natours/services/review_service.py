"""
Natours Backend — Review Service
==================================

What:  Reviews of tours, and the rating statistics they feed.
How:   Every create or delete recomputes the tour's ratingsAverage and
       ratingsQuantity from the reviews table in one aggregate query.

A tour without reviews goes back to the default average of 4.5.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from natours.exceptions import BadRequestError, NotFoundError
from natours.models.review import Review
from natours.models.tour import Tour
from natours.schemas.review import ReviewCreate
from natours.services.tour_service import tour_service
from natours.services.user_service import user_service

logger = logging.getLogger(__name__)

DEFAULT_RATINGS_AVERAGE = 4.5


class ReviewService:

    async def list_reviews(
        self, db: AsyncSession, tour_id: Optional[uuid.UUID] = None
    ) -> List[Review]:
        stmt = select(Review).order_by(Review.created_at.desc())
        if tour_id is not None:
            stmt = stmt.where(Review.tour_id == tour_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_review(self, db: AsyncSession, review_id: uuid.UUID) -> Review:
        review = await db.get(Review, review_id)
        if review is None:
            raise NotFoundError("No review found with that ID", context={"review_id": str(review_id)})
        return review

    async def create_review(
        self,
        db: AsyncSession,
        payload: ReviewCreate,
        tour_id: Optional[uuid.UUID] = None,
    ) -> Review:
        """`tour_id` from a nested route wins over the one in the body."""
        target = tour_id or payload.tour_id
        if target is None:
            raise BadRequestError("Review must belong to a tour.")

        tour = await tour_service.get_tour(db, target)
        await user_service.get_user(db, payload.user_id)

        review = Review(
            review=payload.review,
            rating=payload.rating,
            tour_id=tour.id,
            user_id=payload.user_id,
        )
        db.add(review)
        await db.flush()
        await self.recalculate_ratings(db, tour)
        logger.info("Review %s added to tour %s", review.id, tour.id)
        return review

    async def delete_review(self, db: AsyncSession, review_id: uuid.UUID) -> None:
        review = await self.get_review(db, review_id)
        tour = await db.get(Tour, review.tour_id)
        await db.delete(review)
        await db.flush()
        if tour is not None:
            await self.recalculate_ratings(db, tour)

    async def recalculate_ratings(self, db: AsyncSession, tour: Tour) -> None:
        result = await db.execute(
            select(func.count(Review.id), func.avg(Review.rating)).where(
                Review.tour_id == tour.id
            )
        )
        quantity, average = result.one()
        if quantity:
            tour.ratings_quantity = quantity
            tour.ratings_average = round(float(average), 1)
        else:
            tour.ratings_quantity = 0
            tour.ratings_average = DEFAULT_RATINGS_AVERAGE
        await db.flush()


review_service = ReviewService()
