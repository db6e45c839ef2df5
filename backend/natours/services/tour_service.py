"""
Natours Backend — Tour Service
================================

What:  Tour CRUD and listing, independent of HTTP concerns.
Who:   Called by the tour route group and the view routes.

Behavior worth knowing:
    - slug is derived from the name on create and on rename
    - secret tours never appear in listings or lookups
    - a missing tour raises NotFoundError("No tour found with that ID")
"""

import logging
import re
import unicodedata
import uuid
from typing import Any, Dict, List, Mapping, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from natours.exceptions import BadRequestError, NotFoundError
from natours.models.tour import Tour
from natours.schemas.tour import TourCreate, TourOut, TourUpdate
from natours.services.query_features import FilterField, QueryFeatures, filter_field

logger = logging.getLogger(__name__)

TOUR_FIELDS: Dict[str, FilterField] = {
    "name": filter_field(Tour.name),
    "slug": filter_field(Tour.slug),
    "duration": filter_field(Tour.duration, int),
    "maxGroupSize": filter_field(Tour.max_group_size, int),
    "difficulty": filter_field(Tour.difficulty),
    "ratingsAverage": filter_field(Tour.ratings_average, float),
    "ratingsQuantity": filter_field(Tour.ratings_quantity, int),
    "price": filter_field(Tour.price, float),
    "priceDiscount": filter_field(Tour.price_discount, float),
    "createdAt": filter_field(Tour.created_at),
}

# GET /api/v1/tours/top-5-cheap
TOP_CHEAP_QUERY = {
    "limit": "5",
    "sort": "-ratingsAverage,price",
    "fields": "name,price,ratingsAverage,summary,difficulty",
}


def slugify(name: str) -> str:
    normalized = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


class TourService:
    """Stateless; every method receives the request's session."""

    async def list_tours(
        self, db: AsyncSession, query: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        features = QueryFeatures(Tour, TOUR_FIELDS, query).filter().sort().paginate()
        stmt = features.stmt.where(Tour.secret_tour.is_(False))
        result = await db.execute(stmt)
        return [
            features.project(TourOut.model_validate(tour).to_api())
            for tour in result.scalars().all()
        ]

    async def get_tour(self, db: AsyncSession, tour_id: uuid.UUID) -> Tour:
        tour = await db.get(Tour, tour_id)
        if tour is None or tour.secret_tour:
            raise NotFoundError("No tour found with that ID", context={"tour_id": str(tour_id)})
        return tour

    async def get_tour_by_slug(self, db: AsyncSession, slug: str) -> Tour:
        result = await db.execute(
            select(Tour).where(Tour.slug == slug, Tour.secret_tour.is_(False))
        )
        tour = result.scalar_one_or_none()
        if tour is None:
            raise NotFoundError("There is no tour with that name.", context={"slug": slug})
        return tour

    async def create_tour(self, db: AsyncSession, payload: TourCreate) -> Tour:
        tour = Tour(slug=slugify(payload.name), **payload.model_dump())
        db.add(tour)
        # Flush now so unique violations surface inside the request handler
        await db.flush()
        logger.info("Tour created: %s (%s)", tour.id, tour.slug)
        return tour

    async def update_tour(
        self, db: AsyncSession, tour_id: uuid.UUID, payload: TourUpdate
    ) -> Tour:
        tour = await self.get_tour(db, tour_id)
        changes = payload.model_dump(exclude_unset=True)
        price = changes.get("price", tour.price)
        discount = changes.get("price_discount", tour.price_discount)
        if discount is not None and discount >= price:
            raise BadRequestError(
                f"Invalid input data. Discount price ({discount}) should be below regular price"
            )
        for field, value in changes.items():
            setattr(tour, field, value)
        if "name" in changes:
            tour.slug = slugify(tour.name)
        await db.flush()
        return tour

    async def delete_tour(self, db: AsyncSession, tour_id: uuid.UUID) -> None:
        tour = await self.get_tour(db, tour_id)
        await db.delete(tour)
        await db.flush()
        logger.info("Tour deleted: %s", tour_id)

    async def overview(self, db: AsyncSession) -> Tuple[Tour, ...]:
        result = await db.execute(
            select(Tour).where(Tour.secret_tour.is_(False)).order_by(Tour.created_at.desc())
        )
        return tuple(result.scalars().all())


tour_service = TourService()
