"""
Natours Backend — Booking Service
===================================

What:  Records that a user booked a tour, at the tour's price unless a price
       is given explicitly.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from natours.exceptions import NotFoundError
from natours.models.booking import Booking
from natours.schemas.booking import BookingCreate
from natours.services.tour_service import tour_service
from natours.services.user_service import user_service

logger = logging.getLogger(__name__)


class BookingService:

    async def list_bookings(self, db: AsyncSession) -> List[Booking]:
        result = await db.execute(select(Booking).order_by(Booking.created_at.desc()))
        return list(result.scalars().all())

    async def get_booking(self, db: AsyncSession, booking_id: uuid.UUID) -> Booking:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("No booking found with that ID", context={"booking_id": str(booking_id)})
        return booking

    async def create_booking(self, db: AsyncSession, payload: BookingCreate) -> Booking:
        tour = await tour_service.get_tour(db, payload.tour_id)
        user = await user_service.get_user(db, payload.user_id)

        booking = Booking(
            tour_id=tour.id,
            user_id=user.id,
            price=payload.price if payload.price is not None else tour.price,
            paid=payload.paid,
        )
        db.add(booking)
        await db.flush()
        logger.info("Booking %s: user %s on tour %s", booking.id, user.id, tour.id)
        return booking


booking_service = BookingService()
