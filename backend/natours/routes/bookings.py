"""
Natours Backend — Booking Route Handlers
==========================================

What:  /api/v1/bookings: list, create, get. No payment flow; a booking is
       recorded as paid unless the body says otherwise.
"""

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.schemas.booking import BookingCreate, BookingOut
from natours.schemas.common import ErrorResponse, envelope
from natours.services.booking_service import booking_service

router = APIRouter(tags=["Bookings"])


@router.get("", summary="List bookings")
async def list_bookings(db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
    bookings = await booking_service.list_bookings(db)
    return envelope(
        {"bookings": [BookingOut.model_validate(b).to_api() for b in bookings]},
        results=len(bookings),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Unknown tour or user", "model": ErrorResponse}},
    summary="Book a tour",
)
async def create_booking(
    payload: BookingCreate,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    booking = await booking_service.create_booking(db, payload)
    return envelope({"booking": BookingOut.model_validate(booking).to_api()})


@router.get(
    "/{booking_id}",
    responses={404: {"description": "No booking with that ID", "model": ErrorResponse}},
    summary="Get one booking",
)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    booking = await booking_service.get_booking(db, booking_id)
    return envelope({"booking": BookingOut.model_validate(booking).to_api()})
