import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from natours.schemas.common import CamelModel


class BookingCreate(CamelModel):
    """`price` defaults to the tour's current price."""

    tour_id: uuid.UUID = Field(alias="tour")
    user_id: uuid.UUID = Field(alias="user")
    price: Optional[float] = Field(default=None, gt=0)
    paid: bool = True


class BookingOut(CamelModel):
    id: uuid.UUID
    tour_id: uuid.UUID = Field(alias="tour")
    user_id: uuid.UUID = Field(alias="user")
    price: float
    paid: bool
    created_at: datetime
