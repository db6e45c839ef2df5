import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from natours.schemas.common import CamelModel


class ReviewCreate(CamelModel):
    """`tour` may be omitted when posting to /tours/{tour_id}/reviews."""

    review: str = Field(min_length=1, max_length=2000)
    rating: int = Field(ge=1, le=5)
    tour_id: Optional[uuid.UUID] = Field(default=None, alias="tour")
    user_id: uuid.UUID = Field(alias="user")

    @field_validator("review")
    @classmethod
    def strip_review(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Review can not be empty!")
        return v


class ReviewOut(CamelModel):
    id: uuid.UUID
    review: str
    rating: int
    tour_id: uuid.UUID = Field(alias="tour")
    user_id: uuid.UUID = Field(alias="user")
    created_at: datetime
