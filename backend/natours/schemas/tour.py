"""
Natours Backend — Tour Schemas
================================

What:  Request and response models for the tour route group.
How:   Field names are snake_case in Python and camelCase in JSON
       (`max_group_size` ↔ `maxGroupSize`).

Validation rules:
    name:           10-40 characters
    difficulty:     easy | medium | difficult
    ratingsAverage: 1.0-5.0, rounded to one decimal
    priceDiscount:  must be below price
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, computed_field, field_validator, model_validator

from natours.schemas.common import CamelModel

Difficulty = Literal["easy", "medium", "difficult"]


class TourCreate(CamelModel):
    name: str = Field(min_length=10, max_length=40)
    duration: int = Field(gt=0, description="Length of the tour in days")
    max_group_size: int = Field(gt=0)
    difficulty: Difficulty
    ratings_average: float = Field(default=4.5, ge=1, le=5)
    price: float = Field(gt=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    image_cover: str = Field(default="default-cover.jpg", max_length=255)
    secret_tour: bool = False

    @field_validator("name", "summary")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("ratings_average")
    @classmethod
    def round_rating(cls, v: float) -> float:
        return round(v, 1)

    @model_validator(mode="after")
    def discount_below_price(self) -> "TourCreate":
        if self.price_discount is not None and self.price_discount >= self.price:
            raise ValueError(
                f"Discount price ({self.price_discount}) should be below regular price"
            )
        return self


class TourUpdate(CamelModel):
    """Partial update; only the fields sent are changed."""

    name: Optional[str] = Field(default=None, min_length=10, max_length=40)
    duration: Optional[int] = Field(default=None, gt=0)
    max_group_size: Optional[int] = Field(default=None, gt=0)
    difficulty: Optional[Difficulty] = None
    price: Optional[float] = Field(default=None, gt=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_cover: Optional[str] = Field(default=None, max_length=255)
    secret_tour: Optional[bool] = None

    @model_validator(mode="after")
    def discount_below_price(self) -> "TourUpdate":
        if (
            self.price is not None
            and self.price_discount is not None
            and self.price_discount >= self.price
        ):
            raise ValueError(
                f"Discount price ({self.price_discount}) should be below regular price"
            )
        return self


class TourOut(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: float
    ratings_quantity: int
    price: float
    price_discount: Optional[float] = None
    summary: str
    description: Optional[str] = None
    image_cover: str
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_weeks(self) -> float:
        return round(self.duration / 7, 2)
