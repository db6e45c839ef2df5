"""
Natours Backend — Tour SQLAlchemy Model
=========================================

What:  ORM model for the `tours` table.
Who:   Used by the tour, review, booking and view services.

Table notes:
    - slug: derived from the name, unique, used by the tour page URL
    - ratings_average / ratings_quantity: maintained by the review service
      whenever a review is created or deleted
    - secret_tour: hidden from every listing and lookup
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from natours.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tour(Base):
    __tablename__ = "tours"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(60), nullable=False, unique=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False)
    ratings_average: Mapped[float] = mapped_column(Float, nullable=False, default=4.5)
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    price_discount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    summary: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_cover: Mapped[str] = mapped_column(String(255), nullable=False, default="default-cover.jpg")
    secret_tour: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # Listing defaults to price/ratings filters and sorts
    __table_args__ = (
        Index("idx_tours_price_ratings", "price", "ratings_average"),
    )

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, slug='{self.slug}')>"
