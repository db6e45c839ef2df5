"""
Natours Backend — Service Unit Tests
======================================

What:  Service logic against a mock AsyncSession (no database).

What we test:
    ✅ Lookups raise NotFoundError with the documented messages
    ✅ Signup refuses a known email before hashing anything
    ✅ Bookings take the tour price unless one is given
    ✅ Rating recalculation rounds and falls back to the default
    ✅ Slugs and list query compilation
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.dialects import sqlite

from natours.exceptions import BadRequestError, ConflictError, NotFoundError
from natours.models.tour import Tour
from natours.models.user import User
from natours.schemas.booking import BookingCreate
from natours.schemas.user import SignupRequest
from natours.services.booking_service import BookingService
from natours.services.query_features import QueryFeatures, filter_field
from natours.services.review_service import ReviewService
from natours.services.tour_service import TOUR_FIELDS, TourService, slugify
from natours.services.user_service import UserService


def compiled(stmt) -> str:
    return str(stmt.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


class TestTourService:

    def setup_method(self):
        self.service = TourService()

    def test_slugify(self):
        assert slugify("The Forest Hiker") == "the-forest-hiker"
        assert slugify("  Über Café Tour! ") == "uber-cafe-tour"

    @pytest.mark.asyncio
    async def test_get_missing_tour(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError, match="No tour found with that ID"):
            await self.service.get_tour(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_secret_tour_is_not_found(self, mock_db_session):
        mock_db_session.get.return_value = Tour(name="Hidden", secret_tour=True)
        with pytest.raises(NotFoundError):
            await self.service.get_tour(mock_db_session, uuid.uuid4())


class TestQueryFeatures:

    def test_filters_sort_and_paging(self):
        query = {"price": {"lt": "1500"}, "difficulty": ["easy", "medium"], "sort": "-price", "page": "3", "limit": "10"}
        sql = compiled(QueryFeatures(Tour, TOUR_FIELDS, query).filter().sort().paginate().stmt)
        assert "tours.price < 1500.0" in sql
        assert "tours.difficulty IN ('easy', 'medium')" in sql
        assert "ORDER BY tours.price DESC" in sql
        assert "LIMIT 10 OFFSET 20" in sql

    def test_unknown_fields_ignored(self):
        sql = compiled(QueryFeatures(Tour, TOUR_FIELDS, {"password": "x"}).filter().stmt)
        assert "WHERE" not in sql

    def test_unsupported_operator(self):
        with pytest.raises(BadRequestError, match="Unsupported operator for price: ne"):
            QueryFeatures(Tour, TOUR_FIELDS, {"price": {"ne": "1"}}).filter()

    def test_limit_capped(self):
        sql = compiled(QueryFeatures(Tour, TOUR_FIELDS, {"limit": "5000"}).paginate().stmt)
        assert "LIMIT 100" in sql

    def test_non_positive_page_rejected(self):
        with pytest.raises(BadRequestError, match="Invalid page: 0"):
            QueryFeatures(Tour, TOUR_FIELDS, {"page": "0"}).paginate()

    def test_projection_keeps_id(self):
        features = QueryFeatures(Tour, TOUR_FIELDS, {"fields": "name"})
        assert features.project({"id": "1", "name": "A", "price": 3}) == {"id": "1", "name": "A"}

    def test_filter_field_converters(self):
        assert filter_field(Tour.duration, int).convert("5") == 5
        assert filter_field(Tour.price, float).convert("397") == 397.0
        assert filter_field(Tour.name).convert("The Forest Hiker") == "The Forest Hiker"
        assert {field.convert for field in TOUR_FIELDS.values()} == {str, int, float}

    def test_unconvertible_filter_value_rejected(self):
        with pytest.raises(BadRequestError, match="Invalid duration: five"):
            QueryFeatures(Tour, TOUR_FIELDS, {"duration": "five"}).filter()


class TestUserService:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_known_email_conflicts(self, mock_db_session):
        result = MagicMock()
        result.first.return_value = (uuid.uuid4(),)
        mock_db_session.execute.return_value = result
        payload = SignupRequest(name="Jonas", email="jonas@example.com", password="pass1234")

        with patch("natours.services.user_service.hash_password", AsyncMock()) as mock_hash:
            with pytest.raises(ConflictError, match="Email already in use"):
                await self.service.signup(mock_db_session, payload)
            mock_hash.assert_not_awaited()
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_inactive_user_is_not_found(self, mock_db_session):
        mock_db_session.get.return_value = User(name="Gone", email="g@x.io", active=False)
        with pytest.raises(NotFoundError, match="No user found with that ID"):
            await self.service.get_user(mock_db_session, uuid.uuid4())


class TestBookingService:

    @pytest.mark.asyncio
    async def test_price_defaults_to_tour_price(self, mock_db_session):
        tour = Tour(id=uuid.uuid4(), name="The Forest Hiker", price=397.0, secret_tour=False)
        user = User(id=uuid.uuid4(), name="Jonas", email="j@x.io", active=True)
        mock_db_session.get.side_effect = [tour, user]

        booking = await BookingService().create_booking(
            mock_db_session, BookingCreate(tour=tour.id, user=user.id)
        )

        assert booking.price == 397.0
        assert booking.paid is True
        mock_db_session.add.assert_called_once_with(booking)
        mock_db_session.flush.assert_awaited()

    @pytest.mark.asyncio
    async def test_explicit_price_wins(self, mock_db_session):
        tour = Tour(id=uuid.uuid4(), name="The Forest Hiker", price=397.0, secret_tour=False)
        user = User(id=uuid.uuid4(), name="Jonas", email="j@x.io", active=True)
        mock_db_session.get.side_effect = [tour, user]

        booking = await BookingService().create_booking(
            mock_db_session, BookingCreate(tour=tour.id, user=user.id, price=250)
        )
        assert booking.price == 250


class TestReviewRatings:

    @pytest.mark.asyncio
    async def test_average_rounded(self, mock_db_session):
        result = MagicMock()
        result.one.return_value = (3, 4.333333)
        mock_db_session.execute.return_value = result
        tour = Tour(ratings_average=4.5, ratings_quantity=0)

        await ReviewService().recalculate_ratings(mock_db_session, tour)

        assert (tour.ratings_quantity, tour.ratings_average) == (3, 4.3)

    @pytest.mark.asyncio
    async def test_no_reviews_resets_to_default(self, mock_db_session):
        result = MagicMock()
        result.one.return_value = (0, None)
        mock_db_session.execute.return_value = result
        tour = Tour(ratings_average=3.0, ratings_quantity=4)

        await ReviewService().recalculate_ratings(mock_db_session, tour)

        assert (tour.ratings_quantity, tour.ratings_average) == (0, 4.5)
