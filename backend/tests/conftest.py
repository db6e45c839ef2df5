"""
Natours Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── db:              Fresh SQLite schema (tables dropped and recreated)
    ├── session:         Real AsyncSession on that schema
    ├── test_settings:   Production-mode Settings pointing at the test DB
    ├── app:             App built by create_app() with an in-memory limiter
    └── test_client:     HTTPX AsyncClient talking to `app` over ASGI
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any natours imports
_TEST_DIR = tempfile.mkdtemp(prefix="natours_test_")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DIR}/natours.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("REDIS_URL", None)
os.environ.pop("NODE_ENV", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import natours.models  # noqa: E402,F401
from natours.config import Settings  # noqa: E402
from natours.database import Base, async_session_factory, engine  # noqa: E402
from natours.main import create_app  # noqa: E402
from natours.services.rate_limiter import InMemoryRateLimitStore, RateLimiter  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.get.return_value = tour
        result = await tour_service.get_tour(mock_db_session, tour_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db():
    """Empty tables for every test; the engine is disposed afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with async_session_factory() as s:
        yield s


@pytest.fixture
def test_settings():
    return Settings(
        node_env="production",
        database_url=TEST_DATABASE_URL,
        log_level="WARNING",
    )


def make_app(settings: Settings):
    limiter = RateLimiter(
        InMemoryRateLimitStore(),
        max_requests=settings.rate_limit_max,
        window_ms=settings.rate_limit_window_ms,
    )
    return create_app(settings, rate_limiter=limiter)


@pytest.fixture
def app_factory():
    """Build extra apps with their own Settings inside one test."""
    return make_app


@pytest.fixture
def app(test_settings):
    return make_app(test_settings)


@pytest_asyncio.fixture
async def test_client(app, db):
    """
    HTTPX AsyncClient routed straight into the app.

    Usage:
        async def test_overview(test_client):
            response = await test_client.get("/api/v1/tours")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def tour_payload():
    return {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "description": "Lorem ipsum dolor sit amet.\nSed do eiusmod tempor.",
    }


@pytest.fixture
def signup_payload():
    return {
        "name": "Jonas Schmedtmann",
        "email": "jonas@example.com",
        "password": "pass1234",
        "passwordConfirm": "pass1234",
    }
