"""
Natours Backend — Application Package
=======================================

A server-rendered tour booking site with a JSON API, built on FastAPI.

    ┌─────────────────────────────────────┐
    │   Middleware (security pipeline)    │  ← headers, rate limit, sanitizing
    ├─────────────────────────────────────┤
    │       Routes (API and views)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (business logic)       │  ← tours, users, reviews, bookings
    ├─────────────────────────────────────┤
    │   Models & Schemas (data shapes)    │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │     Database (persistence)          │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

Every failure, from any layer, is answered by `natours.error_handler`.
The `natours.client` package holds the signup client and alert presenter.
"""

__version__ = "1.0.0"
