"""
Natours Backend — Route Groups
================================

What:  HTTP route handlers, grouped by resource and mounted by URL prefix.
How:   `ROUTE_GROUPS` is the single prefix table; `include_route_groups()`
       mounts it in order and then the catch-all fallback, so first match
       wins and nothing falls through unanswered.

Route Inventory:
    ""                  views.py     overview, tour page, signup page
    /api/v1/tours       tours.py     tour CRUD, top-5-cheap, nested reviews
    /api/v1/users       users.py     signup, list, detail
    /api/v1/reviews     reviews.py   reviews and rating statistics
    /api/v1/bookings    bookings.py  bookings
    (anything else)     fallback.py  404 "Can't find <url> on this server! "

Routes stay thin: they read the request, call a service and wrap the
result in the success envelope. Errors are raised, never formatted here.
"""

from typing import Tuple

from fastapi import APIRouter, FastAPI

from natours.routes import bookings, fallback, reviews, tours, users, views

ROUTE_GROUPS: Tuple[Tuple[str, APIRouter], ...] = (
    ("", views.router),
    ("/api/v1/tours", tours.router),
    ("/api/v1/users", users.router),
    ("/api/v1/reviews", reviews.router),
    ("/api/v1/bookings", bookings.router),
)


def include_route_groups(app: FastAPI) -> None:
    for prefix, router in ROUTE_GROUPS:
        app.include_router(router, prefix=prefix)
    app.include_router(fallback.router)
