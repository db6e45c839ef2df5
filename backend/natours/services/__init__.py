"""
Natours Backend — Services Package
====================================

Business logic, kept free of HTTP concerns. Each module exposes a stateless
service class and a module-level singleton:

    tour_service     tour CRUD, list query features, slug lookup
    user_service     signup (Argon2id hashing) and user lookup
    review_service   reviews and tour rating statistics
    booking_service  tour bookings
    rate_limiter     fixed-window request counting (memory or Redis)
"""
