"""
Natours Backend — User Service
================================

What:  Account creation and lookup.
How:   Passwords are hashed with Argon2id (argon2-cffi). Hashing is CPU-bound
       (~50ms), so it runs in a worker thread to keep the event loop free.

Signup errors:
    duplicate email → ConflictError("Email already in use") → 409
"""

import asyncio
import logging
import uuid
from functools import lru_cache
from typing import List

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from natours.exceptions import ConflictError, NotFoundError
from natours.models.user import User
from natours.schemas.user import SignupRequest

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=3, memory_cost=65536, parallelism=4)


async def hash_password(password: str) -> str:
    return await asyncio.to_thread(_hasher().hash, password)


async def verify_password(password_hash: str, password: str) -> bool:
    try:
        return await asyncio.to_thread(_hasher().verify, password_hash, password)
    except VerificationError:
        return False


class UserService:

    async def signup(self, db: AsyncSession, payload: SignupRequest) -> User:
        existing = await db.execute(select(User.id).where(User.email == payload.email))
        if existing.first() is not None:
            raise ConflictError("Email already in use", context={"email": payload.email})

        user = User(
            name=payload.name,
            email=payload.email,
            password_hash=await hash_password(payload.password),
        )
        db.add(user)
        await db.flush()
        logger.info("User signed up: %s", user.id)
        return user

    async def list_users(self, db: AsyncSession) -> List[User]:
        result = await db.execute(
            select(User).where(User.active.is_(True)).order_by(User.created_at)
        )
        return list(result.scalars().all())

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None or not user.active:
            raise NotFoundError("No user found with that ID", context={"user_id": str(user_id)})
        return user


user_service = UserService()
