"""
Natours Backend — User Route Handlers
=======================================

What:  /api/v1/users: signup, list, detail.
Who:   Signup is the endpoint the signup client posts to.

Signup responses:
    201 {"status": "success", "data": {"user": {...}}}
    400 invalid fields / passwords differ
    409 {"status": "fail", "message": "Email already in use"}
"""

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import get_db_session
from natours.schemas.common import ErrorResponse, envelope
from natours.schemas.user import SignupRequest, UserOut
from natours.services.user_service import user_service

router = APIRouter(tags=["Users"])


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid signup data", "model": ErrorResponse},
        409: {"description": "Email already in use", "model": ErrorResponse},
    },
    summary="Create a user account",
)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    user = await user_service.signup(db, payload)
    return envelope({"user": UserOut.model_validate(user).to_api()})


@router.get("", summary="List users")
async def list_users(db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
    users = await user_service.list_users(db)
    return envelope(
        {"users": [UserOut.model_validate(u).to_api() for u in users]},
        results=len(users),
    )


@router.get(
    "/{user_id}",
    responses={404: {"description": "No user with that ID", "model": ErrorResponse}},
    summary="Get one user",
)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    user = await user_service.get_user(db, user_id)
    return envelope({"user": UserOut.model_validate(user).to_api()})
