"""
Road Trip Planner Backend — Auth Route Handlers
================================================

What:  POST /api/auth/register, POST /api/auth/login, GET /api/auth/profile.
Why:   The only way to create an account and obtain a session token.
How:   Bodies are validated by the service layer (validate_payload) so every
       failure comes back as a 400 with the usual {message, error} shape.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.database import get_db_session
from roadtrip_api.dependencies import get_current_user
from roadtrip_api.models.user import User
from roadtrip_api.schemas.common import ErrorResponse, validate_payload
from roadtrip_api.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from roadtrip_api.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid input or email/username taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: Any = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    payload = validate_payload(RegisterRequest, body)
    return await auth_service.register(db, payload)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Missing email or password", "model": ErrorResponse},
        401: {"description": "Invalid email or password", "model": ErrorResponse},
    },
    summary="Exchange credentials for a session token",
)
async def login(
    body: Any = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    payload = validate_payload(LoginRequest, body)
    return await auth_service.login(db, payload)


@router.get(
    "/profile",
    response_model=UserResponse,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="The authenticated user's own account",
)
async def profile(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
