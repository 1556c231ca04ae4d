"""
Road Trip Planner Backend — User Route Handlers
================================================

What:  Public user listing and profiles, self-service update/delete, follow.
Who:   Profile pages and account settings in the frontend.

Note: there is no POST /api/users; accounts are only created through
/api/auth/register.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.database import get_db_session
from roadtrip_api.dependencies import get_current_user, get_optional_user
from roadtrip_api.models.user import User
from roadtrip_api.schemas.common import ErrorResponse
from roadtrip_api.schemas.user import (
    FollowResponse,
    UserListResponse,
    UserProfileResponse,
    UserResponse,
)
from roadtrip_api.services.image_storage import ImageStorage, get_image_storage
from roadtrip_api.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])

AUTH_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not your account", "model": ErrorResponse},
    404: {"description": "User not found", "model": ErrorResponse},
}


@router.get("", response_model=UserListResponse, summary="List users")
async def list_users(
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    return await user_service.list_users(db, page, limit)


@router.get(
    "/profile/{user_id}",
    response_model=UserProfileResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Public profile with trip summaries and follow counts",
)
async def get_profile(
    user_id: UUID,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileResponse:
    return await user_service.get_profile(db, user_id, viewer.id if viewer else None)


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    responses={400: {"description": "Invalid input", "model": ErrorResponse}, **AUTH_ERRORS},
    summary="Update your own account",
)
async def update_user(
    user_id: UUID,
    body: Any = Body(default=None),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_user(db, principal, user_id, body)


@router.delete(
    "/{user_id}",
    status_code=204,
    response_class=Response,
    responses=AUTH_ERRORS,
    summary="Delete your own account and everything you created",
)
async def delete_user(
    user_id: UUID,
    principal: User = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await user_service.delete_user(db, principal, user_id, storage)
    return Response(status_code=204)


@router.put(
    "/{user_id}/follow",
    response_model=FollowResponse,
    responses=AUTH_ERRORS,
    summary="Follow or unfollow a user",
)
async def toggle_follow(
    user_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowResponse:
    return await user_service.toggle_follow(db, principal, user_id)
