"""
Road Trip Planner Backend — Comment Route Handlers
===================================================

What:  Comment threads on a trip.
Note:  GET/POST take a trip ID; PUT/DELETE/like take a comment ID.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.database import get_db_session
from roadtrip_api.dependencies import get_current_user
from roadtrip_api.models.user import User
from roadtrip_api.schemas.comment import CommentLikeResponse, CommentListResponse, CommentResponse
from roadtrip_api.schemas.common import ErrorResponse
from roadtrip_api.services.comment_service import comment_service

router = APIRouter(prefix="/api/comments", tags=["Comments"])

OWNER_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not the comment author", "model": ErrorResponse},
    404: {"description": "Comment not found", "model": ErrorResponse},
}


@router.get(
    "/{trip_id}",
    response_model=CommentListResponse,
    responses={404: {"description": "Trip not found", "model": ErrorResponse}},
    summary="Comments on a trip, newest first",
)
async def list_comments(
    trip_id: UUID,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> CommentListResponse:
    return await comment_service.list_for_trip(db, trip_id, page, limit)


@router.post(
    "/{trip_id}",
    status_code=201,
    response_model=CommentResponse,
    responses={
        400: {"description": "Invalid text", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Trip or parent comment not found", "model": ErrorResponse},
    },
    summary="Comment on a trip (or reply with parentCommentId)",
)
async def create_comment(
    trip_id: UUID,
    body: Any = Body(default=None),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await comment_service.create(db, principal, trip_id, body)


@router.put(
    "/{comment_id}",
    response_model=CommentResponse,
    responses={400: {"description": "Invalid text", "model": ErrorResponse}, **OWNER_ERRORS},
    summary="Edit your comment",
)
async def update_comment(
    comment_id: UUID,
    body: Any = Body(default=None),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await comment_service.update(db, principal, comment_id, body)


@router.delete(
    "/{comment_id}",
    status_code=204,
    response_class=Response,
    responses=OWNER_ERRORS,
    summary="Delete your comment and its replies",
)
async def delete_comment(
    comment_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await comment_service.delete(db, principal, comment_id)
    return Response(status_code=204)


@router.put("/{comment_id}/like", response_model=CommentLikeResponse, summary="Like or unlike")
async def toggle_comment_like(
    comment_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentLikeResponse:
    return await comment_service.toggle_like(db, principal, comment_id)
