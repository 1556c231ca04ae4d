"""
Road Trip Planner Backend — Review Route Handlers
==================================================

What:  Trip reviews and helpful votes.
Note:  Listing lives under /trip/{trip_id} so it cannot collide with the
       review-ID routes; POST takes the trip ID directly.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.database import get_db_session
from roadtrip_api.dependencies import get_current_user
from roadtrip_api.models.user import User
from roadtrip_api.schemas.common import ErrorResponse
from roadtrip_api.schemas.review import HelpfulToggleResponse, ReviewListResponse, ReviewResponse
from roadtrip_api.services.review_service import review_service

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])

OWNER_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not the review author", "model": ErrorResponse},
    404: {"description": "Review not found", "model": ErrorResponse},
}


@router.get(
    "/trip/{trip_id}",
    response_model=ReviewListResponse,
    responses={404: {"description": "Trip not found", "model": ErrorResponse}},
    summary="Reviews of a trip with rating stats",
)
async def list_reviews(
    trip_id: UUID,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewListResponse:
    return await review_service.list_for_trip(db, trip_id, page, limit)


@router.post(
    "/{trip_id}",
    status_code=201,
    response_model=ReviewResponse,
    responses={
        400: {"description": "Invalid review or already reviewed", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Trip not found", "model": ErrorResponse},
    },
    summary="Review a trip (once per user)",
)
async def create_review(
    trip_id: UUID,
    body: Any = Body(default=None),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    return await review_service.create(db, principal, trip_id, body)


@router.put(
    "/{review_id}",
    response_model=ReviewResponse,
    responses={400: {"description": "Invalid review", "model": ErrorResponse}, **OWNER_ERRORS},
    summary="Edit your review",
)
async def update_review(
    review_id: UUID,
    body: Any = Body(default=None),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    return await review_service.update(db, principal, review_id, body)


@router.delete(
    "/{review_id}",
    status_code=204,
    response_class=Response,
    responses=OWNER_ERRORS,
    summary="Delete your review",
)
async def delete_review(
    review_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await review_service.delete(db, principal, review_id)
    return Response(status_code=204)


@router.put(
    "/{review_id}/helpful",
    response_model=HelpfulToggleResponse,
    summary="Mark or unmark a review as helpful",
)
async def toggle_helpful(
    review_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HelpfulToggleResponse:
    return await review_service.toggle_helpful(db, principal, review_id)
