"""
Road Trip Planner Backend — Review Service
===========================================

What:  Rated trip reviews: list with rating stats, create (one per user per
       trip), edit, delete, helpful-vote toggle.
How:   The one-review rule is checked up front for a friendly message; the
       UNIQUE (user_id, trip_id) constraint catches the concurrent case and
       the resulting IntegrityError is reported as the same ConflictError.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.exceptions import ConflictError
from roadtrip_api.models.mixins import utcnow
from roadtrip_api.models.review import Review, ReviewHelpfulVote
from roadtrip_api.models.road_trip import RoadTrip
from roadtrip_api.models.user import User
from roadtrip_api.schemas.common import validate_payload
from roadtrip_api.schemas.review import (
    HelpfulToggleResponse,
    ReviewCreateRequest,
    ReviewListResponse,
    ReviewResponse,
    ReviewStats,
    ReviewUpdateRequest,
)
from roadtrip_api.schemas.user import UserSummary
from roadtrip_api.services.base import (
    ensure_owner,
    get_or_404,
    toggle_membership,
    translate_db_errors,
)
from roadtrip_api.services.pagination import build_pagination, page_request

logger = logging.getLogger(__name__)

DEFAULT_REVIEWS_PER_PAGE = 10
ALREADY_REVIEWED = "You have already reviewed this trip"


async def _helpful_votes(
    db: AsyncSession, review_ids: Sequence[uuid.UUID]
) -> Dict[uuid.UUID, List[uuid.UUID]]:
    votes: Dict[uuid.UUID, List[uuid.UUID]] = {i: [] for i in review_ids}
    if review_ids:
        rows = await db.execute(
            select(ReviewHelpfulVote.review_id, ReviewHelpfulVote.user_id)
            .where(ReviewHelpfulVote.review_id.in_(review_ids))
            .order_by(ReviewHelpfulVote.created_at)
        )
        for review_id, user_id in rows:
            votes[review_id].append(user_id)
    return votes


def review_response(review: Review, helpful: List[uuid.UUID]) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        comment=review.comment,
        rating=review.rating,
        user=UserSummary.model_validate(review.author),
        trip_id=review.trip_id,
        helpful=helpful,
        helpful_count=len(helpful),
        images=list(review.images or []),
        trip_date=review.trip_date,
        travel_type=review.travel_type,
        verified=review.verified,
        is_edited=review.is_edited,
        edited_at=review.edited_at,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


class ReviewService:
    async def _respond(self, db: AsyncSession, review_id: uuid.UUID) -> ReviewResponse:
        review = (
            await db.execute(
                select(Review)
                .where(Review.id == review_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        votes = await _helpful_votes(db, [review.id])
        return review_response(review, votes[review.id])

    async def trip_stats(self, db: AsyncSession, trip_id: uuid.UUID) -> ReviewStats:
        count, average = (
            await db.execute(
                select(func.count(Review.id), func.avg(Review.rating)).where(
                    Review.trip_id == trip_id
                )
            )
        ).one()
        return ReviewStats(
            average_rating=round(float(average), 1) if average is not None else 0.0,
            total_reviews=count,
        )

    @translate_db_errors("list reviews")
    async def list_for_trip(
        self,
        db: AsyncSession,
        trip_id: uuid.UUID,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ReviewListResponse:
        """Newest first; `stats` covers every review of the trip, not just the page."""
        await get_or_404(db, RoadTrip, trip_id, "trip")
        request = page_request(page, limit, DEFAULT_REVIEWS_PER_PAGE)
        stats = await self.trip_stats(db, trip_id)

        reviews = (
            await db.execute(
                select(Review)
                .where(Review.trip_id == trip_id)
                .order_by(Review.created_at.desc())
                .offset(request.offset)
                .limit(request.limit)
            )
        ).scalars().all()
        votes = await _helpful_votes(db, [r.id for r in reviews])

        return ReviewListResponse(
            reviews=[review_response(r, votes[r.id]) for r in reviews],
            pagination=build_pagination(request, stats.total_reviews),
            stats=stats,
        )

    @translate_db_errors("create review")
    async def create(
        self, db: AsyncSession, principal: User, trip_id: uuid.UUID, data: Dict[str, Any]
    ) -> ReviewResponse:
        """
        The author is always the principal; any `user` field in the body
        is ignored.

        Raises:
            ValidationError: comment/rating/travelType invalid
            NotFoundError:   trip missing
            ConflictError:   the principal already reviewed this trip
        """
        payload = validate_payload(ReviewCreateRequest, data)
        await get_or_404(db, RoadTrip, trip_id, "trip")

        existing = await db.execute(
            select(Review.id).where(Review.user_id == principal.id, Review.trip_id == trip_id)
        )
        if existing.first() is not None:
            raise ConflictError(ALREADY_REVIEWED)

        review = Review(
            comment=payload.comment,
            rating=payload.rating,
            user_id=principal.id,
            trip_id=trip_id,
            images=list(payload.images),
            trip_date=payload.trip_date,
            travel_type=payload.travel_type,
        )
        db.add(review)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError(ALREADY_REVIEWED) from e

        logger.info(
            "Review %s (rating %d) added to trip %s by %s",
            review.id,
            review.rating,
            trip_id,
            principal.id,
        )
        return await self._respond(db, review.id)

    @translate_db_errors("update review")
    async def update(
        self, db: AsyncSession, principal: User, review_id: uuid.UUID, data: Dict[str, Any]
    ) -> ReviewResponse:
        review = await get_or_404(db, Review, review_id, "review")
        ensure_owner(review.user_id, principal.id, "update", "review")
        payload = validate_payload(ReviewUpdateRequest, data)
        changes = payload.model_fields_set

        edited = False
        if "comment" in changes and payload.comment != review.comment:
            review.comment = payload.comment
            edited = True
        if "rating" in changes and payload.rating != review.rating:
            review.rating = payload.rating
            edited = True
        if "trip_date" in changes:
            review.trip_date = payload.trip_date
        if "travel_type" in changes:
            review.travel_type = payload.travel_type
        if edited:
            review.is_edited = True
            review.edited_at = utcnow()

        await db.flush()
        return await self._respond(db, review_id)

    @translate_db_errors("delete review")
    async def delete(self, db: AsyncSession, principal: User, review_id: uuid.UUID) -> None:
        review = await get_or_404(db, Review, review_id, "review")
        ensure_owner(review.user_id, principal.id, "delete", "review")
        await db.delete(review)
        await db.flush()
        logger.info("Review %s deleted by %s", review_id, principal.id)

    @translate_db_errors("mark review helpful")
    async def toggle_helpful(
        self, db: AsyncSession, principal: User, review_id: uuid.UUID
    ) -> HelpfulToggleResponse:
        await get_or_404(db, Review, review_id, "review")
        marked = await toggle_membership(
            db, ReviewHelpfulVote, review_id=review_id, user_id=principal.id
        )
        votes = await _helpful_votes(db, [review_id])
        return HelpfulToggleResponse(
            helpful=votes[review_id],
            marked_helpful=marked,
            helpful_count=len(votes[review_id]),
        )


review_service = ReviewService()
