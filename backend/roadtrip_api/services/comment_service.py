"""
Road Trip Planner Backend — Comment Service
============================================

What:  Threaded trip comments: list, create, edit, delete, like toggle.
How:   Reply IDs and like lists are loaded for a whole page with two
       queries. Deleting a comment removes its replies (and their likes)
       through the self-referential ON DELETE CASCADE.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.exceptions import NotFoundError
from roadtrip_api.models.comment import Comment, CommentLike
from roadtrip_api.models.mixins import utcnow
from roadtrip_api.models.road_trip import RoadTrip
from roadtrip_api.models.user import User
from roadtrip_api.schemas.comment import (
    CommentCreateRequest,
    CommentLikeResponse,
    CommentListResponse,
    CommentResponse,
    CommentUpdateRequest,
)
from roadtrip_api.schemas.common import validate_payload
from roadtrip_api.schemas.user import UserSummary
from roadtrip_api.services.base import (
    ensure_owner,
    get_or_404,
    toggle_membership,
    translate_db_errors,
)
from roadtrip_api.services.pagination import build_pagination, page_request

logger = logging.getLogger(__name__)

DEFAULT_COMMENTS_PER_PAGE = 10


async def _comment_responses(
    db: AsyncSession, comments: Sequence[Comment]
) -> List[CommentResponse]:
    ids = [c.id for c in comments]
    replies: Dict[uuid.UUID, List[uuid.UUID]] = {i: [] for i in ids}
    likes: Dict[uuid.UUID, List[uuid.UUID]] = {i: [] for i in ids}

    if ids:
        rows = await db.execute(
            select(Comment.parent_id, Comment.id)
            .where(Comment.parent_id.in_(ids))
            .order_by(Comment.created_at)
        )
        for parent_id, reply_id in rows:
            replies[parent_id].append(reply_id)

        rows = await db.execute(
            select(CommentLike.comment_id, CommentLike.user_id)
            .where(CommentLike.comment_id.in_(ids))
            .order_by(CommentLike.created_at)
        )
        for comment_id, user_id in rows:
            likes[comment_id].append(user_id)

    return [
        CommentResponse(
            id=c.id,
            text=c.text,
            user=UserSummary.model_validate(c.author),
            trip_id=c.trip_id,
            parent_comment_id=c.parent_id,
            replies=replies[c.id],
            likes=likes[c.id],
            like_count=len(likes[c.id]),
            is_edited=c.is_edited,
            edited_at=c.edited_at,
            created_at=c.created_at,
            updated_at=c.updated_at,
        )
        for c in comments
    ]


class CommentService:
    async def _reload(self, db: AsyncSession, comment_id: uuid.UUID) -> Comment:
        result = await db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @translate_db_errors("list comments")
    async def list_for_trip(
        self,
        db: AsyncSession,
        trip_id: uuid.UUID,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> CommentListResponse:
        """All comments of a trip (replies included), newest first."""
        await get_or_404(db, RoadTrip, trip_id, "trip")
        request = page_request(page, limit, DEFAULT_COMMENTS_PER_PAGE)

        total = (
            await db.execute(
                select(func.count()).select_from(Comment).where(Comment.trip_id == trip_id)
            )
        ).scalar_one()
        comments = (
            await db.execute(
                select(Comment)
                .where(Comment.trip_id == trip_id)
                .order_by(Comment.created_at.desc())
                .offset(request.offset)
                .limit(request.limit)
            )
        ).scalars().all()

        return CommentListResponse(
            comments=await _comment_responses(db, comments),
            pagination=build_pagination(request, total),
        )

    @translate_db_errors("create comment")
    async def create(
        self, db: AsyncSession, principal: User, trip_id: uuid.UUID, data: Dict[str, Any]
    ) -> CommentResponse:
        """
        Raises:
            ValidationError: empty or over-long text
            NotFoundError:   trip missing, or parent missing / on another trip
        """
        payload = validate_payload(CommentCreateRequest, data)
        await get_or_404(db, RoadTrip, trip_id, "trip")

        if payload.parent_comment_id is not None:
            parent = await db.get(Comment, payload.parent_comment_id)
            if parent is None or parent.trip_id != trip_id:
                raise NotFoundError(
                    message="Parent comment not found",
                    resource="comment",
                    resource_id=str(payload.parent_comment_id),
                )

        comment = Comment(
            text=payload.text,
            user_id=principal.id,
            trip_id=trip_id,
            parent_id=payload.parent_comment_id,
        )
        db.add(comment)
        await db.flush()
        logger.info("Comment %s added to trip %s by %s", comment.id, trip_id, principal.id)

        comment = await self._reload(db, comment.id)
        return (await _comment_responses(db, [comment]))[0]

    @translate_db_errors("update comment")
    async def update(
        self, db: AsyncSession, principal: User, comment_id: uuid.UUID, data: Dict[str, Any]
    ) -> CommentResponse:
        comment = await get_or_404(db, Comment, comment_id, "comment")
        ensure_owner(comment.user_id, principal.id, "update", "comment")
        payload = validate_payload(CommentUpdateRequest, data)

        if payload.text != comment.text:
            comment.text = payload.text
            comment.is_edited = True
            comment.edited_at = utcnow()
            await db.flush()

        comment = await self._reload(db, comment_id)
        return (await _comment_responses(db, [comment]))[0]

    @translate_db_errors("delete comment")
    async def delete(self, db: AsyncSession, principal: User, comment_id: uuid.UUID) -> None:
        comment = await get_or_404(db, Comment, comment_id, "comment")
        ensure_owner(comment.user_id, principal.id, "delete", "comment")
        await db.delete(comment)
        await db.flush()
        logger.info("Comment %s deleted by %s", comment_id, principal.id)

    @translate_db_errors("like comment")
    async def toggle_like(
        self, db: AsyncSession, principal: User, comment_id: uuid.UUID
    ) -> CommentLikeResponse:
        await get_or_404(db, Comment, comment_id, "comment")
        liked = await toggle_membership(
            db, CommentLike, comment_id=comment_id, user_id=principal.id
        )
        likes = list(
            (
                await db.execute(
                    select(CommentLike.user_id)
                    .where(CommentLike.comment_id == comment_id)
                    .order_by(CommentLike.created_at)
                )
            ).scalars().all()
        )
        return CommentLikeResponse(likes=likes, liked=liked, like_count=len(likes))


comment_service = CommentService()
