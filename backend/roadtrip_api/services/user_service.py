"""
Road Trip Planner Backend — User Service
=========================================

What:  Public user listing and profiles, self-service update/delete, and
       the follow toggle.

Ownership:
    A user may only update or delete their own account (ForbiddenError
    otherwise). Deleting an account cascades at the database level to the
    user's trips (and everything under them), comments, reviews, likes,
    saves and follow edges.
"""

import logging
import uuid
from functools import partial
from typing import Any, Dict, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.database import call_after_commit
from roadtrip_api.exceptions import ConflictError, ValidationError
from roadtrip_api.models.road_trip import RoadTrip, TripSave
from roadtrip_api.models.user import User, UserFollow
from roadtrip_api.schemas.common import validate_payload
from roadtrip_api.schemas.user import (
    FollowResponse,
    TripSummary,
    UserListResponse,
    UserProfileResponse,
    UserPublic,
    UserResponse,
    UserUpdateRequest,
)
from roadtrip_api.services.auth_service import ensure_unique_identity
from roadtrip_api.services.base import (
    ensure_owner,
    get_or_404,
    toggle_membership,
    translate_db_errors,
)
from roadtrip_api.services.image_storage import ImageStorage, discard_images
from roadtrip_api.services.pagination import build_pagination, page_request
from roadtrip_api.services.security import hash_password

logger = logging.getLogger(__name__)

DEFAULT_USERS_PER_PAGE = 20
PROFILE_TRIP_LIMIT = 50


def publicly_visible(principal_id: Optional[uuid.UUID] = None):
    """SQL filter: public + published trips, plus the principal's own."""
    condition = and_(RoadTrip.is_public.is_(True), RoadTrip.status == "published")
    if principal_id is not None:
        return or_(condition, RoadTrip.owner_id == principal_id)
    return condition


class UserService:
    @translate_db_errors("list users")
    async def list_users(
        self, db: AsyncSession, page: Optional[int], limit: Optional[int]
    ) -> UserListResponse:
        request = page_request(page, limit, DEFAULT_USERS_PER_PAGE)
        base = select(User).where(User.is_active.is_(True))

        total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar_one()
        users = (
            await db.execute(
                base.order_by(User.created_at.desc()).offset(request.offset).limit(request.limit)
            )
        ).scalars().all()

        return UserListResponse(
            users=[UserPublic.model_validate(u) for u in users],
            pagination=build_pagination(request, total),
        )

    @translate_db_errors("get user profile")
    async def get_profile(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        viewer_id: Optional[uuid.UUID] = None,
    ) -> UserProfileResponse:
        """
        Public profile: follower/following counts plus summaries of the
        user's created and saved trips. Private or unpublished trips only
        appear when the viewer owns them.
        """
        user = await get_or_404(db, User, user_id, "user")

        follower_count = (
            await db.execute(
                select(func.count()).select_from(UserFollow).where(UserFollow.following_id == user_id)
            )
        ).scalar_one()
        following_count = (
            await db.execute(
                select(func.count()).select_from(UserFollow).where(UserFollow.follower_id == user_id)
            )
        ).scalar_one()

        created = (
            await db.execute(
                select(RoadTrip)
                .where(RoadTrip.owner_id == user_id, publicly_visible(viewer_id))
                .order_by(RoadTrip.created_at.desc())
                .limit(PROFILE_TRIP_LIMIT)
            )
        ).scalars().all()
        saved = (
            await db.execute(
                select(RoadTrip)
                .join(TripSave, TripSave.trip_id == RoadTrip.id)
                .where(TripSave.user_id == user_id, publicly_visible(viewer_id))
                .order_by(TripSave.created_at.desc())
                .limit(PROFILE_TRIP_LIMIT)
            )
        ).scalars().all()

        public = UserPublic.model_validate(user)
        return UserProfileResponse(
            **public.model_dump(),
            follower_count=follower_count,
            following_count=following_count,
            created_trips=[TripSummary.model_validate(t) for t in created],
            saved_trips=[TripSummary.model_validate(t) for t in saved],
        )

    @translate_db_errors("update user")
    async def update_user(
        self,
        db: AsyncSession,
        principal: User,
        user_id: uuid.UUID,
        data: Dict[str, Any],
    ) -> UserResponse:
        """
        Order: 404 → 403 → payload validation → uniqueness → write.

        Raises:
            NotFoundError, ForbiddenError, ValidationError, ConflictError
        """
        user = await get_or_404(db, User, user_id, "user")
        ensure_owner(user.id, principal.id, "update", "user")
        payload = validate_payload(UserUpdateRequest, data)
        changes = payload.model_dump(exclude_unset=True)

        for field in ("name", "username", "email"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field}: Field cannot be null", field=field)

        await ensure_unique_identity(
            db,
            changes.get("username") if changes.get("username") != user.username else None,
            changes.get("email") if changes.get("email") != user.email else None,
            exclude_user_id=user.id,
        )

        password = changes.pop("password", None)
        if password:
            user.password_hash = await hash_password(password)
        for field, value in changes.items():
            if field == "bio" and value is None:
                value = ""
            setattr(user, field, value)

        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError("Username or email already exists") from e
        await db.refresh(user)

        logger.info("User %s updated fields: %s", user.id, sorted(changes) + (["password"] if password else []))
        return UserResponse.model_validate(user)

    @translate_db_errors("delete user")
    async def delete_user(
        self,
        db: AsyncSession,
        principal: User,
        user_id: uuid.UUID,
        storage: ImageStorage,
    ) -> None:
        """
        Deletes the account. Trips, comments, reviews and follows cascade in
        the database; images of the deleted trips are discarded after commit.
        """
        user = await get_or_404(db, User, user_id, "user")
        ensure_owner(user.id, principal.id, "delete", "user")
        image_lists = (
            await db.execute(select(RoadTrip.images).where(RoadTrip.owner_id == user_id))
        ).scalars().all()
        images = [url for urls in image_lists for url in (urls or [])]

        await db.delete(user)
        await db.flush()
        call_after_commit(db, partial(discard_images, storage, images))
        logger.info("User %s deleted", user_id)

    @translate_db_errors("follow user")
    async def toggle_follow(
        self, db: AsyncSession, principal: User, user_id: uuid.UUID
    ) -> FollowResponse:
        if user_id == principal.id:
            raise ValidationError("You cannot follow yourself", field="id")
        await get_or_404(db, User, user_id, "user")

        following = await toggle_membership(
            db, UserFollow, follower_id=principal.id, following_id=user_id
        )
        follower_count = (
            await db.execute(
                select(func.count()).select_from(UserFollow).where(UserFollow.following_id == user_id)
            )
        ).scalar_one()
        return FollowResponse(following=following, follower_count=follower_count)


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
