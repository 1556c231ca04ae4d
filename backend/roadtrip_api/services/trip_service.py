"""
Road Trip Planner Backend — Trip Service (Business Logic Orchestrator)
=======================================================================

What:  Trip CRUD, feed/search/mine/saved listings, like and save toggles,
       and the image upload step of create/update.
Why:   Keeps visibility, ownership and upload ordering rules out of the routes.
How:   Derived numbers (likes, saves, comments, reviews, average rating) are
       computed with grouped queries over the child tables for the whole
       page at once; nothing is denormalized onto the trip row.

Create Flow (POST /api/roadtrips):
    ┌──────────────┐    ┌───────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate     │───▶│ Validate      │───▶│ Upload all   │───▶│ Persist  │
    │ images (400) │    │ payload (400) │    │ concurrently │    │ trip+stops│
    └──────────────┘    └───────────────┘    └──────────────┘    └──────────┘
    Upload failure → StorageError, nothing persisted.
    Persist failure → uploaded images are removed, error propagates.
    Images replaced by an update or orphaned by a delete are removed only
    after the transaction commits (call_after_commit).

Visibility:
    Public + published trips are visible to everyone. Private, draft or
    archived trips are visible only to their owner (others get 404, not 403,
    so their existence is not revealed).
"""

import logging
import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.config import settings
from roadtrip_api.database import call_after_commit
from roadtrip_api.exceptions import NotFoundError, ValidationError
from roadtrip_api.models.comment import Comment
from roadtrip_api.models.review import Review
from roadtrip_api.models.road_trip import RoadTrip, RouteStop, TripLike, TripSave
from roadtrip_api.models.user import User
from roadtrip_api.schemas import road_trip as schemas
from roadtrip_api.schemas.common import validate_payload
from roadtrip_api.schemas.user import UserSummary
from roadtrip_api.services.base import (
    ensure_owner,
    get_or_404,
    toggle_membership,
    translate_db_errors,
)
from roadtrip_api.services.image_storage import (
    ImageStorage,
    UploadedImage,
    discard_images,
    upload_images,
    validate_images,
)
from roadtrip_api.services.pagination import build_pagination, page_request
from roadtrip_api.services.user_service import publicly_visible

logger = logging.getLogger(__name__)

DEFAULT_TRIPS_PER_PAGE = 12
SEARCH_RESULT_LIMIT = 20


def escape_like(value: str) -> str:
    """Escapes LIKE wildcards so user input is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_visible(trip: RoadTrip, viewer_id: Optional[uuid.UUID]) -> bool:
    if trip.is_public and trip.status == "published":
        return True
    return viewer_id is not None and trip.owner_id == viewer_id


# ── Derived Stats ─────────────────────────────────────────────────────────
@dataclass
class TripStats:
    likes: List[uuid.UUID] = field(default_factory=list)
    save_count: int = 0
    comment_count: int = 0
    review_count: int = 0
    average_rating: float = 0.0


async def load_trip_stats(
    db: AsyncSession, trip_ids: Sequence[uuid.UUID]
) -> Dict[uuid.UUID, TripStats]:
    """
    Four grouped queries for any number of trips:
        likes (ordered by when they were given), save counts,
        comment counts, review count + average rating.
    """
    stats = {trip_id: TripStats() for trip_id in trip_ids}
    if not trip_ids:
        return stats

    likes = await db.execute(
        select(TripLike.trip_id, TripLike.user_id)
        .where(TripLike.trip_id.in_(trip_ids))
        .order_by(TripLike.created_at)
    )
    for trip_id, user_id in likes:
        stats[trip_id].likes.append(user_id)

    saves = await db.execute(
        select(TripSave.trip_id, func.count())
        .where(TripSave.trip_id.in_(trip_ids))
        .group_by(TripSave.trip_id)
    )
    for trip_id, count in saves:
        stats[trip_id].save_count = count

    comments = await db.execute(
        select(Comment.trip_id, func.count())
        .where(Comment.trip_id.in_(trip_ids))
        .group_by(Comment.trip_id)
    )
    for trip_id, count in comments:
        stats[trip_id].comment_count = count

    reviews = await db.execute(
        select(Review.trip_id, func.count(), func.avg(Review.rating))
        .where(Review.trip_id.in_(trip_ids))
        .group_by(Review.trip_id)
    )
    for trip_id, count, average in reviews:
        stats[trip_id].review_count = count
        stats[trip_id].average_rating = round(float(average or 0), 1)

    return stats


def stop_response(stop: RouteStop) -> schemas.RouteStop:
    coordinates = None
    if stop.latitude is not None or stop.longitude is not None:
        coordinates = schemas.Coordinates(latitude=stop.latitude, longitude=stop.longitude)
    return schemas.RouteStop(
        location_name=stop.location_name,
        description=stop.description or "",
        coordinates=coordinates,
        estimated_duration=stop.estimated_duration,
        attractions=list(stop.attractions or []),
    )


def trip_response(trip: RoadTrip, stats: TripStats) -> schemas.TripResponse:
    return schemas.TripResponse(
        id=trip.id,
        title=trip.title,
        description=trip.description,
        cover_image=trip.cover_image,
        images=list(trip.images or []),
        route=[stop_response(stop) for stop in trip.stops],
        tags=list(trip.tags or []),
        difficulty=trip.difficulty,
        duration=trip.duration or "",
        season=list(trip.season or []),
        budget=schemas.Budget.model_validate(trip.budget) if trip.budget else None,
        created_by=UserSummary.model_validate(trip.owner),
        likes=stats.likes,
        like_count=len(stats.likes),
        save_count=stats.save_count,
        comment_count=stats.comment_count,
        review_count=stats.review_count,
        average_rating=stats.average_rating,
        views=trip.views,
        is_public=trip.is_public,
        is_featured=trip.is_featured,
        status=trip.status,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
    )


def build_stops(route: Sequence[schemas.RouteStop]) -> List[RouteStop]:
    stops = []
    for position, stop in enumerate(route):
        coordinates = stop.coordinates or schemas.Coordinates()
        stops.append(
            RouteStop(
                position=position,
                location_name=stop.location_name,
                description=stop.description,
                latitude=coordinates.latitude,
                longitude=coordinates.longitude,
                estimated_duration=stop.estimated_duration,
                attractions=list(stop.attractions),
            )
        )
    return stops


class TripService:
    """
    Responsibilities:
        - create_trip / update_trip: validation, uploads, persistence
        - get_trip: visibility check + view counter
        - list_trips / search_trips / list_my_trips / list_saved_trips
        - delete_trip, toggle_like, toggle_save
    """

    async def _reload(self, db: AsyncSession, trip_id: uuid.UUID) -> RoadTrip:
        """Re-selects a trip so owner and stops are freshly eager-loaded."""
        result = await db.execute(
            select(RoadTrip)
            .where(RoadTrip.id == trip_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _respond(self, db: AsyncSession, trip_id: uuid.UUID) -> schemas.TripResponse:
        trip = await self._reload(db, trip_id)
        stats = await load_trip_stats(db, [trip.id])
        return trip_response(trip, stats[trip.id])

    async def _respond_many(
        self, db: AsyncSession, trips: Sequence[RoadTrip]
    ) -> List[schemas.TripResponse]:
        stats = await load_trip_stats(db, [t.id for t in trips])
        return [trip_response(t, stats[t.id]) for t in trips]

    async def _get_visible(
        self, db: AsyncSession, trip_id: uuid.UUID, viewer_id: Optional[uuid.UUID]
    ) -> RoadTrip:
        trip = await get_or_404(db, RoadTrip, trip_id, "trip")
        if not is_visible(trip, viewer_id):
            raise NotFoundError(resource="trip", resource_id=str(trip_id))
        return trip

    # ══════════════════════════════════════════════════════════════════════
    # Create / Read
    # ══════════════════════════════════════════════════════════════════════

    @translate_db_errors("create trip")
    async def create_trip(
        self,
        db: AsyncSession,
        owner: User,
        data: Dict[str, Any],
        images: Sequence[UploadedImage],
        storage: ImageStorage,
    ) -> schemas.TripResponse:
        """
        Raises:
            ValidationError: bad payload or images (nothing uploaded)
            StorageError:    an upload failed (nothing persisted)
        """
        validate_images(images)
        payload = validate_payload(schemas.TripCreateRequest, data)
        urls = await upload_images(storage, images)

        try:
            trip = RoadTrip(
                title=payload.title,
                description=payload.description,
                cover_image=payload.cover_image
                or (urls[0] if urls else settings.default_cover_image),
                images=urls,
                tags=payload.tags,
                difficulty=payload.difficulty,
                duration=payload.duration,
                season=list(payload.season),
                budget=payload.budget.model_dump() if payload.budget else None,
                owner_id=owner.id,
                is_public=payload.is_public,
                status=payload.status,
                stops=build_stops(payload.route),
            )
            db.add(trip)
            await db.flush()
        except Exception:
            await discard_images(storage, urls)
            raise

        logger.info(
            "Trip %s created by %s (%d stops, %d images)",
            trip.id,
            owner.id,
            len(payload.route),
            len(urls),
        )
        return await self._respond(db, trip.id)

    @translate_db_errors("get trip")
    async def get_trip(
        self, db: AsyncSession, trip_id: uuid.UUID, viewer_id: Optional[uuid.UUID] = None
    ) -> schemas.TripResponse:
        """Fetches a visible trip and atomically increments its view counter."""
        await self._get_visible(db, trip_id, viewer_id)
        await db.execute(
            update(RoadTrip)
            .where(RoadTrip.id == trip_id)
            .values(views=RoadTrip.views + 1, updated_at=RoadTrip.updated_at)
            .execution_options(synchronize_session=False)
        )
        return await self._respond(db, trip_id)

    @translate_db_errors("list trips")
    async def list_trips(
        self, db: AsyncSession, page: Optional[int], limit: Optional[int]
    ) -> schemas.TripListResponse:
        """Public feed: public + published, newest first."""
        return await self._paginate(
            db, select(RoadTrip).where(publicly_visible()), RoadTrip.created_at, page, limit
        )

    @translate_db_errors("list my trips")
    async def list_my_trips(
        self, db: AsyncSession, principal: User, page: Optional[int], limit: Optional[int]
    ) -> schemas.TripListResponse:
        """Every trip the principal owns, including drafts and private ones."""
        return await self._paginate(
            db,
            select(RoadTrip).where(RoadTrip.owner_id == principal.id),
            RoadTrip.created_at,
            page,
            limit,
        )

    @translate_db_errors("list saved trips")
    async def list_saved_trips(
        self, db: AsyncSession, principal: User, page: Optional[int], limit: Optional[int]
    ) -> schemas.TripListResponse:
        """Trips the principal saved (most recently saved first)."""
        stmt = (
            select(RoadTrip)
            .join(TripSave, TripSave.trip_id == RoadTrip.id)
            .where(TripSave.user_id == principal.id, publicly_visible(principal.id))
        )
        return await self._paginate(db, stmt, TripSave.created_at, page, limit)

    async def _paginate(
        self, db: AsyncSession, stmt, order_column, page: Optional[int], limit: Optional[int]
    ) -> schemas.TripListResponse:
        request = page_request(page, limit, DEFAULT_TRIPS_PER_PAGE)
        total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
        trips = (
            await db.execute(
                stmt.order_by(order_column.desc()).offset(request.offset).limit(request.limit)
            )
        ).scalars().all()
        return schemas.TripListResponse(
            trips=await self._respond_many(db, trips),
            pagination=build_pagination(request, total),
        )

    @translate_db_errors("search trips")
    async def search_trips(self, db: AsyncSession, query: Optional[str]) -> schemas.TripSearchResponse:
        """
        Case-insensitive substring match over title, description and route
        stop names. At most 20 results, newest first, public trips only.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query is required", field="q")

        pattern = f"%{escape_like(query)}%"
        stmt = (
            select(RoadTrip)
            .where(
                publicly_visible(),
                or_(
                    RoadTrip.title.ilike(pattern, escape="\\"),
                    RoadTrip.description.ilike(pattern, escape="\\"),
                    RoadTrip.stops.any(RouteStop.location_name.ilike(pattern, escape="\\")),
                ),
            )
            .order_by(RoadTrip.created_at.desc())
            .limit(SEARCH_RESULT_LIMIT)
        )
        trips = (await db.execute(stmt)).scalars().all()
        return schemas.TripSearchResponse(query=query, trips=await self._respond_many(db, trips))

    # ══════════════════════════════════════════════════════════════════════
    # Update / Delete
    # ══════════════════════════════════════════════════════════════════════

    @translate_db_errors("update trip")
    async def update_trip(
        self,
        db: AsyncSession,
        principal: User,
        trip_id: uuid.UUID,
        data: Dict[str, Any],
        images: Sequence[UploadedImage],
        storage: ImageStorage,
    ) -> schemas.TripResponse:
        """
        Partial update. Order: 404 → 403 → images/payload validation →
        uploads → write. New images replace the image list; the cover
        becomes the first new image unless coverImage is also given.
        """
        trip = await get_or_404(db, RoadTrip, trip_id, "trip")
        ensure_owner(trip.owner_id, principal.id, "update", "trip")
        validate_images(images)
        payload = validate_payload(schemas.TripUpdateRequest, data)
        changes = payload.model_fields_set

        urls = await upload_images(storage, images)
        replaced_images: List[str] = list(trip.images or []) if urls else []

        try:
            for name in ("title", "description", "difficulty", "duration", "tags", "is_public", "status"):
                if name in changes:
                    setattr(trip, name, getattr(payload, name))
            if "season" in changes:
                trip.season = list(payload.season or [])
            if "budget" in changes:
                trip.budget = payload.budget.model_dump() if payload.budget else None
            if "route" in changes:
                trip.stops = build_stops(payload.route or [])
            if "cover_image" in changes:
                trip.cover_image = payload.cover_image or settings.default_cover_image
            if urls:
                trip.images = urls
                if not payload.cover_image:
                    trip.cover_image = urls[0]
            await db.flush()
        except Exception:
            await discard_images(storage, urls)
            raise

        call_after_commit(db, partial(discard_images, storage, replaced_images))
        logger.info("Trip %s updated fields: %s", trip_id, sorted(changes))
        return await self._respond(db, trip_id)

    @translate_db_errors("delete trip")
    async def delete_trip(
        self,
        db: AsyncSession,
        principal: User,
        trip_id: uuid.UUID,
        storage: ImageStorage,
    ) -> None:
        """
        Hard delete. Stops, likes, saves, comments (with replies and likes)
        and reviews (with helpful votes) go with it via ON DELETE CASCADE.
        Stored images are discarded once the deletion commits.
        """
        trip = await get_or_404(db, RoadTrip, trip_id, "trip")
        ensure_owner(trip.owner_id, principal.id, "delete", "trip")
        images = list(trip.images or [])

        await db.delete(trip)
        await db.flush()
        call_after_commit(db, partial(discard_images, storage, images))
        logger.info("Trip %s deleted by %s", trip_id, principal.id)

    # ══════════════════════════════════════════════════════════════════════
    # Toggles
    # ══════════════════════════════════════════════════════════════════════

    async def _member_ids(self, db: AsyncSession, model, trip_id: uuid.UUID) -> List[uuid.UUID]:
        rows = await db.execute(
            select(model.user_id).where(model.trip_id == trip_id).order_by(model.created_at)
        )
        return list(rows.scalars().all())

    @translate_db_errors("like trip")
    async def toggle_like(
        self, db: AsyncSession, principal: User, trip_id: uuid.UUID
    ) -> schemas.LikeToggleResponse:
        await self._get_visible(db, trip_id, principal.id)
        liked = await toggle_membership(db, TripLike, trip_id=trip_id, user_id=principal.id)
        likes = await self._member_ids(db, TripLike, trip_id)
        return schemas.LikeToggleResponse(likes=likes, liked=liked, like_count=len(likes))

    @translate_db_errors("save trip")
    async def toggle_save(
        self, db: AsyncSession, principal: User, trip_id: uuid.UUID
    ) -> schemas.SaveToggleResponse:
        await self._get_visible(db, trip_id, principal.id)
        saved = await toggle_membership(db, TripSave, trip_id=trip_id, user_id=principal.id)
        saves = await self._member_ids(db, TripSave, trip_id)
        return schemas.SaveToggleResponse(saves=saves, saved=saved, save_count=len(saves))


# ── Singleton Instance ────────────────────────────────────────────────────
trip_service = TripService()
