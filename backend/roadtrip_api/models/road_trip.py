"""
Road Trip Planner Backend — RoadTrip SQLAlchemy Models
=======================================================

What:  ORM models for trips, their ordered route stops, likes and saves.
Why:   The trip is the central entity every other feature hangs off.
How:   - `road_trips` holds scalar fields plus JSON columns for small value
         lists (images, tags, season) and the budget object.
       - `route_stops` is an ordered child table owned by the trip
         (cascade delete-orphan, loaded eagerly with selectin).
       - `trip_likes` / `trip_saves` are (trip, user) rows. Toggling is a
         DELETE, falling back to INSERT, so no array is ever rewritten.
Who:   Used by TripService, CommentService and ReviewService.

Index Strategy:
    - (is_public, status, created_at): the public feed query
    - owner_id: "my trips" and the user profile page
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roadtrip_api.config import settings
from roadtrip_api.database import Base
from roadtrip_api.models.mixins import TimestampMixin, utcnow
from roadtrip_api.models.user import User

DIFFICULTIES = ("Easy", "Medium", "Hard", "Expert")
SEASONS = ("Spring", "Summer", "Autumn", "Winter")
TRIP_STATUSES = ("draft", "published", "archived")


class RoadTrip(TimestampMixin, Base):
    """
    A shareable trip itinerary.

    Lifecycle:
        1. Created by its owner (status defaults to 'published')
        2. Updated only by the owner; owner_id never changes
        3. Hard-deleted by the owner, cascading to stops, likes, saves,
           comments and reviews
    """

    __tablename__ = "road_trips"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Content ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cover_image: Mapped[str] = mapped_column(
        String(500), nullable=False, default=lambda: settings.default_cover_image
    )
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Classification ────────────────────────────────────────────────────
    # tags: lowercased, deduplicated, order preserved
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False, default="Medium")
    duration: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    season: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    # {"min": float | None, "max": float | None, "currency": "USD"}
    budget: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True, default=None)

    # ── Ownership & Visibility ────────────────────────────────────────────
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="published")

    # ── Relationships ─────────────────────────────────────────────────────
    owner: Mapped[User] = relationship(lazy="selectin")
    stops: Mapped[List["RouteStop"]] = relationship(
        back_populates="trip",
        order_by="RouteStop.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_road_trips_feed", "is_public", "status", "created_at"),
        Index("idx_road_trips_owner", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<RoadTrip(id={self.id}, title='{self.title}')>"


class RouteStop(Base):
    """One stop of a trip's route; `position` keeps the client's order."""

    __tablename__ = "route_stops"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("road_trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    location_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    estimated_duration: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    attractions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    trip: Mapped[RoadTrip] = relationship(back_populates="stops")


class TripLike(Base):
    __tablename__ = "trip_likes"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("road_trips.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class TripSave(Base):
    __tablename__ = "trip_saves"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("road_trips.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (Index("idx_trip_saves_user", "user_id"),)
