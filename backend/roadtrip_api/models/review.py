"""
Road Trip Planner Backend — Review SQLAlchemy Models
=====================================================

What:  Rated reviews of a trip and their "helpful" votes.
Why:   Reviews drive the trip's average rating.
How:   UNIQUE (user_id, trip_id) enforces one review per user per trip at
       the storage layer; the service checks first to return a friendly
       message, and the constraint catches concurrent duplicates.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roadtrip_api.database import Base
from roadtrip_api.models.mixins import TimestampMixin, utcnow
from roadtrip_api.models.user import User

TRAVEL_TYPES = ("Solo", "Couple", "Family", "Friends", "Business")


class Review(TimestampMixin, Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    comment: Mapped[str] = mapped_column(String(1000), nullable=False)
    # 1-5 inclusive
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("road_trips.id", ondelete="CASCADE"), nullable=False
    )
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    trip_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    travel_type: Mapped[str] = mapped_column(String(10), nullable=False, default="Solo")
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # Set whenever comment or rating changes after creation
    is_edited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    edited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    author: Mapped[User] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "trip_id", name="uq_reviews_user_trip"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        Index("idx_reviews_trip_created", "trip_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, rating={self.rating})>"


class ReviewHelpfulVote(Base):
    __tablename__ = "review_helpful_votes"

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reviews.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
