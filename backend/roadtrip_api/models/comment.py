"""
Road Trip Planner Backend — Comment SQLAlchemy Models
======================================================

What:  Threaded comments on a trip and their likes.
How:   A reply points at its parent via `parent_id`; reply lists are
       computed by query. Deleting a comment (or its trip) cascades to
       replies and likes.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roadtrip_api.database import Base
from roadtrip_api.models.mixins import TimestampMixin, utcnow
from roadtrip_api.models.user import User


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("road_trips.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, default=None
    )

    # Set whenever text changes after creation
    is_edited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    edited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    author: Mapped[User] = relationship(lazy="selectin")

    __table_args__ = (
        Index("idx_comments_trip_created", "trip_id", "created_at"),
        Index("idx_comments_parent", "parent_id"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, trip_id={self.trip_id})>"


class CommentLike(Base):
    __tablename__ = "comment_likes"

    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
