"""
Road Trip Planner Backend — User SQLAlchemy Models
===================================================

What:  ORM models for the `users` and `user_follows` tables.
Why:   Accounts own trips, comments and reviews; follows form a social graph.
How:   `users` stores lowercase-normalized unique username/email plus the
       bcrypt hash. Followers/following are rows in `user_follows`, never
       arrays on the user row.
Who:   Used by AuthService and UserService; every other model references users.

Table Design Rationale:
    - username/email are stored lowercased by the service layer, so the
      UNIQUE constraints are effectively case-insensitive.
    - password_hash is never copied into a response schema.
    - created/saved trip lists are derived by query (road_trips.owner_id,
      trip_saves.user_id) instead of being kept in sync on both sides.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from roadtrip_api.database import Base
from roadtrip_api.models.mixins import TimestampMixin, utcnow


class User(TimestampMixin, Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Identity ──────────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    # Lowercase, 3-20 chars of [a-z0-9_]
    username: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    # Lowercase
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Profile ───────────────────────────────────────────────────────────
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    bio: Mapped[str] = mapped_column(String(500), nullable=False, default="", server_default="")

    # ── Account State ─────────────────────────────────────────────────────
    # What: Inactive accounts cannot log in and their tokens stop verifying
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    __table_args__ = (Index("idx_users_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class UserFollow(Base):
    """
    Directed follow edge: `follower_id` follows `following_id`.

    The composite primary key is the set constraint behind the follow toggle.
    """

    __tablename__ = "user_follows"

    follower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    following_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (Index("idx_user_follows_following", "following_id"),)
