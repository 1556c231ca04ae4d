"""Create initial schema

Revision ID: 001
Revises: None
Create Date: 2025-06-14 00:00:00.000000+00:00

What:  Creates users, follows, trips with route stops, likes, saves,
       comments (+ likes) and reviews (+ helpful votes).
How:   Every foreign key is ON DELETE CASCADE: deleting a user or a trip
       removes everything hanging off it at the database level.

Rollback: downgrade() drops all tables in reverse dependency order
(destructive — all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _user_fk(name: str = "user_id", primary_key: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Uuid(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        primary_key=primary_key,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("username", sa.String(20), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("bio", sa.String(500), nullable=False, server_default=""),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "user_follows",
        _user_fk("follower_id", primary_key=True),
        _user_fk("following_id", primary_key=True),
        _created_at(),
    )
    op.create_index("idx_user_follows_following", "user_follows", ["following_id"])

    # ── Trips ─────────────────────────────────────────────────────────────
    op.create_table(
        "road_trips",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("cover_image", sa.String(500), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("difficulty", sa.String(10), nullable=False, server_default="Medium"),
        sa.Column("duration", sa.String(100), nullable=False, server_default=""),
        sa.Column("season", sa.JSON(), nullable=False),
        sa.Column("budget", sa.JSON(), nullable=True),
        _user_fk("owner_id"),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("status", sa.String(20), nullable=False, server_default="published"),
        *_timestamps(),
    )
    op.create_index("idx_road_trips_feed", "road_trips", ["is_public", "status", "created_at"])
    op.create_index("idx_road_trips_owner", "road_trips", ["owner_id"])

    op.create_table(
        "route_stops",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "trip_id",
            sa.Uuid(),
            sa.ForeignKey("road_trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("location_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("estimated_duration", sa.String(100), nullable=True),
        sa.Column("attractions", sa.JSON(), nullable=False),
    )
    op.create_index("ix_route_stops_trip_id", "route_stops", ["trip_id"])

    for table in ("trip_likes", "trip_saves"):
        op.create_table(
            table,
            sa.Column(
                "trip_id",
                sa.Uuid(),
                sa.ForeignKey("road_trips.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            _user_fk(primary_key=True),
            _created_at(),
        )
    op.create_index("idx_trip_saves_user", "trip_saves", ["user_id"])

    # ── Comments ──────────────────────────────────────────────────────────
    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("text", sa.String(500), nullable=False),
        _user_fk(),
        sa.Column(
            "trip_id",
            sa.Uuid(),
            sa.ForeignKey("road_trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "parent_id",
            sa.Uuid(),
            sa.ForeignKey("comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_comments_trip_created", "comments", ["trip_id", "created_at"])
    op.create_index("idx_comments_parent", "comments", ["parent_id"])

    op.create_table(
        "comment_likes",
        sa.Column(
            "comment_id",
            sa.Uuid(),
            sa.ForeignKey("comments.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _user_fk(primary_key=True),
        _created_at(),
    )

    # ── Reviews ───────────────────────────────────────────────────────────
    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("comment", sa.String(1000), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        _user_fk(),
        sa.Column(
            "trip_id",
            sa.Uuid(),
            sa.ForeignKey("road_trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("trip_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("travel_type", sa.String(10), nullable=False, server_default="Solo"),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "trip_id", name="uq_reviews_user_trip"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("idx_reviews_trip_created", "reviews", ["trip_id", "created_at"])

    op.create_table(
        "review_helpful_votes",
        sa.Column(
            "review_id",
            sa.Uuid(),
            sa.ForeignKey("reviews.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _user_fk(primary_key=True),
        _created_at(),
    )


def downgrade() -> None:
    for table in (
        "review_helpful_votes",
        "reviews",
        "comment_likes",
        "comments",
        "trip_saves",
        "trip_likes",
        "route_stops",
        "road_trips",
        "user_follows",
        "users",
    ):
        op.drop_table(table)
