"""
Road Trip Planner Backend — Shared Model Columns
=================================================

What:  UTC clock helper and created/updated timestamp columns.
Why:   Every entity carries the same pair of audit timestamps.
How:   Declarative mixin; SQLAlchemy copies the mapped columns onto each
       subclass table.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time. Never store naive datetimes."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Adds `created_at` / `updated_at` (UTC) to a model."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
