"""
Road Trip Planner Backend — Review Schemas
===========================================

What:  Bodies for creating/editing reviews, the review response shape, and
       the per-trip rating statistics returned with review lists.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import Field, StringConstraints, field_validator

from roadtrip_api.schemas.common import CamelModel, Pagination
from roadtrip_api.schemas.user import UserSummary

TravelType = Literal["Solo", "Couple", "Family", "Friends", "Business"]
ReviewText = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=5, max_length=1000)
]
Rating = Annotated[int, Field(ge=1, le=5)]


class ReviewCreateRequest(CamelModel):
    comment: ReviewText
    rating: Rating
    trip_date: Optional[datetime] = None
    travel_type: TravelType = "Solo"
    images: List[str] = []


class ReviewUpdateRequest(CamelModel):
    comment: Optional[ReviewText] = None
    rating: Optional[Rating] = None
    trip_date: Optional[datetime] = None
    travel_type: Optional[TravelType] = None

    @field_validator("comment", "rating", "travel_type")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class ReviewResponse(CamelModel):
    id: uuid.UUID
    comment: str
    rating: int
    user: UserSummary
    trip_id: uuid.UUID
    helpful: List[uuid.UUID] = []
    helpful_count: int = 0
    images: List[str] = []
    trip_date: Optional[datetime] = None
    travel_type: str
    verified: bool = False
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReviewStats(CamelModel):
    """`average_rating` is rounded to one decimal; 0 when there are no reviews."""

    average_rating: float = 0.0
    total_reviews: int = 0


class ReviewListResponse(CamelModel):
    reviews: List[ReviewResponse]
    pagination: Pagination
    stats: ReviewStats


class HelpfulToggleResponse(CamelModel):
    helpful: List[uuid.UUID]
    marked_helpful: bool
    helpful_count: int
