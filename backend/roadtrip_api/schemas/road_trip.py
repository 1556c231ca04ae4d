"""
Road Trip Planner Backend — RoadTrip Schemas
=============================================

What:  Request and response models for trips, route stops, likes and saves.
Why:   Create/update payloads arrive either as JSON or as multipart form
       fields (decoded by routes/road_trips.py); both paths end up here.
How:   Length/enum rules mirror the database columns. Tags are trimmed,
       lowercased and deduplicated (first occurrence wins).
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import Field, StringConstraints, field_validator, model_validator

from roadtrip_api.schemas.common import CamelModel, Pagination
from roadtrip_api.schemas.user import UserSummary

Difficulty = Literal["Easy", "Medium", "Hard", "Expert"]
Season = Literal["Spring", "Summer", "Autumn", "Winter"]
TripStatus = Literal["draft", "published", "archived"]

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
Description = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=10, max_length=2000)
]

MAX_TAG_LENGTH = 30


def normalize_tags(tags: List[str]) -> List[str]:
    """Lowercase, trim, drop empties and duplicates while keeping order."""
    seen = []
    for raw in tags:
        tag = raw.strip().lower()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
        if tag not in seen:
            seen.append(tag)
    return seen


# ══════════════════════════════════════════════════════════════════════════
# Value Objects
# ══════════════════════════════════════════════════════════════════════════


class Coordinates(CamelModel):
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class RouteStop(CamelModel):
    location_name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)
    ]
    description: Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)] = ""
    coordinates: Optional[Coordinates] = None
    estimated_duration: Optional[str] = Field(default=None, max_length=100)
    attractions: List[str] = []


class Budget(CamelModel):
    min: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, ge=0)
    currency: Annotated[
        str, StringConstraints(strip_whitespace=True, to_upper=True, min_length=3, max_length=3)
    ] = "USD"

    @model_validator(mode="after")
    def check_range(self) -> "Budget":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Budget min cannot exceed max")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class TripCreateRequest(CamelModel):
    title: Title
    description: Description
    cover_image: Optional[str] = Field(default=None, max_length=500)
    route: List[RouteStop] = []
    tags: List[str] = []
    difficulty: Difficulty = "Medium"
    duration: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)] = ""
    season: List[Season] = []
    budget: Optional[Budget] = None
    is_public: bool = True
    status: TripStatus = "published"

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)

    @field_validator("season")
    @classmethod
    def dedupe_season(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))


class TripUpdateRequest(CamelModel):
    """
    Partial update. Only fields present in the payload are written
    (`model_fields_set`); the owner is never updatable.
    """

    title: Optional[Title] = None
    description: Optional[Description] = None
    cover_image: Optional[str] = Field(default=None, max_length=500)
    route: Optional[List[RouteStop]] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[Difficulty] = None
    duration: Optional[
        Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]
    ] = None
    season: Optional[List[Season]] = None
    budget: Optional[Budget] = None
    is_public: Optional[bool] = None
    status: Optional[TripStatus] = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_tags(v) if v is not None else v

    @field_validator("season")
    @classmethod
    def dedupe_season(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return list(dict.fromkeys(v)) if v is not None else v

    @field_validator("title", "description", "route", "difficulty", "status", "is_public")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TripResponse(CamelModel):
    """
    What:  Full trip representation.
    Who:   Returned by every trip endpoint (create, get, list, search, update).

    Derived fields:
        likes / like_count:   from trip_likes
        save_count:           from trip_saves
        comment_count:        from comments
        review_count / average_rating: from reviews (rating rounded to 1 decimal)
    """

    id: uuid.UUID
    title: str
    description: str
    cover_image: str
    images: List[str]
    route: List[RouteStop]
    tags: List[str]
    difficulty: str
    duration: str
    season: List[str]
    budget: Optional[Budget] = None
    created_by: UserSummary
    likes: List[uuid.UUID] = []
    like_count: int = 0
    save_count: int = 0
    comment_count: int = 0
    review_count: int = 0
    average_rating: float = 0.0
    views: int = 0
    is_public: bool
    is_featured: bool
    status: str
    created_at: datetime
    updated_at: datetime


class TripListResponse(CamelModel):
    trips: List[TripResponse]
    pagination: Pagination


class TripSearchResponse(CamelModel):
    query: str
    trips: List[TripResponse]


class LikeToggleResponse(CamelModel):
    likes: List[uuid.UUID]
    liked: bool
    like_count: int


class SaveToggleResponse(CamelModel):
    saves: List[uuid.UUID]
    saved: bool
    save_count: int
