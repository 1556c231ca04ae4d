"""
Road Trip Planner Backend — User & Auth Schemas
================================================

What:  Request bodies for register/login/profile updates and the public
       user representations returned by the API.
Why:   The password hash never leaves the service layer: no response model
       has a field for it.

Normalization:
    username/email are stripped and lowercased before uniqueness checks so
    "Anna" and "anna" collide. Passwords are limited to 72 bytes (bcrypt's
    input limit) rather than silently truncated.
"""

import re
import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, Field, StringConstraints

from roadtrip_api.schemas.common import CamelModel, Pagination

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
BCRYPT_MAX_BYTES = 72


def _check_username(value: str) -> str:
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address")
    return value


def _check_password(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes")
    return value


Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
Username = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=20),
    AfterValidator(_check_username),
]
Email = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, max_length=255),
    AfterValidator(_check_email),
]
Password = Annotated[str, StringConstraints(min_length=6), AfterValidator(_check_password)]
Bio = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    name: Name
    username: Username
    email: Email
    password: Password


class LoginRequest(CamelModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)]
    password: str = Field(min_length=1)


class UserUpdateRequest(CamelModel):
    """Partial update; only the fields present in the body are applied."""

    name: Optional[Name] = None
    username: Optional[Username] = None
    email: Optional[Email] = None
    password: Optional[Password] = None
    bio: Optional[Bio] = None
    avatar: Optional[str] = Field(default=None, max_length=500)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(CamelModel):
    """Embedded author/owner reference on trips, comments and reviews."""

    id: uuid.UUID
    name: str
    username: str
    avatar: Optional[str] = None


class UserPublic(UserSummary):
    """What anyone can see about a user."""

    bio: str = ""
    is_verified: bool = False
    created_at: datetime


class UserResponse(UserPublic):
    """The caller's own account, including private fields."""

    email: str
    is_active: bool = True
    last_login: Optional[datetime] = None
    updated_at: datetime


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class UserListResponse(CamelModel):
    users: List[UserPublic]
    pagination: Pagination


class TripSummary(CamelModel):
    """Compact trip reference shown on profile pages."""

    id: uuid.UUID
    title: str
    cover_image: str
    created_at: datetime


class UserProfileResponse(UserPublic):
    follower_count: int = 0
    following_count: int = 0
    created_trips: List[TripSummary] = []
    saved_trips: List[TripSummary] = []


class FollowResponse(CamelModel):
    following: bool
    follower_count: int
