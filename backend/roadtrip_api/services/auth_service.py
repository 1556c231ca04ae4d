"""
Road Trip Planner Backend — Auth Service
=========================================

What:  Registration, login, and token → principal resolution.
Why:   The single canonical account-creation path (POST /api/auth/register).
How:   Uniqueness is checked case-insensitively before any write (values
       are normalized to lowercase by RegisterRequest); the UNIQUE
       constraints catch the concurrent-duplicate race.

Security Notes:
    - Login failures always say "Invalid email or password", never which
      half was wrong.
    - Inactive accounts cannot log in and their existing tokens stop
      resolving to a principal.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.exceptions import AuthError, ConflictError
from roadtrip_api.models.mixins import utcnow
from roadtrip_api.models.user import User
from roadtrip_api.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from roadtrip_api.services.base import translate_db_errors
from roadtrip_api.services.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


async def ensure_unique_identity(
    db: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    exclude_user_id: Optional[uuid.UUID] = None,
) -> None:
    """
    Raises ConflictError if another account already uses `username` or `email`.
    Both values are expected lowercased.
    """
    conditions = []
    if username:
        conditions.append(User.username == username)
    if email:
        conditions.append(User.email == email)
    if not conditions:
        return

    stmt = select(User.username, User.email).where(or_(*conditions))
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    for existing_username, existing_email in (await db.execute(stmt)).all():
        if email and existing_email == email:
            raise ConflictError("Email already exists", field="email")
        if username and existing_username == username:
            raise ConflictError("Username already exists", field="username")


class AuthService:
    @translate_db_errors("register")
    async def register(self, db: AsyncSession, payload: RegisterRequest) -> AuthResponse:
        """
        Raises:
            ConflictError: username or email taken (no write performed)
        """
        await ensure_unique_identity(db, payload.username, payload.email)

        user = User(
            name=payload.name,
            username=payload.username,
            email=payload.email,
            password_hash=await hash_password(payload.password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError("Username or email already exists") from e

        logger.info("User registered: %s (%s)", user.username, user.id)
        return AuthResponse(
            message="User registered successfully",
            token=create_access_token(user.id),
            user=UserResponse.model_validate(user),
        )

    @translate_db_errors("login")
    async def login(self, db: AsyncSession, payload: LoginRequest) -> AuthResponse:
        """
        Raises:
            AuthError: unknown email, wrong password, or inactive account
        """
        user = (
            await db.execute(select(User).where(User.email == payload.email))
        ).scalar_one_or_none()

        if user is None or not await verify_password(payload.password, user.password_hash):
            logger.info("Failed login attempt for %s", payload.email)
            raise AuthError(INVALID_CREDENTIALS)
        if not user.is_active:
            logger.info("Login attempt for inactive account %s", user.id)
            raise AuthError(INVALID_CREDENTIALS)

        user.last_login = utcnow()
        await db.flush()
        await db.refresh(user)

        return AuthResponse(
            message="Login successful",
            token=create_access_token(user.id),
            user=UserResponse.model_validate(user),
        )

    @translate_db_errors("authenticate")
    async def authenticate(self, db: AsyncSession, token: str) -> User:
        """
        Resolves a bearer token to an active User.

        Raises:
            TokenExpiredError / TokenInvalidError: token rejected
            AuthError: the user no longer exists or is deactivated
        """
        user_id = decode_access_token(token)
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthError("User not found or inactive, authorization denied")
        return user


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
