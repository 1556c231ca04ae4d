"""
Road Trip Planner Backend — Credential Primitives
==================================================

What:  Password hashing (bcrypt) and session tokens (PyJWT, HS256).
Why:   One place owns the crypto parameters: work factor, algorithm, expiry.
How:   bcrypt runs in a worker thread (asyncio.to_thread) because a cost-12
       hash takes ~250ms of CPU, which would otherwise stall the event loop.

Token Format:
    {"user": {"id": "<uuid>"}, "iat": <unix>, "exp": <unix>}
    Expiry defaults to 7 days (JWT_EXPIRES_DAYS).
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from roadtrip_api.config import settings
from roadtrip_api.exceptions import (
    ConfigurationError,
    TokenExpiredError,
    TokenInvalidError,
)

logger = logging.getLogger(__name__)


# ── Passwords ─────────────────────────────────────────────────────────────
def _hash_sync(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _verify_sync(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or a password over bcrypt's 72-byte limit
        return False


async def hash_password(password: str) -> str:
    """Salted bcrypt hash using settings.bcrypt_rounds (default 12)."""
    return await asyncio.to_thread(_hash_sync, password, settings.bcrypt_rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(_verify_sync, password, password_hash)


# ── Tokens ────────────────────────────────────────────────────────────────
def _secret() -> str:
    if not settings.jwt_secret:
        raise ConfigurationError(message="Token signing secret is not configured")
    return settings.jwt_secret


def create_access_token(user_id: uuid.UUID, now: Optional[datetime] = None) -> str:
    """
    Signs a session token for `user_id`.

    Raises:
        ConfigurationError: JWT_SECRET is empty
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "user": {"id": str(user_id)},
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.jwt_expires_days),
    }
    return jwt.encode(payload, _secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verifies signature and expiry and returns the principal's user ID.

    Raises:
        TokenExpiredError: `exp` is in the past
        TokenInvalidError: bad signature, malformed token or payload
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected token: %s", e)
        raise TokenInvalidError(context={"reason": type(e).__name__})

    try:
        return uuid.UUID(str(payload["user"]["id"]))
    except (KeyError, TypeError, ValueError):
        raise TokenInvalidError(context={"reason": "payload"})
