"""
Road Trip Planner Backend — Request Dependencies
=================================================

What:  FastAPI dependencies that resolve the authenticated principal.
Why:   Protected handlers declare `Depends(get_current_user)`; the 401 is
       raised before the handler body runs.
How:   The token is read from `x-auth-token`, falling back to
       `Authorization: Bearer <token>`.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.database import get_db_session
from roadtrip_api.exceptions import AuthError, TokenMissingError
from roadtrip_api.models.user import User
from roadtrip_api.services.auth_service import auth_service

BEARER_PREFIX = "bearer "


def get_token(request: Request) -> Optional[str]:
    token = request.headers.get("x-auth-token")
    if token:
        return token.strip()
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    return None


async def get_current_user(
    token: Optional[str] = Depends(get_token),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Raises:
        TokenMissingError: no token in either header
        AuthError:         token rejected, or user missing/inactive
    """
    if not token:
        raise TokenMissingError()
    return await auth_service.authenticate(db, token)


async def get_optional_user(
    token: Optional[str] = Depends(get_token),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    """Principal for public endpoints that show owners more; a bad token means anonymous."""
    if not token:
        return None
    try:
        return await auth_service.authenticate(db, token)
    except AuthError:
        return None
