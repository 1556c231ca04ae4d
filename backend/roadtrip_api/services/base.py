"""
Road Trip Planner Backend — Service Helpers
============================================

What:  Shared plumbing for the resource services.
How:   - translate_db_errors: re-raises application errors untouched and wraps
         any other SQLAlchemy failure in DatabaseError (generic client message,
         details logged server-side).
       - get_or_404 / ensure_owner: the two checks every mutating operation
         starts with, in that order.
       - toggle_membership: atomic set add/remove over a (parent, user) row.
"""

import functools
import logging
import uuid
from typing import Any, Awaitable, Callable, Type, TypeVar

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    RoadTripError,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])
M = TypeVar("M")


def translate_db_errors(operation: str) -> Callable[[F], F]:
    """
    Decorator for service coroutines.

    RoadTripError subclasses propagate unchanged; SQLAlchemyError becomes
    DatabaseError with the operation name recorded in its context.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except RoadTripError:
                raise
            except SQLAlchemyError as e:
                logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
                raise DatabaseError(
                    context={"operation": operation, "original_error": type(e).__name__}
                ) from e

        return wrapper  # type: ignore[return-value]

    return decorator


async def get_or_404(
    db: AsyncSession, model: Type[M], object_id: uuid.UUID, resource: str
) -> M:
    obj = await db.get(model, object_id)
    if obj is None:
        raise NotFoundError(resource=resource, resource_id=str(object_id))
    return obj


def ensure_owner(owner_id: uuid.UUID, principal_id: uuid.UUID, action: str, resource: str) -> None:
    """
    Raises ForbiddenError unless the principal owns the resource.

    Runs before payload validation so non-owners always get 403.
    """
    if owner_id != principal_id:
        raise ForbiddenError(
            message=f"Not authorized to {action} this {resource}",
            context={"owner_id": str(owner_id), "principal_id": str(principal_id)},
        )


async def toggle_membership(db: AsyncSession, model: Type[Any], **keys: Any) -> bool:
    """
    Removes the row identified by `keys` if present, inserts it otherwise.

    No read-modify-write: the DELETE's rowcount decides. The composite
    primary key rejects a concurrent duplicate insert, surfaced as ConflictError.

    Returns:
        True if the row now exists (added), False if it was removed.
    """
    conditions = [getattr(model, column) == value for column, value in keys.items()]
    result = await db.execute(delete(model).where(*conditions))
    if result.rowcount:
        return False

    db.add(model(**keys))
    try:
        await db.flush()
    except IntegrityError as e:
        raise ConflictError(
            message="Concurrent update, please retry",
            context={"table": model.__tablename__},
        ) from e
    return True
