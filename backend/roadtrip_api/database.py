"""
Road Trip Planner Backend — Database Session Management
========================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    Server databases (PostgreSQL via asyncpg) get a QueuePool sized from
    settings with pre-ping and hourly recycling. SQLite (aiosqlite, used by
    the test-suite and quick local runs) gets a StaticPool: a single shared
    connection, which is also what keeps an in-memory database alive.
"""

import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from roadtrip_api.config import settings

logger = logging.getLogger(__name__)

AFTER_COMMIT_KEY = "after_commit_callbacks"


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Build create_async_engine keyword arguments for the given URL.

    Pool sizing arguments are rejected by SQLite's pool classes, so they are
    only applied to server databases.
    """
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite"):
        options["poolclass"] = StaticPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """
    Turns on FK enforcement for every SQLite connection of `async_engine`.

    SQLite ignores ON DELETE CASCADE unless `PRAGMA foreign_keys=ON` is set
    per connection; PostgreSQL always enforces it. No-op for other dialects.
    """
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))
enable_sqlite_foreign_keys(engine)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, which the
# response builders rely on once get_db_session has committed.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with a single metadata
    object (used by Alembic and by the test-suite's create_all).
    """
    pass


# ── Post-Commit Side Effects ──────────────────────────────────────────────
def call_after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """
    Defers `callback` until `session` has committed.

    Used for work outside the database that must not happen if the
    transaction is rolled back, such as deleting stored images that rows
    still pointed at.
    """
    session.info.setdefault(AFTER_COMMIT_KEY, []).append(callback)


async def commit_session(session: AsyncSession) -> None:
    """Commits, then runs the callbacks queued with call_after_commit."""
    await session.commit()
    for callback in session.info.pop(AFTER_COMMIT_KEY, []):
        try:
            await callback()
        except Exception as e:
            # The transaction is already durable; a failed cleanup is only logged
            logger.warning("After-commit callback failed: %s", str(e))


async def rollback_session(session: AsyncSession) -> None:
    """Rolls back and drops any queued after-commit callbacks."""
    session.info.pop(AFTER_COMMIT_KEY, None)
    await session.rollback()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction, then runs after-commit callbacks
        4. On error: rolls back, discards the callbacks, and re-raises
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/roadtrips")
        async def list_trips(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await commit_session(session)
        except Exception:
            await rollback_session(session)
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Gracefully closes all pooled connections (called on shutdown)."""
    await engine.dispose()
