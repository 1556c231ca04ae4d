"""
Road Trip Planner Backend — Test Configuration (conftest.py)
=============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool, foreign keys ON so ON DELETE CASCADE behaves like
       PostgreSQL) with all tables created from the ORM metadata.

Fixture Hierarchy:
    engine ─┬─ db              AsyncSession for service-level tests
            └─ session_factory ─ app ─ client   HTTPX client over ASGITransport
    storage                   LocalImageStorage on a tmp dir
    make_user / make_trip     row factories for service tests
"""

import itertools
import os
import tempfile

# Settings are read at import time, so the environment is prepared first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-with-enough-entropy-for-hs256-signing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="roadtrip_test_")
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["WEATHER_API_KEY"] = "test-weather-key"
os.environ["GEOAPIFY_API_KEY"] = "test-geoapify-key"
os.environ["ORS_API_KEY"] = "test-ors-key"
os.environ["IMAGE_STORAGE_BACKEND"] = "local"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import roadtrip_api.models  # noqa: F401
from roadtrip_api.database import (
    Base,
    commit_session,
    enable_sqlite_foreign_keys,
    get_db_session,
    rollback_session,
)
from roadtrip_api.middleware.rate_limit import FixedWindowRateLimiter
from roadtrip_api.models.road_trip import RoadTrip, RouteStop
from roadtrip_api.models.user import User
from roadtrip_api.services.image_storage import LocalImageStorage, get_image_storage
from roadtrip_api.services.security import hash_password

TEST_PASSWORD = "secret123"

# Smallest byte string that passes for a JPEG: SOI + JFIF header + EOI
JPEG_BYTES = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xd9"
)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """
    A session for calling services directly. Left uncommitted unless a test
    commits it with commit_session to run after-commit cleanup.
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def make_user(db):
    """
    Inserts users with unique usernames/emails.

    Usage:
        ann = await make_user(name="Ann")
        bob = await make_user(is_active=False)
    """
    counter = itertools.count(1)
    password_hash = await hash_password(TEST_PASSWORD)

    async def _make(**overrides) -> User:
        n = next(counter)
        fields = {
            "name": f"Traveler {n}",
            "username": f"traveler{n}",
            "email": f"traveler{n}@example.com",
            "password_hash": password_hash,
        }
        fields.update(overrides)
        user = User(**fields)
        db.add(user)
        await db.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def make_trip(db):
    """Inserts a public, published trip owned by `owner` with one stop per name."""

    async def _make(owner: User, stops=("Start", "Finish"), **overrides) -> RoadTrip:
        fields = {
            "title": "Weekend Escape",
            "description": "A relaxed weekend drive with plenty of stops.",
            "owner_id": owner.id,
            "stops": [
                RouteStop(position=i, location_name=name, description="", attractions=[])
                for i, name in enumerate(stops)
            ],
        }
        fields.update(overrides)
        trip = RoadTrip(**fields)
        db.add(trip)
        await db.flush()
        return trip

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage(tmp_path):
    return LocalImageStorage(str(tmp_path / "storage"))


@pytest.fixture
def rate_limiter():
    return FixedWindowRateLimiter(max_requests=10_000, window_seconds=900)


@pytest.fixture
def app(session_factory, storage, rate_limiter):
    """
    A fresh app per test. Each request gets its own session that commits on
    success, exactly like get_db_session in production.
    """
    from roadtrip_api.main import create_app

    application = create_app(rate_limiter=rate_limiter)

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await commit_session(session)
            except Exception:
                await rollback_session(session)
                raise

    application.dependency_overrides[get_db_session] = override_db_session
    application.dependency_overrides[get_image_storage] = lambda: storage
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def register(client):
    """Registers a user over HTTP and returns (user_json, auth_headers)."""

    async def _register(name: str, username: str, email: str, password: str = TEST_PASSWORD):
        response = await client.post(
            "/api/auth/register",
            json={"name": name, "username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"x-auth-token": body["token"]}

    return _register


@pytest.fixture
def password():
    return TEST_PASSWORD


@pytest.fixture
def jpeg_bytes():
    return JPEG_BYTES
