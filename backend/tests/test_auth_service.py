"""
Road Trip Planner Backend — Auth Service Tests
===============================================

What we test:
    ✅ Register: normalized identity, hash never returned, token resolves back
    ✅ Register conflicts: duplicate email, duplicate username (case-insensitive),
       no row written
    ✅ Login: success updates last_login, uniform failure message
    ✅ Inactive accounts: cannot log in, tokens stop resolving
"""

import pytest
from sqlalchemy import func, select

from roadtrip_api.exceptions import AuthError, ConflictError, TokenInvalidError
from roadtrip_api.models.user import User
from roadtrip_api.schemas.user import LoginRequest, RegisterRequest
from roadtrip_api.services.auth_service import INVALID_CREDENTIALS, auth_service
from roadtrip_api.services.security import create_access_token

PASSWORD = "correct-horse"


def _register_request(**overrides) -> RegisterRequest:
    fields = {
        "name": "Ann Rider",
        "username": "ann",
        "email": "ann@example.com",
        "password": PASSWORD,
    }
    fields.update(overrides)
    return RegisterRequest(**fields)


async def _user_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(User))).scalar_one()


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_token_and_user(self, db):
        """A new account gets a usable token and a hash-free user body."""
        result = await auth_service.register(db, _register_request())

        assert result.message == "User registered successfully"
        assert result.user.username == "ann"
        assert "password_hash" not in result.user.model_dump()
        assert "passwordHash" not in result.user.model_dump(by_alias=True)

        principal = await auth_service.authenticate(db, result.token)
        assert principal.id == result.user.id

    @pytest.mark.asyncio
    async def test_identity_is_lowercased(self, db):
        """Username and email are normalized before storage."""
        result = await auth_service.register(
            db, _register_request(username="AnnRider", email="Ann@Example.COM")
        )
        assert result.user.username == "annrider"
        assert result.user.email == "ann@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db, make_user):
        """An email that differs only in case still collides."""
        await make_user(email="ann@example.com")
        before = await _user_count(db)

        with pytest.raises(ConflictError) as exc_info:
            await auth_service.register(db, _register_request(email="ANN@example.com"))
        assert exc_info.value.message == "Email already exists"
        assert exc_info.value.status_code == 400
        assert await _user_count(db) == before

    @pytest.mark.asyncio
    async def test_duplicate_username(self, db, make_user):
        await make_user(username="ann")
        before = await _user_count(db)

        with pytest.raises(ConflictError) as exc_info:
            await auth_service.register(db, _register_request(username="Ann"))
        assert exc_info.value.message == "Username already exists"
        assert await _user_count(db) == before

    def test_invalid_username_characters(self):
        """Usernames are limited to letters, digits and underscores."""
        with pytest.raises(ValueError):
            _register_request(username="ann rider!")

    def test_short_password(self):
        with pytest.raises(ValueError):
            _register_request(password="12345")


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, db):
        """Login with the registered password stamps last_login."""
        await auth_service.register(db, _register_request())

        result = await auth_service.login(
            db, LoginRequest(email="ANN@example.com", password=PASSWORD)
        )
        assert result.message == "Login successful"
        assert result.user.last_login is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, db):
        await auth_service.register(db, _register_request())

        with pytest.raises(AuthError) as exc_info:
            await auth_service.login(db, LoginRequest(email="ann@example.com", password="nope-nope"))
        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_unknown_email(self, db):
        """Unknown email gets the same message as a wrong password."""
        with pytest.raises(AuthError) as exc_info:
            await auth_service.login(
                db, LoginRequest(email="ghost@example.com", password=PASSWORD)
            )
        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_inactive_account_cannot_login(self, db, make_user, password):
        user = await make_user(is_active=False)

        with pytest.raises(AuthError):
            await auth_service.login(db, LoginRequest(email=user.email, password=password))


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_token_for_inactive_user_is_rejected(self, db, make_user):
        """Deactivating an account revokes its outstanding tokens."""
        user = await make_user()
        token = create_access_token(user.id)
        assert (await auth_service.authenticate(db, token)).id == user.id

        user.is_active = False
        await db.flush()

        with pytest.raises(AuthError):
            await auth_service.authenticate(db, token)

    @pytest.mark.asyncio
    async def test_token_for_deleted_user_is_rejected(self, db, make_user):
        user = await make_user()
        token = create_access_token(user.id)
        await db.delete(user)
        await db.flush()

        with pytest.raises(AuthError):
            await auth_service.authenticate(db, token)

    @pytest.mark.asyncio
    async def test_garbage_token(self, db):
        with pytest.raises(TokenInvalidError):
            await auth_service.authenticate(db, "garbage")
