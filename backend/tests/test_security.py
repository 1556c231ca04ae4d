"""
Road Trip Planner Backend — Credential Primitive Tests
=======================================================

What we test:
    ✅ bcrypt hash/verify round trip, wrong password, malformed hash
    ✅ Token payload shape and decode back to the user ID
    ✅ Expired, tampered and malformed tokens map to the right AuthError subtype
    ✅ Missing signing secret is a ConfigurationError
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from roadtrip_api.config import settings
from roadtrip_api.exceptions import (
    AuthError,
    ConfigurationError,
    TokenExpiredError,
    TokenInvalidError,
)
from roadtrip_api.services.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    @pytest.mark.asyncio
    async def test_hash_then_verify(self):
        """A stored hash verifies the original password and nothing else."""
        hashed = await hash_password("correct horse")
        assert hashed != "correct horse"
        assert await verify_password("correct horse", hashed)
        assert not await verify_password("wrong horse", hashed)

    @pytest.mark.asyncio
    async def test_hashes_are_salted(self):
        """Two hashes of the same password differ."""
        assert await hash_password("same") != await hash_password("same")

    @pytest.mark.asyncio
    async def test_malformed_hash_does_not_verify(self):
        """A corrupt stored hash is a failed login, not a crash."""
        assert not await verify_password("anything", "not-a-bcrypt-hash")


class TestTokens:
    def test_payload_shape(self):
        """Payload is {"user": {"id"}, "iat", "exp"} with a 7-day lifetime."""
        user_id = uuid.uuid4()
        token = create_access_token(user_id)
        payload = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])

        assert payload["user"] == {"id": str(user_id)}
        assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

    def test_round_trip(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(user_id)) == user_id

    def test_expired_token(self):
        """A token issued 8 days ago is expired."""
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        token = create_access_token(uuid.uuid4(), now=issued)

        with pytest.raises(TokenExpiredError) as exc_info:
            decode_access_token(token)
        assert isinstance(exc_info.value, AuthError)
        assert exc_info.value.status_code == 401

    def test_wrong_signature(self):
        token = jwt.encode(
            {"user": {"id": str(uuid.uuid4())}, "exp": datetime.now(timezone.utc) + timedelta(days=1)},
            "some-other-secret-that-is-also-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            decode_access_token(token)

    def test_garbage_token(self):
        with pytest.raises(TokenInvalidError):
            decode_access_token("not.a.token")

    def test_payload_without_user_id(self):
        """A validly signed token with the wrong payload is still invalid."""
        token = jwt.encode(
            {"sub": "someone", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            decode_access_token(token)

    def test_missing_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "jwt_secret", "")
        with pytest.raises(ConfigurationError):
            create_access_token(uuid.uuid4())
