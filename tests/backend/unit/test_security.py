"""
Unit tests for core.security module.
Tests password hashing, session JWT creation/validation.
"""
import pytest
import datetime as dt

import jwt

from meetlingo.config import settings
from meetlingo.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_access_token,
)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        password = "TestPassword123"
        assert hash_password(password) != hash_password(password)

    def test_hash_password_produces_argon2_hash(self):
        hashed = hash_password("TestPassword123")
        assert hashed.startswith("$argon2")
        assert hashed != "TestPassword123"

    def test_verify_password_correct_password(self):
        password = "TestPassword123"
        hashed = hash_password(password)
        assert verify_password(password, hashed) is True

    def test_verify_password_incorrect_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("WrongPassword456", hashed) is False

    def test_verify_password_empty_password(self):
        """verify_password should handle empty password."""
        hashed = hash_password("")
        assert verify_password("", hashed) is True
        assert verify_password("not_empty", hashed) is False


class TestJWTTokens:
    """Tests for session token creation and validation."""

    def test_create_access_token_contains_claims(self):
        token = create_access_token("user-456", "user")
        payload = decode_access_token(token)
        assert payload["sub"] == "user-456"
        assert payload["role"] == "user"
        assert "iat" in payload
        assert "exp" in payload

    def test_expiration_is_in_the_future(self):
        payload = decode_access_token(create_access_token("user-exp", "user"))
        now_timestamp = dt.datetime.now(dt.timezone.utc).timestamp()
        assert payload["exp"] > now_timestamp

    def test_token_expiration_matches_settings(self):
        payload = decode_access_token(create_access_token("user-time", "user"))
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        # Allow small tolerance for timing
        assert abs(diff_minutes - settings.access_token_expire_minutes) < 1

    def test_decode_access_token_invalid_token(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token("invalid.token.here")

    def test_token_is_signed_with_configured_secret(self):
        token = create_access_token("user-secret", "user")
        assert jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])["sub"] == "user-secret"
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret", algorithms=["HS256"])

    def test_expired_token_is_rejected(self):
        past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(minutes=5)
        token = jwt.encode(
            {"sub": "u", "role": "user", "iat": past, "exp": past + dt.timedelta(minutes=1)},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)

    def test_same_user_different_roles_get_different_tokens(self):
        token_user = create_access_token("same-user", "user")
        token_admin = create_access_token("same-user", "admin")
        assert token_user != token_admin
        assert decode_access_token(token_admin)["role"] == "admin"
