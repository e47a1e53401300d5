"""Tests for JWT and password hashing helpers."""

import jwt
import pytest

from election_api.core.security import (
    ADMIN_TOKEN_TYPE,
    VOTER_TOKEN_TYPE,
    create_access_token,
    create_voter_token,
    decode_token,
    hash_password,
    verify_password,
)

SECRET = "test-secret-key-not-for-production"


class TestPasswordHashing:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("s3cret-password")
        assert hashed != "s3cret-password"
        assert verify_password("s3cret-password", hashed)
        assert not verify_password("wrong", hashed)


class TestTokens:
    def test_access_token_claims(self) -> None:
        payload = decode_token(create_access_token("returning-officer", "admin", SECRET), SECRET)
        assert payload["sub"] == "returning-officer"
        assert payload["role"] == "admin"
        assert payload["type"] == ADMIN_TOKEN_TYPE

    def test_voter_token_carries_no_scope(self) -> None:
        payload = decode_token(create_voter_token("V1", SECRET), SECRET)
        assert set(payload) == {"sub", "exp", "type"}
        assert payload["type"] == VOTER_TOKEN_TYPE

    def test_expired_token(self) -> None:
        token = create_voter_token("V1", SECRET, expires_minutes=-1)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token, SECRET)

    def test_wrong_secret(self) -> None:
        token = create_access_token("returning-officer", "admin", SECRET)
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token, "another-secret-key-of-sufficient-length")
