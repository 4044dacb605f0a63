# ruff: noqa

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from teamboard.core.roles import Role
from teamboard.core.security import (
    TokenClaims,
    TokenExpiredError,
    TokenInvalidError,
    TokenService,
    hash_password,
    verify_password,
)


def test_hash_verifies_original_password_only():
    hashed = hash_password("Secret123", rounds=4)
    assert hashed != "Secret123"
    assert verify_password("Secret123", hashed) is True
    assert verify_password("Secret124", hashed) is False
    assert verify_password("", hashed) is False


def test_hashes_are_salted():
    assert hash_password("Secret123", rounds=4) != hash_password("Secret123", rounds=4)


def test_verify_rejects_non_bcrypt_hash():
    assert verify_password("Secret123", "plain-text") is False


def test_token_round_trips_claims():
    service = TokenService(secret="s3cret")
    token = service.issue(TokenClaims(user_id=7, role=Role.MANAGER, email="m@example.com"))
    claims = service.validate(token)
    assert claims.user_id == 7
    assert claims.role is Role.MANAGER
    assert claims.email == "m@example.com"


def test_token_valid_before_expiry_and_expired_after():
    service = TokenService(secret="s3cret", expires_in=timedelta(minutes=5))
    now = datetime.now(UTC)

    fresh = service.issue({"id": 1, "role": "developer"}, now=now - timedelta(minutes=4))
    assert service.validate(fresh).user_id == 1

    stale = service.issue({"id": 1, "role": "developer"}, now=now - timedelta(minutes=6))
    with pytest.raises(TokenExpiredError):
        service.validate(stale)


def test_token_signed_with_other_secret_is_invalid():
    token = TokenService(secret="one").issue({"id": 1, "role": "admin"})
    with pytest.raises(TokenInvalidError):
        TokenService(secret="two").validate(token)


def test_malformed_token_is_invalid():
    with pytest.raises(TokenInvalidError):
        TokenService(secret="s3cret").validate("not-a-jwt")


def test_token_with_unknown_role_is_invalid():
    payload = {"sub": "1", "role": "owner", "exp": datetime.now(UTC) + timedelta(minutes=5)}
    token = jwt.encode(payload, "s3cret", algorithm="HS256")
    with pytest.raises(TokenInvalidError):
        TokenService(secret="s3cret").validate(token)
