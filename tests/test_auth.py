"""Tests for JWT token handling and authorization checks."""

import time

import jwt as pyjwt
import pytest

from mlbuild.auth import (
    ALGORITHM,
    ROLE_ADMIN,
    ROLE_USER,
    create_token,
    decode_token,
    is_admin,
    is_owner,
)
from tests.conftest import TEST_JWT_SECRET


def test_create_token_returns_string():
    token = create_token("7")
    assert isinstance(token, str)
    assert len(token) > 0


def test_decode_token_returns_payload():
    token = create_token("7", ROLE_ADMIN)
    payload = decode_token(token)
    assert payload["sub"] == "7"
    assert payload["role"] == ROLE_ADMIN
    assert payload["aud"] == "mlbuild"
    assert "exp" in payload
    assert "iat" in payload


def test_int_user_id_becomes_string_sub():
    payload = decode_token(create_token(7))
    assert payload["sub"] == "7"


def test_decode_token_rejects_invalid_token():
    with pytest.raises(pyjwt.PyJWTError):
        decode_token("invalid.token.value")


def test_decode_token_rejects_wrong_secret():
    token = pyjwt.encode({"sub": "7"}, "wrong-secret", algorithm=ALGORITHM)
    with pytest.raises(pyjwt.PyJWTError):
        decode_token(token)


def test_decode_token_rejects_expired():
    now = int(time.time())
    token = pyjwt.encode(
        {"sub": "7", "aud": "mlbuild", "iss": "mlbuild", "iat": now - 200, "exp": now - 100},
        TEST_JWT_SECRET,
        algorithm=ALGORITHM,
    )
    with pytest.raises(pyjwt.ExpiredSignatureError):
        decode_token(token)


def test_decode_token_rejects_foreign_audience():
    now = int(time.time())
    token = pyjwt.encode(
        {"sub": "7", "aud": "someone-else", "iss": "mlbuild", "iat": now, "exp": now + 60},
        TEST_JWT_SECRET,
        algorithm=ALGORITHM,
    )
    with pytest.raises(pyjwt.PyJWTError):
        decode_token(token)


# ---------------------------------------------------------------------------
# Capability checks
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("caller, owner, expected", [
    (7, 7, True),
    ("7", 7, True),
    (7, 8, False),
    (None, 7, False),
    (7, None, False),
])
def test_is_owner(caller, owner, expected):
    assert is_owner(caller, owner) is expected


def test_is_admin():
    assert is_admin({"id": 1, "role": ROLE_ADMIN}) is True
    assert is_admin({"id": 7, "role": ROLE_USER}) is False
    assert is_admin({"id": 7}) is False
    assert is_admin(None) is False
