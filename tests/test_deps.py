"""Tests for the auth dependencies in mlbuild/api/deps.py."""

import time
from unittest.mock import AsyncMock, patch

import jwt as pyjwt

from mlbuild.auth import ALGORITHM
from tests.conftest import MOCK_USER, TEST_JWT_SECRET, USER_ID, auth_header


def _token(**claims) -> dict:
    now = int(time.time())
    payload = {"aud": "mlbuild", "iss": "mlbuild", "iat": now, "exp": now + 60, **claims}
    return {"Authorization": f"Bearer {pyjwt.encode(payload, TEST_JWT_SECRET, algorithm=ALGORITHM)}"}


def test_missing_token(test_client):
    resp = test_client.delete("/builds/1")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Missing authentication token"


def test_garbage_token(test_client):
    resp = test_client.delete("/builds/1", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid authentication token"


def test_expired_token(test_client):
    now = int(time.time())
    resp = test_client.delete("/builds/1", headers=_token(sub="7", iat=now - 100, exp=now - 50))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired"


def test_non_numeric_subject(test_client):
    resp = test_client.delete("/builds/1", headers=_token(sub="octocat"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token payload"


@patch("mlbuild.api.deps.get_user_by_id", new_callable=AsyncMock)
def test_unknown_user(mock_get_user, test_client):
    mock_get_user.return_value = None

    resp = test_client.delete("/builds/1", headers=auth_header())

    assert resp.status_code == 401
    assert resp.json()["detail"] == "User not found"
    mock_get_user.assert_awaited_once_with(USER_ID)


@patch("mlbuild.api.routers.builds.build_service.delete_build", new_callable=AsyncMock)
@patch("mlbuild.api.deps.get_user_by_id", new_callable=AsyncMock)
def test_known_user_passes(mock_get_user, mock_delete, test_client):
    mock_get_user.return_value = MOCK_USER

    resp = test_client.delete("/builds/1", headers=auth_header())

    assert resp.status_code == 200
