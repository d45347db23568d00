"""Shared test fixtures -- reduces boilerplate across test modules.

Provides:
- ``set_test_config`` -- autouse fixture that patches common settings
- ``USER_ID`` / ``OTHER_USER_ID`` / ``ADMIN_ID`` / ``HERO_ID`` -- reusable IDs
- ``MOCK_USER`` / ``MOCK_ADMIN`` -- user rows as returned by user_repo
- ``auth_header`` -- helper to generate JWT auth headers
- ``test_client`` -- pre-built TestClient against a fresh app
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from mlbuild.api.rate_limit import upload_limiter
from mlbuild.auth import ROLE_ADMIN, ROLE_USER, create_token
from mlbuild.main import create_app


def pytest_configure(config):
    """Register custom markers.

    Tests that need a real PostgreSQL should be decorated with
    ``@pytest.mark.integration`` and skipped with ``-m 'not integration'``.
    """
    config.addinivalue_line(
        "markers",
        "integration: tests requiring external services (database, etc.)",
    )


# ---------------------------------------------------------------------------
# Canonical test identifiers
# ---------------------------------------------------------------------------

USER_ID = 7
OTHER_USER_ID = 8
ADMIN_ID = 1
HERO_ID = 42

_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)

MOCK_USER: dict = {
    "id": USER_ID,
    "email": "player@example.com",
    "role": ROLE_USER,
    "created_at": _NOW,
    "updated_at": _NOW,
}

MOCK_ADMIN: dict = {
    "id": ADMIN_ID,
    "email": "admin@example.com",
    "role": ROLE_ADMIN,
    "created_at": _NOW,
    "updated_at": _NOW,
}

TEST_JWT_SECRET = "test-secret-key-for-unit-tests"


# ---------------------------------------------------------------------------
# Environment patching
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def set_test_config(monkeypatch, tmp_path):
    """Deterministic, non-production settings for every test.

    Uploads go to a per-test temp dir and the upload limiter starts empty.
    """
    monkeypatch.setattr("mlbuild.config.settings.JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr("mlbuild.config.settings.FRONTEND_URL", "http://localhost:5173")
    monkeypatch.setattr("mlbuild.config.settings.UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr("mlbuild.config.settings.BUILD_DELETE_COMPACTION", "lazy")
    monkeypatch.setattr("mlbuild.config.settings.BUILD_REORDER_STRICT", True)
    monkeypatch.setattr("mlbuild.config.settings.BUILD_QUOTA_PER_HERO", 3)
    upload_limiter.reset()
    yield
    upload_limiter.reset()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def auth_header(user_id: int = USER_ID, role: str = ROLE_USER) -> dict:
    """Return an ``Authorization`` header dict with a valid JWT."""
    token = create_token(str(user_id), role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_client() -> TestClient:
    """A fresh ``TestClient`` wrapping a new app instance."""
    return TestClient(create_app(), raise_server_exceptions=False)
