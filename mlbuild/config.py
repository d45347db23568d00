"""Application configuration loaded from environment variables.

Uses ``pydantic-settings`` for automatic env-var loading, type coercion,
and ``.env`` file support.  Validates required settings on import -- fails
fast if critical vars are missing outside of tests.
"""

VERSION = "0.1.0"

import sys
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Required var names -- checked after instantiation (not during), so tests
# that leave them blank still work.
# ---------------------------------------------------------------------------
_REQUIRED_VARS: list[str] = [
    "DATABASE_URL",
    "JWT_SECRET",
]


class Settings(BaseSettings):
    """Application settings -- sourced from environment / ``.env`` file.

    Required vars (must be set in production, may be blank in test):
      DATABASE_URL, JWT_SECRET
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- required in production (default empty so tests don't fail) --
    DATABASE_URL: str = ""
    JWT_SECRET: str = ""

    # -- optional with sensible defaults --
    FRONTEND_URL: str = "http://localhost:5173"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Uploaded images live under UPLOAD_DIR; stored refs are relative to
    # its parent, e.g. "uploads/builds/<uuid>.jpg".
    UPLOAD_DIR: str = "uploads"
    UPLOAD_MAX_BYTES: int = 2 * 1024 * 1024  # 2 MiB

    # -------------------------------------------------------------------------
    # Build ordering / quota
    #
    # BUILD_DELETE_COMPACTION:
    #   "lazy"  -- deleting a build leaves a gap in the owner's sequence until
    #             the next reorder rewrites it
    #   "eager" -- remaining builds are renumbered 1..N-1 in the same
    #             transaction as the delete
    # -------------------------------------------------------------------------
    BUILD_QUOTA_PER_HERO: int = Field(default=3, ge=1)
    BUILD_TITLE_MAX_LENGTH: int = 50
    BUILD_IMAGE_MAX_DIM: int = 800
    BUILD_IMAGE_QUALITY: int = Field(default=80, ge=1, le=95)
    BUILD_DELETE_COMPACTION: Literal["lazy", "eager"] = "lazy"
    # Reject reorder submissions that are not exactly the caller's builds.
    BUILD_REORDER_STRICT: bool = True

    # Upload limiter -- per user, sliding window.
    UPLOAD_RATE_LIMIT: int = 20
    UPLOAD_RATE_WINDOW_SECONDS: int = 3600


settings = Settings()


# Validate at import time -- but only when NOT running under pytest.
if "pytest" not in sys.modules:
    _missing = [v for v in _REQUIRED_VARS if not getattr(settings, v)]
    if _missing:
        print(
            f"[config] FATAL: missing required environment variables: "
            f"{', '.join(_missing)}",
            file=sys.stderr,
        )
        sys.exit(1)
