"""Table definitions, applied idempotently at startup.

Every statement uses IF NOT EXISTS so this is safe to re-run on each
restart.  There is no migration runner: additive changes go here.
"""

import logging

from mlbuild.repos.db import get_pool

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id              SERIAL PRIMARY KEY,
        email           VARCHAR(255) NOT NULL UNIQUE,
        role            VARCHAR(20) NOT NULL DEFAULT 'user',
        created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS heroes (
        id              SERIAL PRIMARY KEY,
        name            VARCHAR(255) NOT NULL UNIQUE,
        role            VARCHAR(255) NOT NULL,
        hero_image_path VARCHAR(500) NOT NULL,
        role_icon_path  VARCHAR(500) NOT NULL,
        created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    # display_order uniqueness is deferred to commit so that a whole
    # sequence can be rewritten inside one transaction.
    """
    CREATE TABLE IF NOT EXISTS hero_builds (
        id              SERIAL PRIMARY KEY,
        user_id         INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        hero_id         INTEGER NOT NULL REFERENCES heroes(id) ON DELETE CASCADE,
        title           VARCHAR(50) NOT NULL,
        image_path      VARCHAR(500) NOT NULL,
        display_order   INTEGER NOT NULL CHECK (display_order > 0),
        created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT unique_build_order_per_hero
            UNIQUE (user_id, hero_id, display_order)
            DEFERRABLE INITIALLY DEFERRED
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_hero_builds_hero_id ON hero_builds(hero_id)",
)


async def ensure_schema() -> None:
    """Create any missing tables and indexes."""
    pool = await get_pool()
    for stmt in SCHEMA_STATEMENTS:
        await pool.execute(stmt)
    logger.info("Schema ensured (%d statements).", len(SCHEMA_STATEMENTS))
