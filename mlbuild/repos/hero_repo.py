"""Hero repository -- database reads and writes for the heroes table."""

import asyncpg

from mlbuild.errors import BadRequestError
from mlbuild.repos.db import get_pool

_COLUMNS = "id, name, role, hero_image_path, role_icon_path, created_at, updated_at"

# Columns update_hero is allowed to touch.
_UPDATABLE = ("name", "role", "hero_image_path", "role_icon_path")


async def exists(hero_id: int) -> bool:
    """True if a hero with this id exists."""
    pool = await get_pool()
    found = await pool.fetchval(
        "SELECT EXISTS(SELECT 1 FROM heroes WHERE id = $1)",
        hero_id,
    )
    return bool(found)


async def get_hero_by_id(hero_id: int) -> dict | None:
    """Fetch a hero by primary key. Returns None if not found."""
    pool = await get_pool()
    row = await pool.fetchrow(
        f"SELECT {_COLUMNS} FROM heroes WHERE id = $1",
        hero_id,
    )
    return dict(row) if row else None


async def get_hero_by_name(name: str) -> dict | None:
    """Fetch a hero by exact name. Returns None if not found."""
    pool = await get_pool()
    row = await pool.fetchrow(
        f"SELECT {_COLUMNS} FROM heroes WHERE name = $1",
        name,
    )
    return dict(row) if row else None


async def list_heroes(search: str | None = None) -> list[dict]:
    """All heroes by name, or those whose name contains *search*."""
    pool = await get_pool()
    if not search:
        rows = await pool.fetch(f"SELECT {_COLUMNS} FROM heroes ORDER BY name ASC")
    else:
        rows = await pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM heroes
            WHERE name ILIKE '%' || $1 || '%'
            ORDER BY name ASC
            """,
            _escape_like(search),
        )
    return [dict(r) for r in rows]


async def create_hero(
    name: str,
    role: str,
    hero_image_path: str,
    role_icon_path: str,
) -> dict:
    """Insert a hero. Raises BadRequestError if the name is taken."""
    pool = await get_pool()
    try:
        row = await pool.fetchrow(
            f"""
            INSERT INTO heroes (name, role, hero_image_path, role_icon_path)
            VALUES ($1, $2, $3, $4)
            RETURNING {_COLUMNS}
            """,
            name,
            role,
            hero_image_path,
            role_icon_path,
        )
    except asyncpg.UniqueViolationError as exc:
        raise BadRequestError(f"Hero '{name}' already exists") from exc
    return dict(row)


async def update_hero(hero_id: int, **fields: str) -> dict | None:
    """Update the given columns. Returns the new row, or None if missing."""
    updates = {k: v for k, v in fields.items() if k in _UPDATABLE and v is not None}
    if not updates:
        return await get_hero_by_id(hero_id)

    assignments = ", ".join(
        f"{col} = ${i}" for i, col in enumerate(updates, start=2)
    )
    pool = await get_pool()
    try:
        row = await pool.fetchrow(
            f"""
            UPDATE heroes SET {assignments}, updated_at = now()
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            hero_id,
            *updates.values(),
        )
    except asyncpg.UniqueViolationError as exc:
        raise BadRequestError(f"Hero '{updates.get('name')}' already exists") from exc
    return dict(row) if row else None


async def delete_hero(hero_id: int) -> bool:
    """Delete a hero; its builds go with it (ON DELETE CASCADE)."""
    pool = await get_pool()
    result = await pool.execute("DELETE FROM heroes WHERE id = $1", hero_id)
    return result == "DELETE 1"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
