"""Build repository -- hero_builds rows and per-(owner, hero) display order.

Ownership is checked in the WHERE clause of every owner-scoped query so
that a lookup and the decision based on it cannot drift apart.
"""

import asyncpg

from mlbuild.errors import ConflictError, NotFoundError
from mlbuild.repos.db import get_pool, transaction

_COLUMNS = "id, user_id, hero_id, title, image_path, display_order, created_at, updated_at"


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


async def list_by_hero(hero_id: int) -> list[dict]:
    """All builds for a hero, every owner, ascending by display_order.

    Orders of different owners overlap; ties are broken by creation time
    and id so the listing is stable.
    """
    pool = await get_pool()
    rows = await pool.fetch(
        """
        SELECT b.id, b.user_id, b.hero_id, b.title, b.image_path,
               b.display_order, b.created_at, b.updated_at,
               u.email AS owner_email
        FROM hero_builds b
        LEFT JOIN users u ON u.id = b.user_id
        WHERE b.hero_id = $1
        ORDER BY b.display_order ASC, b.created_at ASC, b.id ASC
        """,
        hero_id,
    )
    return [dict(r) for r in rows]


async def list_by_owner_hero(owner_id: int, hero_id: int) -> list[dict]:
    """One owner's builds for a hero, in display order."""
    pool = await get_pool()
    rows = await pool.fetch(
        f"""
        SELECT {_COLUMNS} FROM hero_builds
        WHERE user_id = $1 AND hero_id = $2
        ORDER BY display_order ASC, id ASC
        """,
        owner_id,
        hero_id,
    )
    return [dict(r) for r in rows]


async def count_by_owner_hero(owner_id: int, hero_id: int) -> int:
    """Number of builds *owner_id* holds for *hero_id*."""
    pool = await get_pool()
    count = await pool.fetchval(
        "SELECT COUNT(*) FROM hero_builds WHERE user_id = $1 AND hero_id = $2",
        owner_id,
        hero_id,
    )
    return int(count or 0)


async def max_order(owner_id: int, hero_id: int) -> int:
    """Highest display_order in the (owner, hero) scope, 0 when empty."""
    pool = await get_pool()
    value = await pool.fetchval(
        """
        SELECT COALESCE(MAX(display_order), 0) FROM hero_builds
        WHERE user_id = $1 AND hero_id = $2
        """,
        owner_id,
        hero_id,
    )
    return int(value or 0)


async def find_owned(build_id: int, owner_id: int) -> dict | None:
    """Fetch a build only if *owner_id* owns it. Returns None otherwise."""
    pool = await get_pool()
    row = await pool.fetchrow(
        f"SELECT {_COLUMNS} FROM hero_builds WHERE id = $1 AND user_id = $2",
        build_id,
        owner_id,
    )
    return dict(row) if row else None


async def list_image_paths_by_hero(hero_id: int) -> list[str]:
    """Image refs of every build under a hero (for cascade cleanup)."""
    pool = await get_pool()
    rows = await pool.fetch(
        "SELECT image_path FROM hero_builds WHERE hero_id = $1",
        hero_id,
    )
    return [r["image_path"] for r in rows]


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------


async def insert(
    owner_id: int,
    hero_id: int,
    title: str,
    image_path: str,
    display_order: int,
    *,
    quota: int | None = None,
) -> dict | None:
    """Persist a new build at a caller-chosen display_order.

    With *quota*, the row is written only while the owner holds fewer
    than *quota* builds for the hero; the count and the insert are one
    statement.  Returns None when the quota guard rejects the row.

    Raises :class:`ConflictError` if the (owner, hero, display_order)
    slot is already taken, :class:`NotFoundError` if the hero is gone.
    """
    args = [owner_id, hero_id, title, image_path, display_order]
    if quota is None:
        query = f"""
            INSERT INTO hero_builds (user_id, hero_id, title, image_path, display_order)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING {_COLUMNS}
            """
    else:
        query = f"""
            INSERT INTO hero_builds (user_id, hero_id, title, image_path, display_order)
            SELECT $1::integer, $2::integer, $3::varchar, $4::varchar, $5::integer
            WHERE (
                SELECT COUNT(*) FROM hero_builds WHERE user_id = $1 AND hero_id = $2
            ) < $6
            RETURNING {_COLUMNS}
            """
        args.append(quota)

    pool = await get_pool()
    try:
        row = await pool.fetchrow(query, *args)
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError(
            f"Display order {display_order} already taken for this hero"
        ) from exc
    except asyncpg.ForeignKeyViolationError as exc:
        raise NotFoundError("Hero not found") from exc
    return dict(row) if row else None


async def destroy(build_id: int, owner_id: int) -> bool:
    """Delete a single build. Returns True if a row was removed."""
    pool = await get_pool()
    result = await pool.execute(
        "DELETE FROM hero_builds WHERE id = $1 AND user_id = $2",
        build_id,
        owner_id,
    )
    return result == "DELETE 1"


async def set_order(
    build_id: int,
    hero_id: int,
    new_order: int,
    *,
    owner_id: int | None = None,
    conn=None,
) -> bool:
    """Update one build's display_order, scoped by hero (and owner if given).

    Pass *conn* to run inside an open transaction.  Returns True if a
    row was updated.
    """
    executor = conn if conn is not None else await get_pool()
    if owner_id is None:
        result = await executor.execute(
            """
            UPDATE hero_builds SET display_order = $3, updated_at = now()
            WHERE id = $1 AND hero_id = $2
            """,
            build_id,
            hero_id,
            new_order,
        )
    else:
        result = await executor.execute(
            """
            UPDATE hero_builds SET display_order = $3, updated_at = now()
            WHERE id = $1 AND hero_id = $2 AND user_id = $4
            """,
            build_id,
            hero_id,
            new_order,
            owner_id,
        )
    return result == "UPDATE 1"


async def set_orders(hero_id: int, owner_id: int, ordered_ids: list[int]) -> int:
    """Rewrite an owner's sequence: ``ordered_ids[i]`` gets order ``i + 1``.

    Runs in a single transaction; ids outside the (owner, hero) scope
    match no row and are skipped.  Returns the number of rows updated.

    Raises :class:`ConflictError` (and writes nothing) if the result
    would leave two builds on the same order, e.g. a partial list.
    """
    updated = 0
    try:
        async with transaction() as conn:
            for position, build_id in enumerate(ordered_ids, start=1):
                if await set_order(build_id, hero_id, position, owner_id=owner_id, conn=conn):
                    updated += 1
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError("Build order conflict") from exc
    return updated


async def destroy_and_compact(build_id: int, owner_id: int, hero_id: int) -> int:
    """Delete a build and renumber the owner's remaining builds to 1..N.

    Both steps share one transaction.  Returns N, the remaining count.
    """
    async with transaction() as conn:
        await conn.execute(
            "DELETE FROM hero_builds WHERE id = $1 AND user_id = $2",
            build_id,
            owner_id,
        )
        return await _compact(conn, owner_id, hero_id)


async def _compact(conn, owner_id: int, hero_id: int) -> int:
    """Renumber an owner's builds for a hero to 1..N, keeping relative order."""
    rows = await conn.fetch(
        """
        SELECT id, display_order FROM hero_builds
        WHERE user_id = $1 AND hero_id = $2
        ORDER BY display_order ASC, id ASC
        """,
        owner_id,
        hero_id,
    )
    for position, row in enumerate(rows, start=1):
        if row["display_order"] != position:
            await conn.execute(
                "UPDATE hero_builds SET display_order = $2, updated_at = now() WHERE id = $1",
                row["id"],
                position,
            )
    return len(rows)
