"""User repository -- read-only access to the users table.

Accounts are created by the upstream identity service.
"""

from mlbuild.repos.db import get_pool


async def get_user_by_id(user_id: int) -> dict | None:
    """Fetch a user by primary key. Returns None if not found."""
    pool = await get_pool()
    row = await pool.fetchrow(
        "SELECT id, email, role, created_at, updated_at FROM users WHERE id = $1",
        user_id,
    )
    return dict(row) if row else None
