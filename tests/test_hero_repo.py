"""Tests for mlbuild/repos/hero_repo.py."""

from unittest.mock import AsyncMock, patch

import asyncpg
import pytest

from mlbuild.errors import BadRequestError
from mlbuild.repos import hero_repo


def _hero_row(**overrides):
    defaults = {
        "id": 42,
        "name": "Layla",
        "role": "Marksman",
        "hero_image_path": "uploads/heroes/a.png",
        "role_icon_path": "uploads/heroes/b.png",
    }
    defaults.update(overrides)
    return defaults


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_list_heroes_without_search(mock_get_pool):
    pool = AsyncMock()
    pool.fetch.return_value = [_hero_row()]
    mock_get_pool.return_value = pool

    result = await hero_repo.list_heroes()

    assert result[0]["name"] == "Layla"
    assert "ILIKE" not in pool.fetch.call_args[0][0]


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_list_heroes_escapes_like_wildcards(mock_get_pool):
    pool = AsyncMock()
    pool.fetch.return_value = []
    mock_get_pool.return_value = pool

    await hero_repo.list_heroes("50%_off")

    query, term = pool.fetch.call_args[0]
    assert "ILIKE" in query
    assert term == "50\\%\\_off"


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_exists(mock_get_pool):
    pool = AsyncMock()
    pool.fetchval.return_value = False
    mock_get_pool.return_value = pool

    assert await hero_repo.exists(999) is False


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_create_hero_duplicate_name(mock_get_pool):
    pool = AsyncMock()
    pool.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key")
    mock_get_pool.return_value = pool

    with pytest.raises(BadRequestError, match="already exists"):
        await hero_repo.create_hero("Layla", "Marksman", "a", "b")


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_update_hero_builds_set_clause(mock_get_pool):
    pool = AsyncMock()
    pool.fetchrow.return_value = _hero_row(role="Mage")
    mock_get_pool.return_value = pool

    result = await hero_repo.update_hero(42, role="Mage", id="99", name=None)

    assert result["role"] == "Mage"
    query, *args = pool.fetchrow.call_args[0]
    assert "role = $2" in query
    assert "id = $1" in query
    assert "name =" not in query
    assert args == [42, "Mage"]


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_update_hero_with_nothing_to_change_reads_row(mock_get_pool):
    pool = AsyncMock()
    pool.fetchrow.return_value = _hero_row()
    mock_get_pool.return_value = pool

    await hero_repo.update_hero(42)

    assert "SELECT" in pool.fetchrow.call_args[0][0]


@pytest.mark.asyncio
@patch("mlbuild.repos.hero_repo.get_pool")
async def test_delete_hero(mock_get_pool):
    pool = AsyncMock()
    pool.execute.return_value = "DELETE 0"
    mock_get_pool.return_value = pool

    assert await hero_repo.delete_hero(42) is False
