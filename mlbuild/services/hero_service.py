"""Hero service -- admin CRUD for hero records and their artwork."""

import logging

from mlbuild.errors import BadRequestError, NotFoundError, ValidationError
from mlbuild.repos import build_repo, hero_repo
from mlbuild.services import image_store

logger = logging.getLogger(__name__)


async def list_heroes(search: str | None = None) -> list[dict]:
    """All heroes, or those whose name contains *search* (case-insensitive)."""
    term = (search or "").strip()
    return await hero_repo.list_heroes(term or None)


async def get_hero(hero_id: int) -> dict:
    """Fetch one hero. Raises NotFoundError if missing."""
    hero = await hero_repo.get_hero_by_id(hero_id)
    if hero is None:
        raise NotFoundError("Hero not found")
    return hero


async def create_hero(
    name: str,
    role: str,
    hero_image: tuple[bytes, str | None] | None,
    role_icon: tuple[bytes, str | None] | None,
) -> dict:
    """Create a hero with both images.

    *hero_image* and *role_icon* are ``(data, content_type)`` pairs.
    """
    name = (name or "").strip()
    role = (role or "").strip()
    if not name or not role:
        raise ValidationError("Hero name and role are required")
    if not hero_image or not role_icon:
        raise ValidationError("Both hero image and role icon are required")
    if await hero_repo.get_hero_by_name(name) is not None:
        raise BadRequestError(f"Hero '{name}' already exists")

    stored: list[str] = []
    try:
        hero_ref = await image_store.store_image(*hero_image, kind=image_store.KIND_HEROES)
        stored.append(hero_ref)
        icon_ref = await image_store.store_image(*role_icon, kind=image_store.KIND_HEROES)
        stored.append(icon_ref)
        hero = await hero_repo.create_hero(name, role, hero_ref, icon_ref)
    except Exception:
        for ref in stored:
            await image_store.delete_image(ref)
        raise

    logger.info("Hero %s created: %s (%s)", hero["id"], name, role)
    return hero


async def update_hero(
    hero_id: int,
    name: str | None = None,
    role: str | None = None,
    hero_image: tuple[bytes, str | None] | None = None,
    role_icon: tuple[bytes, str | None] | None = None,
) -> dict:
    """Update any subset of a hero's fields; replaced images are removed."""
    current = await get_hero(hero_id)

    updates: dict[str, str] = {}
    if name and name.strip():
        updates["name"] = name.strip()
    if role and role.strip():
        updates["role"] = role.strip()

    new_refs: list[str] = []
    try:
        if hero_image:
            updates["hero_image_path"] = await image_store.store_image(
                *hero_image, kind=image_store.KIND_HEROES
            )
            new_refs.append(updates["hero_image_path"])
        if role_icon:
            updates["role_icon_path"] = await image_store.store_image(
                *role_icon, kind=image_store.KIND_HEROES
            )
            new_refs.append(updates["role_icon_path"])
        hero = await hero_repo.update_hero(hero_id, **updates)
    except Exception:
        for ref in new_refs:
            await image_store.delete_image(ref)
        raise

    if hero is None:
        # Deleted concurrently.
        for ref in new_refs:
            await image_store.delete_image(ref)
        raise NotFoundError("Hero not found")

    for col in ("hero_image_path", "role_icon_path"):
        if col in updates and current[col] != updates[col]:
            await image_store.delete_image(current[col])
    return hero


async def delete_hero(hero_id: int) -> None:
    """Delete a hero, its artwork, and (by cascade) every build under it."""
    hero = await get_hero(hero_id)
    build_images = await build_repo.list_image_paths_by_hero(hero_id)

    if not await hero_repo.delete_hero(hero_id):
        raise NotFoundError("Hero not found")

    for ref in [hero["hero_image_path"], hero["role_icon_path"], *build_images]:
        await image_store.delete_image(ref)
    logger.info(
        "Hero %s deleted with %d build(s)", hero_id, len(build_images),
    )
