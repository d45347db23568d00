"""Build service -- per-user build quota and display ordering under a hero.

Invariants kept here, for every (owner, hero) scope:

* at most ``BUILD_QUOTA_PER_HERO`` builds;
* display orders are unique, new builds append at ``max + 1``;
* with ``BUILD_DELETE_COMPACTION = "eager"`` the orders are always 1..N.
  With ``"lazy"`` a delete leaves a gap until the next reorder.

This module is the only writer of hero_builds rows.
"""

import logging

from mlbuild.auth import is_owner
from mlbuild.config import settings
from mlbuild.errors import ConflictError, NotFoundError, QuotaExceededError, ValidationError
from mlbuild.repos import build_repo, hero_repo
from mlbuild.services import image_store

logger = logging.getLogger(__name__)

# One retry on a display-order collision: a concurrent create by the same
# owner took our slot between max_order() and insert().
_CREATE_ATTEMPTS = 2


def _quota_message() -> str:
    return f"Maximum {settings.BUILD_QUOTA_PER_HERO} builds allowed per hero"


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Build title is required")
    if len(cleaned) > settings.BUILD_TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Build title must be at most {settings.BUILD_TITLE_MAX_LENGTH} characters"
        )
    return cleaned


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


async def list_builds(hero_id: int) -> list[dict]:
    """All builds for a hero, ascending by display order."""
    return await build_repo.list_by_hero(hero_id)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def _check_quota(owner_id: int, hero_id: int) -> None:
    count = await build_repo.count_by_owner_hero(owner_id, hero_id)
    if count >= settings.BUILD_QUOTA_PER_HERO:
        raise QuotaExceededError(_quota_message())


async def create_build(
    owner_id: int,
    hero_id: int,
    title: str | None,
    image_data: bytes | None,
    content_type: str | None = None,
) -> dict:
    """Create a build at the end of the owner's sequence for *hero_id*.

    The image is stored first; the row is inserted only once the image is
    on disk, and the image is removed again if the insert fails.

    Raises:
        ValidationError: missing/oversized title, or missing/invalid image.
        NotFoundError: the hero does not exist.
        QuotaExceededError: the owner already holds the maximum for this hero.
        ConflictError: the order slot was taken twice in a row.
    """
    clean_title = _clean_title(title)
    if not image_data:
        raise ValidationError("Build image is required")

    if not await hero_repo.exists(hero_id):
        raise NotFoundError("Hero not found")

    await _check_quota(owner_id, hero_id)

    image_ref = await image_store.store_image(
        image_data, content_type, kind=image_store.KIND_BUILDS
    )
    try:
        build = await _insert_at_end(owner_id, hero_id, clean_title, image_ref)
    except Exception:
        await image_store.delete_image(image_ref)
        raise

    logger.info(
        "Build %s created: user=%s hero=%s order=%d",
        build["id"], owner_id, hero_id, build["display_order"],
    )
    return build


async def _insert_at_end(owner_id: int, hero_id: int, title: str, image_ref: str) -> dict:
    # The up-front quota check happens before the image is processed, so a
    # concurrent create can fill the last slot meanwhile; the insert repeats
    # the count in the same statement and returns None when over quota.
    for attempt in range(1, _CREATE_ATTEMPTS + 1):
        next_order = await build_repo.max_order(owner_id, hero_id) + 1
        try:
            build = await build_repo.insert(
                owner_id, hero_id, title, image_ref, next_order,
                quota=settings.BUILD_QUOTA_PER_HERO,
            )
        except ConflictError:
            if attempt == _CREATE_ATTEMPTS:
                raise
            logger.warning(
                "Display order %d taken for user=%s hero=%s -- retrying",
                next_order, owner_id, hero_id,
            )
            continue
        if build is None:
            raise QuotaExceededError(_quota_message())
        return build
    raise ConflictError()  # unreachable


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


async def delete_build(owner_id: int, build_id: int) -> None:
    """Delete one of the caller's builds.

    A build that does not exist and a build owned by someone else both
    raise ``NotFoundError("Build not found")``.
    """
    build = await build_repo.find_owned(build_id, owner_id)
    if build is None or not is_owner(owner_id, build["user_id"]):
        raise NotFoundError("Build not found")

    if not await image_store.delete_image(build["image_path"]):
        logger.warning(
            "Build %s: image %s could not be removed, deleting record anyway",
            build_id, build["image_path"],
        )

    if settings.BUILD_DELETE_COMPACTION == "eager":
        remaining = await build_repo.destroy_and_compact(build_id, owner_id, build["hero_id"])
        logger.info(
            "Build %s deleted: user=%s hero=%s, %d remaining renumbered",
            build_id, owner_id, build["hero_id"], remaining,
        )
    else:
        await build_repo.destroy(build_id, owner_id)
        logger.info("Build %s deleted: user=%s hero=%s", build_id, owner_id, build["hero_id"])


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------


async def reorder_builds(hero_id: int, ordered_build_ids: list[int], owner_id: int) -> None:
    """Apply the caller's drag-and-drop order: position i gets order i + 1.

    The whole sequence is written in one transaction, scoped to the
    caller's builds under *hero_id*.  Re-submitting the same list gives
    the same result.

    With ``BUILD_REORDER_STRICT`` the list must hold each of the caller's
    current builds for the hero exactly once, otherwise
    :class:`ValidationError` is raised and nothing is written.
    """
    if settings.BUILD_REORDER_STRICT:
        await _check_reorder_set(hero_id, ordered_build_ids, owner_id)

    updated = await build_repo.set_orders(hero_id, owner_id, list(ordered_build_ids))
    if updated != len(ordered_build_ids):
        logger.info(
            "Reorder user=%s hero=%s: %d of %d ids applied",
            owner_id, hero_id, updated, len(ordered_build_ids),
        )


async def _check_reorder_set(hero_id: int, ordered_build_ids: list[int], owner_id: int) -> None:
    if len(set(ordered_build_ids)) != len(ordered_build_ids):
        raise ValidationError("Build ids must not repeat")
    current = await build_repo.list_by_owner_hero(owner_id, hero_id)
    if {b["id"] for b in current} != set(ordered_build_ids):
        raise ValidationError("Build ids must match your builds for this hero")
