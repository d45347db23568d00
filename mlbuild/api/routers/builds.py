"""Builds router -- list, upload, delete and reorder a user's hero builds."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from mlbuild.api.deps import get_current_user
from mlbuild.api.rate_limit import upload_limiter
from mlbuild.errors import ValidationError
from mlbuild.services import build_service

router = APIRouter(tags=["builds"])


class ReorderRequest(BaseModel):
    """Request body for reordering builds: the caller's ids, in display order."""

    model_config = ConfigDict(populate_by_name=True)

    build_ids: list[int] = Field(..., alias="buildIds")


def _build_out(build: dict) -> dict:
    out = {
        "id": build["id"],
        "ownerId": build["user_id"],
        "heroId": build["hero_id"],
        "title": build["title"],
        "imageRef": build["image_path"],
        "displayOrder": build["display_order"],
        "createdAt": build.get("created_at"),
    }
    if "owner_email" in build:
        out["ownerEmail"] = build["owner_email"]
    return out


# ── GET /heroes/{hero_id}/builds ──────────────────────────────────────────


@router.get("/heroes/{hero_id}/builds")
async def list_builds(hero_id: int) -> list[dict]:
    """All builds for a hero, every owner, ascending by display order."""
    builds = await build_service.list_builds(hero_id)
    return [_build_out(b) for b in builds]


# ── POST /heroes/{hero_id}/builds ─────────────────────────────────────────


@router.post("/heroes/{hero_id}/builds")
async def create_build(
    hero_id: int,
    title: str | None = Form(None),
    build_image: UploadFile | None = File(None),
    user: dict = Depends(get_current_user),
) -> dict:
    """Upload a build image for a hero (appended after the caller's others)."""
    if not upload_limiter.is_allowed(str(user["id"])):
        raise HTTPException(
            status_code=429,
            detail="Too many uploads, please try again later",
        )
    if build_image is None:
        raise ValidationError("Build image is required")

    data = await build_image.read()
    build = await build_service.create_build(
        user["id"], hero_id, title, data, build_image.content_type,
    )
    return _build_out(build)


# ── DELETE /builds/{build_id} ─────────────────────────────────────────────


@router.delete("/builds/{build_id}")
async def delete_build(
    build_id: int,
    user: dict = Depends(get_current_user),
) -> dict:
    """Delete one of the caller's builds (404 if missing or not theirs)."""
    await build_service.delete_build(user["id"], build_id)
    return {"msg": "Build deleted"}


# ── PUT /heroes/{hero_id}/builds/reorder ──────────────────────────────────


@router.put("/heroes/{hero_id}/builds/reorder")
async def reorder_builds(
    hero_id: int,
    body: ReorderRequest,
    user: dict = Depends(get_current_user),
) -> dict:
    """Persist the caller's drag-and-drop order for their builds under a hero."""
    await build_service.reorder_builds(hero_id, body.build_ids, user["id"])
    return {"msg": "Builds reordered"}
