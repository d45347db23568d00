"""Heroes router -- public hero catalog plus admin-only management."""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from mlbuild.api.deps import require_admin
from mlbuild.services import hero_service

router = APIRouter(prefix="/heroes", tags=["heroes"])


def _hero_out(hero: dict) -> dict:
    return {
        "id": hero["id"],
        "name": hero["name"],
        "role": hero["role"],
        "heroImagePath": hero["hero_image_path"],
        "roleIconPath": hero["role_icon_path"],
        "createdAt": hero.get("created_at"),
        "updatedAt": hero.get("updated_at"),
    }


async def _read_upload(upload: UploadFile | None) -> tuple[bytes, str | None] | None:
    if upload is None:
        return None
    data = await upload.read()
    if not data:
        return None
    return data, upload.content_type


@router.get("")
async def list_heroes(
    search: str | None = Query(None, max_length=100),
) -> list[dict]:
    """List heroes, optionally filtered by a name substring."""
    heroes = await hero_service.list_heroes(search)
    return [_hero_out(h) for h in heroes]


@router.get("/{hero_id}")
async def get_hero(hero_id: int) -> dict:
    """Get one hero."""
    return _hero_out(await hero_service.get_hero(hero_id))


@router.post("")
async def create_hero(
    name: str = Form(..., min_length=1, max_length=255),
    role: str = Form(..., min_length=1, max_length=255),
    hero_image: UploadFile | None = File(None),
    role_icon: UploadFile | None = File(None),
    _admin: dict = Depends(require_admin),
) -> dict:
    """Create a hero (admin only)."""
    hero = await hero_service.create_hero(
        name,
        role,
        await _read_upload(hero_image),
        await _read_upload(role_icon),
    )
    return _hero_out(hero)


@router.put("/{hero_id}")
async def update_hero(
    hero_id: int,
    name: str | None = Form(None, max_length=255),
    role: str | None = Form(None, max_length=255),
    hero_image: UploadFile | None = File(None),
    role_icon: UploadFile | None = File(None),
    _admin: dict = Depends(require_admin),
) -> dict:
    """Update a hero's name, role or images (admin only)."""
    hero = await hero_service.update_hero(
        hero_id,
        name=name,
        role=role,
        hero_image=await _read_upload(hero_image),
        role_icon=await _read_upload(role_icon),
    )
    return _hero_out(hero)


@router.delete("/{hero_id}")
async def delete_hero(
    hero_id: int,
    _admin: dict = Depends(require_admin),
) -> dict:
    """Delete a hero and every build under it (admin only)."""
    await hero_service.delete_hero(hero_id)
    return {"msg": "Hero deleted"}
