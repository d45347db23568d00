"""Image pipeline -- validate, resize and persist uploaded images on disk.

Stored refs are relative paths such as ``uploads/builds/<uuid>.jpg``; the
web tier serves ``UPLOAD_DIR`` as static files under the same prefix.
Deletion is best-effort: a file that cannot be removed is logged and
left behind rather than blocking the caller.
"""

from __future__ import annotations

import asyncio
import io
import logging
import uuid
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from mlbuild.config import settings
from mlbuild.errors import ValidationError

logger = logging.getLogger(__name__)

KIND_BUILDS = "builds"
KIND_HEROES = "heroes"

# content type -> file extension
_ALLOWED_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
}


def _upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def _ref_to_path(ref: str) -> Path | None:
    """Map a stored ref back to a file under UPLOAD_DIR, or None if it escapes."""
    root = _upload_root().resolve()
    prefix = f"{_upload_root().name}/"
    rel = ref[len(prefix):] if ref.startswith(prefix) else ref
    candidate = (root / rel).resolve()
    if root != candidate and root not in candidate.parents:
        return None
    return candidate


def _check_upload(data: bytes, content_type: str | None) -> str:
    """Return the extension for an acceptable upload, else raise."""
    if not data:
        raise ValidationError("Image file is empty")
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise ValidationError(
            f"Image too large ({len(data)} bytes, max {settings.UPLOAD_MAX_BYTES})"
        )
    ext = _ALLOWED_TYPES.get((content_type or "").lower())
    if ext is None:
        raise ValidationError("Images only (jpeg, jpg, png)!")
    return ext


def _resize_to_jpeg(data: bytes) -> bytes:
    """Fit inside BUILD_IMAGE_MAX_DIM square without enlarging; JPEG out."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            dim = settings.BUILD_IMAGE_MAX_DIM
            img.thumbnail((dim, dim))  # keeps aspect ratio, never upscales
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=settings.BUILD_IMAGE_QUALITY)
            return out.getvalue()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("Uploaded file is not a readable image") from exc


def _write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)


async def store_image(data: bytes, content_type: str | None, *, kind: str = KIND_BUILDS) -> str:
    """Persist an uploaded image and return its ref.

    Build images are resized and re-encoded as JPEG; hero artwork is kept
    as uploaded.  Raises :class:`ValidationError` for empty, oversized,
    or non-image uploads.
    """
    ext = _check_upload(data, content_type)
    if kind == KIND_BUILDS:
        payload = await asyncio.to_thread(_resize_to_jpeg, data)
        ext = ".jpg"
    else:
        payload = data

    filename = f"{uuid.uuid4()}{ext}"
    path = _upload_root() / kind / filename
    await asyncio.to_thread(_write, path, payload)
    ref = f"{_upload_root().name}/{kind}/{filename}"
    logger.debug("Stored image %s (%d bytes)", ref, len(payload))
    return ref


async def delete_image(ref: str | None) -> bool:
    """Remove a stored image. Never raises.

    Returns True if the file is gone afterwards (including when it was
    already missing), False if removal failed.
    """
    if not ref:
        return True
    path = _ref_to_path(ref)
    if path is None:
        logger.warning("Refusing to delete image outside upload dir: %s", ref)
        return False
    try:
        await asyncio.to_thread(path.unlink, missing_ok=True)
    except OSError as exc:
        logger.warning("Image delete failed for %s: %s", ref, exc)
        return False
    return True
