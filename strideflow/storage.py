"""Local object storage for profile pictures.

Objects live under ``STORAGE_DIR`` and are served back at
``{PUBLIC_BASE_URL}/media/profile-pictures/{path}``. Callers validate content
type and size with :func:`validate_image` before calling :func:`upload`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from . import settings
from .errors import InvalidInput, NotFound, StorageError

logger = logging.getLogger(__name__)

BUCKET = "profile-pictures"
MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def validate_image(content_type: str | None, size: int) -> str:
    """Return the normalized content type, or raise InvalidInput."""
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct not in ALLOWED_CONTENT_TYPES:
        raise InvalidInput("Please select a JPEG, PNG, or WebP image")
    if size <= 0:
        raise InvalidInput("Image is empty")
    if size > MAX_IMAGE_BYTES:
        raise InvalidInput("Image must be smaller than 5MB")
    return ct


def build_image_path(user_id: str, content_type: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"{user_id}/{millis}.{ALLOWED_CONTENT_TYPES[content_type]}"


def _bucket_root() -> Path:
    return (Path(settings.STORAGE_DIR) / BUCKET).resolve()


def _resolve(path: str) -> Path:
    root = _bucket_root()
    target = (root / path).resolve()
    if root != target and root not in target.parents:
        raise InvalidInput(f"Invalid object path: {path}")
    return target


def public_url(path: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/media/{BUCKET}/{path}"


def upload(path: str, data: bytes) -> str:
    target = _resolve(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        # "xb": never overwrite an existing object
        with open(target, "xb") as f:
            f.write(data)
    except FileExistsError as exc:
        raise StorageError("The resource already exists") from exc
    except OSError as exc:
        logger.error("Upload to %s failed: %s", path, exc)
        raise StorageError("Failed to upload image. Please try again.") from exc

    logger.info("Stored object %s (%.1f KB)", path, len(data) / 1024)
    return public_url(path)


def open_object(path: str) -> Path:
    target = _resolve(path)
    if not target.is_file():
        raise NotFound("Object not found")
    return target


def remove(path: str) -> None:
    target = _resolve(path)
    try:
        target.unlink(missing_ok=True)
    except OSError as exc:
        logger.error("Removing %s failed: %s", path, exc)
        raise StorageError("Failed to remove image") from exc
    logger.info("Removed object %s", path)
