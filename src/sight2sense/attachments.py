"""Image attachment validation and loading."""

from __future__ import annotations

import logging
from pathlib import Path

from .exceptions import AttachmentError
from .models import ImagePayload

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".heic", ".heif"}
)
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


def validate_image_path(path: str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> Path:
    """Resolve ``path`` and check existence, type and size.

    Raises:
        AttachmentError: with a user-facing message describing the problem.
    """
    if not path.strip():
        raise AttachmentError("No image path given.")
    resolved = Path(path.strip()).expanduser().resolve()
    if not resolved.exists():
        raise AttachmentError(f"Image not found: {path}")
    if not resolved.is_file():
        raise AttachmentError(f"Not a file: {path}")
    if resolved.suffix.lower() not in IMAGE_EXTENSIONS:
        exts = ", ".join(sorted(IMAGE_EXTENSIONS))
        raise AttachmentError(f"Invalid image type. Allowed: {exts}")
    if resolved.stat().st_size > max_bytes:
        max_mb = max_bytes / (1024 * 1024)
        raise AttachmentError(f"Image too large (max {max_mb:.1f}MB)")
    return resolved


def load_image(path: str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> ImagePayload:
    """Validate and read an image file into a payload ready for staging."""
    resolved = validate_image_path(path, max_bytes=max_bytes)
    try:
        payload = ImagePayload.from_path(resolved)
    except OSError as exc:
        raise AttachmentError(f"Unable to read image {resolved.name}: {exc}") from exc
    LOGGER.info(
        "attachment.image.loaded",
        extra={
            "event": "attachment.image.loaded",
            "path": str(resolved),
            "mime_type": payload.mime_type,
            "bytes": payload.size,
        },
    )
    return payload
