from __future__ import annotations

import io
import re
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from maskpaint.config import settings
from maskpaint.errors import ValidationError


_SAFE_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")


@dataclass(slots=True)
class ImageUpload:
    data: bytes
    content_type: str
    width: int
    height: int
    file_name: str


def _safe_name(name: str) -> str:
    cleaned = _SAFE_NAME_PATTERN.sub("_", name).strip("._")
    return cleaned or "upload.png"


def inspect_image_upload(
    data: bytes,
    content_type: str | None,
    file_name: str | None = None,
    *,
    max_bytes: int | None = None,
) -> ImageUpload:
    max_bytes = settings.max_upload_bytes if max_bytes is None else max_bytes
    content_type = (content_type or "").lower()

    if not content_type.startswith("image/"):
        raise ValidationError("Please select a valid image file (PNG, JPG, GIF, etc.)")
    if len(data) > max_bytes:
        raise ValidationError(
            f"Image file size must be less than {max_bytes // (1024 * 1024)}MB"
        )
    if not data:
        raise ValidationError("Uploaded image is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError(f"Uploaded file is not a readable image: {exc}") from exc

    return ImageUpload(
        data=data,
        content_type=content_type,
        width=width,
        height=height,
        file_name=_safe_name(file_name or "upload.png"),
    )
