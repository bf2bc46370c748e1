from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Protocol
from uuid import uuid4

from maskpaint.config import settings


_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
}


class StoragePort(Protocol):
    def put(self, data: bytes, content_type: str, *, prefix: str = "upload") -> str:
        """Store `data` and return a URL other services can fetch it from."""

    def get(self, url: str) -> bytes:
        """Return the bytes previously stored under `url`."""


def blob_name(content_type: str, prefix: str = "upload") -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
    ext = _EXTENSIONS.get(content_type.lower().split(";", 1)[0].strip(), ".bin")
    return f"{prefix}-{timestamp}-{uuid4().hex[:8]}{ext}"


@lru_cache(maxsize=1)
def create_default_storage() -> StoragePort:
    backend = settings.storage_backend.lower().strip()

    if backend == "s3":
        from maskpaint.storage.s3 import S3BlobStorage  # noqa: PLC0415 - boto3 only needed here

        return S3BlobStorage(bucket=settings.s3_bucket, region=settings.aws_region)

    if backend == "local":
        from maskpaint.storage.local import LocalBlobStorage  # noqa: PLC0415

        return LocalBlobStorage(settings.storage_root, settings.public_base_url)

    raise ValueError(f"unknown storage backend: {settings.storage_backend}")
