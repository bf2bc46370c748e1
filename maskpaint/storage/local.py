from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlparse

from maskpaint.security.path_guard import ensure_safe_blob_path
from maskpaint.storage.base import blob_name


logger = logging.getLogger(__name__)

BLOB_ROUTE = "/api/v1/blobs"


class LocalBlobStorage:
    """Blob store on the local filesystem, served back by the blobs router."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def put(self, data: bytes, content_type: str, *, prefix: str = "upload") -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        name = blob_name(content_type, prefix)
        destination = self.root / name
        destination.write_bytes(data)
        logger.info("stored %d bytes (%s) as %s", len(data), content_type, name)
        return f"{self.public_base_url}{BLOB_ROUTE}/{name}"

    def path_for(self, name: str) -> Path:
        return ensure_safe_blob_path(self.root, name)

    def get(self, url: str) -> bytes:
        name = Path(urlparse(url).path).name
        return self.path_for(name).read_bytes()
