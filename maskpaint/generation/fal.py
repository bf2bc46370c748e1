from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol

import requests

from maskpaint.config import settings
from maskpaint.errors import ServiceError
from maskpaint.generation.assembler import GenerationRequest
from maskpaint.storage.base import StoragePort


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerationResult:
    result_image_url: str
    seed: int | None = None
    safety_flags: list[bool] = field(default_factory=list)


class InpaintAdapter(Protocol):
    def submit(self, request: GenerationRequest) -> GenerationResult:
        """Run one inpainting request and return the generated image reference."""


def extract_error_message(response: requests.Response, service: str = "inpainting service") -> str:
    fallback = f"{service} error ({response.status_code})"
    text = response.text or ""
    try:
        data = json.loads(text)
    except ValueError:
        return text.strip() or fallback

    if isinstance(data, dict):
        for key in ("detail", "error", "message"):
            value = data.get(key)
            if isinstance(value, dict) and value.get("message"):
                return str(value["message"])
            if value:
                return value if isinstance(value, str) else json.dumps(value)
    return text.strip() or fallback


class FalInpaintAdapter:
    """FLUX Kontext LoRA inpainting on fal.ai.

    Notes:
    - The service fetches the image and mask itself, so both must be
      reachable URLs.
    - Only the first returned image is used.
    """

    def __init__(
        self,
        api_key: str | None = None,
        endpoint: str | None = None,
        *,
        timeout: float | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.fal_key
        self._endpoint = endpoint or settings.fal_inpaint_url
        self._timeout = timeout if timeout is not None else settings.generation_timeout_seconds
        self._http = http or requests.Session()

    def submit(self, request: GenerationRequest) -> GenerationResult:
        if not self._api_key:
            raise ServiceError("FAL_KEY environment variable not configured")

        payload = request.to_payload()
        logger.info(
            "submitting inpaint request to %s (image=%s, mask=%s)",
            self._endpoint,
            request.source_image_ref,
            request.mask_ref,
        )
        try:
            response = self._http.post(
                self._endpoint,
                json=payload,
                headers={"Authorization": f"Key {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ServiceError(f"inpainting request failed: {exc}") from exc

        if not response.ok:
            message = extract_error_message(response)
            logger.warning("inpainting service returned %s: %s", response.status_code, message)
            raise ServiceError(message, status_code=response.status_code)

        try:
            data: dict[str, Any] = response.json()
        except ValueError as exc:
            raise ServiceError("inpainting service returned invalid JSON") from exc

        images = data.get("images") or []
        first = images[0] if images and isinstance(images[0], dict) else {}
        if not first.get("url"):
            raise ServiceError("No images returned from inpainting service")

        flags = data.get("has_nsfw_concepts") or []
        return GenerationResult(
            result_image_url=first["url"],
            seed=data.get("seed"),
            safety_flags=[bool(flag) for flag in flags],
        )


def rehost_image(
    url: str,
    storage: StoragePort,
    *,
    prefix: str = "inpaint-result",
    http: requests.Session | None = None,
    timeout: float | None = None,
) -> str:
    """Copy a generated image into our own storage and return the new URL."""
    http = http or requests.Session()
    timeout = settings.generation_timeout_seconds if timeout is None else timeout
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise ServiceError(f"Failed to download processed image: {exc}") from exc
    if not response.ok:
        raise ServiceError(
            f"Failed to download processed image ({response.status_code})",
            status_code=response.status_code,
        )
    content_type = response.headers.get("content-type", "image/png")
    return storage.put(response.content, content_type, prefix=prefix)


@lru_cache(maxsize=1)
def create_default_inpaint_adapter() -> InpaintAdapter:
    return FalInpaintAdapter()
