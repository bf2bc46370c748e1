from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from maskpaint.canvas.types import ResolvedMask
from maskpaint.config import settings
from maskpaint.errors import ValidationError
from maskpaint.storage.base import StoragePort


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InpaintParameters:
    num_inference_steps: int = field(default_factory=lambda: settings.inpaint_num_inference_steps)
    guidance_scale: float = field(default_factory=lambda: settings.inpaint_guidance_scale)
    strength: float = field(default_factory=lambda: settings.inpaint_strength)
    num_images: int = field(default_factory=lambda: settings.inpaint_num_images)
    enable_safety_checker: bool = field(default_factory=lambda: settings.inpaint_enable_safety_checker)
    output_format: str = field(default_factory=lambda: settings.inpaint_output_format)
    acceleration: str = field(default_factory=lambda: settings.inpaint_acceleration)

    def with_overrides(self, **overrides: Any) -> InpaintParameters:
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(slots=True)
class GenerationRequest:
    source_image_ref: str
    prompt_text: str
    mask_ref: str
    parameters: InpaintParameters = field(default_factory=InpaintParameters)

    def to_payload(self) -> dict[str, Any]:
        return {
            "image_url": self.source_image_ref,
            "prompt": self.prompt_text,
            # The endpoint requires a reference image; the source doubles as one.
            "reference_image_url": self.source_image_ref,
            "mask_url": self.mask_ref,
            **asdict(self.parameters),
            "loras": [],
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationRequest:
        return cls(
            source_image_ref=data["source_image_ref"],
            prompt_text=data["prompt_text"],
            mask_ref=data["mask_ref"],
            parameters=InpaintParameters(**data.get("parameters", {})),
        )


@dataclass(slots=True)
class AssistRequest:
    prompt_text: str
    source_image_ref: str
    developer_instruction: str | None = None
    saved_mask_ref: str | None = None


def _require_prompt_and_image(source_image_ref: str | None, prompt_text: str | None) -> tuple[str, str]:
    prompt = (prompt_text or "").strip()
    if not prompt:
        raise ValidationError("Please enter a prompt")
    source = (source_image_ref or "").strip()
    if not source:
        raise ValidationError("Please upload an image first")
    return source, prompt


class RequestAssembler:
    """Validates inputs, externalises masks and builds outbound requests.

    Network I/O goes through the injected storage port only.
    """

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage

    def build(
        self,
        source_image_ref: str | None,
        prompt_text: str | None,
        mask: ResolvedMask | None,
        params: InpaintParameters | None = None,
    ) -> GenerationRequest:
        source, prompt = _require_prompt_and_image(source_image_ref, prompt_text)
        if mask is None or mask.painted_pixels == 0:
            raise ValidationError("Please paint a mask over the area to edit")

        mask_ref = self._storage.put(mask.to_png(), "image/png", prefix="mask")
        logger.info("mask %dx%d uploaded to %s", mask.width, mask.height, mask_ref)
        return GenerationRequest(
            source_image_ref=source,
            prompt_text=prompt,
            mask_ref=mask_ref,
            parameters=params or InpaintParameters(),
        )

    def build_assist(
        self,
        source_image_ref: str | None,
        prompt_text: str | None,
        *,
        developer_instruction: str | None = None,
        saved_mask: ResolvedMask | None = None,
    ) -> AssistRequest:
        source, prompt = _require_prompt_and_image(source_image_ref, prompt_text)
        saved_mask_ref = None
        if saved_mask is not None:
            saved_mask_ref = self._storage.put(saved_mask.to_png(), "image/png", prefix="saved-mask")
        instruction = (developer_instruction or "").strip() or None
        return AssistRequest(
            prompt_text=prompt,
            source_image_ref=source,
            developer_instruction=instruction,
            saved_mask_ref=saved_mask_ref,
        )
