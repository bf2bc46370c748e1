"""
Tests for building outbound generation and assist requests.
"""

import numpy as np
import pytest

from maskpaint.canvas.types import ResolvedMask
from maskpaint.errors import ValidationError
from maskpaint.generation.assembler import GenerationRequest, InpaintParameters, RequestAssembler


def _mask(painted=True):
    pixels = np.zeros((30, 40, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    if painted:
        pixels[10:20, 10:20] = 255
    return ResolvedMask(pixels=pixels)


class TestBuildGenerationRequest:
    """Tests for RequestAssembler.build."""

    def test_builds_request_and_uploads_mask(self, memory_storage):
        """A valid request uploads the mask and references it by URL."""
        request = RequestAssembler(memory_storage).build("https://cdn/src.png", "  add a hat ", _mask())

        assert request.prompt_text == "add a hat"
        assert request.source_image_ref == "https://cdn/src.png"
        assert request.mask_ref.startswith("memory://mask/")
        assert request.mask_ref != request.source_image_ref
        assert memory_storage.blobs[request.mask_ref].startswith(b"\x89PNG")
        assert memory_storage.calls == [("mask", "image/png", len(memory_storage.blobs[request.mask_ref]))]

    def test_missing_prompt(self, memory_storage):
        """The prompt is checked first."""
        with pytest.raises(ValidationError, match="Please enter a prompt"):
            RequestAssembler(memory_storage).build("https://cdn/src.png", "   ", _mask())
        assert memory_storage.calls == []

    def test_missing_image(self, memory_storage):
        """An image is required once a prompt is given."""
        with pytest.raises(ValidationError, match="Please upload an image first"):
            RequestAssembler(memory_storage).build(None, "add a hat", _mask())

    @pytest.mark.parametrize("mask", [None, _mask(painted=False)])
    def test_missing_or_blank_mask(self, memory_storage, mask):
        """A missing or all-black mask is rejected without uploading."""
        with pytest.raises(ValidationError, match="Please paint a mask"):
            RequestAssembler(memory_storage).build("https://cdn/src.png", "add a hat", mask)
        assert memory_storage.calls == []

    def test_payload_shape(self, memory_storage):
        """The inpaint payload carries image, mask, prompt and parameters."""
        params = InpaintParameters().with_overrides(strength=0.5, guidance_scale=None)
        request = RequestAssembler(memory_storage).build("https://cdn/src.png", "sky", _mask(), params)
        payload = request.to_payload()

        assert payload["image_url"] == "https://cdn/src.png"
        assert payload["reference_image_url"] == "https://cdn/src.png"
        assert payload["mask_url"] == request.mask_ref
        assert payload["prompt"] == "sky"
        assert payload["strength"] == 0.5
        assert payload["guidance_scale"] == InpaintParameters().guidance_scale
        assert payload["loras"] == []

    def test_request_round_trips_through_task_payload(self, memory_storage):
        """Requests survive the JSON-friendly dict used for task queues."""
        request = RequestAssembler(memory_storage).build("https://cdn/src.png", "sky", _mask())

        assert GenerationRequest.from_dict(request.to_dict()) == request


class TestBuildAssistRequest:
    """Tests for RequestAssembler.build_assist."""

    def test_uploads_saved_mask(self, memory_storage):
        """The saved mask is externalised for the multimodal call."""
        request = RequestAssembler(memory_storage).build_assist(
            "https://cdn/src.png",
            "describe",
            developer_instruction="  be brief ",
            saved_mask=_mask(),
        )

        assert request.saved_mask_ref.startswith("memory://saved-mask/")
        assert request.developer_instruction == "be brief"

    def test_without_saved_mask(self, memory_storage):
        """No saved mask means no upload and a blank instruction is dropped."""
        request = RequestAssembler(memory_storage).build_assist(
            "https://cdn/src.png",
            "describe",
            developer_instruction="   ",
        )

        assert request.saved_mask_ref is None
        assert request.developer_instruction is None
        assert memory_storage.calls == []

    def test_requires_prompt(self, memory_storage):
        """Assist requests need a prompt too."""
        with pytest.raises(ValidationError):
            RequestAssembler(memory_storage).build_assist("https://cdn/src.png", "")
