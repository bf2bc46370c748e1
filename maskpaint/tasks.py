import logging
from typing import Any

from maskpaint.celery_app import celery_app
from maskpaint.config import settings
from maskpaint.generation.assembler import GenerationRequest
from maskpaint.generation.fal import create_default_inpaint_adapter, rehost_image
from maskpaint.storage.base import create_default_storage


logger = logging.getLogger(__name__)


@celery_app.task(name="maskpaint.tasks.run_inpaint_generation")
def run_inpaint_generation(request_data: dict[str, Any]) -> dict[str, Any]:
    request = GenerationRequest.from_dict(request_data)
    adapter = create_default_inpaint_adapter()

    try:
        result = adapter.submit(request)
        image_url = result.result_image_url
        if settings.rehost_generated_images:
            image_url = rehost_image(image_url, create_default_storage())
    except Exception:
        logger.exception("inpaint generation failed (mask=%s)", request.mask_ref)
        raise

    params = request.parameters
    logger.info("inpaint generation completed: %s", image_url)
    return {
        "image_url": image_url,
        "source_image_url": result.result_image_url,
        "mask_url": request.mask_ref,
        "prompt": request.prompt_text,
        "seed": result.seed,
        "has_nsfw_concepts": result.safety_flags,
        "processing_details": {
            "inference_steps": params.num_inference_steps,
            "guidance_scale": params.guidance_scale,
            "strength": params.strength,
            "output_format": params.output_format,
            "model": settings.fal_model_label,
            "acceleration": params.acceleration,
        },
    }
