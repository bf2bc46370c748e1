from celery.result import AsyncResult
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from maskpaint import crud
from maskpaint.api.routes.sessions import require_session
from maskpaint.canvas.session import SessionRegistry, get_session_registry
from maskpaint.celery_app import celery_app
from maskpaint.db import get_db
from maskpaint.generation.assembler import InpaintParameters, RequestAssembler
from maskpaint.generation.multimodal import OpenAIAssistAdapter, create_default_assist_adapter
from maskpaint.schemas import (
    AssistRequestBody,
    AssistResponse,
    GenerateRequest,
    GenerationEnqueueResponse,
    GenerationStatusResponse,
)
from maskpaint.storage.base import StoragePort, create_default_storage
from maskpaint.tasks import run_inpaint_generation


router = APIRouter(tags=["generations"])

_TASK_STATES = {
    "PENDING": "pending",
    "RECEIVED": "pending",
    "STARTED": "started",
    "RETRY": "retry",
    "SUCCESS": "succeeded",
    "FAILURE": "failed",
    "REVOKED": "canceled",
}


@router.post(
    "/sessions/{session_id}/generate",
    response_model=GenerationEnqueueResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def enqueue_generation(
    session_id: str,
    payload: GenerateRequest,
    registry: SessionRegistry = Depends(get_session_registry),
    storage: StoragePort = Depends(create_default_storage),
) -> GenerationEnqueueResponse:
    session = require_session(session_id, registry)
    session.settle()
    mask, _ = session.mask.state()

    params = InpaintParameters().with_overrides(
        num_inference_steps=payload.num_inference_steps,
        guidance_scale=payload.guidance_scale,
        strength=payload.strength,
    )
    request = RequestAssembler(storage).build(session.source_image_ref, payload.prompt, mask, params)
    task = run_inpaint_generation.delay(request.to_dict())
    return GenerationEnqueueResponse(
        task_id=task.id,
        status="queued",
        image_url=request.source_image_ref,
        mask_url=request.mask_ref,
        prompt=request.prompt_text,
    )


@router.get("/generations/{task_id}", response_model=GenerationStatusResponse)
def get_generation(task_id: str) -> GenerationStatusResponse:
    result = AsyncResult(task_id, app=celery_app)
    state = _TASK_STATES.get(result.state, "pending")
    if state == "succeeded":
        return GenerationStatusResponse(task_id=task_id, status=state, result=result.result)
    if state == "failed":
        return GenerationStatusResponse(task_id=task_id, status=state, error_message=str(result.result))
    return GenerationStatusResponse(task_id=task_id, status=state)


@router.post("/generations/{task_id}/cancel", response_model=GenerationStatusResponse)
def cancel_generation(task_id: str) -> GenerationStatusResponse:
    # Mask state is untouched; only the queued/running task is revoked.
    celery_app.control.revoke(task_id)
    return GenerationStatusResponse(task_id=task_id, status="canceled")


@router.post("/sessions/{session_id}/assist", response_model=AssistResponse)
def assist(
    session_id: str,
    payload: AssistRequestBody,
    registry: SessionRegistry = Depends(get_session_registry),
    storage: StoragePort = Depends(create_default_storage),
    adapter: OpenAIAssistAdapter = Depends(create_default_assist_adapter),
    db: Session = Depends(get_db),
) -> AssistResponse:
    session = require_session(session_id, registry)

    developer_message = payload.developer_message
    if developer_message is None:
        developer_message = crud.get_preference_value(db, crud.DEVELOPER_MESSAGE_KEY)

    request = RequestAssembler(storage).build_assist(
        session.source_image_ref,
        payload.prompt,
        developer_instruction=developer_message,
        saved_mask=session.mask.saved_mask,
    )
    result = adapter.submit(request)
    return AssistResponse(
        text=result.text,
        images=result.images,
        developer_message=request.developer_instruction,
        saved_mask_url=request.saved_mask_ref,
        raw=result.raw,
    )
