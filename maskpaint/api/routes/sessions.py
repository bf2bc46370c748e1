from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status

from maskpaint.canvas.session import EditSession, SessionRegistry, get_session_registry
from maskpaint.config import settings
from maskpaint.schemas import (
    BrushLimits,
    MaskStateResponse,
    SessionResponse,
    StrokeCreateRequest,
    ViewportUpdateRequest,
    ViewportUpdateResponse,
)
from maskpaint.storage.base import StoragePort, create_default_storage
from maskpaint.storage.uploads import ImageUpload, inspect_image_upload


router = APIRouter(prefix="/sessions", tags=["sessions"])


def require_session(session_id: str, registry: SessionRegistry) -> EditSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _store_upload(upload: UploadFile, storage: StoragePort) -> tuple[str, ImageUpload]:
    # One byte past the limit is enough to reject an oversized upload.
    data = upload.file.read(settings.max_upload_bytes + 1)
    inspected = inspect_image_upload(data, upload.content_type, upload.filename)
    url = storage.put(inspected.data, inspected.content_type, prefix="upload")
    return url, inspected


def _session_response(session: EditSession, file_name: str | None = None) -> SessionResponse:
    state = MaskStateResponse.from_session(session)
    return SessionResponse(
        **state.model_dump(),
        image_url=session.source_image_ref,
        file_name=file_name,
        brush=BrushLimits(
            min=settings.brush_size_min,
            max=settings.brush_size_max,
            default=settings.brush_size_default,
        ),
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    file: UploadFile = File(...),
    container_width: int | None = Form(None),
    registry: SessionRegistry = Depends(get_session_registry),
    storage: StoragePort = Depends(create_default_storage),
) -> SessionResponse:
    url, inspected = _store_upload(file, storage)
    session = registry.create(url, inspected.width, inspected.height, container_width)
    return _session_response(session, inspected.file_name)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    session = require_session(session_id, registry)
    session.settle()
    return _session_response(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/image", response_model=SessionResponse)
def load_image(
    session_id: str,
    file: UploadFile = File(...),
    container_width: int | None = Form(None),
    registry: SessionRegistry = Depends(get_session_registry),
    storage: StoragePort = Depends(create_default_storage),
) -> SessionResponse:
    session = require_session(session_id, registry)
    url, inspected = _store_upload(file, storage)
    session.load_image(url, inspected.width, inspected.height, container_width)
    return _session_response(session, inspected.file_name)


@router.put("/{session_id}/viewport", response_model=ViewportUpdateResponse)
def update_viewport(
    session_id: str,
    payload: ViewportUpdateRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> ViewportUpdateResponse:
    session = require_session(session_id, registry)
    invalidated = session.resize(payload.container_width)
    state = MaskStateResponse.from_session(session)
    return ViewportUpdateResponse(**state.model_dump(), invalidated=invalidated)


@router.post("/{session_id}/strokes", response_model=MaskStateResponse)
def add_stroke(
    session_id: str,
    payload: StrokeCreateRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> MaskStateResponse:
    session = require_session(session_id, registry)
    session.add_stroke(payload.points, payload.brush_width, payload.mode)
    session.settle()
    return MaskStateResponse.from_session(session)


@router.post("/{session_id}/clear", response_model=MaskStateResponse)
def clear_strokes(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> MaskStateResponse:
    session = require_session(session_id, registry)
    session.clear()
    return MaskStateResponse.from_session(session)


@router.post("/{session_id}/mask/save", response_model=MaskStateResponse)
def save_mask(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> MaskStateResponse:
    session = require_session(session_id, registry)
    session.save_mask()
    return MaskStateResponse.from_session(session)


@router.get("/{session_id}/mask", response_class=Response)
def get_mask(
    session_id: str,
    slot: Literal["current", "saved"] = Query(default="current"),
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    session = require_session(session_id, registry)
    session.settle()
    mask = session.mask.current_mask if slot == "current" else session.mask.saved_mask
    if mask is None:
        raise HTTPException(status_code=404, detail=f"No {slot} mask")
    return Response(
        content=mask.to_png(),
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="mask-{slot}.png"'},
    )
