from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from maskpaint.canvas.session import EditSession
from maskpaint.canvas.types import ImageGeometry, StrokeMode


class GeometryResponse(BaseModel):
    natural_width: int
    natural_height: int
    display_width: int
    display_height: int

    @classmethod
    def from_geometry(cls, geometry: ImageGeometry) -> "GeometryResponse":
        return cls(
            natural_width=geometry.natural_width,
            natural_height=geometry.natural_height,
            display_width=geometry.display_width,
            display_height=geometry.display_height,
        )


class BrushLimits(BaseModel):
    min: int
    max: int
    default: int


class MaskStateResponse(BaseModel):
    session_id: str
    geometry: GeometryResponse
    stroke_count: int
    has_content: bool
    has_current_mask: bool
    has_saved_mask: bool

    @classmethod
    def from_session(cls, session: EditSession) -> "MaskStateResponse":
        current, has_content = session.mask.state()
        return cls(
            session_id=session.id,
            geometry=GeometryResponse.from_geometry(session.geometry),
            stroke_count=len(session.surface.strokes),
            has_content=has_content,
            has_current_mask=current is not None,
            has_saved_mask=session.mask.saved_mask is not None,
        )


class SessionResponse(MaskStateResponse):
    image_url: str
    file_name: str | None = None
    brush: BrushLimits


class ViewportUpdateRequest(BaseModel):
    container_width: int = Field(gt=0)


class ViewportUpdateResponse(MaskStateResponse):
    invalidated: bool


class StrokeCreateRequest(BaseModel):
    points: list[tuple[float, float]] = Field(min_length=1)
    brush_width: int
    mode: StrokeMode = StrokeMode.PAINT


class GenerateRequest(BaseModel):
    prompt: str = Field(default="", max_length=500)
    num_inference_steps: int | None = Field(default=None, ge=1, le=100)
    guidance_scale: float | None = Field(default=None, ge=0.0, le=20.0)
    strength: float | None = Field(default=None, ge=0.0, le=1.0)


class GenerationEnqueueResponse(BaseModel):
    task_id: str
    status: str
    image_url: str
    mask_url: str
    prompt: str


class GenerationStatusResponse(BaseModel):
    task_id: str
    status: Literal["pending", "started", "succeeded", "failed", "canceled", "retry"]
    result: dict[str, Any] | None = None
    error_message: str | None = None


class AssistRequestBody(BaseModel):
    prompt: str = ""
    developer_message: str | None = None


class AssistResponse(BaseModel):
    text: str
    images: list[str]
    developer_message: str | None
    saved_mask_url: str | None
    raw: dict[str, Any]


class PreferenceUpdateRequest(BaseModel):
    value: str = Field(max_length=10_000)


class PreferenceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: str
    updated_at: datetime | None = None
