from __future__ import annotations

import math
from typing import Callable, Iterable, Sequence

import numpy as np
from PIL import Image, ImageDraw

from maskpaint.canvas.types import Stroke, StrokeMode
from maskpaint.config import settings
from maskpaint.errors import GeometryError, ValidationError


RasterListener = Callable[[np.ndarray], None]


def make_stroke(
    points: Sequence[Sequence[float]],
    brush_width: int,
    mode: StrokeMode | str = StrokeMode.PAINT,
) -> Stroke:
    if not points:
        raise ValidationError("stroke needs at least one point")
    if not settings.brush_size_min <= brush_width <= settings.brush_size_max:
        raise ValidationError(
            f"brush width must be between {settings.brush_size_min} and "
            f"{settings.brush_size_max}px, got {brush_width}"
        )

    path: list[tuple[float, float]] = []
    for point in points:
        if len(point) != 2:
            raise ValidationError(f"stroke point must be (x, y), got {point!r}")
        x, y = float(point[0]), float(point[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValidationError(f"stroke point is not finite: {point!r}")
        path.append((x, y))

    try:
        stroke_mode = StrokeMode(mode)
    except ValueError as exc:
        raise ValidationError(f"unknown stroke mode: {mode!r}") from exc
    return Stroke(points=tuple(path), brush_width=int(brush_width), mode=stroke_mode)


def _stroke_coverage(
    stroke: Stroke,
    width: int,
    height: int,
    supersample: int,
) -> tuple[np.ndarray, int, int] | None:
    # Coverage in [0, 1] for the stroke's clipped bounding box, plus its origin.
    radius = stroke.brush_width / 2.0
    xs = [x for x, _ in stroke.points]
    ys = [y for _, y in stroke.points]
    left = max(0, int(math.floor(min(xs) - radius)) - 1)
    top = max(0, int(math.floor(min(ys) - radius)) - 1)
    right = min(width, int(math.ceil(max(xs) + radius)) + 1)
    bottom = min(height, int(math.ceil(max(ys) + radius)) + 1)
    if right <= left or bottom <= top:
        return None

    ss = max(1, supersample)
    box_w = right - left
    box_h = bottom - top
    layer = Image.new("L", (box_w * ss, box_h * ss), 0)
    draw = ImageDraw.Draw(layer)

    path = [((x - left) * ss, (y - top) * ss) for x, y in stroke.points]
    r = radius * ss
    if len(path) > 1:
        draw.line(path, fill=255, width=max(1, int(round(stroke.brush_width * ss))), joint="curve")
    # Round caps; a single point is a dab.
    for cx, cy in (path[0], path[-1]):
        draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=255)

    if ss > 1:
        layer = layer.resize((box_w, box_h), Image.Resampling.BOX)
    coverage = np.asarray(layer, dtype=np.float32) / 255.0
    return coverage, left, top


def _composite(alpha: np.ndarray, stroke: Stroke, *, opacity: float, supersample: int) -> None:
    h, w = alpha.shape
    region = _stroke_coverage(stroke, w, h, supersample)
    if region is None:
        return

    coverage, left, top = region
    view = alpha[top : top + coverage.shape[0], left : left + coverage.shape[1]]
    if stroke.mode is StrokeMode.ERASE:
        # Hard edge: every pixel the brush touches is cleared.
        view[coverage > 0] = 0.0
    else:
        view += coverage * np.float32(opacity) * (1.0 - view)


def _to_raster(alpha: np.ndarray, color: Sequence[int]) -> np.ndarray:
    a8 = np.clip(np.rint(alpha * 255.0), 0, 255).astype(np.uint8)
    raster = np.zeros((*alpha.shape, 4), dtype=np.uint8)
    raster[a8 > 0, :3] = np.asarray(color[:3], dtype=np.uint8)
    raster[:, :, 3] = a8
    return raster


def render_strokes(
    strokes: Iterable[Stroke],
    width: int,
    height: int,
    *,
    color: Sequence[int] | None = None,
    opacity: float | None = None,
    supersample: int | None = None,
) -> np.ndarray:
    """Render a stroke log into an RGBA raster of the given display size."""
    color = settings.stroke_color if color is None else color
    opacity = settings.stroke_opacity if opacity is None else opacity
    supersample = settings.stroke_supersample if supersample is None else supersample

    alpha = np.zeros((height, width), dtype=np.float32)
    for stroke in strokes:
        _composite(alpha, stroke, opacity=opacity, supersample=supersample)
    return _to_raster(alpha, color)


class StrokeSurface:
    """Drawing surface bound to one display geometry.

    Keeps the append-only stroke log and an incrementally composited alpha
    plane that always equals `render_strokes(self.strokes, ...)`.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        on_stroke_completed: RasterListener | None = None,
        on_cleared: Callable[[], None] | None = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise GeometryError(f"invalid surface size: {width}x{height}")
        self.width = width
        self.height = height
        self._strokes: list[Stroke] = []
        self._alpha = np.zeros((height, width), dtype=np.float32)
        self._color = tuple(settings.stroke_color)
        self._opacity = settings.stroke_opacity
        self._supersample = settings.stroke_supersample
        self._on_stroke_completed = on_stroke_completed
        self._on_cleared = on_cleared

    @property
    def strokes(self) -> tuple[Stroke, ...]:
        return tuple(self._strokes)

    @property
    def is_empty(self) -> bool:
        return not self._strokes

    def add_stroke(
        self,
        points: Sequence[Sequence[float]],
        brush_width: int,
        mode: StrokeMode | str = StrokeMode.PAINT,
    ) -> Stroke:
        stroke = make_stroke(points, brush_width, mode)
        self._strokes.append(stroke)
        _composite(self._alpha, stroke, opacity=self._opacity, supersample=self._supersample)
        if self._on_stroke_completed is not None:
            self._on_stroke_completed(self.export_raster())
        return stroke

    def export_raster(self) -> np.ndarray:
        return _to_raster(self._alpha, self._color)

    def clear(self) -> None:
        self._strokes.clear()
        self._alpha.fill(0.0)
        if self._on_cleared is not None:
            self._on_cleared()
