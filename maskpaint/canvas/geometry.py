from __future__ import annotations

from maskpaint.canvas.types import ImageGeometry
from maskpaint.config import settings
from maskpaint.errors import GeometryError


def compute_display_geometry(
    natural_width: int,
    natural_height: int,
    container_width: int | None = None,
    *,
    max_width: int | None = None,
    max_height: int | None = None,
    padding: int | None = None,
) -> ImageGeometry:
    """Fit an image of natural size into the editor viewport.

    The width is limited first (container minus padding, capped at
    `max_width`), then the height; the aspect ratio is kept and rounding
    happens once at the end.
    """
    if natural_width <= 0 or natural_height <= 0:
        raise GeometryError(f"invalid natural size: {natural_width}x{natural_height}")

    if not container_width:
        container_width = settings.default_container_width
    max_width = settings.max_display_width if max_width is None else max_width
    max_height = settings.max_display_height if max_height is None else max_height
    padding = settings.container_padding if padding is None else padding

    fit_width = min(container_width - padding, max_width)
    if fit_width <= 0 or max_height <= 0:
        raise GeometryError(
            f"no room to display image: container={container_width}, padding={padding}, "
            f"max={max_width}x{max_height}"
        )

    aspect = natural_width / natural_height
    width = float(natural_width)
    height = float(natural_height)

    if width > fit_width:
        width = float(fit_width)
        height = width / aspect

    if height > max_height:
        height = float(max_height)
        width = height * aspect

    return ImageGeometry(
        natural_width=natural_width,
        natural_height=natural_height,
        display_width=max(1, int(round(width))),
        display_height=max(1, int(round(height))),
    )
