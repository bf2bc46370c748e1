from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from maskpaint.canvas.types import ImageGeometry, ResolvedMask
from maskpaint.errors import GeometryError, ResolutionError


logger = logging.getLogger(__name__)

_WHITE = np.array([255, 255, 255, 255], dtype=np.uint8)
_BLACK = np.array([0, 0, 0, 255], dtype=np.uint8)


def _upscale_alpha(alpha: np.ndarray, width: int, height: int) -> np.ndarray:
    if alpha.shape == (height, width):
        return alpha
    resized = Image.fromarray(np.ascontiguousarray(alpha)).resize(
        (width, height),
        Image.Resampling.NEAREST,
    )
    return np.asarray(resized, dtype=np.uint8)


def resolve_mask(raster: np.ndarray, geometry: ImageGeometry) -> ResolvedMask | None:
    """Turn a display-resolution stroke raster into the natural-resolution mask.

    The alpha plane is resampled to natural size with nearest-neighbour, then
    every pixel with alpha > 0 becomes opaque white and every other pixel
    opaque black. Returns None while no image geometry is loaded.
    """
    if not geometry.is_loaded:
        logger.debug("mask resolution skipped: image geometry not loaded")
        return None

    expected = (geometry.display_height, geometry.display_width)
    if raster.ndim != 3 or raster.shape[2] != 4 or raster.shape[:2] != expected:
        raise GeometryError(
            f"stroke raster shape {raster.shape} does not match display size "
            f"{geometry.display_width}x{geometry.display_height}"
        )

    natural_w = geometry.natural_width
    natural_h = geometry.natural_height
    logger.debug(
        "resolving mask: display=%dx%d natural=%dx%d scale=(%.4f, %.4f)",
        geometry.display_width,
        geometry.display_height,
        natural_w,
        natural_h,
        geometry.scale_x,
        geometry.scale_y,
    )

    alpha = _upscale_alpha(raster[:, :, 3], natural_w, natural_h)
    painted = alpha > 0

    pixels = np.empty((*alpha.shape, 4), dtype=np.uint8)
    pixels[:] = _BLACK
    pixels[painted] = _WHITE

    if pixels.shape[:2] != (natural_h, natural_w):
        raise ResolutionError(
            f"resolved mask is {pixels.shape[1]}x{pixels.shape[0]}, "
            f"source image is {natural_w}x{natural_h}"
        )

    pixels.flags.writeable = False
    return ResolvedMask(pixels=pixels)
