from __future__ import annotations

import enum
import io
from dataclasses import dataclass

import numpy as np
from PIL import Image


class StrokeMode(str, enum.Enum):
    PAINT = "paint"
    ERASE = "erase"


@dataclass(slots=True, frozen=True)
class ImageGeometry:
    natural_width: int
    natural_height: int
    display_width: int
    display_height: int

    @property
    def is_loaded(self) -> bool:
        return self.display_width > 0 and self.display_height > 0

    @property
    def scale_x(self) -> float:
        return self.natural_width / self.display_width

    @property
    def scale_y(self) -> float:
        return self.natural_height / self.display_height


UNLOADED_GEOMETRY = ImageGeometry(0, 0, 0, 0)


@dataclass(slots=True, frozen=True)
class Stroke:
    points: tuple[tuple[float, float], ...]
    brush_width: int
    mode: StrokeMode = StrokeMode.PAINT


@dataclass(slots=True, frozen=True)
class ResolvedMask:
    """Binary RGBA mask at the source image's natural resolution.

    `pixels` is uint8 (height, width, 4); white marks the inpaint region.
    """

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def painted_pixels(self) -> int:
        return int((self.pixels[:, :, 0] == 255).sum())

    def has_content(self, min_painted_pixels: int = 1) -> bool:
        return self.painted_pixels >= max(1, min_painted_pixels)

    def copy(self) -> ResolvedMask:
        pixels = self.pixels.copy()
        pixels.flags.writeable = False
        return ResolvedMask(pixels=pixels)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.to_image().save(buffer, format="PNG")
        return buffer.getvalue()
