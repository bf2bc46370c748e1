from __future__ import annotations


class MaskpaintError(Exception):
    """Base class for errors raised by the mask pipeline and its adapters."""


class ValidationError(MaskpaintError):
    """Missing or invalid user input (prompt, image, mask, brush)."""


class GeometryError(MaskpaintError):
    """Display or natural dimensions are missing or inconsistent."""


class ResolutionError(MaskpaintError):
    """The resolved mask does not match the source image's natural size.

    This is an invariant violation, never an expected runtime condition.
    """


class ServiceError(MaskpaintError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
