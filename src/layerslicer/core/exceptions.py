"""
Custom exceptions for layerslicer.

All layerslicer exceptions inherit from LayerSlicerError for easy catching.
"""

from typing import Any


class LayerSlicerError(Exception):
    """Base exception for all layerslicer errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(LayerSlicerError):
    """Raised when slicer settings or a profile file are invalid."""

    pass


class GeometryError(LayerSlicerError):
    """Raised when mesh geometry cannot be used."""

    pass


class ParseError(GeometryError):
    """Raised when mesh input is malformed or truncated."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source


class EmptyMeshError(GeometryError):
    """Raised when a mesh has no triangles or a degenerate bounding box."""

    pass


class SlicingError(LayerSlicerError):
    """Raised when slicing/toolpath generation refuses to produce output."""

    pass


class SlicingCancelled(SlicingError):
    """Raised when the caller cancels a slicing run between layers."""

    pass
