"""
Core module - Shared configuration, logging, and exceptions.
"""

from layerslicer.core.config import (
    ConfigManager,
    InfillPattern,
    SlicerSettings,
    load_settings,
)
from layerslicer.core.exceptions import (
    LayerSlicerError,
    ConfigurationError,
    GeometryError,
    ParseError,
    EmptyMeshError,
    SlicingError,
    SlicingCancelled,
)
from layerslicer.core.logging import configure_logging, get_logger

__all__ = [
    # Config
    "ConfigManager",
    "InfillPattern",
    "SlicerSettings",
    "load_settings",
    # Exceptions
    "LayerSlicerError",
    "ConfigurationError",
    "GeometryError",
    "ParseError",
    "EmptyMeshError",
    "SlicingError",
    "SlicingCancelled",
    # Logging
    "configure_logging",
    "get_logger",
]
