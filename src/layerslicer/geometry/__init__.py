"""
Geometry module — mesh ingestion and bounding boxes.
"""

from layerslicer.geometry.mesh import (
    BoundingBox,
    Mesh,
    MeshFormat,
    detect_format,
    ingest,
    load_mesh,
)

__all__ = [
    "BoundingBox",
    "Mesh",
    "MeshFormat",
    "detect_format",
    "ingest",
    "load_mesh",
]
