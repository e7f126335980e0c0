"""
layerslicer - STL to G-code slicing engine for FDM 3D printers.

Slices triangle meshes into layers, traces perimeters, detects top/bottom
shells, fills layers with scanline infill, and writes G-code.
"""

__version__ = "0.1.0"
__author__ = "layerslicer contributors"

from layerslicer.core.config import SlicerSettings
from layerslicer.geometry.mesh import Mesh, ingest, load_mesh
from layerslicer.pipeline import SlicingPipeline, slice_mesh_to_gcode

__all__ = [
    "__version__",
    "SlicerSettings",
    "Mesh",
    "ingest",
    "load_mesh",
    "SlicingPipeline",
    "slice_mesh_to_gcode",
]
