"""
Slicing module - layer geometry, perimeters, surface classification, infill.

Stages, in pipeline order:
- planar_slicer: mesh -> per-layer unordered segments
- perimeter: segments -> closed perimeter paths
- surface_classifier: layers -> top/bottom shell flags
- infill_patterns: paths -> scanline fill segments
"""

from layerslicer.slicing.planar_slicer import (
    Layer,
    Segment,
    layer_heights,
    slice_at_height,
    slice_mesh,
)
from layerslicer.slicing.perimeter import Path, path_bounds, simplify_path, trace
from layerslicer.slicing.surface_classifier import (
    LayerSequence,
    classify,
    detect_horizontal_surfaces,
)
from layerslicer.slicing.infill_patterns import (
    InfillPattern,
    angles_for,
    fill,
    generate_infill,
    is_solid_at,
    layer_bounds,
    line_spacing,
    point_in_polygon,
    scanline_segments,
    solid_infill,
    to_polygons,
)

__all__ = [
    "Layer",
    "Segment",
    "layer_heights",
    "slice_at_height",
    "slice_mesh",
    "Path",
    "path_bounds",
    "simplify_path",
    "trace",
    "LayerSequence",
    "classify",
    "detect_horizontal_surfaces",
    "InfillPattern",
    "angles_for",
    "fill",
    "generate_infill",
    "is_solid_at",
    "layer_bounds",
    "line_spacing",
    "point_in_polygon",
    "scanline_segments",
    "solid_infill",
    "to_polygons",
]
