"""
Infill generation — scanline fill clipped to a layer's perimeters.

Scan lines run parallel to the X axis (angle 0) or the Y axis (angle 90).
Each line is intersected with every edge of every perimeter path; the sorted
crossings are paired, and a pair is kept only when its midpoint lies inside
an odd number of paths (shapely point containment). That even-odd rule
keeps holes and islands-in-holes right without tagging loops as outer or
inner.

Patterns:
1. grid  — lines at 0 and 90 degrees in every layer
2. lines — lines at 0 degrees only

Solid layers always use both angles at 100% density.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
import shapely
from shapely.geometry import Polygon as ShapelyPolygon

from layerslicer.core.config import InfillPattern
from layerslicer.slicing.perimeter import Path, path_bounds
from layerslicer.slicing.planar_slicer import DIVISION_EPSILON, Point2D, Segment

Bounds = Tuple[float, float, float, float]

# Solid fill spacing as a fraction of the nozzle diameter (overlapping lines).
SOLID_SPACING_FACTOR = 0.875

# Sparse spacing range (mm), interpolated from 100% down to 0% density.
MIN_SPARSE_SPACING = 2.0
MAX_SPARSE_SPACING = 20.0

# Distance the scan range is pulled in from the layer bounding box (mm).
FILL_INSET = 0.2

# Fill runs shorter than this are dropped (mm).
MIN_FILL_LENGTH = 0.1

# Slack for the last scan line against the far edge of the range (mm).
SCAN_END_SLACK = 0.01

SUPPORTED_ANGLES = (0, 90)


def angles_for(pattern: InfillPattern) -> Tuple[int, ...]:
    """Scan angles emitted for a sparse pattern."""
    if pattern is InfillPattern.GRID:
        return (0, 90)
    if pattern is InfillPattern.LINES:
        return (0,)
    raise ValueError(f"Unsupported infill pattern: {pattern!r}")


def line_spacing(density: float, nozzle_diameter: float) -> float:
    """Distance between neighbouring scan lines for a density in percent."""
    if density >= 100:
        return nozzle_diameter * SOLID_SPACING_FACTOR
    return MIN_SPARSE_SPACING + ((100 - density) / 100) * (
        MAX_SPARSE_SPACING - MIN_SPARSE_SPACING
    )


def layer_bounds(paths: Sequence[Path]) -> Optional[Bounds]:
    """Bounding box of a layer's perimeters, or None when there are none."""
    return path_bounds(paths)


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def to_polygons(paths: Sequence[Path]) -> List[ShapelyPolygon]:
    """Prepared shapely polygons, one per perimeter path."""
    polygons = [ShapelyPolygon(path) for path in paths]
    shapely.prepare(polygons)
    return polygons


def point_in_polygon(point: Point2D, polygon: Sequence[Point2D]) -> bool:
    """True when ``point`` lies strictly inside the closed ring ``polygon``."""
    return bool(shapely.contains_xy(ShapelyPolygon(polygon), point[0], point[1]))


def is_solid_at(point: Point2D, polygons: Sequence[ShapelyPolygon]) -> bool:
    """Even-odd rule: inside an odd number of perimeters means solid material."""
    if not polygons:
        return False
    inside = shapely.contains_xy(np.asarray(polygons, dtype=object), point[0], point[1])
    return int(np.count_nonzero(inside)) % 2 == 1


def _crossings(path: Path, value: float, axis: int) -> List[float]:
    """
    Positions where the scan line ``coord[axis] == value`` crosses ``path``.

    The half-open comparison counts a vertex lying on the line only once.
    """
    other = 1 - axis
    hits: List[float] = []
    n = len(path)
    for i in range(n):
        p1 = path[i]
        p2 = path[(i + 1) % n]
        a, b = p1[axis], p2[axis]
        if (a < value <= b) or (b < value <= a):
            if abs(b - a) > DIVISION_EPSILON:
                t = (value - a) / (b - a)
                hits.append(p1[other] + t * (p2[other] - p1[other]))
    return hits


def scanline_segments(
    paths: Sequence[Path],
    value: float,
    angle: int = 0,
    polygons: Optional[Sequence[ShapelyPolygon]] = None,
) -> List[Segment]:
    """
    Fill segments along one scan line, in ascending order along the line.

    Args:
        paths: All perimeter paths of the layer.
        value: Y of a horizontal line (angle 0) or X of a vertical line (angle 90).
        angle: 0 or 90.
        polygons: ``to_polygons(paths)``, when the caller scans many lines.
    """
    axis = _scan_axis(angle)
    if polygons is None:
        polygons = to_polygons(paths)
    hits: List[float] = []
    for path in paths:
        hits.extend(_crossings(path, value, axis))
    hits.sort()

    segments: List[Segment] = []
    for j in range(0, len(hits) - 1, 2):
        lo, hi = hits[j], hits[j + 1]
        if hi - lo <= MIN_FILL_LENGTH:
            continue
        if axis == 1:
            start, end = (lo, value), (hi, value)
        else:
            start, end = (value, lo), (value, hi)
        if is_solid_at(((start[0] + end[0]) / 2, (start[1] + end[1]) / 2), polygons):
            segments.append(Segment(start, end))
    return segments


def _scan_axis(angle: int) -> int:
    # Index of the coordinate held constant along a scan line.
    if angle == 0:
        return 1
    if angle == 90:
        return 0
    raise ValueError(f"Infill angle must be one of {SUPPORTED_ANGLES}, got {angle}")


# ---------------------------------------------------------------------------
# Fill generation
# ---------------------------------------------------------------------------


def fill(
    bounds: Optional[Bounds],
    density: float,
    paths: Sequence[Path],
    angle: int = 0,
    nozzle_diameter: float = 0.4,
) -> List[Segment]:
    """
    Scanline fill of one layer in one direction.

    Lines are spaced by ``line_spacing`` starting just inside the low edge of
    ``bounds``. Odd lines run in reverse so consecutive lines zigzag.

    Args:
        bounds: ``(min_x, min_y, max_x, max_y)`` of the layer's perimeters.
        density: Infill density in percent; 100 or more is solid fill.
        paths: Perimeter paths; fill is clipped to their even-odd interior.
        angle: 0 (lines along X) or 90 (lines along Y).
        nozzle_diameter: Line width, used for solid spacing.

    Returns:
        Oriented fill segments in print order.
    """
    axis = _scan_axis(angle)
    if bounds is None or density <= 0 or not paths:
        return []

    spacing = line_spacing(density, nozzle_diameter)
    low = bounds[axis] + FILL_INSET
    high = bounds[axis + 2] - FILL_INSET
    if high < low:
        return []

    count = math.ceil((high - low) / spacing)
    polygons = to_polygons(paths)
    result: List[Segment] = []

    for i in range(count + 1):
        value = low + i * spacing
        if value > high + SCAN_END_SLACK:
            break
        line = scanline_segments(paths, value, angle, polygons)
        if i % 2 == 1:
            line = [seg.reversed() for seg in reversed(line)]
        result.extend(line)

    return result


def generate_infill(
    bounds: Optional[Bounds],
    pattern: InfillPattern,
    density: float,
    paths: Sequence[Path],
    nozzle_diameter: float = 0.4,
) -> List[Segment]:
    """Fill a layer with every scan direction of ``pattern``."""
    segments: List[Segment] = []
    for angle in angles_for(pattern):
        segments.extend(fill(bounds, density, paths, angle, nozzle_diameter))
    return segments


def solid_infill(
    bounds: Optional[Bounds], paths: Sequence[Path], nozzle_diameter: float = 0.4
) -> List[Segment]:
    """Solid (100%) fill in both directions, used for top/bottom shells."""
    segments: List[Segment] = []
    for angle in SUPPORTED_ANGLES:
        segments.extend(fill(bounds, 100, paths, angle, nozzle_diameter))
    return segments
