"""
Perimeter tracing: stitch a layer's unordered segments into closed loops.

Stitching is greedy and first-match: a loop is started from the next unused
segment and extended by whichever unused segment is found first with an
endpoint near the loop's last point. This is O(n²) per layer and is the
dominant cost on dense meshes. A spatial hash of endpoints would remove
that; ``max_segments`` lets callers refuse pathological layers instead.
"""

import math
from typing import List, Optional, Sequence, Tuple

from layerslicer.core.exceptions import SlicingError
from layerslicer.core.logging import get_logger
from layerslicer.slicing.planar_slicer import Point2D, Segment

logger = get_logger(__name__)

Path = Tuple[Point2D, ...]

# Endpoints closer than this are considered the same point (mm).
STITCH_TOLERANCE = 0.01

# Sine of the turn angle below which a vertex is treated as lying on a straight edge.
COLLINEAR_TOLERANCE = 1e-6


def _distance(p: Point2D, q: Point2D) -> float:
    return math.hypot(p[0] - q[0], p[1] - q[1])


def trace(
    segments: Sequence[Segment],
    tolerance: float = STITCH_TOLERANCE,
    max_segments: Optional[int] = None,
) -> List[Path]:
    """
    Chain segments into closed paths.

    Args:
        segments: Unordered segments of one layer.
        tolerance: Maximum endpoint distance for two segments to connect.
        max_segments: Optional ceiling; more segments raise SlicingError.

    Returns:
        Paths of at least three points each. Paths are implicitly closed:
        the last point connects back to the first and is not repeated.
        Fragments with fewer than three distinct points are dropped.
    """
    if max_segments is not None and len(segments) > max_segments:
        raise SlicingError(
            "Layer has too many segments to trace",
            details={"segments": len(segments), "limit": max_segments},
        )

    unused = list(segments)
    paths: List[Path] = []
    discarded = 0

    while unused:
        first = unused.pop(0)
        points: List[Point2D] = [first.start, first.end]
        last = first.end

        found = True
        while found and unused:
            found = False
            for i, seg in enumerate(unused):
                if _distance(last, seg.start) < tolerance:
                    last = seg.end
                elif _distance(last, seg.end) < tolerance:
                    last = seg.start
                else:
                    continue
                points.append(last)
                del unused[i]
                found = True
                break

        path = simplify_path(points, tolerance)
        if len(path) >= 3:
            paths.append(path)
        else:
            discarded += 1

    if discarded:
        logger.debug("degenerate_paths_discarded", count=discarded)
    return paths


def simplify_path(points: Sequence[Point2D], tolerance: float = STITCH_TOLERANCE) -> Path:
    """
    Normalise a traced loop.

    Drops repeated points (including a closing point equal to the start) and
    vertices lying on a straight line between their neighbours.
    """
    deduped: List[Point2D] = []
    for p in points:
        if not deduped or _distance(deduped[-1], p) >= tolerance:
            deduped.append(p)
    while len(deduped) > 1 and _distance(deduped[0], deduped[-1]) < tolerance:
        deduped.pop()

    result = deduped
    changed = True
    while changed and len(result) >= 3:
        changed = False
        n = len(result)
        for i in range(n):
            prev, cur, nxt = result[i - 1], result[i], result[(i + 1) % n]
            if _is_collinear(prev, cur, nxt):
                del result[i]
                changed = True
                break

    return tuple(result)


def _is_collinear(a: Point2D, b: Point2D, c: Point2D) -> bool:
    ux, uy = b[0] - a[0], b[1] - a[1]
    vx, vy = c[0] - b[0], c[1] - b[1]
    norm = math.hypot(ux, uy) * math.hypot(vx, vy)
    if norm == 0.0:
        return True
    cross = ux * vy - uy * vx
    dot = ux * vx + uy * vy
    # Only straight continuations; a 180° reversal is a spike, not an edge.
    return abs(cross) / norm < COLLINEAR_TOLERANCE and dot > 0


def path_bounds(paths: Sequence[Path]) -> Optional[Tuple[float, float, float, float]]:
    """Bounding box ``(min_x, min_y, max_x, max_y)`` over all points of ``paths``."""
    xs = [p[0] for path in paths for p in path]
    ys = [p[1] for path in paths for p in path]
    if not xs:
        return None
    return (min(xs), min(ys), max(xs), max(ys))
