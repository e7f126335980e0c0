"""
Planar slicing for additive manufacturing.

Intersects a triangle mesh with horizontal planes, one per layer height, to
produce the unordered line segments each layer's perimeters are traced from.

Only the generic case is handled: a triangle contributes a segment when
exactly two of its three edges cross the plane. A triangle lying in the plane
contributes nothing, and so does one with a vertex on the plane whose other
two vertices straddle it (three crossings). On meshes with many vertices
exactly on slice heights this can drop boundary geometry; the behavior is
kept as-is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

import numpy as np

from layerslicer.core.exceptions import EmptyMeshError
from layerslicer.core.logging import get_logger

if TYPE_CHECKING:
    from layerslicer.core.config import SlicerSettings
    from layerslicer.geometry.mesh import Mesh

logger = get_logger(__name__)

Point2D = Tuple[float, float]

# Edges whose Z extent is below this are treated as parallel to the plane.
DIVISION_EPSILON = 1e-4

# Edge order within a triangle: v1->v2, v2->v3, v3->v1.
_EDGE_START = np.array([0, 1, 2])
_EDGE_END = np.array([1, 2, 0])

LayerCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class Segment:
    """A 2D line between two points."""

    start: Point2D
    end: Point2D

    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    def midpoint(self) -> Point2D:
        return ((self.start[0] + self.end[0]) / 2, (self.start[1] + self.end[1]) / 2)

    def reversed(self) -> "Segment":
        return Segment(self.end, self.start)


@dataclass(frozen=True)
class Layer:
    """
    Geometry of the mesh at one slice plane.

    Attributes:
        index: 0-based layer number, contiguous across the build.
        z: Height of the slice plane (mm).
        segments: Unordered segments cut from the mesh at ``z``.
    """

    index: int
    z: float
    segments: Tuple[Segment, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.segments

    def path_length(self) -> float:
        """Total 2D length of all segments in the layer."""
        return sum(seg.length() for seg in self.segments)


def slice_at_height(mesh: Mesh, z: float) -> List[Segment]:
    """
    Intersect every triangle of ``mesh`` with the plane at height ``z``.

    An edge crosses when its end heights lie on opposite sides of the plane,
    equality counting as either side. The crossing is interpolated linearly
    in X and Y. The first crossing (in edge order) becomes the segment start.
    """
    tris = mesh.triangles
    if len(tris) == 0:
        return []

    a = tris[:, _EDGE_START, :]  # (n, 3 edges, xyz)
    b = tris[:, _EDGE_END, :]
    za = a[..., 2]
    zb = b[..., 2]
    dz = zb - za

    crosses = ((za <= z) & (zb >= z)) | ((za >= z) & (zb <= z))
    crosses &= np.abs(dz) > DIVISION_EPSILON

    keep = crosses.sum(axis=1) == 2
    if not keep.any():
        return []

    a = a[keep]
    b = b[keep]
    dz = dz[keep]
    crosses = crosses[keep]

    safe_dz = np.where(crosses, dz, 1.0)
    t = (z - a[..., 2]) / safe_dz
    xs = a[..., 0] + t * (b[..., 0] - a[..., 0])
    ys = a[..., 1] + t * (b[..., 1] - a[..., 1])

    rows = np.arange(len(crosses))
    first = np.argmax(crosses, axis=1)
    second = 2 - np.argmax(crosses[:, ::-1], axis=1)

    x0, y0 = xs[rows, first], ys[rows, first]
    x1, y1 = xs[rows, second], ys[rows, second]

    return [
        Segment((float(sx), float(sy)), (float(ex), float(ey)))
        for sx, sy, ex, ey in zip(x0, y0, x1, y1)
    ]


def layer_heights(mesh: Mesh, layer_height: float) -> List[float]:
    """
    Slice plane heights from one layer above the mesh bottom up to its top.

    There are ``ceil(size.z / layer_height)`` planes; the last is clamped to
    the mesh top.

    Raises:
        EmptyMeshError: If the mesh is empty or has no height.
    """
    bbox = mesh.bbox
    size_z = bbox.size[2]
    if size_z <= 0:
        raise EmptyMeshError(
            f"Mesh '{mesh.name}' has a degenerate bounding box",
            details={"size": bbox.size},
        )

    num_layers = math.ceil(size_z / layer_height)
    z_min, z_max = bbox.min[2], bbox.max[2]
    return [min(z_min + (i + 1) * layer_height, z_max) for i in range(num_layers)]


def slice_mesh(
    mesh: Mesh,
    settings: SlicerSettings,
    on_layer: Optional[LayerCallback] = None,
) -> List[Layer]:
    """
    Slice ``mesh`` into layers.

    Layers without segments are kept so that indices stay aligned with the
    layers of other solids sliced on the same grid.

    Args:
        mesh: Mesh to slice.
        settings: Slicer settings (``layer_height`` is used).
        on_layer: Called with ``(index, total)`` after each layer.

    Returns:
        One Layer per slice height, in ascending Z.
    """
    heights = layer_heights(mesh, settings.layer_height)
    total = len(heights)
    layers: List[Layer] = []

    for index, z in enumerate(heights):
        layers.append(Layer(index=index, z=z, segments=tuple(slice_at_height(mesh, z))))
        if on_layer is not None:
            on_layer(index, total)

    empty = sum(1 for layer in layers if layer.is_empty)
    logger.info(
        "mesh_sliced",
        mesh=mesh.name,
        layers=total,
        empty_layers=empty,
        segments=sum(len(layer.segments) for layer in layers),
    )
    return layers
