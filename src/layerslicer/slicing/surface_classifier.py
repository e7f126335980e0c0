"""
Top/bottom surface classification.

Decides which layers need solid fill. Three signals are OR-ed together:

1. Position: the first and last ``top_bottom_layers`` layers of a solid.
2. Geometry change: a layer whose cross-section shrinks by more than 10%
   (or vanishes) within the next few layers is the top of something, e.g.
   a short part sharing the plate with a tall one.
3. Surface normals: mostly-horizontal triangles mark internal plateaus and
   overhang undersides that are neither the global top nor bottom.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Sequence, Tuple

import numpy as np

from layerslicer.core.logging import get_logger
from layerslicer.slicing.planar_slicer import Layer

if TYPE_CHECKING:
    from layerslicer.core.config import SlicerSettings
    from layerslicer.geometry.mesh import Mesh

logger = get_logger(__name__)

# Relative drop in cross-section length that ends a local top.
GEOMETRY_DROP_RATIO = 0.10

# Triangles with |normal.z| above this count as horizontal surfaces.
HORIZONTAL_NORMAL_Z = 0.5

# Half a layer of slack when deciding which slabs sit against a surface.
SLAB_ROUNDING = 0.5


@dataclass
class LayerSequence:
    """Solid-fill classification of one layer."""

    is_bottom: bool = False
    is_top: bool = False

    @property
    def is_solid(self) -> bool:
        return self.is_bottom or self.is_top


def detect_horizontal_surfaces(
    mesh: Mesh, tolerance: float
) -> Tuple[List[float], List[float]]:
    """
    Find heights of upward- and downward-facing surfaces.

    Normals come from the vertex winding (right-hand rule). Each qualifying
    triangle contributes its mean Z; heights within ``tolerance`` of an
    already-recorded surface are merged into it.

    Returns:
        ``(top_surfaces, bottom_surfaces)``, each sorted ascending.
    """
    tris = mesh.triangles
    if len(tris) == 0:
        return [], []

    normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    lengths = np.linalg.norm(normals, axis=1)
    valid = lengths > 0
    nz = np.zeros(len(tris))
    nz[valid] = normals[valid, 2] / lengths[valid]
    mean_z = tris[:, :, 2].mean(axis=1)

    horizontal = valid & (np.abs(nz) > HORIZONTAL_NORMAL_Z)
    top = _coalesce(mean_z[horizontal & (nz > 0)], tolerance)
    bottom = _coalesce(mean_z[horizontal & (nz < 0)], tolerance)

    logger.debug("horizontal_surfaces", top=top, bottom=bottom)
    return top, bottom


def _coalesce(heights: np.ndarray, tolerance: float) -> List[float]:
    surfaces: List[float] = []
    for z in heights:
        z = float(z)
        if not any(abs(existing - z) < tolerance for existing in surfaces):
            surfaces.append(z)
    return sorted(surfaces)


def classify(
    mesh: Mesh, layers: Sequence[Layer], settings: SlicerSettings
) -> List[LayerSequence]:
    """
    Classify each layer as top and/or bottom shell.

    Args:
        mesh: The mesh the layers were sliced from (used for normals).
        layers: Layers in ascending Z, as returned by ``slice_mesh``.
        settings: ``top_bottom_layers`` and ``layer_height`` are used.

    Returns:
        One LayerSequence per layer, in the same order.
    """
    sequences = [LayerSequence() for _ in layers]
    if not layers:
        return sequences

    shells = settings.top_bottom_layers
    _mark_positional(sequences, shells)
    _mark_geometry_changes(sequences, layers, shells)

    top_surfaces, bottom_surfaces = detect_horizontal_surfaces(
        mesh, tolerance=settings.layer_height
    )
    _mark_surfaces(sequences, layers, top_surfaces, bottom_surfaces, shells, settings.layer_height)

    logger.info(
        "layers_classified",
        mesh=mesh.name,
        layers=len(layers),
        top=sum(1 for s in sequences if s.is_top),
        bottom=sum(1 for s in sequences if s.is_bottom),
        top_surfaces=len(top_surfaces),
        bottom_surfaces=len(bottom_surfaces),
    )
    return sequences


def _mark_positional(sequences: List[LayerSequence], shells: int) -> None:
    n = len(sequences)
    for i in range(min(shells, n)):
        sequences[i].is_bottom = True
        sequences[n - 1 - i].is_top = True


def _mark_geometry_changes(
    sequences: List[LayerSequence], layers: Sequence[Layer], shells: int
) -> None:
    n = len(layers)
    lengths = [layer.path_length() for layer in layers]
    counts = [len(layer.segments) for layer in layers]

    for i in range(n - shells):
        current = lengths[i]
        lookahead = min(shells + 1, n - i - 1)

        for j in range(1, lookahead + 1):
            nxt = i + j
            dropped = current > 0 and (current - lengths[nxt]) / current > GEOMETRY_DROP_RATIO
            vanished = counts[nxt] == 0 and counts[i] > 0
            if dropped or vanished:
                start = max(0, i - shells + 1)
                for k in range(start, i + 1):
                    sequences[k].is_top = True
                logger.debug("local_top", layer=i, drop_at=nxt)
                break


def _mark_surfaces(
    sequences: List[LayerSequence],
    layers: Sequence[Layer],
    top_surfaces: Sequence[float],
    bottom_surfaces: Sequence[float],
    shells: int,
    layer_height: float,
) -> None:
    # A layer at height z prints the slab [z - h, z]. Count, in layers, how far
    # that slab sits from the surface and keep the ``shells`` nearest slabs.
    radius = shells * layer_height + layer_height

    for top_z in top_surfaces:
        for i, layer in enumerate(layers):
            if abs(top_z - layer.z) >= radius or layer.z > top_z + layer_height:
                continue
            below = (top_z - layer.z) / layer_height
            if -SLAB_ROUNDING < below < shells - SLAB_ROUNDING:
                sequences[i].is_top = True

    for bottom_z in bottom_surfaces:
        for i, layer in enumerate(layers):
            if abs(layer.z - bottom_z) >= radius or layer.z < bottom_z - layer_height:
                continue
            above = (layer.z - bottom_z) / layer_height
            if SLAB_ROUNDING < above < shells + SLAB_ROUNDING:
                sequences[i].is_bottom = True
