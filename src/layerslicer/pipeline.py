"""
Pipeline orchestrator for multi-solid slicing.

Chains: per-solid slice + classify -> combined slice -> merge shells -> G-code

Each solid on the plate is sliced on its own first so that its top and bottom
shells are found even when a taller solid continues above it. The union of
all solids is then sliced once more to get the physical layers, and the
per-solid shell flags are carried onto those layers by matching heights.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from layerslicer.core.config import SlicerSettings
from layerslicer.core.exceptions import SlicingCancelled, SlicingError
from layerslicer.core.logging import get_logger
from layerslicer.geometry.mesh import Mesh
from layerslicer.postprocessor.gcode import GCodeEmitter
from layerslicer.slicing.planar_slicer import Layer, slice_mesh
from layerslicer.slicing.surface_classifier import LayerSequence, classify

logger = get_logger(__name__)

# Two layers are the same plane when their heights differ by less than this (mm).
LAYER_MATCH_TOLERANCE = 0.001

# Allowed distance of the lowest vertex from the build plate (mm).
PLATE_TOLERANCE = 0.1

# Type alias for progress callback: (stage_name, fraction 0.0-1.0)
ProgressCallback = Callable[[str, float], None]
CancelCheck = Callable[[], bool]


def _noop_callback(stage: str, pct: float) -> None:
    pass


def _never_cancel() -> bool:
    return False


@dataclass
class SolidSlice:
    """Layers and shell flags of one solid sliced in isolation."""

    name: str
    layers: List[Layer]
    sequences: List[LayerSequence]


@dataclass
class SliceResult:
    """Result of a complete slicing run."""

    gcode: str
    layers: List[Layer] = field(default_factory=list)
    sequences: List[LayerSequence] = field(default_factory=list)
    solids: List[SolidSlice] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    @property
    def printable_layers(self) -> int:
        return sum(1 for layer in self.layers if not layer.is_empty)


def merge_sequences(
    layers: Sequence[Layer],
    solids: Sequence[SolidSlice],
    tolerance: float = LAYER_MATCH_TOLERANCE,
) -> List[LayerSequence]:
    """
    Carry per-solid shell flags onto the combined layers.

    Each solid layer is matched to the first combined layer within
    ``tolerance`` of its height; flags are OR-ed so a height shared by two
    solids keeps both.
    """
    merged = [LayerSequence() for _ in layers]
    for solid in solids:
        for layer, sequence in zip(solid.layers, solid.sequences):
            for j, combined in enumerate(layers):
                if abs(combined.z - layer.z) < tolerance:
                    merged[j].is_bottom |= sequence.is_bottom
                    merged[j].is_top |= sequence.is_top
                    break
    return merged


def check_build_plate(mesh: Mesh, tolerance: float = PLATE_TOLERANCE) -> None:
    """
    Refuse meshes that reach below the build plate.

    Raises:
        SlicingError: If the lowest vertex is below ``-tolerance``.
    """
    min_z = mesh.bbox.min[2]
    if min_z < -tolerance:
        raise SlicingError(
            f"Model extends below build plate ({min_z:.2f}mm)",
            details={"min_z": min_z},
        )
    if min_z > tolerance:
        logger.warning("model_floating", min_z=round(min_z, 3))


class SlicingPipeline:
    """Multi-solid slicing orchestrator.

    Usage:
        pipeline = SlicingPipeline(settings)
        result = pipeline.run([mesh_a, mesh_b])
        Path("out.gcode").write_text(result.gcode)

    ``progress_callback`` receives ``(stage, fraction)``; ``should_cancel`` is
    polled between layers and aborts the run with ``SlicingCancelled``. Neither
    affects the generated program.
    """

    def __init__(
        self,
        settings: Optional[SlicerSettings] = None,
        progress_callback: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ):
        self.settings = settings or SlicerSettings()
        self._progress = progress_callback or _noop_callback
        self._should_cancel = should_cancel or _never_cancel

    def run(self, solids: Sequence[Mesh]) -> SliceResult:
        """
        Slice every solid and emit one combined program.

        Raises:
            EmptyMeshError: If any solid has no triangles or no height.
            SlicingError: If the plate check fails or nothing is printable.
            SlicingCancelled: If ``should_cancel`` returned True.
        """
        if not solids:
            raise SlicingError("No solids to slice")

        t0 = time.perf_counter()

        solid_slices: List[SolidSlice] = []
        for solid in solids:
            stage = f"solid:{solid.name}"
            layers = slice_mesh(solid, self.settings, on_layer=self._layer_hook(stage))
            sequences = classify(solid, layers, self.settings)
            solid_slices.append(SolidSlice(name=solid.name, layers=layers, sequences=sequences))

        combined = solids[0] if len(solids) == 1 else Mesh.combine(solids)
        check_build_plate(combined)

        layers = slice_mesh(combined, self.settings, on_layer=self._layer_hook("combined"))
        sequences = merge_sequences(layers, solid_slices)

        gcode = GCodeEmitter(self.settings).emit(
            layers, sequences, on_layer=self._layer_hook("gcode")
        )

        duration = time.perf_counter() - t0
        logger.info(
            "slicing_complete",
            solids=len(solids),
            layers=len(layers),
            duration_s=round(duration, 2),
        )
        return SliceResult(
            gcode=gcode,
            layers=layers,
            sequences=sequences,
            solids=solid_slices,
            duration_s=duration,
        )

    def _layer_hook(self, stage: str) -> Callable[[int, int], None]:
        def hook(index: int, total: int) -> None:
            if self._should_cancel():
                logger.info("slicing_cancelled", stage=stage, layer=index)
                raise SlicingCancelled(
                    "Slicing cancelled", details={"stage": stage, "layer": index}
                )
            self._progress(stage, (index + 1) / total)

        return hook


def slice_mesh_to_gcode(mesh: Mesh, settings: Optional[SlicerSettings] = None) -> str:
    """Slice a single solid and return its G-code."""
    return SlicingPipeline(settings).run([mesh]).gcode
