"""
G-code emitter — serializes sliced layers into a printable program.

Program structure:
  preamble        home, temperatures, first-layer Z
  per layer       layer marker comment, Z move, perimeters, infill
  postamble       lift, heaters off, home X/Y, motors off

Extrusion is not physically modelled: every extruding move advances a flat
feed amount. The running total lives in an ``ExtrusionState`` owned by one
``emit`` call, so concurrent emitters never share it. E values are written in
emission order and therefore never decrease within a program.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

from layerslicer import __version__
from layerslicer.core.exceptions import SlicingError
from layerslicer.core.logging import get_logger
from layerslicer.slicing.infill_patterns import generate_infill, layer_bounds, solid_infill
from layerslicer.slicing.perimeter import Path, trace
from layerslicer.slicing.planar_slicer import Layer, Segment
from layerslicer.slicing.surface_classifier import LayerSequence

if TYPE_CHECKING:
    from layerslicer.core.config import SlicerSettings

logger = get_logger(__name__)

# Feed added after moving onto the first point of a perimeter.
PATH_START_FEED = 1.0

# Feed added by every other extruding move.
MOVE_FEED = 3.0

Z_FEEDRATE = 5000
PRINT_FEEDRATE = 1500

# Nozzle lift after the last layer (mm).
END_LIFT = 10.0

LayerCallback = Callable[[int, int], None]


@dataclass
class ExtrusionState:
    """Cumulative filament feed of one program."""

    value: float = 0.0

    def advance(self, amount: float) -> float:
        """Add ``amount`` of feed and return the new total."""
        if amount < 0:
            raise ValueError(f"Extrusion cannot decrease (amount={amount})")
        self.value += amount
        return self.value

    def reset(self) -> None:
        self.value = 0.0


class GCodeEmitter:
    """
    Writes perimeters and infill for every layer as G-code.

    Usage:
        emitter = GCodeEmitter(settings)
        text = emitter.emit(layers, sequences)
    """

    def __init__(self, settings: SlicerSettings):
        self.settings = settings
        self._lines: List[str] = []

    # ── Formatting ────────────────────────────────────────────────────

    @staticmethod
    def comment(text: str) -> str:
        return f"; {text}"

    @staticmethod
    def _e(value: float) -> str:
        return f"E{value:.5f}"

    def header(self) -> List[str]:
        s = self.settings
        return [
            self.comment(f"Generated by STL slicer v{__version__}"),
            self.comment(f"Slice height: {s.layer_height}mm"),
            self.comment(f"Infill: {s.infill_pattern.value} at {s.infill_density}%"),
            self.comment(f"Top/bottom shells: {s.top_bottom_layers}"),
            self.comment(f"Nozzle diameter: {s.nozzle_diameter}mm"),
            "",
            "G28 ; Home all axes",
            f"M104 S{s.nozzle_temp} ; Set hotend temperature",
            f"M140 S{s.bed_temp} ; Set bed temperature",
            f"G1 Z{s.layer_height} F{Z_FEEDRATE}",
            "",
        ]

    def footer(self, last_z: float) -> List[str]:
        return [
            self.comment("Print complete"),
            f"G1 Z{last_z + END_LIFT:.3f} F{Z_FEEDRATE}",
            "M104 S0 ; Turn off hotend",
            "M140 S0 ; Turn off bed",
            "G28 X0 Y0 ; Home X and Y",
            "M84 ; Disable motors",
        ]

    def layer_change_code(self, layer: Layer) -> List[str]:
        return [
            self.comment(f"Layer {layer.index + 1} (Z={layer.z:.3f})"),
            f"G1 Z{layer.z:.3f} F{Z_FEEDRATE}",
        ]

    # ── Emission ──────────────────────────────────────────────────────

    def emit(
        self,
        layers: Sequence[Layer],
        sequences: Sequence[LayerSequence],
        on_layer: Optional[LayerCallback] = None,
    ) -> str:
        """
        Generate the complete program.

        Args:
            layers: Sliced layers in ascending Z.
            sequences: Shell classification, one per layer.
            on_layer: Called with ``(index, total)`` after each layer.

        Returns:
            The program text.

        Raises:
            SlicingError: If the inputs disagree in length or no layer has
                printable geometry.
        """
        if len(layers) != len(sequences):
            raise SlicingError(
                "Layer classification does not match layers",
                details={"layers": len(layers), "sequences": len(sequences)},
            )

        state = ExtrusionState()
        self._lines = self.header()
        printed = 0
        last_z = 0.0

        for layer, sequence in zip(layers, sequences):
            if not layer.is_empty:
                paths = trace(
                    layer.segments,
                    max_segments=self.settings.max_segments_per_layer,
                )
                if paths:
                    self._emit_layer(layer, paths, sequence, state)
                    printed += 1
                    last_z = layer.z
            if on_layer is not None:
                on_layer(layer.index, len(layers))

        if printed == 0:
            raise SlicingError("No printable geometry in any layer")

        self._lines.extend(self.footer(last_z))
        logger.info(
            "gcode_emitted",
            layers=printed,
            lines=len(self._lines),
            extrusion=state.value,
        )
        return "\n".join(self._lines)

    def _emit_layer(
        self,
        layer: Layer,
        paths: Sequence[Path],
        sequence: LayerSequence,
        state: ExtrusionState,
    ) -> None:
        self._lines.extend(self.layer_change_code(layer))
        self._emit_perimeters(paths, state)

        s = self.settings
        bounds = layer_bounds(paths)
        if sequence.is_solid:
            side = "bottom" if sequence.is_bottom else "top"
            self._lines.append(self.comment(f"Solid infill ({side})"))
            self._emit_fill(solid_infill(bounds, paths, s.nozzle_diameter), state)
        elif s.infill_density > 0:
            self._lines.append(self.comment(f"Sparse infill ({s.infill_density}%)"))
            self._emit_fill(
                generate_infill(
                    bounds, s.infill_pattern, s.infill_density, paths, s.nozzle_diameter
                ),
                state,
            )
        self._lines.append("")

    def _emit_perimeters(self, paths: Sequence[Path], state: ExtrusionState) -> None:
        for path_idx, path in enumerate(paths):
            x, y = path[0]
            if path_idx > 0:
                self._lines.append(f"G0 X{x:.2f} Y{y:.2f} ; Travel to next shape")
            self._lines.append(f"G1 X{x:.2f} Y{y:.2f} {self._e(state.value)}")
            state.advance(PATH_START_FEED)

            # Walk the loop and close it back onto its first point.
            for x, y in list(path[1:]) + [path[0]]:
                e = state.advance(MOVE_FEED)
                self._lines.append(f"G1 X{x:.2f} Y{y:.2f} {self._e(e)} F{PRINT_FEEDRATE}")

    def _emit_fill(self, segments: Sequence[Segment], state: ExtrusionState) -> None:
        for seg in segments:
            (sx, sy), (ex, ey) = seg.start, seg.end
            self._lines.append(f"G0 X{sx:.3f} Y{sy:.3f}")
            e = state.advance(MOVE_FEED)
            self._lines.append(f"G1 X{ex:.3f} Y{ey:.3f} {self._e(e)} F{PRINT_FEEDRATE}")


def emit(
    layers: Sequence[Layer],
    sequences: Sequence[LayerSequence],
    settings: SlicerSettings,
) -> str:
    """Serialize ``layers`` into a G-code program."""
    return GCodeEmitter(settings).emit(layers, sequences)
