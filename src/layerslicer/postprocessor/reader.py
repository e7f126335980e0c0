"""
G-code reader: the playback-side view of an emitted program.

Reconstructs motion from a program the way a viewer or simulator consumes
it. Positioning is absolute; each command's parameters replace the
corresponding axes of the running state. A move is extruding when it carries
an ``E`` greater than the previous one. Layers follow ``; Layer <n>`` comments
when the program has them, and Z changes otherwise.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

_LAYER_COMMENT = re.compile(r"layer[:\s]+(\d+)", re.IGNORECASE)

MOVE_CODES = {"G0", "G1"}
TEMPERATURE_CODES = {"M104", "M109"}
BED_TEMPERATURE_CODES = {"M140", "M190"}


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    e: float = 0.0


@dataclass
class Command:
    """One parsed command."""

    kind: str  # 'move', 'home', 'temperature', 'bed_temperature', 'motors_off'
    code: str
    line: int
    layer: int = 0
    params: Dict[str, float] = field(default_factory=dict)
    start: Optional[Position] = None
    end: Optional[Position] = None
    extruding: bool = False
    feedrate: Optional[float] = None


@dataclass
class ParsedProgram:
    commands: List[Command] = field(default_factory=list)
    layers: List[int] = field(default_factory=list)

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    @property
    def moves(self) -> List[Command]:
        return [c for c in self.commands if c.kind == "move"]

    def layer_commands(self, layer: int) -> List[Command]:
        return [c for c in self.commands if c.layer == layer]

    def extrusion_values(self) -> List[float]:
        """E values of extruding moves, in program order."""
        return [c.end.e for c in self.moves if c.extruding and c.end is not None]


def _parse_params(tokens: List[str]) -> Dict[str, float]:
    params: Dict[str, float] = {}
    for token in tokens:
        try:
            params[token[0].upper()] = float(token[1:])
        except (ValueError, IndexError):
            continue
    return params


def parse_program(text: str) -> ParsedProgram:
    """Parse program text into commands annotated with their layer."""
    lines = text.splitlines()
    has_layer_comments = any(
        line.strip().startswith(";") and _LAYER_COMMENT.search(line) for line in lines
    )

    program = ParsedProgram()
    position = Position()
    layer = 0
    last_z = 0.0

    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line or line.startswith(";"):
            match = _LAYER_COMMENT.search(line)
            if match:
                layer = int(match.group(1))
            continue

        line = line.split(";", 1)[0].strip()
        if not line:
            continue

        tokens = line.split()
        code = tokens[0].upper()
        params = _parse_params(tokens[1:])

        if code in MOVE_CODES:
            end = Position(
                x=params.get("X", position.x),
                y=params.get("Y", position.y),
                z=params.get("Z", position.z),
                e=params.get("E", position.e),
            )
            command = Command(
                kind="move",
                code=code,
                line=index,
                params=params,
                start=position,
                end=end,
                extruding="E" in params and params["E"] > position.e,
                feedrate=params.get("F"),
            )
            if not has_layer_comments and "Z" in params and params["Z"] != last_z:
                layer += 1
                last_z = params["Z"]
            position = end
        elif code == "G28":
            command = Command(kind="home", code=code, line=index, params=params)
        elif code in TEMPERATURE_CODES:
            command = Command(kind="temperature", code=code, line=index, params=params)
        elif code in BED_TEMPERATURE_CODES:
            command = Command(kind="bed_temperature", code=code, line=index, params=params)
        elif code == "M84":
            command = Command(kind="motors_off", code=code, line=index, params=params)
        else:
            continue

        command.layer = layer
        program.commands.append(command)
        if layer not in program.layers and not (has_layer_comments and layer == 0):
            program.layers.append(layer)

    return program
