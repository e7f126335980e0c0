"""
Post processor module — G-code output and the matching reader.
"""

from .gcode import ExtrusionState, GCodeEmitter, emit
from .reader import Command, ParsedProgram, Position, parse_program

__all__ = [
    "ExtrusionState",
    "GCodeEmitter",
    "emit",
    "Command",
    "ParsedProgram",
    "Position",
    "parse_program",
]
