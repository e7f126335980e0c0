"""
Pytest configuration and shared fixtures.
"""

import struct
import tempfile
from pathlib import Path

import numpy as np
import pytest
import trimesh

from layerslicer.core.config import SlicerSettings
from layerslicer.geometry.mesh import Mesh


def make_box(size=(20.0, 20.0, 20.0), origin=(0.0, 0.0, 0.0), name="box") -> Mesh:
    """Axis-aligned box with outward winding whose minimum corner is ``origin``."""
    box = trimesh.creation.box(extents=size)
    box.apply_translation(np.asarray(origin, dtype=float) + np.asarray(size, dtype=float) / 2)
    return Mesh.from_trimesh(box, name=name)


def binary_stl(mesh: Mesh, header: bytes = b"binary test part") -> bytes:
    """Encode a mesh as binary STL."""
    out = bytearray(header.ljust(80, b"\0")[:80])
    out += struct.pack("<I", len(mesh))
    for tri in mesh.triangles:
        out += struct.pack("<3f", 0.0, 0.0, 0.0)
        for vertex in tri:
            out += struct.pack("<3f", *vertex)
        out += struct.pack("<H", 0)
    return bytes(out)


def ascii_stl(mesh: Mesh, name: str = "part") -> bytes:
    """Encode a mesh as ASCII STL."""
    lines = [f"solid {name}"]
    for tri in mesh.triangles:
        lines.append("  facet normal 0 0 0")
        lines.append("    outer loop")
        for x, y, z in tri:
            lines.append(f"      vertex {x:.6f} {y:.6f} {z:.6f}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines).encode("ascii")


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings():
    """Default slicer settings."""
    return SlicerSettings()


@pytest.fixture
def cube():
    """20 mm cube resting on the build plate."""
    return make_box(name="cube")


@pytest.fixture
def short_cube():
    """20 x 20 x 10 mm box beside the 20 mm cube."""
    return make_box(size=(20.0, 20.0, 10.0), origin=(30.0, 0.0, 0.0), name="short")


@pytest.fixture
def stepped_part():
    """10 mm tall tower standing on a 5 mm thick 20 x 20 base."""
    base = make_box(size=(20.0, 20.0, 5.0), name="base")
    tower = make_box(size=(10.0, 10.0, 10.0), origin=(5.0, 5.0, 5.0), name="tower")
    return Mesh.combine([base, tower], name="stepped")


@pytest.fixture
def sample_profile(temp_dir):
    """Write a YAML profile with non-default settings."""
    profile = """
slicer:
  layer_height: 0.25
  top_bottom_layers: 2
  infill_pattern: lines
  infill_density: 40
"""
    path = temp_dir / "fine.yaml"
    path.write_text(profile)
    return path
