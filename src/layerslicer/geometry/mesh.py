"""
Mesh store: triangle mesh ingestion and bounding boxes.

Parses binary and ASCII STL into an immutable array of triangles. Other
mesh formats are loaded through trimesh at the file-loading edge and
converted into the same representation, so the slicing stages only ever
see ``Mesh``.
"""

from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import trimesh

from layerslicer.core.exceptions import EmptyMeshError, ParseError
from layerslicer.core.logging import get_logger

logger = get_logger(__name__)

Vec3 = Tuple[float, float, float]

BINARY_HEADER_SIZE = 80
BINARY_COUNT_SIZE = 4
BINARY_RECORD_SIZE = 50

# Normal (ignored), three vertices, attribute byte count (ignored).
_BINARY_RECORD = np.dtype(
    [
        ("normal", "<f4", (3,)),
        ("vertices", "<f4", (3, 3)),
        ("attribute", "<u2"),
    ]
)


class MeshFormat(Enum):
    """Encodings accepted by ``ingest``."""

    BINARY = "binary"
    ASCII = "ascii"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box of a mesh."""

    min: Vec3
    max: Vec3

    @property
    def size(self) -> Vec3:
        return (
            self.max[0] - self.min[0],
            self.max[1] - self.min[1],
            self.max[2] - self.min[2],
        )


class Mesh:
    """
    Immutable triangle mesh.

    Triangles are stored as a read-only ``(n, 3, 3)`` float array: triangle,
    vertex, axis. Vertex order is preserved from the input, so the winding
    (and therefore the face normal direction) is the one the file declared.
    """

    def __init__(self, triangles: np.ndarray | Sequence, name: str = "mesh"):
        array = np.array(triangles, dtype=np.float64)
        if array.size == 0:
            array = array.reshape(0, 3, 3)
        if array.ndim != 3 or array.shape[1:] != (3, 3):
            raise ParseError(
                "Triangles must have shape (n, 3, 3)",
                source=name,
                details={"shape": array.shape},
            )
        array.setflags(write=False)
        self._triangles = array
        self.name = name

    @property
    def triangles(self) -> np.ndarray:
        return self._triangles

    def __len__(self) -> int:
        return len(self._triangles)

    def __repr__(self) -> str:
        return f"Mesh(name={self.name!r}, triangles={len(self)})"

    @property
    def is_empty(self) -> bool:
        return len(self._triangles) == 0

    @cached_property
    def bbox(self) -> BoundingBox:
        """
        Bounding box over all vertices.

        Raises:
            EmptyMeshError: If the mesh has no triangles.
        """
        if self.is_empty:
            raise EmptyMeshError(f"Mesh '{self.name}' has no triangles")
        vertices = self._triangles.reshape(-1, 3)
        lo = vertices.min(axis=0)
        hi = vertices.max(axis=0)
        return BoundingBox(
            min=(float(lo[0]), float(lo[1]), float(lo[2])),
            max=(float(hi[0]), float(hi[1]), float(hi[2])),
        )

    def bounding_box(self) -> BoundingBox:
        return self.bbox

    def translated(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> "Mesh":
        """Return a copy moved by the given offset."""
        offset = np.array([dx, dy, dz], dtype=np.float64)
        return Mesh(self._triangles + offset, name=self.name)

    def dropped_to_plate(self) -> "Mesh":
        """Return a copy whose lowest vertex sits at Z=0."""
        return self.translated(dz=-self.bbox.min[2])

    @classmethod
    def combine(cls, meshes: Iterable["Mesh"], name: str = "combined") -> "Mesh":
        """Concatenate the triangles of several solids into one mesh."""
        arrays = [m.triangles for m in meshes]
        if not arrays:
            return cls(np.empty((0, 3, 3)), name=name)
        return cls(np.concatenate(arrays, axis=0), name=name)

    # ── trimesh interop ───────────────────────────────────────────────

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh, name: str = "mesh") -> "Mesh":
        return cls(np.asarray(mesh.triangles), name=name)

    def to_trimesh(self) -> trimesh.Trimesh:
        n = len(self._triangles)
        return trimesh.Trimesh(
            vertices=self._triangles.reshape(-1, 3),
            faces=np.arange(n * 3).reshape(-1, 3),
            process=False,
        )


# ---------------------------------------------------------------------------
# STL ingestion
# ---------------------------------------------------------------------------


def _binary_triangle_count(data: bytes) -> Optional[int]:
    if len(data) < BINARY_HEADER_SIZE + BINARY_COUNT_SIZE:
        return None
    return int(np.frombuffer(data, dtype="<u4", count=1, offset=BINARY_HEADER_SIZE)[0])


def _binary_length_matches(data: bytes) -> bool:
    count = _binary_triangle_count(data)
    if count is None:
        return False
    return len(data) == BINARY_HEADER_SIZE + BINARY_COUNT_SIZE + count * BINARY_RECORD_SIZE


def detect_format(data: bytes) -> MeshFormat:
    """
    Sniff the STL encoding from the header.

    A buffer starting with ``solid`` is ASCII, except when its length is
    exactly what the binary triangle count predicts: several exporters write
    ``solid`` into binary headers.
    """
    if data[:BINARY_HEADER_SIZE].lstrip().lower().startswith(b"solid"):
        if _binary_length_matches(data):
            return MeshFormat.BINARY
        return MeshFormat.ASCII
    return MeshFormat.BINARY


def ingest(data: bytes, name: str = "mesh") -> Mesh:
    """
    Parse STL bytes (binary or ASCII) into a Mesh.

    Degenerate triangles are kept; the slicer skips them naturally.

    Raises:
        ParseError: If the buffer is truncated or malformed.
    """
    fmt = detect_format(data)
    if fmt is MeshFormat.BINARY:
        mesh = _parse_binary(data, name)
    elif fmt is MeshFormat.ASCII:
        mesh = _parse_ascii(data, name)
    else:  # pragma: no cover - exhaustive over MeshFormat
        raise ParseError(f"Unsupported mesh format: {fmt}", source=name)

    logger.info("mesh_parsed", name=name, format=fmt.value, triangles=len(mesh))
    return mesh


def _parse_binary(data: bytes, name: str) -> Mesh:
    count = _binary_triangle_count(data)
    if count is None:
        raise ParseError(
            "Binary STL is shorter than its header",
            source=name,
            details={"bytes": len(data)},
        )

    expected = BINARY_HEADER_SIZE + BINARY_COUNT_SIZE + count * BINARY_RECORD_SIZE
    if len(data) != expected:
        raise ParseError(
            "Binary STL triangle count does not match buffer length",
            source=name,
            details={"triangles": count, "expected_bytes": expected, "bytes": len(data)},
        )
    if count == 0:
        return Mesh(np.empty((0, 3, 3)), name=name)

    records = np.frombuffer(
        data,
        dtype=_BINARY_RECORD,
        count=count,
        offset=BINARY_HEADER_SIZE + BINARY_COUNT_SIZE,
    )
    triangles = records["vertices"].astype(np.float64)
    if not np.isfinite(triangles).all():
        raise ParseError("Binary STL contains non-finite vertex coordinates", source=name)
    return Mesh(triangles, name=name)


def _parse_ascii(data: bytes, name: str) -> Mesh:
    text = data.decode("ascii", errors="replace")
    triangles: list[list[list[float]]] = []
    current: Optional[list[list[float]]] = None

    for line_no, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if not tokens:
            continue
        keyword = tokens[0].lower()

        if keyword == "facet":
            if current is not None:
                raise ParseError(
                    "ASCII STL facet starts before the previous one ended",
                    source=name,
                    details={"line": line_no},
                )
            current = []
        elif keyword == "vertex":
            if current is None:
                raise ParseError(
                    "ASCII STL vertex outside of a facet",
                    source=name,
                    details={"line": line_no},
                )
            try:
                current.append([float(v) for v in tokens[1:4]])
            except ValueError as e:
                raise ParseError(
                    "ASCII STL vertex has non-numeric coordinates",
                    source=name,
                    details={"line": line_no, "text": line.strip()},
                ) from e
            if len(current[-1]) != 3:
                raise ParseError(
                    "ASCII STL vertex needs three coordinates",
                    source=name,
                    details={"line": line_no},
                )
        elif keyword == "endfacet":
            if current is None or len(current) != 3:
                raise ParseError(
                    "ASCII STL facet must have exactly three vertices",
                    source=name,
                    details={
                        "line": line_no,
                        "vertices": 0 if current is None else len(current),
                    },
                )
            triangles.append(current)
            current = None

    if current is not None:
        raise ParseError(
            "ASCII STL ends inside a facet",
            source=name,
            details={"vertices": len(current)},
        )
    return Mesh(np.array(triangles, dtype=np.float64).reshape(-1, 3, 3), name=name)


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------

STL_SUFFIXES = {".stl"}
TRIMESH_SUFFIXES = {".obj", ".ply", ".off"}


def load_mesh(file_path: str | Path) -> Mesh:
    """
    Load a mesh file.

    STL goes through ``ingest``; OBJ, PLY and OFF are read with trimesh.

    Raises:
        ParseError: If the file is missing, unsupported, or unreadable.
    """
    path = Path(file_path)
    if not path.exists():
        raise ParseError(f"File not found: {path}", source=str(path))

    suffix = path.suffix.lower()
    if suffix in STL_SUFFIXES:
        return ingest(path.read_bytes(), name=path.stem)

    if suffix not in TRIMESH_SUFFIXES:
        raise ParseError(
            f"Unsupported format: {path.suffix}",
            source=str(path),
            details={"supported": sorted(STL_SUFFIXES | TRIMESH_SUFFIXES)},
        )

    try:
        loaded = trimesh.load(str(path))
    except Exception as e:
        raise ParseError(f"Failed to load {path.name}: {e}", source=str(path)) from e

    if isinstance(loaded, trimesh.Scene):
        parts = [g for g in loaded.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not parts:
            raise ParseError(f"No triangle geometry in {path.name}", source=str(path))
        loaded = trimesh.util.concatenate(parts)
    elif not isinstance(loaded, trimesh.Trimesh):
        raise ParseError(
            f"Unexpected geometry type: {type(loaded).__name__}", source=str(path)
        )

    mesh = Mesh.from_trimesh(loaded, name=path.stem)
    logger.info("mesh_loaded", name=mesh.name, format=suffix.lstrip("."), triangles=len(mesh))
    return mesh
