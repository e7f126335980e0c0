"""Tests for planar slicing: slice heights and triangle/plane intersection."""

import math

import pytest

from conftest import make_box
from layerslicer.core.config import SlicerSettings
from layerslicer.core.exceptions import EmptyMeshError
from layerslicer.geometry.mesh import Mesh
from layerslicer.slicing.planar_slicer import (
    Layer,
    Segment,
    layer_heights,
    slice_at_height,
    slice_mesh,
)


@pytest.mark.unit
@pytest.mark.slicing
class TestLayerHeights:

    def test_cube_heights(self, cube):
        heights = layer_heights(cube, 0.2)
        assert len(heights) == 100
        assert heights[0] == pytest.approx(0.2)
        assert heights[-1] == pytest.approx(20.0)
        assert all(0.2 - 1e-9 <= z <= 20.0 for z in heights)
        assert heights == sorted(heights)

    def test_last_height_clamped_to_top(self):
        mesh = make_box(size=(5.0, 5.0, 1.0))
        heights = layer_heights(mesh, 0.3)
        assert len(heights) == math.ceil(1.0 / 0.3)
        assert heights[-1] == 1.0

    def test_offset_from_plate(self):
        mesh = make_box(size=(5.0, 5.0, 1.0), origin=(0.0, 0.0, 5.0))
        heights = layer_heights(mesh, 0.25)
        assert heights == pytest.approx([5.25, 5.5, 5.75, 6.0])

    def test_flat_mesh_rejected(self):
        flat = Mesh([[[0, 0, 0], [1, 0, 0], [0, 1, 0]]])
        with pytest.raises(EmptyMeshError):
            layer_heights(flat, 0.2)

    def test_empty_mesh_rejected(self):
        with pytest.raises(EmptyMeshError):
            layer_heights(Mesh([]), 0.2)


@pytest.mark.unit
@pytest.mark.slicing
class TestSliceAtHeight:

    def test_segment_follows_edge_order(self):
        # v1->v2 crosses first, v2->v3 is horizontal, v3->v1 crosses second
        tri = Mesh([[[0, 0, 0], [10, 0, 10], [-10, 0, 10]]])
        segments = slice_at_height(tri, 5.0)
        assert len(segments) == 1
        assert segments[0].start == pytest.approx((5.0, 0.0))
        assert segments[0].end == pytest.approx((-5.0, 0.0))

    def test_triangle_in_plane_contributes_nothing(self):
        tri = Mesh([[[0, 0, 5], [10, 0, 5], [0, 10, 5]]])
        assert slice_at_height(tri, 5.0) == []

    def test_vertex_on_plane_with_straddling_edge_dropped(self):
        tri = Mesh([[[0, 0, 5], [10, 0, 0], [0, 10, 10]]])
        assert slice_at_height(tri, 5.0) == []

    def test_triangle_above_plane(self):
        tri = Mesh([[[0, 0, 6], [10, 0, 7], [0, 10, 8]]])
        assert slice_at_height(tri, 5.0) == []

    def test_cube_cross_section(self, cube):
        segments = slice_at_height(cube, 10.0)
        # Two triangles per side face
        assert len(segments) == 8
        assert sum(seg.length() for seg in segments) == pytest.approx(80.0)
        for seg in segments:
            for x, y in (seg.start, seg.end):
                assert 0.0 <= x <= 20.0 + 1e-9
                assert 0.0 <= y <= 20.0 + 1e-9


@pytest.mark.unit
@pytest.mark.slicing
class TestSliceMesh:

    def test_layers_indexed_in_order(self, cube, settings):
        layers = slice_mesh(cube, settings)
        assert [layer.index for layer in layers] == list(range(100))
        assert all(a.z < b.z for a, b in zip(layers, layers[1:]))
        assert not any(layer.is_empty for layer in layers[:-1])

    def test_callback_reports_every_layer(self, cube):
        calls = []
        slice_mesh(cube, SlicerSettings(layer_height=1.0), on_layer=lambda i, n: calls.append((i, n)))
        assert calls == [(i, 20) for i in range(20)]

    def test_path_length(self):
        layer = Layer(
            index=0,
            z=0.2,
            segments=(Segment((0, 0), (3, 4)), Segment((3, 4), (3, 0))),
        )
        assert layer.path_length() == pytest.approx(9.0)
        assert not layer.is_empty
        assert Layer(index=1, z=0.4).is_empty

    def test_segment_helpers(self):
        seg = Segment((0.0, 0.0), (2.0, 4.0))
        assert seg.midpoint() == (1.0, 2.0)
        assert seg.reversed() == Segment((2.0, 4.0), (0.0, 0.0))
