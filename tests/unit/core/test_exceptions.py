"""
Unit tests for the exception hierarchy.
"""

import pytest

from layerslicer.core.exceptions import (
    ConfigurationError,
    EmptyMeshError,
    GeometryError,
    LayerSlicerError,
    ParseError,
    SlicingCancelled,
    SlicingError,
)


@pytest.mark.unit
class TestExceptions:

    def test_message_without_details(self):
        err = LayerSlicerError("boom")
        assert str(err) == "boom"
        assert err.details == {}

    def test_message_with_details(self):
        err = SlicingError("too many", details={"segments": 10})
        assert str(err) == "too many - Details: {'segments': 10}"
        assert err.message == "too many"

    def test_parse_error_source(self):
        err = ParseError("truncated", source="part.stl", details={"bytes": 12})
        assert err.source == "part.stl"
        assert err.details == {"bytes": 12}

    @pytest.mark.parametrize(
        "cls, parent",
        [
            (ConfigurationError, LayerSlicerError),
            (GeometryError, LayerSlicerError),
            (ParseError, GeometryError),
            (EmptyMeshError, GeometryError),
            (SlicingError, LayerSlicerError),
            (SlicingCancelled, SlicingError),
        ],
    )
    def test_hierarchy(self, cls, parent):
        assert issubclass(cls, parent)
