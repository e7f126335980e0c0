"""
Unit tests for the command-line interface.
"""

import pytest
from click.testing import CliRunner

from conftest import binary_stl, make_box
from layerslicer.cli import main
from layerslicer.core.logging import configure_logging


@pytest.fixture
def runner():
    yield CliRunner()
    configure_logging(level="WARNING")


@pytest.fixture
def model(temp_dir):
    path = temp_dir / "cube.stl"
    path.write_bytes(binary_stl(make_box(size=(10.0, 10.0, 2.0))))
    return path


@pytest.mark.unit
class TestSliceCommand:

    def test_slice_writes_program(self, runner, model, temp_dir):
        out = temp_dir / "cube.gcode"
        result = runner.invoke(main, ["slice", str(model), "-o", str(out), "--layer-height", "0.5"])

        assert result.exit_code == 0, result.output
        text = out.read_text()
        assert text.count("; Layer ") == 4
        assert "; Slice height: 0.5mm" in text

    def test_profile_and_overrides(self, runner, model, temp_dir, sample_profile):
        out = temp_dir / "cube.gcode"
        result = runner.invoke(
            main,
            ["slice", str(model), "-o", str(out), "-p", str(sample_profile), "--density", "60"],
        )

        assert result.exit_code == 0, result.output
        text = out.read_text()
        assert "; Infill: lines at 60%" in text
        assert "; Top/bottom shells: 2" in text

    def test_profile_by_name(self, runner, model, temp_dir):
        profiles = temp_dir / "config" / "profiles"
        profiles.mkdir(parents=True)
        (profiles / "draft.yaml").write_text("slicer:\n  layer_height: 0.5\n  infill_pattern: lines\n")
        out = temp_dir / "cube.gcode"

        result = runner.invoke(
            main,
            ["slice", str(model), "-o", str(out), "-p", "draft",
             "--config-dir", str(temp_dir / "config")],
        )

        assert result.exit_code == 0, result.output
        text = out.read_text()
        assert text.count("; Layer ") == 4
        assert "; Infill: lines at 20%" in text

    def test_unknown_profile_name(self, runner, model, temp_dir):
        (temp_dir / "profiles").mkdir()
        result = runner.invoke(
            main,
            ["slice", str(model), "-o", str(temp_dir / "out.gcode"), "-p", "ghost",
             "--config-dir", str(temp_dir)],
        )
        assert result.exit_code == 1
        assert "Slicer profile not found: ghost" in result.output

    def test_drop_to_plate(self, runner, temp_dir):
        path = temp_dir / "floating.stl"
        path.write_bytes(binary_stl(make_box(size=(10.0, 10.0, 2.0), origin=(0.0, 0.0, -5.0))))
        out = temp_dir / "floating.gcode"

        failed = runner.invoke(main, ["slice", str(path), "-o", str(out)])
        assert failed.exit_code == 1

        result = runner.invoke(main, ["slice", str(path), "-o", str(out), "--drop-to-plate"])
        assert result.exit_code == 0, result.output
        assert "; Layer 1 (Z=0.200)" in out.read_text()

    def test_missing_model(self, runner, temp_dir):
        result = runner.invoke(
            main, ["slice", str(temp_dir / "nope.stl"), "-o", str(temp_dir / "out.gcode")]
        )
        assert result.exit_code == 1
        assert "Slicing failed" in result.output

    def test_density_out_of_range(self, runner, model, temp_dir):
        result = runner.invoke(
            main, ["slice", str(model), "-o", str(temp_dir / "out.gcode"), "--density", "150"]
        )
        assert result.exit_code == 2


@pytest.mark.unit
class TestInspectionCommands:

    def test_info(self, runner, model):
        result = runner.invoke(main, ["info", str(model)])
        assert result.exit_code == 0, result.output
        assert "Triangles" in result.output
        assert "12" in result.output

    def test_info_bad_file(self, runner, temp_dir):
        path = temp_dir / "broken.stl"
        path.write_bytes(b"\0" * 80 + (5).to_bytes(4, "little"))
        result = runner.invoke(main, ["info", str(path)])
        assert result.exit_code == 1

    def test_profiles(self, runner, temp_dir):
        profiles = temp_dir / "profiles"
        profiles.mkdir()
        (profiles / "draft.yaml").write_text("slicer:\n  layer_height: 0.3\n")
        (profiles / "fine.yaml").write_text("slicer:\n  layer_height: 0.1\n")

        result = runner.invoke(main, ["profiles", "--config-dir", str(temp_dir)])
        assert result.exit_code == 0, result.output
        assert "draft" in result.output
        assert "fine" in result.output

    def test_profiles_missing_dir(self, runner, temp_dir):
        result = runner.invoke(main, ["profiles", "--config-dir", str(temp_dir / "missing")])
        assert result.exit_code == 1

    def test_inspect(self, runner, model, temp_dir):
        out = temp_dir / "cube.gcode"
        runner.invoke(main, ["slice", str(model), "-o", str(out), "--layer-height", "0.5"])

        result = runner.invoke(main, ["inspect", str(out)])
        assert result.exit_code == 0, result.output
        assert "Layers" in result.output
        assert "Extruding moves" in result.output
