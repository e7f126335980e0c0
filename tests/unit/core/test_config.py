"""
Unit tests for configuration management.
"""

import pytest
from pydantic import ValidationError

from layerslicer.core.config import (
    ConfigManager,
    InfillPattern,
    SlicerSettings,
    load_settings,
)
from layerslicer.core.exceptions import ConfigurationError


@pytest.mark.unit
class TestSlicerSettings:
    """Tests for the SlicerSettings model."""

    def test_defaults(self):
        settings = SlicerSettings()
        assert settings.layer_height == 0.2
        assert settings.top_bottom_layers == 3
        assert settings.nozzle_diameter == 0.4
        assert settings.infill_pattern == InfillPattern.GRID
        assert settings.infill_density == 20
        assert settings.nozzle_temp == 200
        assert settings.bed_temp == 60
        assert settings.max_segments_per_layer is None

    def test_pattern_from_string(self):
        settings = SlicerSettings(infill_pattern="lines")
        assert settings.infill_pattern is InfillPattern.LINES

    def test_frozen(self):
        settings = SlicerSettings()
        with pytest.raises(ValidationError):
            settings.layer_height = 0.3

    @pytest.mark.parametrize(
        "values",
        [
            {"layer_height": 0},
            {"layer_height": -0.1},
            {"top_bottom_layers": -1},
            {"infill_density": 101},
            {"infill_pattern": "honeycomb"},
            {"max_segments_per_layer": 0},
            {"unknown_setting": 1},
        ],
    )
    def test_from_mapping_rejects_invalid(self, values):
        with pytest.raises(ConfigurationError) as exc_info:
            SlicerSettings.from_mapping(values)
        assert "error" in exc_info.value.details

    def test_with_overrides_ignores_none(self):
        settings = SlicerSettings(layer_height=0.3)
        updated = settings.with_overrides(layer_height=None, infill_density=50)
        assert updated.layer_height == 0.3
        assert updated.infill_density == 50
        assert settings.infill_density == 20

    def test_with_overrides_validates(self):
        with pytest.raises(ConfigurationError):
            SlicerSettings().with_overrides(nozzle_diameter=-1.0)


@pytest.mark.unit
class TestLoadSettings:
    """Tests for YAML profile loading."""

    def test_load_nested_profile(self, sample_profile):
        settings = load_settings(sample_profile)
        assert settings.layer_height == 0.25
        assert settings.top_bottom_layers == 2
        assert settings.infill_pattern is InfillPattern.LINES
        assert settings.infill_density == 40

    def test_load_top_level_profile(self, temp_dir):
        path = temp_dir / "flat.yaml"
        path.write_text("layer_height: 0.1\nnozzle_temp: 215\n")
        settings = load_settings(path)
        assert settings.layer_height == 0.1
        assert settings.nozzle_temp == 215

    def test_empty_file_gives_defaults(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert load_settings(path) == SlicerSettings()

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(temp_dir / "nope.yaml")

    def test_malformed_yaml(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("slicer: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_settings(path)

    def test_non_mapping(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(path)


@pytest.mark.unit
class TestConfigManager:
    """Tests for the named-profile registry."""

    def test_missing_directory(self, temp_dir):
        with pytest.raises(ConfigurationError):
            ConfigManager(config_dir=temp_dir / "missing")

    def test_list_and_get_profiles(self, temp_dir):
        profiles = temp_dir / "profiles"
        profiles.mkdir()
        (profiles / "draft.yaml").write_text("slicer:\n  layer_height: 0.3\n")
        (profiles / "fine.yaml").write_text("slicer:\n  layer_height: 0.1\n")

        config = ConfigManager(config_dir=temp_dir)
        assert config.list_profiles() == ["draft", "fine"]
        assert config.get_profile("fine").layer_height == 0.1

    def test_unknown_profile(self, temp_dir):
        config = ConfigManager(config_dir=temp_dir)
        with pytest.raises(ConfigurationError) as exc_info:
            config.get_profile("ghost")
        assert exc_info.value.details["available"] == []
