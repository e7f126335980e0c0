"""
Configuration management for layerslicer.

Slicer settings are validated with pydantic and can be loaded from YAML
profiles, either one file at a time or from a directory of named profiles.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from layerslicer.core.exceptions import ConfigurationError


class InfillPattern(str, Enum):
    """Sparse infill patterns."""

    GRID = "grid"  # Lines at 0 and 90 degrees in every sparse layer
    LINES = "lines"  # Lines at 0 degrees only


class SlicerSettings(BaseModel):
    """
    Settings for one slicing run. Immutable once constructed.

    Attributes:
        layer_height: Vertical distance between slice planes (mm).
        top_bottom_layers: Number of solid shell layers at every top/bottom surface.
        nozzle_diameter: Extrusion line width, drives solid fill spacing (mm).
        infill_pattern: Sparse infill pattern.
        infill_density: Sparse infill density in percent (0-100).
        nozzle_temp: Hotend temperature written to the preamble (°C).
        bed_temp: Bed temperature written to the preamble (°C).
        max_segments_per_layer: Optional ceiling on segments traced per layer.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    layer_height: float = Field(default=0.2, gt=0)
    top_bottom_layers: int = Field(default=3, ge=0)
    nozzle_diameter: float = Field(default=0.4, gt=0)
    infill_pattern: InfillPattern = InfillPattern.GRID
    infill_density: int = Field(default=20, ge=0, le=100)
    nozzle_temp: int = Field(default=200, ge=0)
    bed_temp: int = Field(default=60, ge=0)
    max_segments_per_layer: int | None = Field(default=None, gt=0)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SlicerSettings":
        """Build settings from a plain mapping, wrapping validation errors."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid slicer settings",
                details={"error": str(e)},
            ) from e

    def with_overrides(self, **overrides: Any) -> "SlicerSettings":
        """Return a copy with the non-None overrides applied and re-validated."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return SlicerSettings.from_mapping(values)


def load_settings(path: str | Path) -> SlicerSettings:
    """
    Load slicer settings from a YAML profile.

    The profile may hold the settings at top level or under a ``slicer:`` key.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid.
    """
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"Profile not found: {config_file}")

    try:
        with open(config_file) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse profile: {config_file}",
            details={"error": str(e)},
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Profile must be a mapping: {config_file}",
            details={"type": type(data).__name__},
        )
    if "slicer" in data:
        data = data["slicer"] or {}

    return SlicerSettings.from_mapping(data)


@dataclass
class ConfigManager:
    """
    Registry of named slicer profiles stored as ``<config_dir>/profiles/*.yaml``.

    Example:
        >>> config = ConfigManager(config_dir=Path("config"))
        >>> settings = config.get_profile("fine")
    """

    config_dir: Path
    _profiles: dict[str, SlicerSettings] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        if not self.config_dir.exists():
            raise ConfigurationError(
                f"Configuration directory not found: {self.config_dir}"
            )

    def load(self) -> None:
        """Load every profile from disk."""
        profiles_dir = self.config_dir / "profiles"
        self._profiles = {}
        if profiles_dir.exists():
            for config_file in sorted(profiles_dir.glob("*.yaml")):
                self._profiles[config_file.stem] = load_settings(config_file)
        self._loaded = True

    def get_profile(self, name: str) -> SlicerSettings:
        """
        Get slicer settings by profile name.

        Raises:
            ConfigurationError: If the profile does not exist.
        """
        if not self._loaded:
            self.load()

        if name not in self._profiles:
            raise ConfigurationError(
                f"Slicer profile not found: {name}",
                details={"available": list(self._profiles.keys())},
            )
        return self._profiles[name]

    def list_profiles(self) -> list[str]:
        """List available profile names."""
        if not self._loaded:
            self.load()
        return list(self._profiles.keys())
