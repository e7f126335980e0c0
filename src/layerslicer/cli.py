"""
Command-line interface for layerslicer.

Provides commands for slicing meshes to G-code and inspecting inputs and
outputs.
"""

from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from layerslicer import __version__
from layerslicer.core.config import ConfigManager, InfillPattern, SlicerSettings, load_settings
from layerslicer.core.exceptions import LayerSlicerError
from layerslicer.core.logging import bind_run_context, configure_logging
from layerslicer.geometry.mesh import load_mesh
from layerslicer.pipeline import SlicingPipeline
from layerslicer.postprocessor.reader import parse_program

console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default="WARNING", show_default=True, help="Log level")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def main(log_level: str, json_logs: bool) -> None:
    """layerslicer - slice STL models into G-code."""
    configure_logging(level=log_level, json_output=json_logs)


# =============================================================================
# Slicing
# =============================================================================


def resolve_profile(profile: str, config_dir: Path) -> SlicerSettings:
    """Load ``profile`` as a YAML file if it is one, else look it up by name."""
    path = Path(profile)
    if path.is_file():
        return load_settings(path)
    return ConfigManager(config_dir=config_dir).get_profile(profile)


@main.command("slice")
@click.argument("models", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), required=True,
              help="G-code output file")
@click.option("--profile", "-p", help="YAML profile file, or a profile name from --config-dir")
@click.option("--config-dir", type=click.Path(path_type=Path), default=Path("config"),
              show_default=True, help="Directory holding profiles/*.yaml")
@click.option("--layer-height", type=float, help="Layer height (mm)")
@click.option("--shells", "top_bottom_layers", type=int, help="Top/bottom solid layers")
@click.option("--nozzle", "nozzle_diameter", type=float, help="Nozzle diameter (mm)")
@click.option("--pattern", "infill_pattern",
              type=click.Choice([p.value for p in InfillPattern]), help="Infill pattern")
@click.option("--density", "infill_density", type=click.IntRange(0, 100),
              help="Infill density (%)")
@click.option("--drop-to-plate", is_flag=True, help="Move each model down onto Z=0")
def slice_command(
    models: Tuple[Path, ...],
    output: Path,
    profile: Optional[str],
    config_dir: Path,
    layer_height: Optional[float],
    top_bottom_layers: Optional[int],
    nozzle_diameter: Optional[float],
    infill_pattern: Optional[str],
    infill_density: Optional[int],
    drop_to_plate: bool,
) -> None:
    """Slice one or more models placed on the same plate."""
    try:
        settings = resolve_profile(profile, config_dir) if profile else SlicerSettings()
        settings = settings.with_overrides(
            layer_height=layer_height,
            top_bottom_layers=top_bottom_layers,
            nozzle_diameter=nozzle_diameter,
            infill_pattern=infill_pattern,
            infill_density=infill_density,
        )

        meshes = [load_mesh(path) for path in models]
        if drop_to_plate:
            meshes = [mesh.dropped_to_plate() for mesh in meshes]

        bind_run_context(output=str(output))
        result = SlicingPipeline(settings).run(meshes)
        output.write_text(result.gcode)

        console.print(
            f"[green]✓[/green] Sliced {len(meshes)} model(s) into "
            f"{result.printable_layers} layers -> {output}"
        )
    except LayerSlicerError as e:
        console.print(f"[red]✗[/red] Slicing failed: {e}")
        raise SystemExit(1)


# =============================================================================
# Inspection
# =============================================================================


@main.command("info")
@click.argument("model", type=click.Path(path_type=Path))
def info_command(model: Path) -> None:
    """Show triangle count and bounding box of a model."""
    try:
        mesh = load_mesh(model)
        bbox = mesh.bbox
    except LayerSlicerError as e:
        console.print(f"[red]✗[/red] Failed to load model: {e}")
        raise SystemExit(1)

    table = Table(title=f"Model: {mesh.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Triangles", str(len(mesh)))
    table.add_row("Min", ", ".join(f"{v:.3f}" for v in bbox.min))
    table.add_row("Max", ", ".join(f"{v:.3f}" for v in bbox.max))
    table.add_row("Size", ", ".join(f"{v:.3f}" for v in bbox.size))
    Console().print(table)


@main.command("profiles")
@click.option("--config-dir", type=click.Path(path_type=Path), default=Path("config"),
              show_default=True, help="Directory holding profiles/*.yaml")
def profiles_command(config_dir: Path) -> None:
    """List the named slicer profiles."""
    try:
        config = ConfigManager(config_dir=config_dir)
        names = config.list_profiles()
    except LayerSlicerError as e:
        console.print(f"[red]✗[/red] Failed to load profiles: {e}")
        raise SystemExit(1)

    table = Table(title=f"Profiles: {config_dir}")
    table.add_column("Name", style="cyan")
    table.add_column("Layer height")
    table.add_column("Infill")
    for name in names:
        settings = config.get_profile(name)
        table.add_row(
            name,
            f"{settings.layer_height}",
            f"{settings.infill_pattern.value} {settings.infill_density}%",
        )
    Console().print(table)


@main.command("inspect")
@click.argument("gcode", type=click.Path(exists=True, path_type=Path))
def inspect_command(gcode: Path) -> None:
    """Summarise a G-code program."""
    program = parse_program(gcode.read_text())
    extrusion = program.extrusion_values()

    table = Table(title=f"Program: {gcode.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Commands", str(len(program.commands)))
    table.add_row("Layers", str(program.layer_count))
    table.add_row("Extruding moves", str(len(extrusion)))
    table.add_row("Final E", f"{extrusion[-1]:.3f}" if extrusion else "-")
    Console().print(table)


if __name__ == "__main__":
    main()
