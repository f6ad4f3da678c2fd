"""
Command-line interface for the show pipeline.
Provides commands to plan, preview and build shows.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table

from .config import PipelineConfig, ENV_PREFIX, ENV_VARS
from .sources.base import ShowError
from .pipeline import ShowPipeline, ShowRequest, PipelineState
from .processing.preview import PreviewRenderer, PreviewConfig

# Initialize typer app and rich console
app = typer.Typer(
    name="cinemashow",
    help="Cinema Show - Turn a sequence of frame images into an animated block screen resource pack",
    add_completion=False,
    rich_markup_mode="rich",
    epilog="""
[bold]Examples:[/bold]
  [cyan]cinemashow plan frames/ --blocks 8[/cyan]                       Show the block grid for a set of frames
  [cyan]cinemashow preview frames/ -o preview.gif[/cyan]                Render an animated preview
  [cyan]cinemashow make frames/ --name "Good Vintage"[/cyan]            Build cinemashow.done.jar
  [cyan]cinemashow make frames/ -n Intro --axis y --blocks 6[/cyan]     Fix the height instead of the width

[bold]Environment Variables:[/bold]
  Use [cyan]cinemashow config --env-vars[/cyan] to see all available variables.
    """
)
console = Console()


@app.command()
def make(
    frames_dir: Path = typer.Argument(..., help="Directory containing the frame images"),
    name: str = typer.Option(..., "--name", "-n", help="Display name of the show"),
    blocks: Optional[int] = typer.Option(None, "--blocks", "-b", help="Blocks along the primary axis"),
    axis: Optional[str] = typer.Option(None, "--axis", "-a", help="Primary axis: x (wide) or y (high)"),
    frame_time: Optional[int] = typer.Option(None, "--frame-time", "-t", help="Game ticks per frame"),
    base: Optional[str] = typer.Option(None, "--base", help="URL or path of the base archive"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output archive path"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    show_summary: bool = typer.Option(True, "--summary/--no-summary", help="Show execution summary")
):
    """Build a show and write the resource pack archive."""
    console.print("[bold blue]Building show...[/bold blue]")

    config = _load_config(config_file)
    if base:
        config.base_archive = base
    output = output or Path(config.output_name)

    try:
        pipeline = ShowPipeline(config)
        request = ShowRequest.from_config(
            name, config, blocks=blocks, primary_axis=axis, frame_time=frame_time
        )
        result = pipeline.run_directory(frames_dir, request)
    except ShowError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        if show_summary:
            _display_pipeline_summary(pipeline.state)
        raise typer.Exit(1)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    try:
        _write_atomic(output, result.archive)
    except OSError as e:
        console.print(f"[red]Cannot write {output}:[/red] {e}")
        raise typer.Exit(1)

    grid = result.grid
    console.print(
        f"[green]✓[/green] Show '{result.show.name}' ({result.show.slug}): "
        f"{grid.blocks_x}×{grid.blocks_y} blocks, {len(result.atlases)} tiles"
    )
    if result.normalization.upscaled_frames:
        console.print(
            f"[yellow]Warning:[/yellow] {len(result.normalization.upscaled_frames)} frames were upscaled"
        )
    console.print(f"[green]✓[/green] Wrote {output} ({len(result.archive)} bytes)")

    if show_summary:
        _display_pipeline_summary(result.state)


@app.command()
def plan(
    frames_dir: Path = typer.Argument(..., help="Directory containing the frame images"),
    blocks: Optional[int] = typer.Option(None, "--blocks", "-b", help="Blocks along the primary axis"),
    axis: Optional[str] = typer.Option(None, "--axis", "-a", help="Primary axis: x (wide) or y (high)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """Show the block grid and per-frame cropping for a set of frames."""
    config = _load_config(config_file)

    try:
        pipeline = ShowPipeline(config)
        request = ShowRequest.from_config("plan", config, blocks=blocks, primary_axis=axis)
        frame_set = pipeline.apply_frame_count(
            pipeline.loader.load_directory(frames_dir)
        )
        result = pipeline.plan(frame_set, request)
    except (ShowError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    grid = result.grid
    summary = Table(title="Show Grid", show_header=False)
    summary.add_column("Setting", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Primary axis", grid.primary_axis.value)
    summary.add_row("Blocks", f"{grid.blocks_x}×{grid.blocks_y}")
    summary.add_row("Target size", f"{grid.target_size[0]}×{grid.target_size[1]} px")
    summary.add_row("Cross-axis length", f"{result.cross_axis_length} px")
    summary.add_row("Frames", str(len(result.geometries)))
    console.print(summary)

    frames_table = Table(title="Frames")
    frames_table.add_column("#", style="dim")
    frames_table.add_column("Name", style="cyan")
    frames_table.add_column("Native")
    frames_table.add_column("Scaled")
    frames_table.add_column("Crop offset")
    frames_table.add_column("Upscaled")

    for frame, geometry in zip(frame_set, result.geometries):
        frames_table.add_row(
            str(frame.index),
            frame.name,
            f"{frame.width}×{frame.height}",
            f"{geometry.scaled_size[0]}×{geometry.scaled_size[1]}",
            f"{geometry.offset[0]}, {geometry.offset[1]}",
            "[yellow]yes[/yellow]" if geometry.upscaled else "no",
        )
    console.print(frames_table)

    if result.upscaled_frames:
        console.print(
            f"[yellow]Warning:[/yellow] frames {result.upscaled_frames} are smaller than "
            f"{grid.target_primary_length}px and will be upscaled"
        )


@app.command()
def preview(
    frames_dir: Path = typer.Argument(..., help="Directory containing the frame images"),
    output: Path = typer.Option(Path("preview.gif"), "--output", "-o", help="Output GIF path"),
    blocks: Optional[int] = typer.Option(None, "--blocks", "-b", help="Blocks along the primary axis"),
    axis: Optional[str] = typer.Option(None, "--axis", "-a", help="Primary axis: x (wide) or y (high)"),
    frame_time: Optional[int] = typer.Option(None, "--frame-time", "-t", help="Game ticks per frame"),
    grid: bool = typer.Option(True, "--grid/--no-grid", help="Draw block grid lines"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """Render an animated GIF of the frames cropped to the block grid."""
    console.print("[bold blue]Rendering preview...[/bold blue]")
    config = _load_config(config_file)

    try:
        pipeline = ShowPipeline(config)
        request = ShowRequest.from_config(
            "preview", config, blocks=blocks, primary_axis=axis, frame_time=frame_time
        )
        frame_set = pipeline.apply_frame_count(
            pipeline.loader.load_directory(frames_dir)
        )
        normalization = pipeline.plan(frame_set, request)

        renderer = PreviewRenderer(PreviewConfig(
            show_grid=grid,
            grid_color=config.preview_grid_color,
            tick_ms=config.preview_tick_ms,
            resample=config.resample,
        ))
        frames = renderer.render_frames(frame_set, normalization)
        renderer.save_gif(frames, output, request.frame_time)
    except (ShowError, ValueError, FileNotFoundError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    width, height = normalization.target_size
    console.print(f"[green]✓[/green] Wrote {output} ({len(frames)} frames, {width}×{height} px)")


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    validate_config: bool = typer.Option(False, "--validate", help="Validate configuration file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    env_vars: bool = typer.Option(False, "--env-vars", help="Show available environment variables"),
    init: Optional[Path] = typer.Option(None, "--init", help="Write a configuration file with the current settings")
):
    """Manage pipeline configuration."""
    if env_vars:
        _display_env_vars()
        return

    if init:
        if init.exists():
            console.print(f"[red]Refusing to overwrite existing file:[/red] {init}")
            raise typer.Exit(1)
        try:
            _load_config(config_file).save(init)
        except (OSError, ValueError) as e:
            console.print(f"[red]Error writing configuration:[/red] {e}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Wrote configuration to {init}")
        return

    if show or validate_config:
        config = _load_config(config_file)

        if show:
            _display_config(config)

        if validate_config:
            errors = config.validate()
            if errors:
                console.print("[red]Configuration validation errors:[/red]")
                for error in errors:
                    console.print(f"  • {error}")
                raise typer.Exit(1)
            else:
                console.print("[green]✓ Configuration is valid[/green]")
    else:
        console.print("Use --show to display configuration, --validate to check it, "
                      "--init PATH to write one, or --env-vars to see environment variables.")


@app.command()
def version():
    """Show version information."""
    from . import __version__
    import PIL
    import requests

    console.print("[bold]Cinema Show pipeline[/bold]")
    console.print(f"Version: {__version__}")
    console.print("Python: " + sys.version.split()[0])

    table = Table(show_header=False)
    table.add_column("Package", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("Pillow", PIL.__version__)
    table.add_row("Requests", requests.__version__)
    table.add_row("Typer", getattr(typer, "__version__", "unknown"))
    console.print(table)


def _load_config(config_file: Optional[Path]) -> PipelineConfig:
    """Load configuration from file or use defaults with environment variable support."""
    config = None

    try:
        if config_file:
            if not config_file.exists():
                console.print(f"[red]Configuration file not found:[/red] {config_file}")
                raise typer.Exit(1)
            config = PipelineConfig.from_file(config_file)
            console.print(f"[dim]Using configuration: {config_file}[/dim]")
        else:
            # Try to find default config files
            default_configs = [
                Path("cinemashow.toml"),
                Path("cinemashow.json"),
            ]

            for config_path in default_configs:
                if config_path.exists():
                    console.print(f"[dim]Using configuration: {config_path}[/dim]")
                    config = PipelineConfig.from_file(config_path)
                    break

            if config is None:
                console.print("[dim]Using default configuration[/dim]")
                config = PipelineConfig()
    except (ValueError, TypeError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)

    # Apply environment variable overrides
    config = PipelineConfig._apply_env_overrides(config)

    env_vars_used = [key for key in os.environ if key.startswith(ENV_PREFIX)]
    if env_vars_used:
        console.print(f"[dim]Environment overrides applied: {len(env_vars_used)} variables[/dim]")

    return config


def _write_atomic(path: Path, data: bytes) -> None:
    """Write bytes so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(temp_name, path)
    except OSError:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def _display_pipeline_summary(state: PipelineState) -> None:
    """Display pipeline execution summary."""
    if not state.step_results:
        return

    console.print("\n[bold]Pipeline Execution Summary[/bold]")
    step_table = Table()
    step_table.add_column("Step", style="cyan")
    step_table.add_column("Status", width=8)
    step_table.add_column("Duration", style="yellow")
    step_table.add_column("Message", style="dim")

    for step, result in state.step_results.items():
        status = "[green]✓[/green]" if result.success else "[red]✗[/red]"
        message = result.message[:50] + "..." if len(result.message) > 50 else result.message
        step_table.add_row(step.value, status, f"{result.duration:.2f}s", message)

    console.print(step_table)
    console.print(f"[dim]Total execution time: {state.duration:.2f}s[/dim]")


def _display_config(config: PipelineConfig) -> None:
    """Display configuration in a formatted table."""
    table = Table(title="Cinema Show Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Primary Axis", config.primary_axis)
    table.add_row("Blocks", str(config.blocks))
    table.add_row("Frame Time", f"{config.frame_time} ticks")
    table.add_row("Frame Count", str(config.frame_count) if config.frame_count else "all frames")
    table.add_row("Base Archive", config.base_archive)
    table.add_row("Output Name", config.output_name)
    table.add_row("Namespace", config.namespace)
    table.add_row("Compression Level", str(config.compression_level))
    table.add_row("Fetch Timeout", f"{config.fetch_timeout}s")
    table.add_row("Resample", config.resample)
    table.add_row("Decode Workers", str(config.decode_workers))
    table.add_row("Preview Grid Color", str(tuple(config.preview_grid_color)))
    table.add_row("Preview Tick", f"{config.preview_tick_ms} ms")

    console.print(table)


def _display_env_vars() -> None:
    """Display available environment variables for configuration."""
    table = Table(title="Cinema Show Environment Variables")
    table.add_column("Environment Variable", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="green")

    for var_name, description, example in ENV_VARS:
        table.add_row(var_name, description, example)

    console.print(table)
    console.print("\n[dim]Set these environment variables to override configuration file settings.[/dim]")
    console.print("[dim]Example: export CINEMASHOW_BLOCKS=8[/dim]")


if __name__ == "__main__":
    app()
