"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from photo_mosaic.assembler import PlacementLog, assemble, resolve_target_grid
from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import MosaicError
from photo_mosaic.image_io import (
    check_output_path,
    collect_images,
    load_candidates,
    load_target_grid,
    make_comparison_grid,
    save_raster,
    save_target_grid,
    target_grid_from_image,
)
from photo_mosaic.selector import SelectionTier

app = typer.Typer(
    name="photo-mosaic",
    help="Assemble brightness-matched photo mosaics from your own pictures.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _progress() -> Progress:
    return Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- build command -----------------------------------------------------

@app.command()
def build(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with candidate images",
    ),
    output: Path = typer.Option(
        _DEFAULTS.output_dir / f"mosaic.{_DEFAULTS.output_format}", "--output", "-o",
        help="Where to write the mosaic",
    ),
    target_grid_path: Path | None = typer.Option(
        None, "--target-grid", "-g", help="JSON array of brightness rows",
    ),
    target_image: Path | None = typer.Option(
        None, "--target-image", "-t", help="Derive the target grid from an image",
    ),
    block_size: int = typer.Option(
        _DEFAULTS.block_size, "--block-size", "-b", help="Output pixels per cell edge",
    ),
    tolerance: float = typer.Option(
        _DEFAULTS.tolerance, "--tolerance", help="Brightness tolerance (0-255 units)",
    ),
    grid_width: int = typer.Option(
        _DEFAULTS.grid_width, "--width", help="Grid columns (synthesized / derived grids)",
    ),
    grid_height: int = typer.Option(
        _DEFAULTS.grid_height, "--height", help="Grid rows (synthesized / derived grids)",
    ),
    seed: int | None = typer.Option(
        _DEFAULTS.seed, "--seed", "-s", help="Random seed (None = random)",
    ),
    workers: int = typer.Option(
        _DEFAULTS.workers, "--workers", "-w", help="Fingerprinting threads",
    ),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
        help="Also save a Target | Mosaic panel",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Fingerprint every image in INPUT_DIR and assemble a mosaic."""
    _setup_logging(verbose)
    logger = logging.getLogger("photo_mosaic")

    if target_grid_path and target_image:
        console.print("[red]Use either --target-grid or --target-image, not both.[/red]")
        raise typer.Exit(2)

    try:
        cfg = MosaicConfig(
            block_size=block_size,
            tolerance=tolerance,
            grid_width=grid_width,
            grid_height=grid_height,
            seed=seed,
            workers=workers,
            save_comparison=comparison,
            input_dir=input_dir,
        ).validate()
        check_output_path(output)
    except MosaicError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    images = collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    t_total = time.perf_counter()

    with _progress() as progress:
        task = progress.add_task("Fingerprinting", total=100)
        pool, failures = load_candidates(
            images,
            size=cfg.fingerprint_size,
            workers=cfg.workers,
            on_progress=lambda pct: progress.update(task, completed=pct),
        )

    if len(pool) == 0:
        console.print(f"[red]None of the {len(images)} images could be decoded.[/red]")
        raise typer.Exit(1)

    rng = cfg.make_rng()
    try:
        if target_grid_path is not None:
            grid = load_target_grid(target_grid_path)
        elif target_image is not None:
            grid = target_grid_from_image(target_image, cfg.grid_width, cfg.grid_height)
        else:
            grid = None
        grid = resolve_target_grid(grid, cfg, rng)
    except (MosaicError, OSError) as exc:
        console.print(f"[red]Target grid rejected: {exc}[/red]")
        raise typer.Exit(1) from exc

    h, w = grid.shape
    console.print(Panel.fit(
        f"[bold]PHOTO MOSAIC[/bold]\n"
        f"Candidates: {len(pool)}  |  Skipped: {len(failures)}\n"
        f"Grid: {w}x{h}  |  Block: {cfg.block_size}px  |  Tolerance: {cfg.tolerance:g}",
        border_style="cyan",
    ))

    placements = PlacementLog(pool, h, w).bind_targets(grid)
    try:
        with _progress() as progress:
            task = progress.add_task("Assembling", total=100)
            raster = assemble(
                grid, pool,
                block_size=cfg.block_size,
                tolerance=cfg.tolerance,
                rng=rng,
                on_progress=lambda pct: progress.update(task, completed=pct),
                on_cell=placements,
            )
    except MosaicError as exc:
        console.print(f"[red]Assembly failed: {exc}[/red]")
        raise typer.Exit(1) from exc

    try:
        save_raster(raster, output)
        logger.info("Mosaic saved: %s", output)

        if cfg.save_comparison:
            comp_path = output.with_name(f"{output.stem}_comparison{output.suffix}")
            make_comparison_grid(grid, raster, comp_path)
            logger.info("Comparison saved: %s", comp_path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Could not write {output}: {exc}[/red]")
        raise typer.Exit(1) from exc

    elapsed = time.perf_counter() - t_total
    console.print(Panel.fit(
        f"[bold green]DONE[/bold green] - {output}\n"
        f"[dim]{raster.shape[1]}x{raster.shape[0]} px  max usage={pool.max_usage}"
        f"  fresh={placements.tiers[SelectionTier.FRESH]}"
        f"  reused={placements.tiers[SelectionTier.REUSED]}"
        f"  closest={placements.tiers[SelectionTier.CLOSEST]}\n"
        f"error={placements.mean_error:.1f}  time={elapsed:.1f}s[/dim]",
        border_style="green",
    ))


# -- analyze command ---------------------------------------------------

@app.command()
def analyze(
    image: Path = typer.Argument(..., help="Image to turn into a target grid"),
    output: Path = typer.Option(Path("target_blocks.json"), "--output", "-o"),
    grid_width: int = typer.Option(_DEFAULTS.grid_width, "--width"),
    grid_height: int = typer.Option(_DEFAULTS.grid_height, "--height"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Write the luminance grid of IMAGE as JSON for ``build --target-grid``."""
    _setup_logging(verbose)

    try:
        grid = target_grid_from_image(image, grid_width, grid_height)
    except MosaicError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    save_target_grid(grid, output)
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{grid_width}x{grid_height} cells  mean={grid.mean():.1f}[/dim]"
    )


if __name__ == "__main__":
    app()
