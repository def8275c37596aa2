"""Mosaic assembly: walk the target grid and paint one candidate per cell."""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable, Sequence

import numpy as np
from PIL import Image

from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import AssemblyCancelled, CompositingError, InvalidArgumentError
from photo_mosaic.pool import CandidateImage, CandidatePool
from photo_mosaic.selector import RandomSource, SelectionTier, choose

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
CellCallback = Callable[[int, int, CandidateImage, SelectionTier], None]


def validate_target_grid(grid: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    """Check that *grid* is a non-empty rectangle of values in [0, 255].

    Returns:
        (height, width) float64 array.
    """
    if isinstance(grid, np.ndarray):
        if grid.ndim != 2:
            msg = f"target grid must be 2-D, got shape {grid.shape}"
            raise InvalidArgumentError(msg)
        rows = grid
    else:
        rows = list(grid)
        if not rows:
            msg = "target grid is empty"
            raise InvalidArgumentError(msg)
        try:
            widths = {len(row) for row in rows}
        except TypeError as exc:
            msg = "target grid rows must be sequences"
            raise InvalidArgumentError(msg) from exc
        if len(widths) != 1:
            msg = f"target grid is not rectangular (row widths {sorted(widths)})"
            raise InvalidArgumentError(msg)

    try:
        arr = np.asarray(rows, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        msg = f"target grid holds non-numeric values: {exc}"
        raise InvalidArgumentError(msg) from exc

    if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
        msg = f"target grid must have at least one row and one column, got shape {arr.shape}"
        raise InvalidArgumentError(msg)
    if not np.all(np.isfinite(arr)):
        msg = "target grid holds NaN or infinite values"
        raise InvalidArgumentError(msg)
    if arr.min() < 0.0 or arr.max() > 255.0:
        msg = f"target grid values must lie in [0, 255], got [{arr.min():.1f}, {arr.max():.1f}]"
        raise InvalidArgumentError(msg)
    return arr


def synthesize_target_grid(
    width: int = 80,
    height: int = 60,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Random (height, width) grid, each cell uniform in [0, 255]."""
    if width < 1 or height < 1:
        msg = f"grid dimensions must be positive, got {width}x{height}"
        raise InvalidArgumentError(msg)
    if rng is None:
        rng = np.random.default_rng()
    return rng.uniform(0.0, 255.0, size=(height, width))


def resolve_target_grid(
    grid: Sequence[Sequence[float]] | np.ndarray | None,
    config: MosaicConfig,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Validate a supplied grid, or synthesize the default one when absent.

    A supplied grid that fails validation raises; it is never replaced by
    a synthesized one.
    """
    if grid is None:
        logger.info(
            "No target grid supplied - synthesizing %dx%d random grid",
            config.grid_width, config.grid_height,
        )
        return synthesize_target_grid(config.grid_width, config.grid_height, rng)
    return validate_target_grid(grid)


class PlacementLog:
    """Per-cell record of an assembly run; pass as ``on_cell``.

    Attributes:
        indices: (height, width) int array of pool indices, -1 = unset.
        tiers:   Counter of :class:`SelectionTier` occurrences.
        errors:  Absolute brightness difference per placed cell.
    """

    def __init__(self, pool: CandidatePool, height: int, width: int) -> None:
        self._index_of = {id(c): i for i, c in enumerate(pool)}
        self._targets: np.ndarray | None = None
        self.indices = np.full((height, width), -1, dtype=np.int64)
        self.tiers: Counter[SelectionTier] = Counter()
        self.errors = np.zeros((height, width), dtype=np.float64)

    def bind_targets(self, grid: np.ndarray) -> PlacementLog:
        self._targets = grid
        return self

    def __call__(
        self, row: int, col: int, candidate: CandidateImage, tier: SelectionTier,
    ) -> None:
        self.indices[row, col] = self._index_of[id(candidate)]
        self.tiers[tier] += 1
        if self._targets is not None:
            self.errors[row, col] = abs(candidate.brightness - self._targets[row, col])

    @property
    def mean_error(self) -> float:
        return float(self.errors.mean())


def percent_done(done: int, total: int) -> int:
    """``100 * done / total`` rounded half-up to an int."""
    return (200 * done + total) // (2 * total)


def _notify(on_progress: ProgressCallback | None, pct: int) -> None:
    if on_progress is None:
        return
    try:
        on_progress(pct)
    except Exception:
        logger.warning("Progress observer failed at %d%%", pct, exc_info=True)


def _render_block(candidate: CandidateImage, block_size: int) -> np.ndarray:
    """Scale the candidate's original pixels to exactly fill one cell."""
    try:
        tile = candidate.source.convert("RGB").resize(
            (block_size, block_size), Image.BILINEAR,
        )
        block = np.asarray(tile, dtype=np.uint8)
    except (OSError, ValueError) as exc:
        msg = f"Cannot draw candidate {candidate.name or '<unnamed>'}: {exc}"
        raise CompositingError(msg) from exc
    if block.shape != (block_size, block_size, 3):
        msg = f"Candidate {candidate.name or '<unnamed>'} rendered with shape {block.shape}"
        raise CompositingError(msg)
    return block


def assemble(
    target_grid: Sequence[Sequence[float]] | np.ndarray,
    pool: CandidatePool,
    block_size: int = 8,
    tolerance: float = 15.0,
    rng: RandomSource | None = None,
    on_progress: ProgressCallback | None = None,
    on_cell: CellCallback | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> np.ndarray:
    """Build the mosaic raster for *target_grid* from *pool*.

    Cells are visited row-major. Each cell's target brightness is handed
    to the selector and the chosen candidate is scaled into the
    ``block_size`` square at ``(col * block_size, row * block_size)``.
    The pool is held exclusively for the run, its counters are reset and
    ``max_usage`` recomputed before the first cell.

    Args:
        target_grid:   (height, width) brightness values in [0, 255].
        pool:          Non-empty candidate pool.
        block_size:    Output pixels per cell edge.
        tolerance:     Brightness tolerance for the selector.
        rng:           Random source for selector tie-breaking.
        on_progress:   Receives ``100 * (row + 1) / height`` rounded half up
                       after each row. Failures are logged and ignored.
        on_cell:       Receives ``(row, col, candidate, tier)`` per cell.
        should_cancel: Polled between rows; a true result aborts the run.

    Returns:
        (height * block_size, width * block_size, 3) uint8 RGB raster.

    Raises:
        InvalidArgumentError: empty pool, malformed grid or bad parameters.
        CompositingError:     a chosen candidate could not be drawn.
        AssemblyCancelled:    *should_cancel* returned true.
    """
    grid = validate_target_grid(target_grid)
    if len(pool) == 0:
        msg = "cannot assemble a mosaic from an empty candidate pool"
        raise InvalidArgumentError(msg)
    if block_size < 1:
        msg = f"block_size must be >= 1, got {block_size}"
        raise InvalidArgumentError(msg)
    if tolerance < 0:
        msg = f"tolerance must be >= 0, got {tolerance}"
        raise InvalidArgumentError(msg)
    if rng is None:
        rng = np.random.default_rng()

    height, width = grid.shape
    raster = np.zeros((height * block_size, width * block_size, 3), dtype=np.uint8)
    blocks: dict[int, np.ndarray] = {}
    tiers: Counter[SelectionTier] = Counter()

    with pool.exclusive():
        max_usage = pool.reset(height * width)
        logger.info(
            "Assembling %dx%d grid from %d candidates (max usage %d, tolerance %.1f)",
            width, height, len(pool), max_usage, tolerance,
        )
        t0 = time.perf_counter()

        for row in range(height):
            y = row * block_size
            for col in range(width):
                candidate, tier = choose(float(grid[row, col]), pool, tolerance, rng)
                tiers[tier] += 1
                block = blocks.get(id(candidate))
                if block is None:
                    block = blocks[id(candidate)] = _render_block(candidate, block_size)
                x = col * block_size
                raster[y:y + block_size, x:x + block_size] = block
                if on_cell is not None:
                    on_cell(row, col, candidate, tier)

            _notify(on_progress, percent_done(row + 1, height))
            if should_cancel is not None and row + 1 < height and should_cancel():
                msg = f"Assembly cancelled after row {row + 1}/{height}"
                raise AssemblyCancelled(msg)

        logger.info(
            "Assembly done  | fresh=%d  reused=%d  closest=%d  (%.2f s)",
            tiers[SelectionTier.FRESH], tiers[SelectionTier.REUSED],
            tiers[SelectionTier.CLOSEST], time.perf_counter() - t0,
        )
    return raster


def build_mosaic(
    pool: CandidatePool,
    config: MosaicConfig | None = None,
    target_grid: Sequence[Sequence[float]] | np.ndarray | None = None,
    rng: np.random.Generator | None = None,
    on_progress: ProgressCallback | None = None,
    on_cell: CellCallback | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Resolve the target grid from *config* and assemble it.

    The same random source drives grid synthesis and selection, so a
    seeded config reproduces the whole run.

    Returns:
        ``(raster, grid)`` - the grid actually used, synthesized or not.
    """
    cfg = (config or MosaicConfig()).validate()
    if len(pool) == 0:
        msg = "cannot assemble a mosaic from an empty candidate pool"
        raise InvalidArgumentError(msg)
    if rng is None:
        rng = cfg.make_rng()
    grid = resolve_target_grid(target_grid, cfg, rng)
    raster = assemble(
        grid, pool,
        block_size=cfg.block_size,
        tolerance=cfg.tolerance,
        rng=rng,
        on_progress=on_progress,
        on_cell=on_cell,
        should_cancel=should_cancel,
    )
    return raster, grid
