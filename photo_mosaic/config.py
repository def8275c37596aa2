"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from photo_mosaic.errors import InvalidArgumentError


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        block_size:       Output pixels per cell edge.
        tolerance:        Brightness units a candidate may differ from the
                          cell target and still count as a match.
        fingerprint_size: Candidates are resampled to N x N before averaging.
        grid_width:       Columns of the synthesized target grid.
        grid_height:      Rows of the synthesized target grid.
        seed:             Seed for the selection random source (None = random).
        workers:          Threads used to fingerprint candidates.
        input_dir:        Folder to scan for candidate images.
        output_dir:       Folder for results.
        output_format:    Image format for saved files.
        save_comparison:  Also write a Target | Mosaic comparison panel.
    """

    # Assembly
    block_size: int = 8
    tolerance: float = 15.0

    # Fingerprinting
    fingerprint_size: int = 32
    workers: int = 4

    # Synthesized target grid (used when none is supplied)
    grid_width: int = 80
    grid_height: int = 60

    seed: int | None = None

    # Output
    output_format: str = "png"
    save_comparison: bool = False

    # Paths
    input_dir: Path = field(default_factory=lambda: Path("images"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif", ".gif"}
    )

    def validate(self) -> MosaicConfig:
        """Raise :class:`InvalidArgumentError` on out-of-range values."""
        for name in ("block_size", "fingerprint_size", "grid_width", "grid_height", "workers"):
            value = getattr(self, name)
            if value < 1:
                msg = f"{name} must be >= 1, got {value}"
                raise InvalidArgumentError(msg)
        if self.tolerance < 0:
            msg = f"tolerance must be >= 0, got {self.tolerance}"
            raise InvalidArgumentError(msg)
        return self

    def make_rng(self) -> np.random.Generator:
        return np.random.default_rng(self.seed)
