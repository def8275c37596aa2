"""Luma conversion and luminance-grid downsampling."""

from __future__ import annotations

import numpy as np
from skimage.transform import resize

# ITU-R BT.601 weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def rgb_to_luma(rgb: np.ndarray) -> np.ndarray:
    """Convert (..., 3) RGB (any alpha channel is ignored) → (...) float64 luma."""
    return rgb[..., :3].astype(np.float64) @ LUMA_WEIGHTS


def downsample_luma(luma: np.ndarray, width: int, height: int) -> np.ndarray:
    """Area-average a 2-D luma array down (or up) to ``(height, width)``.

    Returns:
        (height, width) float64, clipped to [0, 255].
    """
    out = resize(
        luma.astype(np.float64),
        (height, width),
        order=1,
        mode="edge",
        anti_aliasing=True,
        preserve_range=True,
    )
    return np.clip(out, 0.0, 255.0)
