"""Brightness fingerprint: one scalar luma value per candidate image."""

from __future__ import annotations

import numpy as np
from PIL import Image

from photo_mosaic.color_utils import rgb_to_luma
from photo_mosaic.errors import InvalidArgumentError

FINGERPRINT_SIZE = 32


def fingerprint(image: Image.Image, size: int = FINGERPRINT_SIZE) -> float:
    """Mean luma of *image* after resampling it to ``size x size``.

    The result depends only on the pixels and on Pillow's bilinear filter,
    so repeated calls on the same image return the same value.

    Returns:
        Brightness in [0, 255].
    """
    if size < 1:
        msg = f"fingerprint size must be >= 1, got {size}"
        raise InvalidArgumentError(msg)
    small = image.convert("RGB").resize((size, size), Image.BILINEAR)
    luma = rgb_to_luma(np.asarray(small, dtype=np.uint8))
    return float(np.clip(luma.mean(), 0.0, 255.0))
