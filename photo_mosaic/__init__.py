"""
Photo Mosaic
============

Rebuild a brightness pattern out of your own pictures. Every candidate
image is reduced to one luma value; each grid cell then gets a candidate
whose brightness is within tolerance, preferring unused images and
capping reuse, with a closest-brightness fallback when nothing fits.
"""

__version__ = "1.0.0"

from photo_mosaic.assembler import (
    PlacementLog,
    assemble,
    build_mosaic,
    resolve_target_grid,
    synthesize_target_grid,
    validate_target_grid,
)
from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import (
    AssemblyCancelled,
    CompositingError,
    DecodeError,
    InvalidArgumentError,
    MosaicError,
)
from photo_mosaic.fingerprint import fingerprint
from photo_mosaic.image_io import (
    decode_image,
    load_candidates,
    load_target_grid,
    save_raster,
    save_target_grid,
    target_grid_from_image,
)
from photo_mosaic.pool import CandidateImage, CandidatePool, compute_max_usage
from photo_mosaic.selector import RandomSource, SelectionTier, choose, select

__all__ = [
    "AssemblyCancelled",
    "CandidateImage",
    "CandidatePool",
    "CompositingError",
    "DecodeError",
    "InvalidArgumentError",
    "MosaicConfig",
    "MosaicError",
    "PlacementLog",
    "RandomSource",
    "SelectionTier",
    "assemble",
    "build_mosaic",
    "choose",
    "compute_max_usage",
    "decode_image",
    "fingerprint",
    "load_candidates",
    "load_target_grid",
    "resolve_target_grid",
    "save_raster",
    "save_target_grid",
    "select",
    "synthesize_target_grid",
    "target_grid_from_image",
    "validate_target_grid",
]
