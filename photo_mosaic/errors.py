"""Exceptions raised by the mosaic core and its I/O boundary."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every error this package raises on purpose."""


class InvalidArgumentError(MosaicError, ValueError):
    """A caller broke a precondition: empty pool, malformed grid, bad size."""


class DecodeError(MosaicError):
    """A candidate image could not be read or decoded."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Cannot decode {name}: {reason}")
        self.name = name
        self.reason = reason


class CompositingError(MosaicError):
    """A chosen candidate could not be drawn into the output raster."""


class AssemblyCancelled(MosaicError):
    """Assembly stopped at a row boundary because cancellation was requested."""
