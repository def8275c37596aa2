"""Candidate images and the pool that tracks how often each one is used."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from PIL import Image

from photo_mosaic.errors import InvalidArgumentError


@dataclass(eq=False)
class CandidateImage:
    """A decoded image plus its cached brightness fingerprint.

    ``brightness`` is set once at ingestion. ``usage_count`` is only
    touched by the selector and by :meth:`CandidatePool.reset`.
    """

    source: Image.Image
    brightness: float
    name: str = ""
    usage_count: int = 0

    def __post_init__(self) -> None:
        if not 0.0 <= self.brightness <= 255.0:
            msg = f"brightness must be in [0, 255], got {self.brightness}"
            raise InvalidArgumentError(msg)


def compute_max_usage(num_cells: int, pool_size: int) -> int:
    """Usage cap per candidate: ``max(1, floor(cells / pool) * 2)``."""
    if pool_size < 1:
        msg = "candidate pool is empty"
        raise InvalidArgumentError(msg)
    return max(1, (num_cells // pool_size) * 2)


class CandidatePool:
    """Ordered candidates, their usage cap, and a lock for exclusive runs.

    Pool order matters: the closest-brightness fallback resolves ties to
    the earliest candidate.
    """

    def __init__(self, candidates: Iterable[CandidateImage] = ()) -> None:
        self._candidates: list[CandidateImage] = list(candidates)
        self.max_usage = 1
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[CandidateImage]:
        return iter(self._candidates)

    def __getitem__(self, index: int) -> CandidateImage:
        return self._candidates[index]

    def __repr__(self) -> str:
        return f"CandidatePool(size={len(self)}, max_usage={self.max_usage})"

    def reset(self, num_cells: int) -> int:
        """Zero every usage counter and recompute the cap for *num_cells*."""
        self.max_usage = compute_max_usage(num_cells, len(self))
        for candidate in self._candidates:
            candidate.usage_count = 0
        return self.max_usage

    def usage_counts(self) -> list[int]:
        return [c.usage_count for c in self._candidates]

    def copy(self) -> CandidatePool:
        """Private pool with fresh counters; pixel sources are shared."""
        clone = CandidatePool(
            CandidateImage(source=c.source, brightness=c.brightness, name=c.name)
            for c in self._candidates
        )
        clone.max_usage = self.max_usage
        return clone

    @contextmanager
    def exclusive(self) -> Iterator[CandidatePool]:
        """Hold the pool for one assembly run; concurrent runs wait here."""
        with self._lock:
            yield self
