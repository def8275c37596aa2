"""Per-cell candidate selection under a tolerance-and-fairness policy.

Three tiers, each tried only when the previous one has no candidates:

1. **Fresh** - unused candidates within tolerance, picked at random.
2. **Reused** - candidates below the usage cap within tolerance, picked
   at random (re-filtered over the whole pool).
3. **Closest** - the candidate with the smallest brightness difference,
   ties going to the first in pool order. No cap is applied here, so
   this tier may push a candidate past ``max_usage``.

The chosen candidate's ``usage_count`` is incremented in every tier.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Protocol

import numpy as np

from photo_mosaic.errors import InvalidArgumentError
from photo_mosaic.pool import CandidateImage, CandidatePool


class RandomSource(Protocol):
    """Anything with numpy ``Generator.integers`` semantics (high exclusive)."""

    def integers(self, low: int, high: int | None = None) -> int: ...


class SelectionTier(IntEnum):
    FRESH = 1
    REUSED = 2
    CLOSEST = 3


def _pick(candidates: list[CandidateImage], rng: RandomSource) -> CandidateImage:
    return candidates[int(rng.integers(0, len(candidates)))]


def choose(
    target: float,
    pool: CandidatePool,
    tolerance: float,
    rng: RandomSource | None = None,
) -> tuple[CandidateImage, SelectionTier]:
    """Select a candidate for one cell and report which tier resolved it.

    Args:
        target:    Cell brightness in [0, 255].
        pool:      Candidates with live usage counters; ``pool.max_usage``
                   is the cap for tier 2.
        tolerance: Maximum ``|brightness - target|`` for tiers 1 and 2.
        rng:       Random source for tiers 1 and 2. A fresh
                   ``numpy.random.default_rng()`` when omitted.

    Returns:
        ``(candidate, tier)``; the candidate's usage count is already
        incremented.
    """
    if len(pool) == 0:
        msg = "cannot select from an empty candidate pool"
        raise InvalidArgumentError(msg)
    if rng is None:
        rng = np.random.default_rng()

    close = [c for c in pool if abs(c.brightness - target) <= tolerance]

    fresh = [c for c in close if c.usage_count == 0]
    if fresh:
        chosen, tier = _pick(fresh, rng), SelectionTier.FRESH
    else:
        reusable = [c for c in close if c.usage_count < pool.max_usage]
        if reusable:
            chosen, tier = _pick(reusable, rng), SelectionTier.REUSED
        else:
            # min() keeps the first of equal keys
            chosen = min(pool, key=lambda c: abs(c.brightness - target))
            tier = SelectionTier.CLOSEST

    chosen.usage_count += 1
    return chosen, tier


def select(
    target: float,
    pool: CandidatePool,
    tolerance: float,
    rng: RandomSource | None = None,
) -> CandidateImage:
    """Like :func:`choose` but return only the candidate."""
    return choose(target, pool, tolerance, rng)[0]
