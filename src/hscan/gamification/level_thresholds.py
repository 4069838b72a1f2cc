"""Level thresholds and computation.

Ten explicit bands; past the last band every further threshold is the previous
one times 1.5, floored. The frontend progress bar reads the same numbers from
``GET /api/v1/levels``.
"""

from __future__ import annotations

import math
from typing import NamedTuple

GROWTH_FACTOR = 1.5


class LevelBand(NamedTuple):
    level: int
    min_points: int
    max_points: int


LEVEL_THRESHOLDS: tuple[LevelBand, ...] = (
    LevelBand(level=1, min_points=0, max_points=100),
    LevelBand(level=2, min_points=100, max_points=250),
    LevelBand(level=3, min_points=250, max_points=500),
    LevelBand(level=4, min_points=500, max_points=1000),
    LevelBand(level=5, min_points=1000, max_points=1500),
    LevelBand(level=6, min_points=1500, max_points=2250),
    LevelBand(level=7, min_points=2250, max_points=3375),
    LevelBand(level=8, min_points=3375, max_points=5062),
    LevelBand(level=9, min_points=5062, max_points=7593),
    LevelBand(level=10, min_points=7593, max_points=11389),
)


def level_band(points: int) -> LevelBand:
    """Return the band containing ``points``, extending the table geometrically."""
    points = max(points, 0)

    for band in LEVEL_THRESHOLDS:
        if band.min_points <= points < band.max_points:
            return band

    last = LEVEL_THRESHOLDS[-1]
    level, low, high = last.level, last.min_points, last.max_points
    while points >= high:
        level += 1
        low, high = high, math.floor(high * GROWTH_FACTOR)
    return LevelBand(level=level, min_points=low, max_points=high)


def calculate_level(points: int) -> int:
    """Level for a points total. Negative totals count as zero."""
    return level_band(points).level


def get_next_level_points(points: int) -> dict:
    """Band boundaries around ``points`` and percent progress toward the next level."""
    band = level_band(points)
    span = band.max_points - band.min_points
    progress = 100 * (max(points, 0) - band.min_points) / span

    return {
        "current": band.min_points,
        "next": band.max_points,
        "progress": min(100.0, max(0.0, progress)),
    }
