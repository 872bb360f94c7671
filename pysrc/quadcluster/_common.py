# _common.py
"""Common utilities and constants shared across the clustering engine."""

from __future__ import annotations

import math
from typing import Any

# Type aliases
Bounds = tuple[float, float, float, float]
"""Axis-aligned rectangle as (min_x, min_y, max_x, max_y)."""

Size = tuple[float, float]
"""2D size as (width, height), in screen points."""

# World constants
WORLD_SIZE = float(2**28)
"""Width and height of the projected world, in map points."""

TILE_SIZE = 256.0
"""Width of a zoom-level-0 map tile, in screen points."""

MAX_ZOOM_LEVEL = int(math.log2(WORLD_SIZE / TILE_SIZE))
"""Deepest zoom level, where one screen point covers one map point."""

EARTH_RADIUS_METERS = 6_371_008.8
"""Mean earth radius used for bearing offsets and distances."""

MAX_MERCATOR_LATITUDE = 85.05112878
"""Latitude at which the square Web-Mercator world is cut off."""


def validate_bounds(bounds: Any) -> Bounds:
    """
    Validate and normalize bounds to a tuple.

    Args:
        bounds: Bounds as sequence of 4 numbers.

    Returns:
        Validated bounds as tuple of floats.

    Raises:
        ValueError: If bounds are invalid.
    """
    if type(bounds) is not tuple:
        bounds = tuple(bounds)
    if len(bounds) != 4:
        raise ValueError(
            "bounds must be a tuple of four numeric values (x min, y min, x max, y max)"
        )
    min_x, min_y, max_x, max_y = (float(v) for v in bounds)
    if not (min_x <= max_x and min_y <= max_y):
        raise ValueError(f"bounds {bounds!r} have a negative width or height")
    return (min_x, min_y, max_x, max_y)


def validate_size(size: Any) -> Size:
    """
    Validate a (width, height) pair.

    Raises:
        ValueError: If size is not two numbers.
    """
    if type(size) is not tuple:
        size = tuple(size)
    if len(size) != 2:
        raise ValueError("size must be a tuple of two numeric values (width, height)")
    return (float(size[0]), float(size[1]))
