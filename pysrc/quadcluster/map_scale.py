# map_scale.py
"""MapScale - ratio between screen points and map points, and its zoom level."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ._common import MAX_ZOOM_LEVEL
from ._geometry import CoordinateRegion, MapRect


def zoom_level_for_scale(scale: float) -> int:
    """
    Convert a screen-points-per-map-point ratio into a discrete zoom level.

    A scale of 1 is the deepest level (MAX_ZOOM_LEVEL); every halving of the
    scale takes one level off, down to 0.

    Args:
        scale: A finite, positive ratio.

    Returns:
        The zoom level, never negative.

    Example:
        ```python
        assert zoom_level_for_scale(1.0) == 20
        assert zoom_level_for_scale(0.25) == 18
        ```
    """
    rounded_log = math.floor(math.log2(scale) + 0.5)
    return int(max(0, MAX_ZOOM_LEVEL + rounded_log))


@dataclass(frozen=True)
class MapScale:
    """
    Ratio between the map view width in screen points and the visible map width.

    Attributes:
        raw_value: Screen points per map point. 0.5 means half a screen point
            shows one map point.
    """

    raw_value: float

    @classmethod
    def from_widths(
        cls, map_view_width_in_points: float, visible_width_in_map_points: float
    ) -> MapScale:
        """
        Build a scale from the two widths.

        A zero visible width yields an infinite (or NaN) ratio rather than an
        error, which ``is_valid`` then rejects.
        """
        try:
            raw = map_view_width_in_points / visible_width_in_map_points
        except ZeroDivisionError:
            raw = (
                math.nan
                if map_view_width_in_points == 0
                else math.copysign(math.inf, map_view_width_in_points)
            )
        return cls(float(raw))

    @classmethod
    def from_region(
        cls, map_view_width_in_points: float, region: CoordinateRegion
    ) -> MapScale:
        """Build a scale from the map view width and the visible region."""
        return cls.from_widths(map_view_width_in_points, MapRect.from_region(region).width)

    @property
    def is_valid(self) -> bool:
        """True if the ratio is finite and positive."""
        return math.isfinite(self.raw_value) and self.raw_value > 0

    @property
    def zoom_level(self) -> int:
        """
        Discrete zoom level for this scale.

        Raises:
            ValueError: If the scale is not valid.
        """
        if not self.is_valid:
            raise ValueError(f"MapScale {self.raw_value!r} has no zoom level")
        return zoom_level_for_scale(self.raw_value)
