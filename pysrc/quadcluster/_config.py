"""Configuration for ClusterManager."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ._common import MAX_ZOOM_LEVEL, Size
from ._geometry import Coordinate, MapPoint, MapRect
from ._storage import NodeStorage, resolve_storage

MIN_CELL_SIZE = 16.0
"""Smallest default grid cell edge, in screen points."""


def default_cell_size_for_zoom_level(zoom_level: int) -> Size:
    """
    Grid cell size, in screen points, for a zoom level.

    Cells shrink as the map zooms in and bottom out at MIN_CELL_SIZE.
    """
    if zoom_level >= 19:
        edge = MIN_CELL_SIZE
    elif zoom_level >= 16:
        edge = 32.0
    elif zoom_level >= 13:
        edge = 64.0
    else:
        edge = 88.0
    return (edge, edge)


class ClusterPosition(Enum):
    """Where a cluster marker is placed relative to its grid cell and members."""

    CENTER = "center"
    """Center of the grid cell."""

    NEAR_CENTER = "near_center"
    """Member coordinate closest to the center of the grid cell."""

    AVERAGE = "average"
    """Centroid of the member coordinates."""

    FIRST = "first"
    """Coordinate of the first member."""

    def calculate(
        self, coordinates: Sequence[Coordinate], map_rect: MapRect
    ) -> Coordinate:
        """
        Compute the cluster coordinate.

        Args:
            coordinates: Member coordinates (non-empty except for CENTER).
            map_rect: The grid cell the members were found in.

        Returns:
            The marker coordinate.
        """
        if self is ClusterPosition.CENTER or not coordinates:
            return map_rect.center.to_coordinate()
        if self is ClusterPosition.FIRST:
            return coordinates[0]
        if self is ClusterPosition.AVERAGE:
            n = len(coordinates)
            return Coordinate(
                sum(c.latitude for c in coordinates) / n,
                sum(c.longitude for c in coordinates) / n,
            )

        center = map_rect.center

        def _dist_sq(c: Coordinate) -> float:
            p = MapPoint.from_coordinate(c)
            return (p.x - center.x) ** 2 + (p.y - center.y) ** 2

        return min(coordinates, key=_dist_sq)


@dataclass
class ClusterManagerConfig:
    """Configuration for ClusterManager."""

    max_zoom_level: int = MAX_ZOOM_LEVEL
    """Clustering applies only at zoom levels up to this one; deeper, all annotations show individually."""

    min_count_for_clustering: int = 2
    """Minimum clusterable annotations in a grid cell to form a cluster."""

    should_remove_invisible_annotations: bool = True
    """If False, annotations that left the visible rect are not reported as removals."""

    should_distribute_annotations_on_same_coordinate: bool = True
    """Spread annotations sharing an exact coordinate on a small circle before clustering."""

    distance_from_contested_location: float = 3.0
    """Radius, in meters, of the circle used to spread coincident annotations."""

    cluster_position: ClusterPosition = ClusterPosition.AVERAGE
    """Strategy for the cluster marker coordinate."""

    cell_size_for_zoom_level: Callable[[int], Size] = field(
        default=default_cell_size_for_zoom_level
    )
    """Zoom level -> (width, height) of a grid cell, in screen points."""

    storage: str | type[NodeStorage] = "list"
    """Node storage for the manager's quadtree ("list", "hash", or a NodeStorage subclass)."""

    def __post_init__(self) -> None:
        if self.min_count_for_clustering < 1:
            raise ValueError(
                f"min_count_for_clustering must be at least 1, got {self.min_count_for_clustering}"
            )
        if self.max_zoom_level < 0:
            raise ValueError(f"max_zoom_level must be >= 0, got {self.max_zoom_level}")
        if not self.distance_from_contested_location > 0:
            raise ValueError(
                "distance_from_contested_location must be positive, "
                f"got {self.distance_from_contested_location}"
            )
        if not isinstance(self.cluster_position, ClusterPosition):
            self.cluster_position = ClusterPosition(self.cluster_position)
        resolve_storage(self.storage)
