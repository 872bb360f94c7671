# _geometry.py
"""Geographic coordinates and the flat Web-Mercator map space they project into."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from ._common import (
    EARTH_RADIUS_METERS,
    MAX_MERCATOR_LATITUDE,
    WORLD_SIZE,
    Bounds,
    validate_bounds,
)


@dataclass(frozen=True)
class Coordinate:
    """
    A latitude/longitude pair in degrees.

    Equality is exact value equality, never proximity.
    """

    latitude: float
    longitude: float

    def offset(self, bearing_radians: float, distance_meters: float) -> Coordinate:
        """
        Return the coordinate reached by travelling along a great circle.

        Args:
            bearing_radians: Initial bearing, clockwise from north.
            distance_meters: Distance to travel.

        Returns:
            The destination coordinate, longitude normalized to [-180, 180).
        """
        delta = distance_meters / EARTH_RADIUS_METERS
        lat1 = math.radians(self.latitude)
        lon1 = math.radians(self.longitude)

        sin_lat2 = math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(
            delta
        ) * math.cos(bearing_radians)
        lat2 = math.asin(max(-1.0, min(1.0, sin_lat2)))
        lon2 = lon1 + math.atan2(
            math.sin(bearing_radians) * math.sin(delta) * math.cos(lat1),
            math.cos(delta) - math.sin(lat1) * math.sin(lat2),
        )

        lon2_deg = (math.degrees(lon2) + 540.0) % 360.0 - 180.0
        return Coordinate(math.degrees(lat2), lon2_deg)


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance between two coordinates."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


@dataclass(frozen=True)
class CoordinateSpan:
    """Angular extent of a region, in degrees."""

    latitude_delta: float
    longitude_delta: float


@dataclass(frozen=True)
class CoordinateRegion:
    """A rectangular geographic region given by its center and span."""

    center: Coordinate
    span: CoordinateSpan


@lru_cache(maxsize=65536)
def _project(latitude: float, longitude: float) -> tuple[float, float]:
    # Longitude is not wrapped: regions crossing the antimeridian project
    # past the right edge of the world.
    lat = max(-MAX_MERCATOR_LATITUDE, min(MAX_MERCATOR_LATITUDE, latitude))
    lat_rad = math.radians(lat)
    x = (longitude + 180.0) / 360.0 * WORLD_SIZE
    y = (
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi)
        / 2.0
        * WORLD_SIZE
    )
    return x, y


@dataclass(frozen=True)
class MapPoint:
    """A point in projected map space, origin at the top-left of the world."""

    x: float
    y: float

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> MapPoint:
        """Project a coordinate into map space."""
        x, y = _project(coordinate.latitude, coordinate.longitude)
        return cls(x, y)

    def to_coordinate(self) -> Coordinate:
        """Invert the projection."""
        lon = self.x / WORLD_SIZE * 360.0 - 180.0
        t = math.pi * (1.0 - 2.0 * self.y / WORLD_SIZE)
        lat = math.degrees(math.atan(math.sinh(t)))
        return Coordinate(lat, lon)


PointLike = Union[MapPoint, Coordinate]


@dataclass(frozen=True)
class MapRect:
    """
    Axis-aligned rectangle in map space.

    Containment is half-open (min edges inside, max edges outside) so that the
    four quadrants of a rectangle tile it with no point belonging to two of them.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    # ---- Construction ----

    @classmethod
    def from_origin_size(
        cls, x: float, y: float, width: float, height: float
    ) -> MapRect:
        return cls(x, y, x + width, y + height)

    @classmethod
    def from_bounds(cls, bounds: Bounds) -> MapRect:
        """
        Build a rect from (min_x, min_y, max_x, max_y).

        Raises:
            ValueError: If bounds are invalid.
        """
        return cls(*validate_bounds(bounds))

    @classmethod
    def from_region(cls, region: CoordinateRegion) -> MapRect:
        """
        Build the map rect covering a geographic region.

        Args:
            region: Center and span of the region.

        Returns:
            The rect spanned by the region's projected corners.
        """
        center = region.center
        half_lat = region.span.latitude_delta / 2.0
        half_lon = region.span.longitude_delta / 2.0
        top_left = MapPoint.from_coordinate(
            Coordinate(center.latitude + half_lat, center.longitude - half_lon)
        )
        bottom_right = MapPoint.from_coordinate(
            Coordinate(center.latitude - half_lat, center.longitude + half_lon)
        )
        return cls(
            min(top_left.x, bottom_right.x),
            min(top_left.y, bottom_right.y),
            max(top_left.x, bottom_right.x),
            max(top_left.y, bottom_right.y),
        )

    # ---- Measures ----

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def mid_x(self) -> float:
        return self.min_x + (self.max_x - self.min_x) / 2.0

    @property
    def mid_y(self) -> float:
        return self.min_y + (self.max_y - self.min_y) / 2.0

    @property
    def center(self) -> MapPoint:
        return MapPoint(self.mid_x, self.mid_y)

    def as_bounds(self) -> Bounds:
        """Return the rect as a (min_x, min_y, max_x, max_y) tuple."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    # ---- Predicates ----

    def contains(self, point: PointLike) -> bool:
        """
        Check whether a point lies inside the rect.

        Args:
            point: A MapPoint, or a Coordinate which is projected first.
        """
        if isinstance(point, Coordinate):
            x, y = _project(point.latitude, point.longitude)
        else:
            x, y = point.x, point.y
        return self.min_x <= x < self.max_x and self.min_y <= y < self.max_y

    def intersects(self, other: MapRect) -> bool:
        """Check whether the two rects share any area."""
        return (
            self.min_x < other.max_x
            and other.min_x < self.max_x
            and self.min_y < other.max_y
            and other.min_y < self.max_y
        )

    # ---- Derived rects ----

    def quadrants(self) -> tuple[MapRect, MapRect, MapRect, MapRect]:
        """Return the four quadrants (NW, NE, SW, SE) that exactly tile the rect."""
        mx = self.mid_x
        my = self.mid_y
        return (
            MapRect(self.min_x, self.min_y, mx, my),
            MapRect(mx, self.min_y, self.max_x, my),
            MapRect(self.min_x, my, mx, self.max_y),
            MapRect(mx, my, self.max_x, self.max_y),
        )

    def offset(self, dx: float, dy: float = 0.0) -> MapRect:
        return MapRect(self.min_x + dx, self.min_y + dy, self.max_x + dx, self.max_y + dy)


WORLD_RECT = MapRect(0.0, 0.0, WORLD_SIZE, WORLD_SIZE)
"""The whole addressable map space."""
