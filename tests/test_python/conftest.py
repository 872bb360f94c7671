import numpy as np
import pytest

from quadcluster import (
    Annotation,
    Coordinate,
    CoordinateRegion,
    CoordinateSpan,
    MapPoint,
)

CENTER = Coordinate(37.7749, -122.4194)


@pytest.fixture(params=["list", "hash"])
def storage(request):
    """Node storage kinds; every tree behaviour must hold for both."""
    return request.param


@pytest.fixture
def medium_region():
    return CoordinateRegion(CENTER, CoordinateSpan(0.5, 0.5))


@pytest.fixture
def small_region():
    return CoordinateRegion(CENTER, CoordinateSpan(0.05, 0.05))


@pytest.fixture
def medium_map_size():
    return (400.0, 800.0)


@pytest.fixture
def rng():
    return np.random.default_rng(20231019)


@pytest.fixture
def make_annotations(rng):
    """Return a factory of uniformly spread annotations inside a region."""

    def _make(region, count, margin=0.9):
        half_lat = region.span.latitude_delta / 2.0 * margin
        half_lon = region.span.longitude_delta / 2.0 * margin
        lats = rng.uniform(
            region.center.latitude - half_lat, region.center.latitude + half_lat, count
        )
        lons = rng.uniform(
            region.center.longitude - half_lon, region.center.longitude + half_lon, count
        )
        return [
            Annotation(Coordinate(float(lat), float(lon)))
            for lat, lon in zip(lats, lons)
        ]

    return _make


@pytest.fixture
def annotation_at():
    """Return a factory placing an annotation at a map-space position."""

    def _at(x, y, **kwargs):
        return Annotation(MapPoint(float(x), float(y)).to_coordinate(), **kwargs)

    return _at
