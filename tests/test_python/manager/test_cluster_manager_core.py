import asyncio
import math
import threading

import pytest

from quadcluster import (
    WORLD_RECT,
    WORLD_SIZE,
    Annotation,
    AnnotationItem,
    ClusterItem,
    ClusterManager,
    ClusterManagerConfig,
    Coordinate,
    CoordinateRegion,
    CoordinateSpan,
    MapRect,
    MapScale,
    distance_meters,
)

# Scale 2**-10 gives zoom level 10; with 64-point cells a grid cell is
# 65536 map points wide, starting at multiples of 65536.
SCALE = MapScale(2.0**-10)
CELL = 65536.0


def fixed_cells(_zoom_level):
    return (64.0, 64.0)


def make_manager(**kwargs):
    kwargs.setdefault("cell_size_for_zoom_level", fixed_cells)
    return ClusterManager(ClusterManagerConfig(**kwargs))


def test_add_and_remove_all_annotations(medium_region, medium_map_size, make_annotations):
    manager = ClusterManager()
    manager.add_many(make_annotations(medium_region, 1000))

    difference = manager.reload(medium_map_size, medium_region)
    assert difference.insertions
    assert not difference.removals

    manager.remove_all()
    difference2 = manager.reload(medium_map_size, medium_region)
    assert not difference2.insertions
    assert difference2.removals

    assert len(difference.insertions) == len(difference2.removals)
    assert len(difference2.insertions) == len(difference.removals)
    assert manager.visible_annotations == ()


def test_add_and_remove_annotations(medium_region, medium_map_size, make_annotations):
    manager = ClusterManager()
    annotations = make_annotations(medium_region, 1000)
    for a in annotations:
        assert manager.add(a)

    difference = manager.reload(medium_map_size, medium_region)
    assert difference.insertions and not difference.removals

    removed = manager.remove_many(annotations)
    assert len(removed) == 1000
    difference2 = manager.reload(medium_map_size, medium_region)

    assert not difference2.insertions
    assert len(difference2.removals) == len(difference.insertions)


def test_remove_all_with_predicate(medium_region, make_annotations):
    manager = ClusterManager()
    annotations = make_annotations(medium_region, 100)
    manager.add_many(annotations)
    north = [a for a in annotations if a.coordinate.latitude > medium_region.center.latitude]

    removed = manager.remove_all(lambda a: a.coordinate.latitude > medium_region.center.latitude)
    assert set(removed) == set(north)
    assert set(manager.fetch_all_annotations()) == set(annotations) - set(north)
    assert manager.remove(north[0]) is None


def test_same_coordinate_without_distribution_keeps_every_annotation(
    medium_region, medium_map_size, make_annotations
):
    manager = ClusterManager(
        ClusterManagerConfig(should_distribute_annotations_on_same_coordinate=False)
    )
    manager.add_many(make_annotations(medium_region, 1000))
    manager.reload(medium_map_size, medium_region)
    assert len(manager.fetch_visible_nested_annotations()) == 1000


def test_keep_invisible_annotations_nested_count(medium_region, medium_map_size, make_annotations):
    manager = ClusterManager(ClusterManagerConfig(should_remove_invisible_annotations=False))
    manager.add_many(make_annotations(medium_region, 1000))
    manager.reload(medium_map_size, medium_region)
    assert len(manager.fetch_visible_nested_annotations()) == 1000


def test_min_count_for_clustering_keeps_every_annotation(
    medium_region, medium_map_size, make_annotations
):
    manager = ClusterManager(ClusterManagerConfig(min_count_for_clustering=10))
    manager.add_many(make_annotations(medium_region, 1000))
    manager.reload(medium_map_size, medium_region)
    assert len(manager.fetch_visible_nested_annotations()) == 1000
    for value in manager.visible_annotations:
        if value.is_cluster:
            assert len(value.members()) >= 10


def test_multiple_operations():
    manager = ClusterManager()
    center = Coordinate(37.7749, -122.4194)
    manager.remove_all()
    manager.add_many(Annotation(center) for _ in range(10))
    manager.remove_all()
    manager.add_many(Annotation(center) for _ in range(100))
    assert len(manager.fetch_all_annotations()) == 100


def test_consecutive_reloads_without_changes_are_empty(
    medium_region, medium_map_size, make_annotations
):
    manager = ClusterManager()
    manager.add_many(make_annotations(medium_region, 500))
    first = manager.reload(medium_map_size, medium_region)
    assert not first.is_empty

    second = manager.reload(medium_map_size, medium_region)
    assert second.is_empty


def test_cells_cluster_exactly_their_candidates(annotation_at):
    manager = make_manager(min_count_for_clustering=3)
    cell_a = [annotation_at(1000.5 + i, 2000.5) for i in range(3)]
    cell_b = [annotation_at(CELL + 500.5, 700.5)]
    cell_c = [annotation_at(2 * CELL + 10.5 + i, CELL + 10.5) for i in range(5)]
    pair = [annotation_at(10.5, CELL + 5.5), annotation_at(20.5, CELL + 5.5)]
    manager.add_many(cell_a + cell_b + cell_c + pair)

    visible_rect = MapRect(0.0, 0.0, 4 * CELL - 1.0, 4 * CELL - 1.0)
    diff = manager.reload_with_scale(SCALE, visible_rect)
    assert manager.zoom_level == 10

    clusters = [v for v in diff.insertions if isinstance(v, ClusterItem)]
    singles = [v for v in diff.insertions if isinstance(v, AnnotationItem)]
    assert sorted((set(c.members()) for c in clusters), key=len) == [set(cell_a), set(cell_c)]
    assert {s.annotation for s in singles} == set(cell_b + pair)
    assert not diff.removals


def test_non_clusterable_annotations_are_always_single(annotation_at):
    manager = make_manager()
    regular = [annotation_at(100.5 + i, 100.5) for i in range(3)]
    pinned = annotation_at(110.5, 100.5, should_cluster=False)
    manager.add_many(regular + [pinned])

    diff = manager.reload_with_scale(SCALE, MapRect(0.0, 0.0, CELL - 1.0, CELL - 1.0))
    assert AnnotationItem(pinned) in diff.insertions
    (cluster,) = [v for v in diff.insertions if v.is_cluster]
    assert set(cluster.members()) == set(regular)


def test_no_clusters_above_max_zoom_level(annotation_at):
    manager = make_manager(max_zoom_level=9)
    manager.add_many(annotation_at(100.5 + i, 100.5) for i in range(5))
    diff = manager.reload_with_scale(SCALE, MapRect(0.0, 0.0, CELL - 1.0, CELL - 1.0))
    assert len(diff.insertions) == 5
    assert not any(v.is_cluster for v in diff.insertions)


def test_reclustering_replaces_whole_cluster(annotation_at):
    manager = make_manager()
    members = [annotation_at(100.5 + i, 100.5) for i in range(4)]
    manager.add_many(members)
    rect = MapRect(0.0, 0.0, CELL - 1.0, CELL - 1.0)
    first = manager.reload_with_scale(SCALE, rect)

    extra = annotation_at(200.5, 200.5)
    manager.add(extra)
    second = manager.reload_with_scale(SCALE, rect)

    assert second.removals == first.insertions
    (cluster,) = second.insertions
    assert set(cluster.members()) == set(members + [extra])


def test_invalid_scale_is_a_no_op(medium_region, medium_map_size, make_annotations):
    manager = ClusterManager()
    manager.add_many(make_annotations(medium_region, 200))
    manager.reload(medium_map_size, medium_region)
    visible = manager.visible_annotations
    zoom = manager.zoom_level

    for scale in (MapScale(math.nan), MapScale(math.inf), MapScale(0.0)):
        assert manager.reload_with_scale(scale, WORLD_RECT).is_empty

    flat = CoordinateRegion(medium_region.center, CoordinateSpan(0.5, 0.0))
    assert manager.reload(medium_map_size, flat).is_empty
    assert manager.visible_annotations == visible
    assert manager.zoom_level == zoom


def test_coincident_annotations_are_spread_on_a_circle(small_region, medium_map_size):
    manager = ClusterManager(ClusterManagerConfig(distance_from_contested_location=5.0))
    origin = small_region.center
    stacked = [Annotation(origin) for _ in range(6)]
    manager.add_many(stacked)

    manager.reload(medium_map_size, small_region)

    coordinates = [a.coordinate for a in stacked]
    assert len(set(coordinates)) == 6
    for c in coordinates:
        assert distance_meters(origin, c) == pytest.approx(5.0, rel=1e-6)
    assert set(manager.fetch_all_annotations()) == set(stacked)
    assert len(manager.fetch_visible_nested_annotations()) == 6


def test_invisible_annotations_removed_by_default(annotation_at):
    manager = make_manager()
    points = [annotation_at(100.5 + i, 100.5) for i in range(3)]
    manager.add_many(points)
    here = MapRect(0.0, 0.0, CELL - 1.0, CELL - 1.0)
    elsewhere = MapRect(10 * CELL, 10 * CELL, 11 * CELL - 1.0, 11 * CELL - 1.0)

    first = manager.reload_with_scale(SCALE, here)
    moved = manager.reload_with_scale(SCALE, elsewhere)
    assert moved.removals == first.insertions
    assert manager.visible_annotations == ()


def test_invisible_annotations_retained_when_configured(annotation_at):
    manager = make_manager(should_remove_invisible_annotations=False)
    points = [annotation_at(100.5 + i, 100.5) for i in range(3)]
    manager.add_many(points)
    here = MapRect(0.0, 0.0, CELL - 1.0, CELL - 1.0)
    elsewhere = MapRect(10 * CELL, 10 * CELL, 11 * CELL - 1.0, 11 * CELL - 1.0)

    first = manager.reload_with_scale(SCALE, here)
    moved = manager.reload_with_scale(SCALE, elsewhere)
    assert moved.is_empty
    assert manager.visible_annotations == first.insertions

    # Back in view the cached cluster is still shown, so nothing changes.
    assert manager.reload_with_scale(SCALE, here).is_empty


def test_grid_wraps_across_the_right_world_edge(annotation_at):
    manager = make_manager(min_count_for_clustering=5)
    near_left_edge = annotation_at(2 * CELL + 100.5, 100.5)
    manager.add(near_left_edge)

    crossing = MapRect(WORLD_SIZE - CELL, 0.0, WORLD_SIZE + 3 * CELL - 1.0, CELL - 1.0)
    diff = manager.reload_with_scale(SCALE, crossing)
    assert diff.insertions == (AnnotationItem(near_left_edge),)


def test_grid_cells_are_aligned_to_world_origin():
    manager = make_manager()
    manager.reload_with_scale(SCALE, MapRect(0.0, 0.0, 1.0, 1.0))
    cells = manager._grid_cells(SCALE.raw_value, MapRect(CELL * 1.5, CELL * 0.25, CELL * 2.5, CELL * 0.75))
    assert [c.as_bounds() for c in cells] == [
        (CELL, 0.0, 2 * CELL, CELL),
        (2 * CELL, 0.0, 3 * CELL, CELL),
    ]


def test_reload_async(medium_region, medium_map_size, make_annotations):
    manager = ClusterManager()
    manager.add_many(make_annotations(medium_region, 300))

    async def run():
        first = await manager.reload_async(medium_map_size, medium_region)
        second = await manager.reload_async(medium_map_size, medium_region)
        return first, second

    first, second = asyncio.run(run())
    assert first.insertions
    assert second.is_empty


def test_concurrent_calls_are_serialized(medium_region, medium_map_size, make_annotations):
    manager = ClusterManager()
    batches = [make_annotations(medium_region, 250) for _ in range(4)]
    errors = []

    def worker(batch):
        try:
            for a in batch:
                manager.add(a)
                if len(manager.fetch_all_annotations()) % 97 == 0:
                    manager.reload(medium_map_size, medium_region)
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(b,)) for b in batches]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(manager.fetch_all_annotations()) == 1000
    manager.reload(medium_map_size, medium_region)
    assert len(manager.fetch_visible_nested_annotations()) == 1000


def test_outside_world_is_rejected():
    manager = ClusterManager()
    assert manager.add(Annotation(Coordinate(0.0, 200.0))) is False
    assert manager.fetch_all_annotations() == []
