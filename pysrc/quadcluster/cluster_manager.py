# cluster_manager.py
"""ClusterManager - groups indexed annotations into grid clusters per viewport."""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from collections.abc import Iterable
from typing import Any, Callable, Generic, TypeVar

from ._annotation import should_cluster
from ._cluster import AnnotationItem, Cluster, ClusterItem, ClusterOrAnnotation, subtract
from ._common import Size, validate_size
from ._config import ClusterManagerConfig
from ._difference import Difference
from ._geometry import WORLD_RECT, Coordinate, CoordinateRegion, MapRect
from .map_scale import MapScale
from .quadtree import QuadTree

logger = logging.getLogger(__name__)

A = TypeVar("A")  # annotation type: anything with a ``coordinate`` attribute


class ClusterManager(Generic[A]):
    """
    Clusters map annotations for the visible region and reports what changed.

    The manager owns a QuadTree of annotations and the set of values currently
    shown. Each reload lays a grid over the visible rect (cell size depends on
    the zoom level), turns each cell into one cluster or into individual
    annotations, and diffs the result against what was shown before.

    Thread-safety:
        Every public method holds one lock for its whole duration, so calls on
        the same instance never overlap and readers never observe a partially
        applied reload.

    Args:
        config: Clustering configuration. Defaults to ClusterManagerConfig().

    Example:
        ```python
        manager = ClusterManager()
        manager.add_many(Annotation(c) for c in coords)
        region = CoordinateRegion(Coordinate(37.77, -122.42), CoordinateSpan(0.5, 0.5))
        diff = manager.reload((400.0, 800.0), region)
        for value in diff.insertions:
            draw(value)
        ```
    """

    def __init__(self, config: ClusterManagerConfig | None = None):
        self._config = config if config is not None else ClusterManagerConfig()
        self._tree: QuadTree[A] = QuadTree(WORLD_RECT, storage=self._config.storage)
        self._visible: list[ClusterOrAnnotation] = []
        self._zoom_level = 0
        self._lock = threading.RLock()

    @property
    def config(self) -> ClusterManagerConfig:
        return self._config

    @property
    def zoom_level(self) -> int:
        """Zoom level computed by the last successful reload (0 before any)."""
        with self._lock:
            return self._zoom_level

    @property
    def visible_annotations(self) -> tuple[ClusterOrAnnotation, ...]:
        """Values currently shown on the map."""
        with self._lock:
            return tuple(self._visible)

    # ---- Index mutation ----

    def add(self, annotation: A) -> bool:
        """
        Add a single annotation.

        Returns:
            True if it was indexed; False if its coordinate is outside the world.
        """
        with self._lock:
            return self._tree.add(annotation)

    def add_many(self, annotations: Iterable[A]) -> list[A]:
        """
        Add several annotations.

        Returns:
            The annotations that were indexed.
        """
        with self._lock:
            return self._tree.add_many(annotations)

    def remove(self, annotation: A) -> A | None:
        """
        Remove a single annotation.

        Returns:
            The removed annotation, or None if it was not indexed.
        """
        with self._lock:
            return self._tree.remove(annotation)

    def remove_many(self, annotations: Iterable[A]) -> list[A]:
        """
        Remove several annotations.

        Returns:
            The annotations that were found and removed.
        """
        with self._lock:
            removed: list[A] = []
            for annotation in annotations:
                it = self._tree.remove(annotation)
                if it is not None:
                    removed.append(it)
            return removed

    def remove_all(self, predicate: Callable[[A], bool] | None = None) -> list[A]:
        """
        Remove annotations matching a predicate, or all of them.

        Args:
            predicate: If None, the index is reset to a new empty tree.

        Returns:
            The removed annotations (empty when resetting).
        """
        with self._lock:
            if predicate is None:
                logger.debug("Resetting index (%d annotations dropped)", len(self._tree))
                self._tree = QuadTree(WORLD_RECT, storage=self._config.storage)
                return []
            return self._tree.remove_all(predicate)

    # ---- Reads ----

    def fetch_all_annotations(self) -> list[A]:
        """Return every indexed annotation."""
        with self._lock:
            return self._tree.find_annotations(WORLD_RECT)

    def fetch_visible_nested_annotations(self) -> list[A]:
        """Return the visible annotations, with clusters flattened into their members."""
        with self._lock:
            nested: list[A] = []
            for value in self._visible:
                nested.extend(value.members())
            return nested

    # ---- Reload ----

    def reload(self, map_view_size: Size, coordinate_region: CoordinateRegion) -> Difference:
        """
        Recompute clusters for a map view showing the given region.

        Args:
            map_view_size: (width, height) of the map view, in screen points.
            coordinate_region: The region the map view shows.

        Returns:
            The Difference against the previously visible values. Empty, with
            state left untouched, when the scale cannot be computed.

        Raises:
            ValueError: If map_view_size is not a (width, height) pair.
        """
        width, _ = validate_size(map_view_size)
        visible_rect = MapRect.from_region(coordinate_region)
        scale = MapScale.from_widths(width, visible_rect.width)
        return self.reload_with_scale(scale, visible_rect)

    def reload_with_scale(self, map_scale: MapScale, visible_rect: MapRect) -> Difference:
        """
        Recompute clusters for an explicit scale and visible map rect.

        Args:
            map_scale: Screen points per map point.
            visible_rect: Visible area in map space.

        Returns:
            The Difference against the previously visible values.
        """
        with self._lock:
            if not map_scale.is_valid:
                logger.debug("Skipping reload: invalid map scale %r", map_scale.raw_value)
                return Difference()

            self._zoom_level = map_scale.zoom_level
            cells = self._grid_cells(map_scale.raw_value, visible_rect)

            if self._config.should_distribute_annotations_on_same_coordinate:
                self._distribute_coincident_annotations(visible_rect)

            after = self._cluster_cells(cells)
            before = self._visible

            insertions = subtract(after, before)
            removals = subtract(before, after)

            if not self._config.should_remove_invisible_annotations:
                removals = [v for v in removals if visible_rect.contains(v.coordinate)]

            self._visible = subtract(before, removals) + insertions

            logger.debug(
                "Reloaded at zoom level %d: %d cells, %d visible, +%d/-%d",
                self._zoom_level,
                len(cells),
                len(self._visible),
                len(insertions),
                len(removals),
            )
            return Difference(insertions=tuple(insertions), removals=tuple(removals))

    async def reload_async(
        self, map_view_size: Size, coordinate_region: CoordinateRegion
    ) -> Difference:
        """
        Run reload() on a worker thread so the event loop is not blocked.

        Calls are still serialized with every other operation on this manager.
        """
        return await asyncio.to_thread(self.reload, map_view_size, coordinate_region)

    # ---- Clustering steps ----

    def _grid_cells(self, scale: float, visible_rect: MapRect) -> list[MapRect]:
        """
        Split the visible rect into grid cells aligned to the world origin.

        Cells starting past the right edge of the world wrap around to its left.
        """
        cell_width, cell_height = validate_size(
            self._config.cell_size_for_zoom_level(self._zoom_level)
        )
        fx = scale / cell_width
        fy = scale / cell_height

        min_i = math.floor(visible_rect.min_x * fx)
        max_i = math.floor(visible_rect.max_x * fx)
        min_j = math.floor(visible_rect.min_y * fy)
        max_j = math.floor(visible_rect.max_y * fy)

        cells: list[MapRect] = []
        for i in range(min_i, max_i + 1):
            for j in range(min_j, max_j + 1):
                # Neighbouring cells share an exact edge.
                cell = MapRect(i / fx, j / fy, (i + 1) / fx, (j + 1) / fy)
                if cell.min_x > WORLD_RECT.max_x:
                    cell = cell.offset(-WORLD_RECT.width)
                cells.append(cell)
        return cells

    def _distribute_coincident_annotations(self, visible_rect: MapRect) -> None:
        """Move annotations sharing a coordinate onto a circle around it."""
        groups: dict[Coordinate, list[A]] = {}
        for annotation in self._tree.find_annotations(visible_rect):
            groups.setdefault(annotation.coordinate, []).append(annotation)  # type: ignore[attr-defined]

        distance = self._config.distance_from_contested_location
        moved = 0
        for origin, members in groups.items():
            n = len(members)
            if n < 2:
                continue
            step = 2.0 * math.pi / n
            for i, annotation in enumerate(members):
                element = self._tree.remove(annotation)
                if element is None:
                    continue
                element.coordinate = origin.offset(step * i, distance)  # type: ignore[attr-defined]
                self._tree.add(element)
                moved += 1

        if moved:
            logger.debug("Distributed %d annotations sharing a coordinate", moved)

    def _cluster_cells(self, cells: list[MapRect]) -> list[ClusterOrAnnotation]:
        config = self._config
        can_cluster = self._zoom_level <= config.max_zoom_level

        values: list[ClusterOrAnnotation] = []
        for cell in cells:
            candidates: list[Any] = []
            for annotation in self._tree.find_annotations(cell):
                if should_cluster(annotation):
                    candidates.append(annotation)
                else:
                    values.append(AnnotationItem(annotation))

            if can_cluster and len(candidates) >= config.min_count_for_clustering:
                coordinate = config.cluster_position.calculate(
                    [a.coordinate for a in candidates], cell
                )
                values.append(ClusterItem(Cluster(coordinate, candidates)))
            else:
                values.extend(AnnotationItem(a) for a in candidates)
        return values
