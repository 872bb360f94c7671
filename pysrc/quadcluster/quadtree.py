# quadtree.py
"""QuadTree - adaptive point index over the projected map space."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Callable, Generic, Iterator, TypeVar

from ._common import Bounds
from ._geometry import WORLD_RECT, MapPoint, MapRect
from ._storage import NodeStorage, resolve_storage

A = TypeVar("A")  # annotation type: anything with a ``coordinate`` attribute

DEFAULT_CAPACITY = 8


class _Node(Generic[A]):
    """
    One rectangular region of the tree.

    A node is a leaf until its storage reaches capacity, then it gets four leaf
    children, once. Annotations stored before that moment stay in this node's
    own storage; only later insertions are routed to children.
    """

    __slots__ = ("capacity", "children", "rect", "storage", "storage_cls")

    def __init__(self, rect: MapRect, capacity: int, storage_cls: type[NodeStorage]):
        self.rect = rect
        self.capacity = capacity
        self.storage_cls = storage_cls
        self.storage: NodeStorage[A] = storage_cls()
        self.children: tuple[_Node[A], ...] | None = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def child_for(self, point: MapPoint) -> _Node[A]:
        """Return the child whose quadrant holds the point (internal nodes only)."""
        assert self.children is not None
        rect = self.rect
        idx = (1 if point.x >= rect.mid_x else 0) + (2 if point.y >= rect.mid_y else 0)
        return self.children[idx]

    def subdivide(self) -> None:
        if self.children is not None:
            raise RuntimeError("Internal error: subdivide called on an internal node")
        self.children = tuple(
            _Node(quadrant, self.capacity, self.storage_cls)
            for quadrant in self.rect.quadrants()
        )


class QuadTree(Generic[A]):
    """
    Spatial index for geo-located annotations.

    Annotations are placed by their ``coordinate`` (projected into map space) and
    matched by equality on removal. The root rectangle is fixed at construction.

    Performance characteristics:
        Inserts: average O(log n)
        Rect queries: average O(log n + k) where k is matches returned
        Removal: O(log n) node visits, times the storage's lookup cost

    Thread-safety:
        Instances are not thread-safe. ClusterManager serializes access to the
        tree it owns.

    Args:
        rect: Root rectangle (MapRect or (min_x, min_y, max_x, max_y)).
            Defaults to the whole world.
        capacity: Number of annotations a leaf holds before it subdivides.
        storage: Node storage, "list" (ordered, linear lookup), "hash"
            (O(1) removal, hashable annotations) or a NodeStorage subclass.

    Raises:
        ValueError: If rect or capacity are invalid.
        TypeError: If storage is not supported.

    Example:
        ```python
        qt = QuadTree()
        a = Annotation(Coordinate(48.85, 2.35))
        assert qt.add(a)
        assert qt.find_annotations(WORLD_RECT) == [a]
        ```
    """

    __slots__ = ("_capacity", "_count", "_rect", "_root", "_storage_cls")

    def __init__(
        self,
        rect: MapRect | Bounds = WORLD_RECT,
        capacity: int = DEFAULT_CAPACITY,
        *,
        storage: str | type[NodeStorage] = "list",
    ):
        if not isinstance(rect, MapRect):
            rect = MapRect.from_bounds(rect)
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")

        self._rect = rect
        self._capacity = capacity
        self._storage_cls = resolve_storage(storage)
        self._root: _Node[A] = _Node(rect, capacity, self._storage_cls)
        self._count = 0

    @property
    def rect(self) -> MapRect:
        return self._rect

    @property
    def capacity(self) -> int:
        return self._capacity

    # ---- Insertion ----

    def add(self, annotation: A) -> bool:
        """
        Insert a single annotation.

        Args:
            annotation: Object with a ``coordinate`` attribute.

        Returns:
            True if inserted; False if the coordinate is outside the root
            rectangle or the node storage refused the annotation.
        """
        point = MapPoint.from_coordinate(annotation.coordinate)  # type: ignore[attr-defined]
        node = self._root
        if not node.rect.contains(point):
            return False

        while node.children is not None:
            node = node.child_for(point)

        if not node.storage.add(annotation):
            return False
        if len(node.storage) >= node.capacity:
            node.subdivide()
        self._count += 1
        return True

    def add_many(self, annotations: Iterable[A]) -> list[A]:
        """
        Bulk insert annotations.

        Each leaf takes annotations in input order until it subdivides; the rest
        of its batch is then partitioned among the new children. The resulting
        contents match inserting one at a time.

        Args:
            annotations: Iterable of annotations.

        Returns:
            The annotations that were inserted.
        """
        root = self._root
        batch: list[tuple[A, MapPoint]] = []
        for annotation in annotations:
            point = MapPoint.from_coordinate(annotation.coordinate)  # type: ignore[attr-defined]
            if root.rect.contains(point):
                batch.append((annotation, point))

        inserted: list[A] = []
        stack: list[tuple[_Node[A], list[tuple[A, MapPoint]]]] = [(root, batch)]
        while stack:
            node, pending = stack.pop()
            if not pending:
                continue

            if node.children is None:
                storage = node.storage
                for i, (annotation, _) in enumerate(pending):
                    if not storage.add(annotation):
                        continue
                    inserted.append(annotation)
                    if len(storage) >= node.capacity:
                        node.subdivide()
                        pending = pending[i + 1 :]
                        break
                else:
                    continue

            # Internal node: route what is left to the children.
            buckets: dict[int, list[tuple[A, MapPoint]]] = {}
            for entry in pending:
                child = node.child_for(entry[1])
                buckets.setdefault(id(child), []).append(entry)
            for child in reversed(node.children):  # type: ignore[arg-type]
                stack.append((child, buckets.get(id(child), [])))

        self._count += len(inserted)
        return inserted

    # ---- Deletion ----

    def remove(self, annotation: A) -> A | None:
        """
        Remove an annotation by equality.

        Only nodes whose rect contains the annotation's current coordinate are
        searched, so do not move an annotation while it is indexed.

        Args:
            annotation: The annotation to remove.

        Returns:
            The removed (stored) annotation, or None if not found.
        """
        for node in self._path(annotation):
            removed = node.storage.remove(annotation)
            if removed is not None:
                self._count -= 1
                return removed
        return None

    def remove_all(self, predicate: Callable[[A], bool]) -> list[A]:
        """
        Remove every annotation matching the predicate, at every level.

        Children are processed before their parent's own storage.

        Args:
            predicate: Called once per stored annotation.

        Returns:
            The removed annotations, in unspecified order.
        """
        removed: list[A] = []
        for node in reversed(self._preorder()):
            removed.extend(node.storage.remove_all(predicate))
        self._count -= len(removed)
        return removed

    def clear(self) -> None:
        """Empty the tree in place, preserving rect, capacity, and storage kind."""
        self._root = _Node(self._rect, self._capacity, self._storage_cls)
        self._count = 0

    # ---- Queries ----

    def find_annotations(self, rect: MapRect) -> list[A]:
        """
        Return all annotations whose coordinate lies inside a rectangle.

        Subtrees that do not intersect the rectangle are skipped. The order is
        a pre-order walk (node storage, then children NW, NE, SW, SE), so it is
        deterministic for a given tree state.

        Args:
            rect: Query rectangle in map space.

        Returns:
            List of annotations.
        """
        found: list[A] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            if not node.rect.intersects(rect):
                continue
            for annotation in node.storage:
                if rect.contains(annotation.coordinate):  # type: ignore[attr-defined]
                    found.append(annotation)
            if node.children is not None:
                stack.extend(reversed(node.children))
        return found

    # ---- Utilities ----

    def __len__(self) -> int:
        """Return the number of annotations in the tree."""
        return self._count

    def __iter__(self) -> Iterator[A]:
        """Iterate over all annotations in the tree."""
        return iter(self.find_annotations(self._rect))

    def __contains__(self, annotation: Any) -> bool:
        """Check whether an annotation equal to the given one is stored."""
        if not hasattr(annotation, "coordinate"):
            return False
        return any(
            any(stored == annotation for stored in node.storage)
            for node in self._path(annotation)
        )

    def get_all_node_boundaries(self) -> list[Bounds]:
        """
        Return all node boundaries in the tree. Useful for visualization.
        """
        return [node.rect.as_bounds() for node in self._preorder()]

    def get_inner_max_depth(self) -> int:
        """Return the depth of the deepest node (the root alone is depth 0)."""
        deepest = 0
        stack = [(self._root, 0)]
        while stack:
            node, depth = stack.pop()
            deepest = max(deepest, depth)
            if node.children is not None:
                stack.extend((child, depth + 1) for child in node.children)
        return deepest

    def _path(self, annotation: Any) -> Iterator[_Node[A]]:
        """Yield the nodes, root first, whose rect contains the annotation."""
        point = MapPoint.from_coordinate(annotation.coordinate)
        node: _Node[A] | None = self._root
        if not self._root.rect.contains(point):
            return
        while node is not None:
            yield node
            node = node.child_for(point) if node.children is not None else None

    def _preorder(self) -> list[_Node[A]]:
        nodes: list[_Node[A]] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            nodes.append(node)
            if node.children is not None:
                stack.extend(reversed(node.children))
        return nodes
