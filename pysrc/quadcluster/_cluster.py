# _cluster.py
"""Values produced by a reload: single annotations and synthetic clusters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any, Iterator

from ._geometry import Coordinate


class Cluster:
    """
    A synthetic marker standing for several nearby annotations.

    Created fresh on every reload and never mutated. Two clusters are equal iff
    their member lists are equal, in order.

    Attributes:
        coordinate: Where the marker is placed.
        annotations: The members, as a tuple.
    """

    __slots__ = ("annotations", "coordinate")

    def __init__(self, coordinate: Coordinate, annotations: Iterable[Any]):
        self.coordinate = coordinate
        self.annotations = tuple(annotations)

    def __len__(self) -> int:
        return len(self.annotations)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.annotations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self.annotations == other.annotations

    def __hash__(self) -> int:
        return hash(self.annotations)

    def __repr__(self) -> str:
        return f"Cluster({self.coordinate!r}, {len(self.annotations)} annotations)"


class ClusterOrAnnotation(ABC):
    """
    Either a single annotation or a cluster, as shown on the map.

    Instances compare structurally: equal iff same variant and equal payload.
    """

    __slots__ = ()

    is_cluster: bool = False

    @property
    @abstractmethod
    def coordinate(self) -> Coordinate:
        """Where the value is displayed."""

    @abstractmethod
    def members(self) -> Sequence[Any]:
        """Return the annotations this value stands for."""


class AnnotationItem(ClusterOrAnnotation):
    """A single annotation passed through unclustered."""

    __slots__ = ("annotation",)

    def __init__(self, annotation: Any):
        self.annotation = annotation

    @property
    def coordinate(self) -> Coordinate:
        return self.annotation.coordinate

    def members(self) -> Sequence[Any]:
        return (self.annotation,)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnnotationItem):
            return NotImplemented
        return self.annotation == other.annotation

    def __hash__(self) -> int:
        return hash((AnnotationItem, self.annotation))

    def __repr__(self) -> str:
        return f"AnnotationItem({self.annotation!r})"


class ClusterItem(ClusterOrAnnotation):
    """A cluster of annotations."""

    __slots__ = ("cluster",)

    is_cluster = True

    def __init__(self, cluster: Cluster):
        self.cluster = cluster

    @property
    def coordinate(self) -> Coordinate:
        return self.cluster.coordinate

    def members(self) -> Sequence[Any]:
        return self.cluster.annotations

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClusterItem):
            return NotImplemented
        return self.cluster == other.cluster

    def __hash__(self) -> int:
        return hash((ClusterItem, self.cluster))

    def __repr__(self) -> str:
        return f"ClusterItem({self.cluster!r})"


def subtract(
    values: Sequence[ClusterOrAnnotation], other: Iterable[ClusterOrAnnotation]
) -> list[ClusterOrAnnotation]:
    """
    Return the values with no structurally-equal counterpart in ``other``.

    Order of ``values`` is preserved and neither input is mutated.
    """
    exclude = set(other)
    return [v for v in values if v not in exclude]
