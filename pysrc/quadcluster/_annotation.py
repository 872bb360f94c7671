# _annotation.py
from __future__ import annotations

from typing import Any

from ._geometry import Coordinate


class Annotation:
    """
    A geo-located point that can be indexed and clustered.

    Attributes:
        coordinate: Current position. Reassign it only while the annotation is
            not indexed (remove, reassign, add again).
        should_cluster: False keeps the annotation out of clusters, so it is
            always shown on its own.
        obj: The attached Python object if available, else None.

    Notes:
        - Equality and hashing are by identity, so moving an annotation never
          changes which stored element it matches.
        - The engine accepts any object with a ``coordinate`` attribute; this
          class is a convenient default.
    """

    __slots__ = ("coordinate", "obj", "should_cluster")

    def __init__(
        self,
        coordinate: Coordinate,
        obj: Any | None = None,
        *,
        should_cluster: bool = True,
    ):
        self.coordinate = coordinate
        self.obj = obj
        self.should_cluster = should_cluster

    def __repr__(self) -> str:
        c = self.coordinate
        return f"Annotation(({c.latitude}, {c.longitude}), obj={self.obj!r})"


def should_cluster(annotation: Any) -> bool:
    """Return whether an annotation takes part in clustering (default True)."""
    return bool(getattr(annotation, "should_cluster", True))
