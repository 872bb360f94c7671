"""Difference dataclass returned by a reload."""

from __future__ import annotations

from dataclasses import dataclass

from ._cluster import ClusterOrAnnotation


@dataclass(frozen=True)
class Difference:
    """
    Change between two consecutive visible sets.

    Attributes:
        insertions: Values to start showing.
        removals: Values to stop showing.
    """

    insertions: tuple[ClusterOrAnnotation, ...] = ()
    removals: tuple[ClusterOrAnnotation, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Return True if nothing changed."""
        return not self.insertions and not self.removals

    def __bool__(self) -> bool:
        return not self.is_empty
