# _storage.py
"""Containers that hold the annotations stored directly on a quadtree node."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterator, TypeVar

A = TypeVar("A")  # annotation type


class NodeStorage(Generic[A], ABC):
    """
    Pluggable storage for one node's annotations.

    The tree only relies on these operations, so an implementation can trade
    ordering for lookup speed without changing tree logic.
    """

    __slots__ = ()

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of stored elements."""

    @abstractmethod
    def __iter__(self) -> Iterator[A]:
        """Iterate over stored elements."""

    @abstractmethod
    def add(self, element: A) -> bool:
        """
        Store an element.

        Returns:
            True if the element was added.
        """

    @abstractmethod
    def remove(self, element: A) -> A | None:
        """
        Remove an element equal to the given one.

        Returns:
            The removed element, or None if none was stored.
        """

    @abstractmethod
    def remove_all(self, predicate: Callable[[A], bool]) -> list[A]:
        """
        Remove every element matching the predicate.

        Returns:
            The removed elements, in unspecified order.
        """


class ListStorage(NodeStorage[A]):
    """Order-preserving storage with linear lookup."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[A] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[A]:
        return iter(self._items)

    def add(self, element: A) -> bool:
        self._items.append(element)
        return True

    def remove(self, element: A) -> A | None:
        try:
            idx = self._items.index(element)
        except ValueError:
            return None
        return self._items.pop(idx)

    def remove_all(self, predicate: Callable[[A], bool]) -> list[A]:
        removed: list[A] = []
        kept: list[A] = []
        for item in self._items:
            (removed if predicate(item) else kept).append(item)
        if removed:
            self._items = kept
        return removed


class HashStorage(NodeStorage[A]):
    """
    Hash-indexed storage with O(1) removal.

    Elements must be hashable, and a second add of an equal element is refused.
    Iteration follows insertion order.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: dict[A, A] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[A]:
        return iter(self._items)

    def add(self, element: A) -> bool:
        if element in self._items:
            return False
        self._items[element] = element
        return True

    def remove(self, element: A) -> A | None:
        # Values hold the stored instance, which may differ from an equal probe.
        return self._items.pop(element, None)

    def remove_all(self, predicate: Callable[[A], bool]) -> list[A]:
        removed = [item for item in self._items if predicate(item)]
        for item in removed:
            del self._items[item]
        return removed


STORAGE_MAP: dict[str, type[NodeStorage]] = {
    "list": ListStorage,
    "hash": HashStorage,
}


def resolve_storage(storage: str | type[NodeStorage]) -> type[NodeStorage]:
    """
    Map a storage name (or class) to a NodeStorage class.

    Raises:
        TypeError: If the storage is not supported.
    """
    if isinstance(storage, type) and issubclass(storage, NodeStorage):
        return storage
    storage_cls = STORAGE_MAP.get(storage)  # type: ignore[arg-type]
    if storage_cls is None:
        raise TypeError(f"Unsupported storage: {storage!r}")
    return storage_cls
