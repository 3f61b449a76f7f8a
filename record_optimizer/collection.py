# =============================================================================
# Record Collection
# =============================================================================
# Ordered, list-backed container for records with functional helpers.
# =============================================================================

from collections.abc import MutableSequence
from functools import reduce as _reduce
from typing import Any, Callable, Iterable, List, Optional

__all__ = ["RecordCollection"]

_MISSING = object()


class RecordCollection(MutableSequence):
    """
    Ordered sequence of items, usually records.

    Supports the full mutable-sequence protocol. ``map``, ``filter`` and
    ``slice`` return new collections and leave this one untouched.
    """

    def __init__(self, items: Optional[Iterable[Any]] = None):
        self._items: List[Any] = list(items or [])

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------
    def __getitem__(self, index):
        if isinstance(index, slice):
            return type(self)(self._items[index])
        return self._items[index]

    def __setitem__(self, index, value) -> None:
        self._items[index] = value

    def __delitem__(self, index) -> None:
        del self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def insert(self, index: int, value: Any) -> None:
        self._items.insert(index, value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecordCollection):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._items!r})"

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def to_list(self) -> List[Any]:
        return list(self._items)

    def add(self, item: Any) -> None:
        self._items.append(item)

    def first(self, default: Any = None) -> Any:
        return self._items[0] if self._items else default

    def last(self, default: Any = None) -> Any:
        return self._items[-1] if self._items else default

    def is_empty(self) -> bool:
        return not self._items

    def contains(self, item: Any) -> bool:
        return item in self._items

    def index_of(self, item: Any) -> Optional[int]:
        """Position of the first item equal to ``item``, or None."""
        try:
            return self._items.index(item)
        except ValueError:
            return None

    def map(self, callback: Callable[[Any], Any]) -> "RecordCollection":
        return type(self)(callback(item) for item in self._items)

    def filter(self, callback: Optional[Callable[[Any], bool]] = None) -> "RecordCollection":
        """Keep items for which ``callback`` is truthy (the items themselves by default)."""
        if callback is None:
            return type(self)(item for item in self._items if item)
        return type(self)(item for item in self._items if callback(item))

    def reduce(self, callback: Callable[[Any, Any], Any], initial: Any = _MISSING) -> Any:
        """
        Fold the items with ``callback(carry, item)``.

        Without ``initial`` the first item seeds the fold and an empty
        collection reduces to None.
        """
        if initial is _MISSING:
            if not self._items:
                return None
            return _reduce(callback, self._items)
        return _reduce(callback, self._items, initial)

    def slice(self, offset: int, length: Optional[int] = None) -> "RecordCollection":
        """Return ``length`` items starting at ``offset`` (negative counts from the end)."""
        end = None if length is None else offset + length
        # A negative offset whose window reaches the end must not stop at 0.
        if offset < 0 and end is not None and end >= 0:
            end = None
        return type(self)(self._items[offset:end])

    def exists(self, callback: Callable[[int, Any], bool]) -> bool:
        """True if ``callback(index, item)`` holds for any item."""
        return any(callback(index, item) for index, item in enumerate(self._items))
