# =============================================================================
# Attribute Store
# =============================================================================
# Generic string-keyed parameter store used as the rule configuration
# side channel.
# =============================================================================

from typing import Any, Dict, Iterator, Mapping, Optional

from .errors import AttributeTypeError

__all__ = ["AttributeStore"]


class AttributeStore:
    """
    Mapping from string keys to arbitrary values.

    Missing keys never raise: ``get`` returns the default (``None``) and
    ``has`` returns False. A key holding ``None`` counts as absent for
    ``has``, mirroring how rule parameters are looked up.
    """

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None):
        self._attributes: Dict[str, Any] = dict(attributes or {})

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        self._attributes[key] = value

    def set_all(self, attributes: Mapping[str, Any]) -> None:
        """Replace the whole store with ``attributes``."""
        self._attributes = dict(attributes)

    def merge(self, attributes: Mapping[str, Any]) -> None:
        """
        Merge ``attributes`` into the store.

        Keys already present keep their current value; only new keys are added.
        """
        for key, value in attributes.items():
            self._attributes.setdefault(key, value)

    def append(self, key: str, value: Any) -> None:
        """
        Append one item to the list stored under ``key``.

        A missing key starts a new list.

        Raises:
            AttributeTypeError: If the existing value is not a list
        """
        current = self._attributes.get(key)
        if current is None:
            self._attributes[key] = [value]
            return
        if not isinstance(current, list):
            raise AttributeTypeError(
                f"Attribute '{key}' holds {type(current).__name__}, expected list"
            )
        current.append(value)

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def has(self, key: str) -> bool:
        return self._attributes.get(key) is not None

    def remove_item(self, key: str, item: Any) -> None:
        """
        Filter every occurrence of ``item`` out of a list-valued attribute.

        Matching is strict: the element must be equal to ``item`` and of the
        same type. The filtered list is stored as a new list object.

        Raises:
            AttributeTypeError: If the attribute exists and is not a list
        """
        current = self._attributes.get(key)
        if current is None:
            return
        if not isinstance(current, list):
            raise AttributeTypeError(
                f"Attribute '{key}' holds {type(current).__name__}, expected list"
            )
        self._attributes[key] = [
            element
            for element in current
            if not (type(element) is type(item) and element == item)
        ]

    def forget(self, key: str) -> None:
        self._attributes.pop(key, None)

    def all(self) -> Dict[str, Any]:
        """Return a shallow copy of every stored attribute."""
        return dict(self._attributes)

    def __contains__(self, key: object) -> bool:
        return key in self._attributes

    def __len__(self) -> int:
        return len(self._attributes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)
