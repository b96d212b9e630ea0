"""
Metadata store for class methods.

A key/value attachment table scoped to (class, method name) slots. Decorators
attach values at class-definition time and scanners read them back by key
later, once every class has been loaded. Classes are held as weak keys, so a
class that is garbage collected takes its attached values with it.

The package keeps one process-wide instance in a protective closure; the
MetadataStore class is importable on its own for isolated use.
"""

import weakref
from typing import Any
from typing import Optional


SLOTS = dict[str, dict[str, Any]]
"""Per-class table of method name -> {key: value}."""


class MetadataStore(object):
    """Attaches keyed values to the methods of classes."""

    def __init__(self) -> None:
        self._entries: "weakref.WeakKeyDictionary[type, SLOTS]" = (
            weakref.WeakKeyDictionary()
        )

    def attach(self, key: str, value: Any, owner: type, method_name: str) -> Any:
        """
        Attach a value to a method slot under key. An existing value under the
        same key for that slot is replaced.

        Args:
            key (str): Metadata key the value is namespaced under.
            value (Any): The value to attach.
            owner (type): Class that declares the method.
            method_name (str): Attribute name of the method.
        Returns:
            Any: The value previously attached under key for the slot, or None.
        """
        slots = self._entries.setdefault(owner, {})
        metadata = slots.setdefault(method_name, {})
        previous = metadata.get(key)
        metadata[key] = value
        return previous

    def get(
        self, key: str, owner: type, method_name: str, default: Any = None
    ) -> Any:
        """Get the value attached under key for a method slot."""
        slots = self._entries.get(owner)
        if slots is None or method_name not in slots:
            return default

        return slots[method_name].get(key, default)

    def has(self, key: str, owner: type, method_name: str) -> bool:
        slots = self._entries.get(owner)
        if slots is None:
            return False

        return key in slots.get(method_name, {})

    def remove(self, key: str, owner: type, method_name: str) -> Optional[Any]:
        """
        Detach the value under key from a method slot.
        Empty slots and classes left without slots are dropped.

        Returns:
            Optional[Any]: The detached value, or None if nothing was attached.
        """
        slots = self._entries.get(owner)
        if slots is None or method_name not in slots:
            return None

        value = slots[method_name].pop(key, None)

        if not slots[method_name]:
            del slots[method_name]
        if not slots:
            del self._entries[owner]

        return value

    def items(self, key: str, owner: type) -> list[tuple[str, Any]]:
        """
        Get (method name, value) pairs attached under key on a single class,
        in attachment order. Values on base classes are not included.
        """
        slots = self._entries.get(owner, {})
        return [
            (method_name, metadata[key])
            for method_name, metadata in slots.items()
            if key in metadata
        ]

    def owners(self, key: str) -> list[type]:
        """Get the live classes with at least one value attached under key."""
        return [
            owner
            for owner, slots in list(self._entries.items())
            if any(key in metadata for metadata in slots.values())
        ]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        """Number of classes with attached metadata."""
        return len(self._entries)
