"""
Element type registry.

Element type classes self-register here when imported. Each ``Elements`` facade holds an
``ElementTypeRegistry`` with one instance per class, bound to that facade.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..elementtypes.base import BaseElementType
from ..elementtypes.category import CategoryElementType
from ..elementtypes.entry import EntryElementType
from ..elementtypes.matrix_block import MatrixBlockElementType
from ..elementtypes.user import UserElementType
from ..infra.exceptions import ConfigurationError, ElementTypeNotFoundError

if TYPE_CHECKING:
    from ..services.elements import Elements

# Available element type classes
ELEMENT_TYPES: dict[str, type[BaseElementType]] = {
    "entry": EntryElementType,
    "category": CategoryElementType,
    "user": UserElementType,
    "matrixblock": MatrixBlockElementType,
}

# Element type aliases for better user experience
ALIASES = {
    "entries": "entry",
    "categories": "category",
    "users": "user",
    "matrix_block": "matrixblock",
    "matrix-block": "matrixblock",
    "block": "matrixblock",
}


def _key(handle: str) -> str:
    key = handle.lower()
    return ALIASES.get(key, key)


def register_element_type(element_type_class: type[BaseElementType]) -> None:
    """
    Register an element type class.

    Args:
        element_type_class: The class to register; its ``handle`` is the registry key

    Raises:
        ValueError: If the handle is empty or already registered
    """
    if not getattr(element_type_class, "handle", None):
        raise ValueError("Element type class must have a 'handle' attribute")

    key = element_type_class.handle.lower()
    if key in ELEMENT_TYPES:
        raise ValueError(f"Element type '{element_type_class.handle}' is already registered")

    ELEMENT_TYPES[key] = element_type_class


def unregister_element_type(handle: str) -> None:
    key = _key(handle)
    if key not in ELEMENT_TYPES:
        raise ElementTypeNotFoundError(f"Element type '{handle}' not found")
    del ELEMENT_TYPES[key]


def get_element_type_class(handle: str) -> type[BaseElementType]:
    try:
        return ELEMENT_TYPES[_key(handle)]
    except KeyError:
        raise ElementTypeNotFoundError(
            f"Unsupported element type: {handle}. Available: {', '.join(list_element_types())}"
        ) from None


def list_element_types() -> list[str]:
    return [cls.handle for cls in ELEMENT_TYPES.values()]


class ElementTypeRegistry:
    """Element type instances bound to one ``Elements`` facade, created on first use."""

    def __init__(self, elements: Elements):
        self.elements = elements
        self._instances: dict[str, BaseElementType] = {}

    def get(self, handle: str | None) -> BaseElementType | None:
        if not handle:
            return None
        key = _key(handle)
        if key not in self._instances:
            cls = ELEMENT_TYPES.get(key)
            if cls is None:
                return None
            self._instances[key] = cls(self.elements)
        return self._instances[key]

    def require(self, handle: str | None) -> BaseElementType:
        """Like :meth:`get`, raising ``ConfigurationError`` for unknown handles."""
        element_type = self.get(handle)
        if element_type is None:
            raise ConfigurationError(f"No element type exists with the class handle {handle!r}")
        return element_type

    def all(self) -> list[BaseElementType]:
        return [self.require(cls.handle) for cls in ELEMENT_TYPES.values()]
