"""
Field type registry.

Maps the type names stored in ``fields.type`` to field type classes. Plugins register
their own classes with :func:`register_field_type`.
"""

from __future__ import annotations

from typing import Any

from ..fieldtypes.base import FieldType
from ..fieldtypes.entries import EntriesFieldType
from ..fieldtypes.lightswitch import LightswitchFieldType
from ..fieldtypes.matrix import MatrixFieldType
from ..fieldtypes.number import NumberFieldType
from ..fieldtypes.plain_text import PlainTextFieldType
from ..infra.exceptions import FieldTypeNotFoundError

# Available field type classes
FIELD_TYPES: dict[str, type[FieldType]] = {
    "plaintext": PlainTextFieldType,
    "number": NumberFieldType,
    "lightswitch": LightswitchFieldType,
    "entries": EntriesFieldType,
    "matrix": MatrixFieldType,
}

# Field type aliases for better user experience
ALIASES = {
    "text": "plaintext",
    "plain_text": "plaintext",
    "plain-text": "plaintext",
    "bool": "lightswitch",
    "toggle": "lightswitch",
    "relation": "entries",
}


def register_field_type(field_type_class: type[FieldType]) -> None:
    """
    Register a field type class.

    Args:
        field_type_class: The class to register; its ``name`` is the registry key

    Raises:
        ValueError: If the name is empty or already registered
    """
    if not getattr(field_type_class, "name", None):
        raise ValueError("Field type class must have a 'name' attribute")

    key = field_type_class.name.lower()
    if key in FIELD_TYPES:
        raise ValueError(f"Field type '{field_type_class.name}' is already registered")

    FIELD_TYPES[key] = field_type_class


def get_field_type_class(name: str) -> type[FieldType]:
    key = ALIASES.get(name.lower(), name.lower())
    try:
        return FIELD_TYPES[key]
    except KeyError:
        raise FieldTypeNotFoundError(
            f"Unsupported field type: {name}. Available: {', '.join(sorted(FIELD_TYPES))}"
        ) from None


def create_field_type(name: str, **settings: Any) -> FieldType:
    """Instantiate a field type by name with the given settings."""
    return get_field_type_class(name)(**settings)


def list_field_types() -> list[str]:
    return [cls.name for cls in FIELD_TYPES.values()]


def unregister_field_type(name: str) -> None:
    key = name.lower()
    if key not in FIELD_TYPES:
        raise FieldTypeNotFoundError(f"Field type '{name}' not found")
    del FIELD_TYPES[key]
