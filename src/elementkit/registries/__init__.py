"""
Registries module for elementkit.

Element types and field types register themselves here by handle, so callers can
resolve them case-insensitively (with a few aliases) without importing the classes.
"""

from .element_type_registry import (
    ElementTypeRegistry,
    get_element_type_class,
    list_element_types,
    register_element_type,
    unregister_element_type,
)
from .field_type_registry import (
    create_field_type,
    get_field_type_class,
    list_field_types,
    register_field_type,
    unregister_field_type,
)

__all__ = [
    "ElementTypeRegistry",
    "register_element_type",
    "get_element_type_class",
    "list_element_types",
    "unregister_element_type",
    "register_field_type",
    "get_field_type_class",
    "create_field_type",
    "list_field_types",
    "unregister_field_type",
]
