"""
Custom exceptions for elementkit operations.

Validation failures are not exceptions: they are attached to the element and reported
through a boolean result. Queries that cannot match anything are not errors either; they
simply produce no rows. Everything below is raised to the caller.
"""


class ElementKitError(Exception):
    """Base exception for all elementkit errors."""

    pass


class ConfigurationError(ElementKitError):
    """Raised when an element type, field or content table cannot be resolved."""

    pass


class ElementTypeNotFoundError(ConfigurationError):
    """Raised when an element type handle is not registered."""

    pass


class FieldTypeNotFoundError(ConfigurationError):
    """Raised when a field type name is not registered."""

    pass


class ElementNotFoundError(ElementKitError):
    """Raised when saving an existing element whose row no longer exists."""

    pass


class InvariantError(ElementKitError):
    """Raised when an internal invariant is violated (e.g. an element with no locales)."""

    pass


class UniqueUriError(ElementKitError):
    """Raised when no unique URI can be found for an element."""

    pass


class QueryError(ElementKitError):
    """Raised when an order expression references an unknown column."""

    pass
