"""
Base class for field types.

A field type decides how a field stores its value (one content column, or none),
how criteria on the field filter an element query, and what happens after the owning
element is saved. Each ``Field`` holds its own field type instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from ..query.params import parse_param

if TYPE_CHECKING:
    from ..domain.fields import Field
    from ..domain.models import Element
    from ..query.element_query import ElementQuery
    from ..services.elements import Elements


class FieldType:
    """Stored-column field type storing text; subclasses narrow the column type."""

    name: str = "Field"

    def __init__(self, **settings: Any):
        self.settings: dict[str, Any] = dict(settings)
        self.field: Field | None = None

    # Storage ----------------------------------------------------------------

    def defines_content_column(self) -> bool:
        return True

    def get_content_column_type(self) -> sa.types.TypeEngine:
        return sa.Text()

    def prep_value_for_db(self, value: Any) -> Any:
        return value

    def prep_value_from_db(self, value: Any) -> Any:
        return value

    # Querying ---------------------------------------------------------------

    def modify_elements_query(self, query: ElementQuery, value: Any) -> bool | None:
        """
        Filter ``query`` by the criteria value set for this field.

        Returning False means no element can match.
        """
        if value is None or not self.defines_content_column():
            return None
        query.and_where(parse_param(query.content_column(self._handle()), value))
        return None

    # Validation and search --------------------------------------------------

    def validate(self, value: Any) -> list[str]:
        """Return validation errors for a non-empty value."""
        return []

    def get_search_keywords(self, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    # Lifecycle hooks --------------------------------------------------------

    def on_after_save_field(self, elements: Elements) -> None:
        pass

    def on_after_element_save(self, element: Element, elements: Elements) -> None:
        pass

    # ------------------------------------------------------------------------

    def _handle(self) -> str:
        if self.field is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a field")
        return self.field.handle

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(settings={self.settings})>"
