"""
Base element type.

Concrete types declare their model class, capabilities and extra criteria params, and
override the hooks the query compiler and the save orchestrator call.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy.sql.elements import ColumnElement

from ..domain.interfaces import ElementTypeInterface
from ..domain.models import Element
from ..infra.schema import CONTENT_TABLE
from ..infra.settings import settings
from ..shared.types import ElementStatus

if TYPE_CHECKING:
    from ..domain.criteria import ElementCriteria
    from ..domain.fields import Field, FieldLayout
    from ..query.element_query import ElementQuery
    from ..services.elements import Elements


class BaseElementType(ElementTypeInterface):
    handle: ClassVar[str] = ""
    name: ClassVar[str] = ""
    model_class: ClassVar[type[Element]] = Element

    localized: ClassVar[bool] = True
    content: ClassVar[bool] = True
    titles: ClassVar[bool] = True

    def __init__(self, elements: Elements):
        self.elements = elements

    # Capabilities -----------------------------------------------------------

    def get_class_handle(self) -> str:
        return self.handle

    def get_name(self) -> str:
        return self.name or self.handle

    def is_localized(self) -> bool:
        return self.localized

    def has_content(self) -> bool:
        return self.content

    def has_titles(self) -> bool:
        return self.titles

    def get_statuses(self) -> dict[str, str]:
        return {
            ElementStatus.ENABLED.value: "Enabled",
            ElementStatus.DISABLED.value: "Disabled",
        }

    def define_criteria_attributes(self) -> dict[str, Any]:
        """Type-specific criteria params and their defaults."""
        return {}

    # Querying ---------------------------------------------------------------

    def get_element_query_status_condition(
        self, query: ElementQuery, status: str
    ) -> ColumnElement[bool] | bool | None:
        return None

    def get_fields_for_query(self, criteria: ElementCriteria) -> list[Field]:
        return self.elements.fields.get_all_fields()

    def get_content_table_for_query(self, criteria: ElementCriteria) -> str | None:
        return CONTENT_TABLE if self.has_content() else None

    def modify_elements_query(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        return True

    def populate_element_model(self, row: Mapping[str, Any]) -> Element | None:
        element = self.model_class.populate(row)
        element._site_url = settings.site_url
        return element

    # Saving -----------------------------------------------------------------

    def get_locales(self, element: Element) -> dict[str, dict[str, Any]]:
        if not self.is_localized():
            return {settings.primary_locale: {"enabled_by_default": True}}
        return {locale: {"enabled_by_default": True} for locale in settings.get_site_locale_ids()}

    def get_content_table(self, element: Element) -> str | None:
        return CONTENT_TABLE if self.has_content() else None

    def get_field_layout(self, element: Element) -> FieldLayout | None:
        return self.elements.fields.get_layout_by_id(element.field_layout_id)

    def get_uri_format(self, element: Element) -> str | None:
        return None

    def get_uri_format_context(self, element: Element) -> dict[str, Any]:
        """Extra values a URI format may reference besides the element's attributes."""
        return {}

    def validate(self, element: Element) -> bool:
        """Check the type's own attributes, adding errors to the element."""
        return True

    def save_type_record(self, element: Element, is_new_element: bool) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(handle={self.handle})>"
