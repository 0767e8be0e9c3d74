"""Domain interfaces for element types and the collaborators the element core consumes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy.sql.elements import ColumnElement

from .models import Element

if TYPE_CHECKING:
    from ..query.element_query import ElementQuery
    from .criteria import ElementCriteria
    from .fields import Field, FieldLayout


class ElementTypeInterface(ABC):
    """Per-type policy consulted while compiling queries and saving elements."""

    @abstractmethod
    def get_class_handle(self) -> str:
        """Return the type handle stored in ``elements.type`` (e.g. ``"Entry"``)."""
        raise NotImplementedError

    @abstractmethod
    def is_localized(self) -> bool:
        """Whether elements of this type can differ per locale."""
        raise NotImplementedError

    @abstractmethod
    def has_content(self) -> bool:
        """Whether elements of this type store rows in a content table."""
        raise NotImplementedError

    @abstractmethod
    def has_titles(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_statuses(self) -> dict[str, str]:
        """
        Return the ordered status vocabulary (status handle -> label).

        Must include the built-in ``enabled`` and ``disabled`` statuses when the type
        supports statuses at all.
        """
        raise NotImplementedError

    @abstractmethod
    def get_element_query_status_condition(
        self, query: ElementQuery, status: str
    ) -> ColumnElement[bool] | bool | None:
        """
        Return the predicate for a type-specific status.

        Returns:
            A SQL predicate, ``False`` when the status can never match (the whole
            query is then abandoned), or None when the type adds no condition.
        """
        raise NotImplementedError

    @abstractmethod
    def get_fields_for_query(self, criteria: ElementCriteria) -> list[Field]:
        """Return the fields whose columns should be selected, in declaration order."""
        raise NotImplementedError

    @abstractmethod
    def get_content_table_for_query(self, criteria: ElementCriteria) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def modify_elements_query(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        """
        Add type-specific joins, columns and filters.

        Returns:
            False when the criteria can never match anything.
        """
        raise NotImplementedError

    def default_order(self, query: ElementQuery) -> str:
        """Order expression used when the criteria sets none."""
        return "date_created asc, id asc"

    @abstractmethod
    def populate_element_model(self, row: Mapping[str, Any]) -> Element | None:
        """Build an element from a row; returning None skips the row."""
        raise NotImplementedError

    @abstractmethod
    def get_locales(self, element: Element) -> dict[str, dict[str, Any]]:
        """Return the locales the element should exist in: locale -> locale info."""
        raise NotImplementedError

    @abstractmethod
    def get_content_table(self, element: Element) -> str | None:
        """Return the content table an element's content is saved to."""
        raise NotImplementedError

    @abstractmethod
    def get_field_layout(self, element: Element) -> FieldLayout | None:
        raise NotImplementedError

    @abstractmethod
    def get_uri_format(self, element: Element) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def save_type_record(self, element: Element, is_new_element: bool) -> None:
        """Persist the type's own row next to the element row."""
        raise NotImplementedError


class RelationParserInterface(ABC):
    """Turns a ``related_to`` expression into a predicate on the element query."""

    @abstractmethod
    def parse(self, related_to: Any, query: ElementQuery) -> ColumnElement[bool] | bool:
        """
        Returns:
            A predicate to AND into the query, or ``False`` when nothing can match.
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def is_relation_field_query(self) -> bool:
        """True when the expression was one clause fetching the targets of a source's field."""
        raise NotImplementedError


class SearchInterface(ABC):
    @abstractmethod
    def index_element_attributes(self, element: Element) -> None:
        raise NotImplementedError

    @abstractmethod
    def filter_element_ids_by_query(
        self, element_ids: list[int], query: str, scored: bool = True
    ) -> list[int]:
        """Return the subset of ``element_ids`` matching ``query``; best first when scored."""
        raise NotImplementedError


class DerivedCacheInterface(ABC):
    @abstractmethod
    def delete_caches_by_element(self, element: Element) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_caches_by_element_id(
        self, element_ids: Iterable[int], delete_query_caches: bool = True
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_caches_by_element_type(self, element_type: str) -> None:
        raise NotImplementedError


class TaskQueueInterface(ABC):
    @abstractmethod
    def create_task(self, kind: str, description: str, params: Mapping[str, Any]) -> Any:
        raise NotImplementedError
