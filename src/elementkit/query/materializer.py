"""
Turning query rows into element models.

Rows are split into element attributes and content (content id, title, field values),
handed to the element type's populate routine, and linked into a prev/next chain whose
ends are ``RESULT_BOUNDARY``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from ..domain.events import EVENT_AFTER_POPULATE_ELEMENT, EventBus, PopulateElementEvent
from ..domain.models import Content, Element
from ..shared.types import RESULT_BOUNDARY

if TYPE_CHECKING:
    from ..domain.interfaces import ElementTypeInterface

logger = logging.getLogger(__name__)


class PlaceholderOverlay:
    """
    In-memory elements that replace freshly queried ones, keyed by ``(id, locale)``.

    Used for previews: whoever sets a placeholder owns its lifetime and clears it.
    """

    def __init__(self) -> None:
        self._elements: dict[tuple[int, str], Element] = {}

    def set(self, element: Element) -> None:
        # Can't key an element without both
        if not element.id or not element.locale:
            return
        self._elements[(element.id, element.locale)] = element

    def get(self, element_id: int, locale: str) -> Element | None:
        return self._elements.get((element_id, locale))

    def remove(self, element_id: int, locale: str) -> None:
        self._elements.pop((element_id, locale), None)

    def clear(self) -> None:
        self._elements.clear()

    def __len__(self) -> int:
        return len(self._elements)

    def __contains__(self, key: tuple[int, str]) -> bool:
        return key in self._elements


def merge_field_value(content: dict[str, Any], handle: str, value: Any) -> None:
    """
    Set ``content[handle]`` unless a value is already there.

    Several columns can carry the same handle (e.g. two matrix block types that both
    define ``body``); an empty value already present is replaced by a non-empty one.
    """
    if handle not in content or (not content[handle] and value):
        content[handle] = value


class ResultMaterializer:
    def __init__(self, events: EventBus):
        self.events = events

    def materialize(
        self,
        rows: Iterable[Mapping[str, Any]],
        element_type: ElementTypeInterface,
        *,
        locale: str,
        content_table: str | None = None,
        field_columns: list[dict[str, str]] | None = None,
        index_by: str | None = None,
        placeholders: PlaceholderOverlay | None = None,
    ) -> list[Element] | dict[Any, Element]:
        indexed: dict[Any, Element] = {}
        elements: list[Element] = []
        last_element: Element | None = None

        for raw in rows:
            row = dict(raw)
            element = placeholders.get(row["id"], locale) if placeholders is not None else None

            if element is None:
                element = self._populate(row, element_type, locale, content_table, field_columns)
                if element is None:
                    continue

            if index_by:
                indexed[element.get_attribute(index_by)] = element
            else:
                elements.append(element)

            if last_element is not None:
                last_element.set_next(element)
                element.set_prev(last_element)
            else:
                element.set_prev(RESULT_BOUNDARY)
            last_element = element

        if last_element is not None:
            last_element.set_next(RESULT_BOUNDARY)

        return indexed if index_by else elements

    def _populate(
        self,
        row: dict[str, Any],
        element_type: ElementTypeInterface,
        locale: str,
        content_table: str | None,
        field_columns: list[dict[str, str]] | None,
    ) -> Element | None:
        original_row = dict(row)
        content: Content | None = None

        if content_table:
            values: dict[str, Any] = {}
            for column in field_columns or []:
                merge_field_value(values, column["handle"], row.pop(column["column"], None))

            content = Content(
                id=row.pop("content_id", None),
                element_id=row["id"],
                locale=locale,
                title=row.pop("title", None),
                values=values,
            )

        row["locale"] = locale
        element = element_type.populate_element_model(row)
        if element is None:
            logger.debug("Element type skipped row for element %s", row.get("id"))
            return None

        if content is not None:
            element.set_content(content)

        self.events.trigger(
            EVENT_AFTER_POPULATE_ELEMENT, PopulateElementEvent(element=element, row=original_row)
        )
        return element
