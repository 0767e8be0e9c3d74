"""
Entries relation field.

Stores no content column. The field value on an element is a list of related entries
(or their ids); saving the element rewrites the field's rows in ``relations``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from ..domain.entities import RelationRecord
from ..domain.models import Element
from ..query.params import EMPTY, NOT_EMPTY
from ..query.relations import to_element_ids
from .base import FieldType

if TYPE_CHECKING:
    from ..query.element_query import ElementQuery
    from ..services.elements import Elements


class EntriesFieldType(FieldType):
    """Relates an element to entries. Settings: ``sources`` (section handles), ``limit``."""

    name = "Entries"
    element_type = "Entry"

    def defines_content_column(self) -> bool:
        return False

    def target_ids(self, value: Any) -> list[int]:
        ids = to_element_ids(value)
        # Keep the first occurrence of each target
        return list(dict.fromkeys(ids))

    def modify_elements_query(self, query: ElementQuery, value: Any) -> bool | None:
        """
        ``:empty:`` / ``:notempty:`` test for any relation through this field; anything
        else is treated as target elements this field must point at.
        """
        if value is None or self.field is None or self.field.id is None:
            return None

        relations = RelationRecord.__table__.alias(f"rel_{self.field.handle}")
        has_relation = sa.exists().where(
            relations.c.source_id == query.elements.c.id,
            relations.c.field_id == self.field.id,
        )

        if isinstance(value, str) and value.strip().lower() in (NOT_EMPTY, f"not {EMPTY}"):
            query.and_where(has_relation)
            return None
        if isinstance(value, str) and value.strip().lower() == EMPTY:
            query.and_where(sa.not_(has_relation))
            return None

        ids = self.target_ids(value)
        if not ids:
            return False
        query.and_where(
            sa.exists().where(
                relations.c.source_id == query.elements.c.id,
                relations.c.field_id == self.field.id,
                relations.c.target_id.in_(ids),
            )
        )
        return None

    def validate(self, value: Any) -> list[str]:
        limit = self.settings.get("limit")
        if limit and len(self.target_ids(value)) > int(limit):
            return [f"should contain at most {limit} selections"]
        return []

    def get_search_keywords(self, value: Any) -> str:
        if not isinstance(value, (list, tuple)):
            return ""
        return " ".join(str(item) for item in value if isinstance(item, Element))

    def on_after_element_save(self, element: Element, elements: Elements) -> None:
        value = element.get_field_value(self._handle())
        if value is None:
            return
        elements.relations.save_relations(self.field, element, self.target_ids(value))
