"""
Matrix blocks: elements owned by another element through a matrix field.

Blocks follow their owner's locales and keep their content in the owning field's
``matrixcontent_<handle>`` table, so content can only be joined when the criteria names
the field (``field_id``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import select

from ..domain.entities import ElementLocaleRecord, MatrixBlockRecord, MatrixBlockTypeRecord
from ..domain.models import Element, MatrixBlock
from ..fieldtypes.matrix import matrix_content_table_name
from ..query.params import parse_param
from .base import BaseElementType

if TYPE_CHECKING:
    from ..domain.criteria import ElementCriteria
    from ..domain.fields import Field, FieldLayout
    from ..query.element_query import ElementQuery


class MatrixBlockElementType(BaseElementType):
    handle = "MatrixBlock"
    name = "Matrix Blocks"
    model_class = MatrixBlock

    titles = False

    def define_criteria_attributes(self) -> dict[str, Any]:
        return {"owner_id": None, "owner_locale": None, "field_id": None, "type": None, "type_id": None}

    def _matrix_field(self, field_id: Any) -> Field | None:
        if isinstance(field_id, (list, tuple)):
            field_id = field_id[0] if len(field_id) == 1 else None
        if field_id is None or not str(field_id).isdigit():
            return None
        return self.elements.fields.get_field_by_id(int(field_id))

    # Querying ---------------------------------------------------------------

    def get_content_table_for_query(self, criteria: ElementCriteria) -> str | None:
        field = self._matrix_field(criteria.params.get("field_id"))
        return matrix_content_table_name(field.handle) if field is not None else None

    def get_fields_for_query(self, criteria: ElementCriteria) -> list[Field]:
        field = self._matrix_field(criteria.params.get("field_id"))
        if field is None:
            return []
        fields: list[Field] = []
        for block_type in self.elements.matrix.get_block_types(field.id):
            fields.extend(block_type.fields)
        return fields

    def modify_elements_query(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        blocks = MatrixBlockRecord.__table__
        block_types = MatrixBlockTypeRecord.__table__
        query.join("matrixblocks", blocks, blocks.c.id == query.elements.c.id)
        query.join("matrixblocktypes", block_types, block_types.c.id == blocks.c.type_id)
        query.add_select(
            owner_id=blocks.c.owner_id,
            owner_locale=blocks.c.owner_locale,
            field_id=blocks.c.field_id,
            type_id=blocks.c.type_id,
            type_handle=block_types.c.handle,
            sort_order=blocks.c.sort_order,
            field_layout_id=block_types.c.field_layout_id,
        )

        params = criteria.params
        query.and_where(parse_param(blocks.c.owner_id, params.get("owner_id")))
        query.and_where(parse_param(blocks.c.field_id, params.get("field_id")))
        query.and_where(parse_param(blocks.c.type_id, params.get("type_id")))
        query.and_where(parse_param(block_types.c.handle, params.get("type")))
        if params.get("owner_locale"):
            query.and_where(
                sa.or_(
                    blocks.c.owner_locale.is_(None),
                    blocks.c.owner_locale == params["owner_locale"],
                )
            )
        return True

    def default_order(self, query: ElementQuery) -> str:
        return "sort_order asc"

    # Saving -----------------------------------------------------------------

    def get_locales(self, element: Element) -> dict[str, dict[str, Any]]:
        if element.owner_locale:
            return {element.owner_locale: {"enabled_by_default": True}}
        locales = self.elements.db.scalars(
            select(ElementLocaleRecord.locale)
            .where(ElementLocaleRecord.element_id == element.owner_id)
            .order_by(ElementLocaleRecord.id)
        )
        return {locale: {"enabled_by_default": True} for locale in locales}

    def get_content_table(self, element: Element) -> str | None:
        field = self.elements.fields.get_field_by_id(element.field_id) if element.field_id else None
        return matrix_content_table_name(field.handle) if field is not None else None

    def get_field_layout(self, element: Element) -> FieldLayout | None:
        block_type = self.elements.matrix.get_block_type_by_id(element.type_id)
        if block_type is None:
            return None
        element.type_handle = block_type.handle
        element.field_layout_id = block_type.field_layout_id
        return super().get_field_layout(element)

    def validate(self, element: Element) -> bool:
        valid = True
        for attribute in ("owner_id", "field_id", "type_id"):
            if not getattr(element, attribute):
                element.add_error(attribute, f"{attribute} cannot be blank.")
                valid = False
        return valid

    def save_type_record(self, element: Element, is_new_element: bool) -> None:
        record = self.elements.db.get(MatrixBlockRecord, element.id)
        if record is None:
            record = MatrixBlockRecord(id=element.id)
            self.elements.db.add(record)
        record.owner_id = element.owner_id
        record.owner_locale = element.owner_locale
        record.field_id = element.field_id
        record.type_id = element.type_id
        record.sort_order = element.sort_order
        self.elements.db.flush()
