"""
Field and field layout persistence.

Field definitions live in ``fields``; saving a field that stores content makes sure its
column exists in the right content table. Definitions are cached per service instance
and loaded lazily, which also re-attaches columns added in earlier processes to the
in-memory table metadata.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select

from ..domain.entities import (
    FieldLayoutFieldRecord,
    FieldLayoutRecord,
    FieldRecord,
    MatrixBlockTypeRecord,
)
from ..domain.fields import GLOBAL_CONTEXT, Field, FieldLayout, FieldLayoutField
from ..fieldtypes.matrix import matrix_content_table_name
from ..infra.exceptions import ConfigurationError
from ..infra.logging import get_logger
from ..infra.schema import CONTENT_TABLE, ensure_field_column
from ..infra.uow import transaction
from ..registries.field_type_registry import create_field_type

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)

MATRIX_BLOCK_TYPE_CONTEXT = "matrixBlockType"


def matrix_block_type_context(block_type_id: int) -> str:
    return f"{MATRIX_BLOCK_TYPE_CONTEXT}:{block_type_id}"


class FieldsService:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db
        self._fields_by_id: dict[int, Field] = {}
        self._layouts_by_id: dict[int, FieldLayout] = {}
        self._loaded = False

    # Fields -----------------------------------------------------------------

    def create_field(
        self,
        handle: str,
        name: str | None = None,
        field_type: str = "PlainText",
        *,
        context: str = GLOBAL_CONTEXT,
        column_prefix: str | None = None,
        translatable: bool = True,
        searchable: bool = True,
        **settings: Any,
    ) -> Field:
        """Build and save a field in one call."""
        field = Field(
            handle=handle,
            name=name or handle,
            field_type=create_field_type(field_type, **settings),
            context=context,
            column_prefix=column_prefix,
            translatable=translatable,
            searchable=searchable,
        )
        return self.save_field(field)

    def save_field(self, field: Field) -> Field:
        """
        Insert or update a field, adding its content column when it stores content.

        Args:
            field: The field to save; its ``id`` is set on first save

        Returns:
            The saved field
        """
        self._load()
        with transaction(self.db):
            record = self.db.get(FieldRecord, field.id) if field.id else None
            if record is None:
                record = FieldRecord()
                self.db.add(record)

            record.handle = field.handle
            record.name = field.name
            record.context = field.context
            record.type = field.field_type.name
            record.column_prefix = field.column_prefix
            record.translatable = field.translatable
            record.searchable = field.searchable
            record.settings = dict(field.field_type.settings)
            self.db.flush()
            field.id = record.id

            if field.has_content_column():
                self._ensure_column(field)

            self._fields_by_id[field.id] = field
            field.field_type.on_after_save_field(self.elements)

        logger.info("field_saved", field_id=field.id, handle=field.handle, type=record.type)
        return field

    def get_field_by_id(self, field_id: int) -> Field | None:
        self._load()
        return self._fields_by_id.get(field_id)

    def get_field_by_handle(self, handle: str, context: str = GLOBAL_CONTEXT) -> Field | None:
        self._load()
        for field in self._fields_by_id.values():
            if field.handle == handle and field.context == context:
                return field
        return None

    def get_all_fields(self, context: str = GLOBAL_CONTEXT) -> list[Field]:
        self._load()
        return [field for field in self._fields_by_id.values() if field.context == context]

    def get_relation_field_ids(self, references: Iterable[Any]) -> list[int]:
        """Resolve field ids and global field handles to ids, dropping unknown ones."""
        self._load()
        ids: list[int] = []
        for reference in references:
            if isinstance(reference, Field):
                field = reference
            elif isinstance(reference, int) or (isinstance(reference, str) and reference.isdigit()):
                field = self._fields_by_id.get(int(reference))
            else:
                field = self.get_field_by_handle(str(reference))
            if field is not None and field.id is not None:
                ids.append(field.id)
        return ids

    def content_table_for_field(self, field: Field) -> str:
        """The content table holding ``field``'s column."""
        if field.context == GLOBAL_CONTEXT:
            return CONTENT_TABLE
        if field.context.startswith(f"{MATRIX_BLOCK_TYPE_CONTEXT}:"):
            block_type_id = int(field.context.split(":", 1)[1])
            block_type = self.db.get(MatrixBlockTypeRecord, block_type_id)
            matrix_field = self.get_field_by_id(block_type.field_id) if block_type else None
            if matrix_field is not None:
                return matrix_content_table_name(matrix_field.handle)
        raise ConfigurationError(f"No content table for field context {field.context!r}")

    # Layouts ----------------------------------------------------------------

    def save_layout(self, layout: FieldLayout) -> FieldLayout:
        with transaction(self.db):
            record = self.db.get(FieldLayoutRecord, layout.id) if layout.id else None
            if record is None:
                record = FieldLayoutRecord()
                self.db.add(record)
            record.type = layout.type
            self.db.flush()
            layout.id = record.id

            self.db.execute(
                delete(FieldLayoutFieldRecord).where(FieldLayoutFieldRecord.layout_id == layout.id)
            )
            for sort_order, layout_field in enumerate(layout.get_fields(), start=1):
                if layout_field.field.id is None:
                    raise ConfigurationError(
                        f"Field {layout_field.field.handle!r} must be saved before its layout"
                    )
                layout_field.sort_order = sort_order
                self.db.add(
                    FieldLayoutFieldRecord(
                        layout_id=layout.id,
                        field_id=layout_field.field.id,
                        required=layout_field.required,
                        sort_order=sort_order,
                    )
                )
            self.db.flush()

        self._layouts_by_id[layout.id] = layout
        return layout

    def create_layout(
        self,
        fields: Iterable[Field],
        *,
        required: Iterable[str] = (),
        type: str | None = None,
    ) -> FieldLayout:
        required_handles = set(required)
        layout = FieldLayout(
            type=type,
            layout_fields=[
                FieldLayoutField(field=field, required=field.handle in required_handles, sort_order=i)
                for i, field in enumerate(fields, start=1)
            ],
        )
        return self.save_layout(layout)

    def get_layout_by_type(self, type: str) -> FieldLayout | None:
        """The most recently saved layout for an element type, if any."""
        layout_id = self.db.scalar(
            select(FieldLayoutRecord.id)
            .where(FieldLayoutRecord.type == type)
            .order_by(FieldLayoutRecord.id.desc())
        )
        return self.get_layout_by_id(layout_id)

    def get_layout_by_id(self, layout_id: int | None) -> FieldLayout | None:
        if not layout_id:
            return None
        if layout_id in self._layouts_by_id:
            return self._layouts_by_id[layout_id]

        record = self.db.get(FieldLayoutRecord, layout_id)
        if record is None:
            return None

        self._load()
        rows = self.db.scalars(
            select(FieldLayoutFieldRecord)
            .where(FieldLayoutFieldRecord.layout_id == layout_id)
            .order_by(FieldLayoutFieldRecord.sort_order)
        )
        layout = FieldLayout(id=record.id, type=record.type)
        for row in rows:
            field = self._fields_by_id.get(row.field_id)
            if field is not None:
                layout.layout_fields.append(
                    FieldLayoutField(field=field, required=row.required, sort_order=row.sort_order)
                )
        self._layouts_by_id[layout_id] = layout
        return layout

    # ------------------------------------------------------------------------

    def _ensure_column(self, field: Field) -> None:
        ensure_field_column(
            self.db.connection(),
            self.content_table_for_field(field),
            field.column_name,
            field.field_type.get_content_column_type(),
        )

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        records = list(self.db.scalars(select(FieldRecord).order_by(FieldRecord.id)))
        for record in records:
            field = Field(
                handle=record.handle,
                name=record.name,
                field_type=create_field_type(record.type, **(record.settings or {})),
                id=record.id,
                context=record.context,
                column_prefix=record.column_prefix,
                translatable=record.translatable,
                searchable=record.searchable,
            )
            self._fields_by_id[field.id] = field

        for field in self._fields_by_id.values():
            if field.has_content_column():
                self._ensure_column(field)
