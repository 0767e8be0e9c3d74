"""
Matrix fields: block types and the blocks an owner element holds.

Blocks are ``MatrixBlock`` elements owned by another element through one matrix field.
Their content lives in the field's ``matrixcontent_<handle>`` table; each block type's
fields use the column prefix ``field_<blocktype>_`` there.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import select

from ..domain.entities import MatrixBlockRecord, MatrixBlockTypeRecord
from ..domain.fields import Field, MatrixBlockType
from ..domain.models import Element, MatrixBlock
from ..fieldtypes.matrix import matrix_content_table_name
from ..infra.exceptions import ConfigurationError
from ..infra.logging import get_logger
from ..infra.schema import ensure_content_table
from ..infra.uow import transaction
from .fields import matrix_block_type_context

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)


class MatrixService:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db
        self._block_types: dict[int, MatrixBlockType] = {}

    # Schema -----------------------------------------------------------------

    def ensure_content_table(self, field: Field) -> None:
        ensure_content_table(self.db.connection(), matrix_content_table_name(field.handle))

    # Block types ------------------------------------------------------------

    def save_block_type(
        self,
        field: Field,
        handle: str,
        name: str | None = None,
        fields: Iterable[Field] = (),
        *,
        required: Iterable[str] = (),
    ) -> MatrixBlockType:
        """
        Create a block type on a saved matrix field, saving its fields and layout.

        Args:
            field: The matrix field
            handle: Block type handle, unique within the field
            name: Display name (defaults to the handle)
            fields: Unsaved fields of the block type
            required: Handles of the fields that may not be left blank

        Returns:
            The saved block type
        """
        if field.id is None:
            raise ConfigurationError(f"Matrix field {field.handle!r} must be saved first")

        with transaction(self.db):
            record = MatrixBlockTypeRecord(field_id=field.id, handle=handle, name=name or handle)
            self.db.add(record)
            self.db.flush()

            block_type = MatrixBlockType(
                id=record.id, field_id=field.id, handle=record.handle, name=record.name
            )
            for sub_field in fields:
                sub_field.context = matrix_block_type_context(record.id)
                sub_field.column_prefix = block_type.column_prefix
                self.elements.fields.save_field(sub_field)
                block_type.fields.append(sub_field)

            layout = self.elements.fields.create_layout(
                block_type.fields, required=required, type=MatrixBlock.element_type
            )
            record.field_layout_id = layout.id
            block_type.field_layout_id = layout.id
            self.db.flush()

        self._block_types[block_type.id] = block_type
        logger.info("matrix_block_type_saved", field=field.handle, block_type=handle)
        return block_type

    def get_block_type_by_id(self, block_type_id: int | None) -> MatrixBlockType | None:
        if not block_type_id:
            return None
        if block_type_id in self._block_types:
            return self._block_types[block_type_id]
        record = self.db.get(MatrixBlockTypeRecord, block_type_id)
        return self._to_block_type(record) if record is not None else None

    def get_block_types(self, field_id: int) -> list[MatrixBlockType]:
        records = self.db.scalars(
            select(MatrixBlockTypeRecord)
            .where(MatrixBlockTypeRecord.field_id == field_id)
            .order_by(MatrixBlockTypeRecord.id)
        )
        return [self._block_types.get(record.id) or self._to_block_type(record) for record in records]

    def get_block_type_by_handle(self, field_id: int, handle: str) -> MatrixBlockType | None:
        for block_type in self.get_block_types(field_id):
            if block_type.handle == handle:
                return block_type
        return None

    def _to_block_type(self, record: MatrixBlockTypeRecord) -> MatrixBlockType:
        block_type = MatrixBlockType(
            id=record.id,
            field_id=record.field_id,
            handle=record.handle,
            name=record.name,
            field_layout_id=record.field_layout_id,
            fields=self.elements.fields.get_all_fields(matrix_block_type_context(record.id)),
        )
        self._block_types[block_type.id] = block_type
        return block_type

    # Blocks -----------------------------------------------------------------

    def new_block(self, field: Field, block_type: MatrixBlockType | str, **values) -> MatrixBlock:
        """Build an unsaved block of ``block_type`` with the given field values."""
        if isinstance(block_type, str):
            resolved = self.get_block_type_by_handle(field.id, block_type)
            if resolved is None:
                raise ConfigurationError(
                    f"Matrix field {field.handle!r} has no block type {block_type!r}"
                )
            block_type = resolved
        block = MatrixBlock(field_id=field.id, type_id=block_type.id, type_handle=block_type.handle)
        block.set_field_values(values)
        return block

    def get_blocks(self, field: Field, owner_id: int, locale: str | None = None) -> list[MatrixBlock]:
        criteria = self.elements.get_criteria(
            MatrixBlock.element_type,
            owner_id=owner_id,
            field_id=field.id,
            status=None,
            locale_enabled=False,
            locale=locale,
            limit=None,
        )
        return list(self.elements.find_elements(criteria))

    def get_block_ids_by_owner(self, owner_ids: Iterable[int]) -> list[int]:
        ids = list(owner_ids)
        if not ids:
            return []
        return list(
            self.db.scalars(select(MatrixBlockRecord.id).where(MatrixBlockRecord.owner_id.in_(ids)))
        )

    def save_field_blocks(self, field: Field, owner: Element, blocks: list[MatrixBlock]) -> bool:
        """
        Save ``blocks`` as the owner's value for ``field`` and delete the blocks it dropped.

        A block that fails to save copies its errors onto the owner, under the field handle.

        Returns:
            True if every block saved
        """
        owner_locale = owner.locale if field.translatable else None
        saved_ids: list[int] = []

        with transaction(self.db):
            for sort_order, block in enumerate(blocks, start=1):
                block.owner_id = owner.id
                block.owner_locale = owner_locale
                block.field_id = field.id
                block.sort_order = sort_order
                block.locale = owner.locale

                if not self.elements.save_element(block):
                    for messages in block.get_errors().values():
                        for message in messages:
                            owner.add_error(field.handle, message)
                    return False
                saved_ids.append(block.id)

            stale = select(MatrixBlockRecord.id).where(
                MatrixBlockRecord.owner_id == owner.id,
                MatrixBlockRecord.field_id == field.id,
            )
            if owner_locale is None:
                stale = stale.where(MatrixBlockRecord.owner_locale.is_(None))
            else:
                stale = stale.where(MatrixBlockRecord.owner_locale == owner_locale)
            if saved_ids:
                stale = stale.where(MatrixBlockRecord.id.not_in(saved_ids))

            stale_ids = list(self.db.scalars(stale))
            if stale_ids:
                self.elements.delete_element_by_id(stale_ids)

        return True

    def delete_block_by_id(self, block_ids: int | Iterable[int]) -> bool:
        return self.elements.delete_element_by_id(block_ids)
