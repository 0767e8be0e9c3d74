"""
Content persistence and validation.

Content rows live in the element type's content table, one per (element, locale). Field
values map to ``<prefix><handle>`` columns; ``field_column_prefix`` is the prefix used for
fields that do not carry their own.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from ..domain.entities import utcnow
from ..domain.fields import DEFAULT_COLUMN_PREFIX, Field
from ..domain.models import Content, Element
from ..infra.exceptions import ConfigurationError
from ..infra.schema import content_table

if TYPE_CHECKING:
    from .elements import Elements


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class ContentService:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db
        self.field_column_prefix = DEFAULT_COLUMN_PREFIX

    @contextlib.contextmanager
    def using_column_prefix(self, prefix: str | None) -> Generator[None, None, None]:
        original = self.field_column_prefix
        if prefix:
            self.field_column_prefix = prefix
        try:
            yield
        finally:
            self.field_column_prefix = original

    def column_name(self, field: Field) -> str:
        return (field.column_prefix or self.field_column_prefix) + field.handle

    # ------------------------------------------------------------------------

    def _table(self, element: Element) -> sa.Table:
        element_type = self.elements.element_types.require(element.get_class_handle())
        name = element_type.get_content_table(element)
        if not name:
            raise ConfigurationError(f"{element.get_class_handle()} elements have no content table")
        return content_table(name)

    def _stored_fields(self, element: Element) -> list[Field]:
        element_type = self.elements.element_types.require(element.get_class_handle())
        layout = element_type.get_field_layout(element)
        if layout is None:
            return []
        return [lf.field for lf in layout.get_fields() if lf.field.has_content_column()]

    def get_content(self, element: Element) -> Content | None:
        """Load the element's stored content for its locale, or None if there is no row."""
        if not element.id:
            return None
        table = self._table(element)
        row = (
            self.db.execute(
                sa.select(table).where(
                    table.c.element_id == element.id, table.c.locale == element.locale
                )
            )
            .mappings()
            .first()
        )
        if row is None:
            return None

        content = Content(id=row["id"], element_id=element.id, locale=element.locale, title=row["title"])
        for field in self._stored_fields(element):
            column = self.column_name(field)
            if column in row:
                content.values[field.handle] = field.field_type.prep_value_from_db(row[column])
        return content

    def validate_content(self, element: Element) -> bool:
        """
        Validate the element's content against its field layout.

        Required fields must be non-blank; non-blank values are checked by their field
        type. Errors are recorded on the content model.
        """
        content = element.get_content()
        content.errors = {}

        element_type = self.elements.element_types.require(element.get_class_handle())
        layout = element_type.get_field_layout(element)
        if layout is None:
            return True

        for layout_field in layout.get_fields():
            field = layout_field.field
            value = content.values.get(field.handle)
            if _is_blank(value):
                if layout_field.required:
                    content.add_error(field.handle, f"{field.name} cannot be blank.")
                continue
            for message in field.field_type.validate(value):
                content.add_error(field.handle, f"{field.name} {message}.")

        return not content.has_errors()

    def save_content(
        self,
        element: Element,
        validate: bool = True,
        update_other_locales: bool = True,
    ) -> bool:
        """
        Insert or update the element's content row for its locale.

        Args:
            element: Element whose content is saved; must already have an id
            validate: Validate first, returning False (nothing written) on errors
            update_other_locales: Copy non-translatable field values to the element's
                other locales

        Returns:
            True if the content was saved
        """
        if not element.id:
            raise ValueError("Cannot save content for an element without an id")
        if validate and not self.validate_content(element):
            return False

        content = element.get_content()
        content.element_id = element.id
        content.locale = element.locale
        table = self._table(element)

        values: dict[str, Any] = {"title": content.title, "date_updated": utcnow()}
        fields = self._stored_fields(element)
        for field in fields:
            if field.handle in content.values:
                values[self.column_name(field)] = field.field_type.prep_value_for_db(
                    content.values[field.handle]
                )

        if content.id:
            self.db.execute(sa.update(table).where(table.c.id == content.id).values(**values))
        else:
            values.update(element_id=element.id, locale=element.locale, date_created=utcnow())
            result = self.db.execute(sa.insert(table).values(**values))
            content.id = result.inserted_primary_key[0]

        if update_other_locales:
            self._copy_untranslatable_values(element, table, fields)

        return True

    def _copy_untranslatable_values(self, element: Element, table: sa.Table, fields: list[Field]) -> None:
        content = element.get_content()
        shared = {
            self.column_name(field): field.field_type.prep_value_for_db(content.values[field.handle])
            for field in fields
            if not field.translatable and field.handle in content.values
        }
        if not shared:
            return
        self.db.execute(
            sa.update(table)
            .where(table.c.element_id == element.id, table.c.locale != element.locale)
            .values(**shared)
        )

    def delete_content_for_other_locales(self, element: Element, keep_locales: list[str]) -> None:
        table = self._table(element)
        self.db.execute(
            sa.delete(table).where(
                table.c.element_id == element.id, table.c.locale.not_in(keep_locales)
            )
        )
