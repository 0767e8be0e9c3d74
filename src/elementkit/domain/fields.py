"""
Field definitions and field layouts.

A field is a named, typed slot of content. Fields with a stored column get one column in
their content table, named ``<column_prefix><handle>`` (``field_`` by default). Matrix
block types give their fields a per-block-type prefix, so two block types can each own a
field with the same handle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..fieldtypes.base import FieldType

DEFAULT_COLUMN_PREFIX = "field_"
GLOBAL_CONTEXT = "global"


@dataclass(eq=False)
class Field:
    handle: str
    name: str
    field_type: FieldType
    id: int | None = None
    context: str = GLOBAL_CONTEXT
    column_prefix: str | None = None
    translatable: bool = True
    searchable: bool = True

    def __post_init__(self) -> None:
        self.field_type.field = self

    @property
    def column_name(self) -> str:
        return (self.column_prefix or DEFAULT_COLUMN_PREFIX) + self.handle

    def has_content_column(self) -> bool:
        return self.field_type.defines_content_column()

    def get_field_type(self) -> FieldType:
        return self.field_type

    def __repr__(self) -> str:
        return f"<Field(id={self.id}, handle={self.handle}, type={self.field_type.name})>"


@dataclass(eq=False)
class FieldLayoutField:
    field: Field
    required: bool = False
    sort_order: int = 0


@dataclass(eq=False)
class FieldLayout:
    id: int | None = None
    type: str | None = None
    layout_fields: list[FieldLayoutField] = field(default_factory=list)

    def get_fields(self) -> list[FieldLayoutField]:
        """Layout fields in layout order."""
        return sorted(self.layout_fields, key=lambda lf: lf.sort_order)

    def get_required_fields(self) -> list[Field]:
        return [lf.field for lf in self.get_fields() if lf.required]


@dataclass(eq=False)
class MatrixBlockType:
    """A block type of a matrix field; its fields live in the matrix content table."""

    id: int
    field_id: int
    handle: str
    name: str
    field_layout_id: int | None = None
    fields: list[Field] = field(default_factory=list)

    @property
    def column_prefix(self) -> str:
        return f"{DEFAULT_COLUMN_PREFIX}{self.handle}_"
