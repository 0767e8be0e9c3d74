"""
Table definitions for elementkit.

This module contains the fixed relational shape every element type shares:

- ``elements``: one row per element, regardless of how many locales it has
- ``elements_i18n``: one row per (element, locale) with slug/uri/visibility
- ``structures`` / ``structureelements``: nested-set trees (root, lft, rgt, level)
- ``relations``: directed field edges between elements
- ``searchindex``: keyword rows; not covered by the element cascade

plus the records that the shipped element types keep next to the element row.
Content tables have a per-type dynamic schema and live in ``infra.schema``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..infra.db import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


class ElementRecord(Base):
    """Represents an element's locale-independent identity."""

    __tablename__ = "elements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    enabled: Mapped[bool] = mapped_column(
        Boolean, server_default=sa.text("true"), default=True, nullable=False
    )
    archived: Mapped[bool] = mapped_column(
        Boolean, server_default=sa.text("false"), default=False, nullable=False
    )
    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    date_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ElementRecord(id={self.id}, type={self.type}, enabled={self.enabled})>"


class ElementLocaleRecord(Base):
    """Per-locale slug, URI and visibility of an element."""

    __tablename__ = "elements_i18n"
    __table_args__ = (
        UniqueConstraint("element_id", "locale", name="uq_elements_i18n_element_id_locale"),
        UniqueConstraint("uri", "locale", name="uq_elements_i18n_uri_locale"),
        Index("ix_elements_i18n_slug_locale", "slug", "locale"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    element_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=False
    )
    locale: Mapped[str] = mapped_column(String(12), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uri: Mapped[str | None] = mapped_column(String(255), nullable=True)
    enabled: Mapped[bool] = mapped_column(
        Boolean, server_default=sa.text("true"), default=True, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ElementLocaleRecord(element_id={self.element_id}, locale={self.locale}, "
            f"slug={self.slug}, uri={self.uri})>"
        )


class StructureRecord(Base):
    """A nested-set tree. Each structure owns one hidden root node at level 0."""

    __tablename__ = "structures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    max_levels: Mapped[int | None] = mapped_column(Integer, nullable=True)


class StructureElementRecord(Base):
    """One node of a nested-set tree."""

    __tablename__ = "structureelements"
    __table_args__ = (
        UniqueConstraint(
            "structure_id", "element_id", name="uq_structureelements_structure_id_element_id"
        ),
        Index("ix_structureelements_root_lft_rgt", "root", "lft", "rgt"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    structure_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("structures.id", ondelete="CASCADE"), nullable=False
    )
    # NULL for the structure's hidden root node
    element_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=True
    )
    root: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lft: Mapped[int] = mapped_column(Integer, nullable=False)
    rgt: Mapped[int] = mapped_column(Integer, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StructureElementRecord(element_id={self.element_id}, root={self.root}, "
            f"lft={self.lft}, rgt={self.rgt}, level={self.level})>"
        )


class RelationRecord(Base):
    """Directed edge: ``source_id`` references ``target_id`` through field ``field_id``."""

    __tablename__ = "relations"
    # No uniqueness constraint: duplicate edges are avoided by the save and merge paths
    __table_args__ = (Index("ix_relations_source_id_field_id", "source_id", "field_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    field_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=False
    )
    source_locale: Mapped[str | None] = mapped_column(String(12), nullable=True)
    target_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)


class SearchIndexRecord(Base):
    """Keyword row for one attribute (or field) of an element in one locale.

    Deliberately has no foreign key to ``elements``; element deletes clean it up explicitly.
    """

    __tablename__ = "searchindex"

    element_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    attribute: Mapped[str] = mapped_column(String(25), primary_key=True)
    field_id: Mapped[int] = mapped_column(Integer, primary_key=True, default=0)
    locale: Mapped[str] = mapped_column(String(12), primary_key=True)
    keywords: Mapped[str] = mapped_column(Text, nullable=False, default="")


# ---------------------------------------------------------------------------
# Records owned by the shipped element types
# ---------------------------------------------------------------------------


class SectionRecord(Base):
    """Entry section. ``type`` is one of single/channel/structure."""

    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="channel")
    structure_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("structures.id", ondelete="SET NULL"), nullable=True
    )
    has_urls: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    field_layout_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class SectionLocaleRecord(Base):
    __tablename__ = "sections_i18n"
    __table_args__ = (
        UniqueConstraint("section_id", "locale", name="uq_sections_i18n_section_id_locale"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )
    locale: Mapped[str] = mapped_column(String(12), nullable=False)
    enabled_by_default: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uri_format: Mapped[str | None] = mapped_column(Text, nullable=True)
    nested_uri_format: Mapped[str | None] = mapped_column(Text, nullable=True)


class EntryRecord(Base):
    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="SET NULL"), nullable=True
    )
    post_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class CategoryGroupRecord(Base):
    __tablename__ = "categorygroups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    structure_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("structures.id", ondelete="CASCADE"), nullable=False
    )
    has_urls: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    field_layout_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class CategoryGroupLocaleRecord(Base):
    __tablename__ = "categorygroups_i18n"
    __table_args__ = (
        UniqueConstraint("group_id", "locale", name="uq_categorygroups_i18n_group_id_locale"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categorygroups.id", ondelete="CASCADE"), nullable=False
    )
    locale: Mapped[str] = mapped_column(String(12), nullable=False)
    uri_format: Mapped[str | None] = mapped_column(Text, nullable=True)
    nested_uri_format: Mapped[str | None] = mapped_column(Text, nullable=True)


class CategoryRecord(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categorygroups.id", ondelete="CASCADE"), nullable=False
    )


class UserRecord(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class MatrixBlockTypeRecord(Base):
    __tablename__ = "matrixblocktypes"
    __table_args__ = (
        UniqueConstraint("field_id", "handle", name="uq_matrixblocktypes_field_id_handle"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    field_id: Mapped[int] = mapped_column(Integer, nullable=False)
    handle: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    field_layout_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


class MatrixBlockRecord(Base):
    """A block element owned by another element through a matrix field."""

    __tablename__ = "matrixblocks"

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_locale: Mapped[str | None] = mapped_column(String(12), nullable=True)
    field_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matrixblocktypes.id", ondelete="CASCADE"), nullable=False
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)


# ---------------------------------------------------------------------------
# Fields, layouts and background tasks
# ---------------------------------------------------------------------------


class FieldRecord(Base):
    """A custom field definition. Fields with stored content own one content column."""

    __tablename__ = "fields"
    __table_args__ = (UniqueConstraint("handle", "context", name="uq_fields_handle_context"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    context: Mapped[str] = mapped_column(String(64), nullable=False, default="global")
    type: Mapped[str] = mapped_column(String(150), nullable=False)
    column_prefix: Mapped[str | None] = mapped_column(String(64), nullable=True)
    translatable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    searchable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<FieldRecord(id={self.id}, handle={self.handle}, type={self.type})>"


class FieldLayoutRecord(Base):
    __tablename__ = "fieldlayouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str | None] = mapped_column(String(150), nullable=True)


class FieldLayoutFieldRecord(Base):
    __tablename__ = "fieldlayoutfields"
    __table_args__ = (
        UniqueConstraint("layout_id", "field_id", name="uq_fieldlayoutfields_layout_id_field_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    layout_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("fieldlayouts.id", ondelete="CASCADE"), nullable=False
    )
    field_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("fields.id", ondelete="CASCADE"), nullable=False
    )
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class TaskRecord(Base):
    """A queued background job (e.g. rewriting reference tags after a merge)."""

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    params: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    date_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<TaskRecord(id={self.id}, type={self.type}, status={self.status})>"
