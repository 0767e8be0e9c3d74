"""
Runtime schema management for content tables.

Content tables have one fixed part (id, element_id, locale, title, timestamps) and one
dynamic part: a column per field with stored content. Field columns are added to the live
database through Alembic's ``Operations`` API when a field is saved, and appended to the
in-memory ``Table`` so queries can address them.
"""

from __future__ import annotations

import logging

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.engine import Connection

from ..domain.entities import utcnow
from .db import Base

logger = logging.getLogger(__name__)

CONTENT_TABLE = "content"


def content_table(name: str = CONTENT_TABLE) -> sa.Table:
    """Return the ``Table`` for a content table, declaring it on first use."""
    existing = Base.metadata.tables.get(name)
    if existing is not None:
        return existing

    return sa.Table(
        name,
        Base.metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column(
            "element_id",
            Integer,
            ForeignKey("elements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        Column("locale", String(12), nullable=False),
        Column("title", String(255), nullable=True),
        Column("date_created", DateTime(timezone=True), default=utcnow, nullable=False),
        Column(
            "date_updated",
            DateTime(timezone=True),
            default=utcnow,
            onupdate=utcnow,
            nullable=False,
        ),
        UniqueConstraint("element_id", "locale", name=f"uq_{name}_element_id_locale"),
    )


# The shared content table is part of the static schema
content_table(CONTENT_TABLE)


def ensure_content_table(connection: Connection, name: str) -> sa.Table:
    """Create the content table in the database if it does not exist yet."""
    table = content_table(name)
    table.create(connection, checkfirst=True)
    return table


def ensure_field_column(
    connection: Connection,
    table_name: str,
    column_name: str,
    column_type: sa.types.TypeEngine,
) -> Column:
    """Make sure ``table_name.column_name`` exists both in the database and in metadata."""
    table = ensure_content_table(connection, table_name)

    existing = {col["name"] for col in sa.inspect(connection).get_columns(table_name)}
    if column_name not in existing:
        ops = Operations(MigrationContext.configure(connection))
        ops.add_column(table_name, Column(column_name, column_type, nullable=True))
        logger.debug("Added content column %s.%s", table_name, column_name)

    if column_name not in table.c:
        table.append_column(Column(column_name, column_type, nullable=True), replace_existing=True)

    return table.c[column_name]


def content_table_names() -> list[str]:
    """Names of every content table declared so far."""
    return [
        name
        for name, table in Base.metadata.tables.items()
        if name == CONTENT_TABLE or name.startswith("matrixcontent_")
    ]
