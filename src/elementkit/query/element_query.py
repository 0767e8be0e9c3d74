"""
Mutable element query builder.

Compilation is a series of steps (core attributes, content, field types, element type,
structure, search) that each add joins, columns and predicates. ``ElementQuery`` collects
them as SQLAlchemy Core expressions and renders a ``Select`` at the end, so nothing is
ever composed from SQL strings.
"""

from __future__ import annotations

import contextlib
import logging
import re
from collections.abc import Generator, Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy.sql import FromClause, Select
from sqlalchemy.sql.elements import ColumnElement

from ..domain.entities import ElementLocaleRecord, ElementRecord
from ..domain.fields import DEFAULT_COLUMN_PREFIX
from ..infra.exceptions import QueryError

logger = logging.getLogger(__name__)

_ORDER_TOKEN = re.compile(r"^\s*([\w.]+)(?:\s+(asc|desc))?\s*$", re.IGNORECASE)


class ElementQuery:
    """Joins, selected columns and predicates of one element query."""

    def __init__(self, locale: str):
        self.locale = locale
        self.elements = ElementRecord.__table__
        self.elements_i18n = ElementLocaleRecord.__table__

        self._from: FromClause = self.elements
        self._tables: dict[str, FromClause] = {"elements": self.elements}
        self._columns: dict[str, ColumnElement[Any]] = {}
        self._where: list[ColumnElement[bool]] = []
        self._order_by: list[ColumnElement[Any]] = []
        self._offset: int | None = None
        self._limit: int | None = None

        # Content join info, set by the compiler when the element type has content
        self.content_table: str | None = None
        self.field_columns: list[dict[str, str]] = []
        self.column_prefix: str = DEFAULT_COLUMN_PREFIX

    # Tables -----------------------------------------------------------------

    def join(
        self,
        name: str,
        target: FromClause,
        onclause: ColumnElement[bool],
        *,
        outer: bool = False,
    ) -> FromClause:
        """Join ``target`` under ``name``. Joining the same name twice is a no-op."""
        if name in self._tables:
            return self._tables[name]
        self._from = self._from.join(target, onclause, isouter=outer)
        self._tables[name] = target
        return target

    def left_join(self, name: str, target: FromClause, onclause: ColumnElement[bool]) -> FromClause:
        return self.join(name, target, onclause, outer=True)

    def is_joined(self, name: str) -> bool:
        return name in self._tables

    def table(self, name: str) -> FromClause:
        return self._tables[name]

    def content_column(self, handle: str) -> ColumnElement[Any]:
        """Column of field ``handle`` in the joined content table, using the active prefix."""
        return self.table("content").c[self.column_prefix + handle]

    @contextlib.contextmanager
    def using_column_prefix(self, prefix: str | None) -> Generator[None, None, None]:
        original = self.column_prefix
        if prefix:
            self.column_prefix = prefix
        try:
            yield
        finally:
            self.column_prefix = original

    # Columns and predicates -------------------------------------------------

    def add_select(self, **columns: ColumnElement[Any]) -> ElementQuery:
        """Select expressions under the given result names."""
        self._columns.update(columns)
        return self

    def selected(self, name: str) -> ColumnElement[Any] | None:
        return self._columns.get(name)

    def and_where(self, condition: ColumnElement[bool] | None) -> ElementQuery:
        if condition is not None:
            self._where.append(condition)
        return self

    # Ordering and paging ----------------------------------------------------

    def order_by(self, *clauses: ColumnElement[Any]) -> ElementQuery:
        self._order_by = list(clauses)
        return self

    def order_by_ids(self, ids: Sequence[int]) -> ElementQuery:
        """Order rows by their position in ``ids``."""
        whens = {element_id: position for position, element_id in enumerate(ids)}
        return self.order_by(sa.case(whens, value=self.elements.c.id, else_=len(whens)))

    def order_by_expression(self, order: str) -> ElementQuery:
        """
        Order by a comma separated ``name [asc|desc]`` expression.

        Names resolve to selected result columns; field handles resolve to their content
        column, ``table.column`` to a joined table's column.
        """
        clauses: list[ColumnElement[Any]] = []
        for token in order.split(","):
            if not token.strip():
                continue
            match = _ORDER_TOKEN.match(token)
            if not match:
                raise QueryError(f"Invalid order expression: {token.strip()!r}")
            name, direction = match.group(1), (match.group(2) or "asc").lower()
            column = self.resolve_column(name)
            clauses.append(column.desc() if direction == "desc" else column.asc())
        return self.order_by(*clauses)

    def resolve_column(self, name: str) -> ColumnElement[Any]:
        for info in self.field_columns:
            if info["handle"] == name:
                name = info["column"]
                break

        if "." in name:
            table_name, column_name = name.split(".", 1)
            table = self._tables.get(table_name)
            if table is not None and column_name in table.c:
                return table.c[column_name]
        elif name in self._columns:
            return self._columns[name]
        elif name in self.elements.c:
            return self.elements.c[name]

        raise QueryError(f"Unknown order column: {name!r}")

    def offset(self, offset: int | None) -> ElementQuery:
        self._offset = offset or None
        return self

    def limit(self, limit: int | None) -> ElementQuery:
        self._limit = limit or None
        return self

    # Rendering --------------------------------------------------------------

    def statement(self, just_ids: bool = False) -> Select:
        """The full row query (or only its ids, in the same order). Rows are collapsed per element."""
        if just_ids:
            columns = [self.elements.c.id.label("id")]
        else:
            columns = [column.label(name) for name, column in self._columns.items()]
        stmt = (
            sa.select(*columns)
            .select_from(self._from)
            .where(*self._where)
            .group_by(*self._columns.values())
        )
        if self._order_by:
            stmt = stmt.order_by(*self._order_by)
        if self._offset:
            stmt = stmt.offset(self._offset)
        if self._limit:
            stmt = stmt.limit(self._limit)
        return stmt

    def id_statement(self) -> Select:
        """Distinct matching ids with the same joins and predicates, ignoring order and paging."""
        return (
            sa.select(self.elements.c.id)
            .select_from(self._from)
            .where(*self._where)
            .group_by(self.elements.c.id)
        )

    def __repr__(self) -> str:
        return f"<ElementQuery(locale={self.locale}, tables={list(self._tables)})>"
