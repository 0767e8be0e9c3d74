"""
Parameter parsing for element criteria.

Turns the loose values accepted by criteria attributes into SQLAlchemy predicates:

- ``5`` / ``"foo"``           exact match
- ``[1, 2]`` / ``"1, 2"``     any of (OR)
- ``["and", "a", "b"]``       all of; a leading ``"or"`` is the default
- ``"not foo"`` / ``"!= foo"`` negation
- ``"> 5"``, ``"<= 2"`` ...    comparison
- ``":empty:"`` / ``":notempty:"``
- ``"foo*"``                  wildcard match
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, date, datetime, time
from typing import Any

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement

EMPTY = ":empty:"
NOT_EMPTY = ":notempty:"

_OPERATORS = ("!=", ">=", "<=", "<", ">", "=")
_GLUE = ("and", "or")


def split_param(value: Any) -> tuple[str, list[Any]]:
    """Normalize a param into ``(glue, items)``."""
    if isinstance(value, str):
        items: list[Any] = [part.strip() for part in value.split(",")]
        items = [part for part in items if part != ""]
    elif isinstance(value, Sequence):
        items = list(value)
    elif isinstance(value, (set, frozenset)):
        items = sorted(value)
    else:
        items = [value]

    glue = "or"
    if items and isinstance(items[0], str) and items[0].lower() in _GLUE:
        glue = items.pop(0).lower()
    return glue, items


def _split_operator(item: str) -> tuple[bool, str, str]:
    """Return ``(negated, operator, operand)`` for a string param item."""
    negated = False
    operator = "="
    text = item.strip()

    if text.lower().startswith("not "):
        negated = True
        text = text[4:].strip()

    for candidate in _OPERATORS:
        if text.startswith(candidate):
            operator = candidate
            text = text[len(candidate) :].strip()
            break

    if operator == "!=":
        negated = not negated
        operator = "="

    return negated, operator, text


def _is_text(column: ColumnElement[Any]) -> bool:
    return isinstance(column.type, sa.String)


def _empty_condition(column: ColumnElement[Any]) -> ColumnElement[bool]:
    if _is_text(column):
        return sa.or_(column.is_(None), column == "")
    return column.is_(None)


def _compare(column: ColumnElement[Any], operator: str, operand: Any) -> ColumnElement[bool]:
    if operator == ">":
        return column > operand
    if operator == "<":
        return column < operand
    if operator == ">=":
        return column >= operand
    if operator == "<=":
        return column <= operand
    return column == operand


def _item_condition(column: ColumnElement[Any], item: Any) -> ColumnElement[bool]:
    if item is None:
        return column.is_(None)
    if not isinstance(item, str):
        return column == item

    negated, operator, operand = _split_operator(item)

    if operand.lower() == EMPTY:
        condition = _empty_condition(column)
    elif operand.lower() == NOT_EMPTY:
        condition = sa.not_(_empty_condition(column))
    elif "*" in operand and operator == "=":
        pattern = operand.replace("%", r"\%").replace("_", r"\_").replace("*", "%")
        condition = column.like(pattern, escape="\\")
    else:
        condition = _compare(column, operator, operand)

    return sa.not_(condition) if negated else condition


def _combine(glue: str, conditions: list[ColumnElement[bool]]) -> ColumnElement[bool] | None:
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return sa.and_(*conditions) if glue == "and" else sa.or_(*conditions)


def parse_param(column: ColumnElement[Any], value: Any) -> ColumnElement[bool] | None:
    """
    Build a predicate on ``column`` from a criteria value.

    Returns None when the value places no constraint (``None`` or an empty list).
    """
    if value is None:
        return None
    glue, items = split_param(value)
    return _combine(glue, [_item_condition(column, item) for item in items])


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_datetime(value: Any) -> datetime:
    """Coerce a date-ish value into an aware UTC datetime."""
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        result = datetime.fromtimestamp(value, tz=UTC)
    elif isinstance(value, str):
        text = value.strip()
        if _ISO_DATE.match(text):
            result = datetime.combine(date.fromisoformat(text), time.min)
        else:
            result = datetime.fromisoformat(text.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Cannot interpret {value!r} as a date")

    if result.tzinfo is None:
        result = result.replace(tzinfo=UTC)
    return result


def parse_date_param(column: ColumnElement[Any], value: Any) -> ColumnElement[bool] | None:
    """
    Like :func:`parse_param`, for timestamp columns.

    Each item may carry a comparison operator, e.g. ``["and", ">= 2024-01-01", "< 2024-02-01"]``.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        value = [value]
    glue, items = split_param(value)

    conditions: list[ColumnElement[bool]] = []
    for item in items:
        if isinstance(item, str):
            negated, operator, operand = _split_operator(item)
            if operand.lower() in (EMPTY, NOT_EMPTY):
                conditions.append(_item_condition(column, item))
                continue
            condition = _compare(column, operator, to_datetime(operand))
            conditions.append(sa.not_(condition) if negated else condition)
        else:
            conditions.append(column == to_datetime(item))

    return _combine(glue, conditions)
