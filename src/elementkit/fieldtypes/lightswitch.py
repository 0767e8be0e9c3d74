from __future__ import annotations

from typing import Any

import sqlalchemy as sa

from .base import FieldType

_FALSE_STRINGS = {"", "0", "false", "no", "off"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


class LightswitchFieldType(FieldType):
    """On/off switch; unset values count as off when querying."""

    name = "Lightswitch"

    def get_content_column_type(self) -> sa.types.TypeEngine:
        return sa.Boolean()

    def prep_value_for_db(self, value: Any) -> Any:
        if value is None:
            return bool(self.settings.get("default", False))
        return _as_bool(value)

    def prep_value_from_db(self, value: Any) -> Any:
        return bool(value)

    def modify_elements_query(self, query, value):
        if value is None:
            return None
        column = query.content_column(self._handle())
        if _as_bool(value):
            query.and_where(column.is_(True))
        else:
            query.and_where(sa.or_(column.is_(False), column.is_(None)))
        return None

    def get_search_keywords(self, value: Any) -> str:
        return ""
