from __future__ import annotations

from typing import Any

import sqlalchemy as sa

from .base import FieldType


class PlainTextFieldType(FieldType):
    """Free text. ``max_length`` switches the column to a bounded ``VARCHAR``."""

    name = "PlainText"

    def get_content_column_type(self) -> sa.types.TypeEngine:
        max_length = self.settings.get("max_length")
        if max_length:
            return sa.String(int(max_length))
        return sa.Text()

    def prep_value_for_db(self, value: Any) -> Any:
        if value is None:
            return None
        return str(value)

    def validate(self, value: Any) -> list[str]:
        max_length = self.settings.get("max_length")
        if max_length and len(str(value)) > int(max_length):
            return [f"must be no more than {max_length} characters"]
        return []
