from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import sqlalchemy as sa

from .base import FieldType


class NumberFieldType(FieldType):
    """Numeric value with optional ``min``, ``max`` and ``decimals`` settings."""

    name = "Number"

    def get_content_column_type(self) -> sa.types.TypeEngine:
        decimals = int(self.settings.get("decimals") or 0)
        if decimals:
            return sa.Numeric(12, decimals)
        return sa.Integer()

    def _coerce(self, value: Any) -> Decimal | int | None:
        if value is None or value == "":
            return None
        decimals = int(self.settings.get("decimals") or 0)
        try:
            number = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"{value!r} is not a number") from e
        if decimals:
            return round(number, decimals)
        return int(number)

    def prep_value_for_db(self, value: Any) -> Any:
        return self._coerce(value)

    def prep_value_from_db(self, value: Any) -> Any:
        return self._coerce(value)

    def validate(self, value: Any) -> list[str]:
        try:
            number = self._coerce(value)
        except ValueError:
            return ["must be a number"]
        if number is None:
            return []

        errors = []
        minimum = self.settings.get("min")
        maximum = self.settings.get("max")
        if minimum is not None and number < Decimal(str(minimum)):
            errors.append(f"must be no less than {minimum}")
        if maximum is not None and number > Decimal(str(maximum)):
            errors.append(f"must be no greater than {maximum}")
        return errors
