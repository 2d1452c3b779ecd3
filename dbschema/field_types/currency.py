"""Money amounts stored as fixed-point decimals."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from dbschema.types import FieldType


class CurrencyType(FieldType):
    db_type_name = "decimal"
    default_precision = 13
    default_scale = 4

    def convert_default(self, value: Any) -> str | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
        return format(amount, "f")
