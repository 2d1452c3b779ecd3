"""Plain scalar field types."""
from __future__ import annotations

from dbschema.types import FieldType


class EnumType(FieldType):
    # Options are validated by the application, the column only stores the key.
    db_type_name = "varchar"
    default_length = 255


class StringType(FieldType):
    db_type_name = "varchar"
    default_length = 255


class VarcharType(FieldType):
    default_length = 255


class TextType(FieldType):
    pass


class IntType(FieldType):
    pass


class BigIntType(FieldType):
    pass


class FloatType(FieldType):
    pass


class BoolType(FieldType):
    not_null = True
    default = False


class DateType(FieldType):
    pass


class DatetimeType(FieldType):
    pass
