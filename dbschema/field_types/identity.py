"""Primary key field types."""
from __future__ import annotations

from dbschema.types import FieldType


class IdType(FieldType):
    """Generated string identifier (24 characters)."""
    db_type_name = "varchar"
    default_length = 24
    primary = True


class IntIdType(FieldType):
    """Auto-incremented integer identifier."""
    db_type_name = "int"
    primary = True
    autoincrement = True
