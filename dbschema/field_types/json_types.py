"""JSON field types. Both share the native ``json`` column."""
from __future__ import annotations

from dbschema.types import FieldType


class JsonObjectType(FieldType):
    db_type_name = "json"


class JsonArrayType(FieldType):
    db_type_name = "json"
