"""models/__init__.py"""
from models.snapshot import Column, ForeignKey, Index, SchemaSnapshot, Table
from models.diff import (
    AddColumn,
    AddForeignKey,
    AddIndex,
    AlterColumn,
    ChangeType,
    CreateTable,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropTable,
    SchemaChange,
    SchemaDiff,
)
from models.metadata import (
    EntityDef,
    EntityDefs,
    FieldDef,
    IndexDef,
    LinkDef,
    MetadataError,
    MetadataProvider,
    parse_entity_defs,
)

__all__ = [
    "Column",
    "ForeignKey",
    "Index",
    "SchemaSnapshot",
    "Table",
    "AddColumn",
    "AddForeignKey",
    "AddIndex",
    "AlterColumn",
    "ChangeType",
    "CreateTable",
    "DropColumn",
    "DropForeignKey",
    "DropIndex",
    "DropTable",
    "SchemaChange",
    "SchemaDiff",
    "EntityDef",
    "EntityDefs",
    "FieldDef",
    "IndexDef",
    "LinkDef",
    "MetadataError",
    "MetadataProvider",
    "parse_entity_defs",
]
