"""dbschema/__init__.py"""
from dbschema.platforms import MySQLPlatform, Platform, PostgreSQLPlatform, get_platform
from dbschema.database import ConnectionLostError, DatabaseError, DatabaseManager
from dbschema.types import FieldType, TypeRegistry, TypeResolutionFailed
from dbschema.converter import ConversionFailed, MetadataConverter
from dbschema.reader import LiveSchemaReader
from dbschema.comparator import SchemaComparator
from dbschema.emitter import SqlEmitter
from dbschema.hooks import HookFailed, HookResult, RebuildAction, RebuildActionRunner, RebuildPhase
from dbschema.manager import (
    RebuildResult,
    RebuildState,
    SchemaManager,
    StatementFailed,
    StatementResult,
)

__all__ = [
    "MySQLPlatform",
    "Platform",
    "PostgreSQLPlatform",
    "get_platform",
    "ConnectionLostError",
    "DatabaseError",
    "DatabaseManager",
    "FieldType",
    "TypeRegistry",
    "TypeResolutionFailed",
    "ConversionFailed",
    "MetadataConverter",
    "LiveSchemaReader",
    "SchemaComparator",
    "SqlEmitter",
    "HookFailed",
    "HookResult",
    "RebuildAction",
    "RebuildActionRunner",
    "RebuildPhase",
    "RebuildResult",
    "RebuildState",
    "SchemaManager",
    "StatementFailed",
    "StatementResult",
]
