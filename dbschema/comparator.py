"""
dbschema/comparator.py
----------------------
Computes the ordered structural difference between two schema snapshots.

Operation order inside a diff::

    CreateTable → DropForeignKey → DropIndex → AddColumn → AlterColumn
      → DropColumn → AddIndex → DropTable → AddForeignKey

Every foreign key drop therefore precedes every table drop, and foreign
keys are added only once every table and column they reference exists.

Design Decisions:
    * Values are normalized before comparing so representation-only
      differences (``integer`` vs ``int``, ``0.00`` vs ``0``,
      ``NO ACTION`` vs unset) never produce alterations. Normalization is
      the same for both sides, so ``compare(a, b)`` is empty exactly when
      ``compare(b, a)`` is.
    * Table, column, index and constraint names compare case-insensitively.
    * Primary keys are matched by their primary flag, not by name, since
      every engine names them differently.
    * Changed indexes and foreign keys become a drop plus an add.
    * No rename tracking: a renamed table is a drop plus a create.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from dbschema.platforms import (
    DEFAULT_DECIMAL_PRECISION,
    DEFAULT_DECIMAL_SCALE,
    DEFAULT_VARCHAR_LENGTH,
    NUMERIC_TYPES,
)
from logger import get_logger
from models.diff import (
    AddColumn,
    AddForeignKey,
    AddIndex,
    AlterColumn,
    CreateTable,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropTable,
    SchemaChange,
    SchemaDiff,
)
from models.snapshot import Column, ForeignKey, Index, SchemaSnapshot, Table

log = get_logger(__name__)

TYPE_ALIASES = {
    "integer": "int",
    "mediumint": "int",
    "boolean": "bool",
    "double": "float",
    "double precision": "float",
    "real": "float",
    "numeric": "decimal",
    "character varying": "varchar",
    "character": "char",
    "timestamp": "datetime",
    "timestamp without time zone": "datetime",
    "jsonb": "json",
    "bytea": "blob",
    "longblob": "blob",
}

_TRUE_LITERALS = frozenset({"1", "true", "t", "b'1'", "yes", "on"})
_FALSE_LITERALS = frozenset({"0", "false", "f", "b'0'", "no", "off"})

_NOW_RE = re.compile(r"^(current_timestamp|now|localtimestamp)(\(\d*\))?$", re.IGNORECASE)
_SAFE_ACTIONS = frozenset({"NO ACTION", "RESTRICT"})


def normalize_type(type_name: str) -> str:
    name = " ".join(type_name.strip().lower().split())
    return TYPE_ALIASES.get(name, name)


def normalize_default(value: str | None, type_name: str | None = None) -> str | None:
    """
    Reduce a plain default value to a comparable form for its column type.

    Defaults arrive already decoded from dialect SQL (see
    :meth:`Platform.decode_default`), so only type-level spellings are
    folded here.

    Example::

        normalize_default("false", "bool")                    →  "0"
        normalize_default("0.0000", "decimal")                →  "0"
        normalize_default("current_timestamp()", "datetime")  →  "CURRENT_TIMESTAMP"
    """
    if value is None:
        return None
    text = str(value)

    column_type = normalize_type(type_name) if type_name else None
    if column_type == "bool":
        lowered = text.strip().lower()
        if lowered in _TRUE_LITERALS:
            return "1"
        if lowered in _FALSE_LITERALS:
            return "0"
    if _NOW_RE.match(text.strip()):
        return "CURRENT_TIMESTAMP"
    if column_type in NUMERIC_TYPES:
        try:
            number = Decimal(text.strip())
        except InvalidOperation:
            return text
        if number == number.to_integral_value():
            return str(int(number))
        return format(number.normalize(), "f")
    return text


def normalize_action(action: str | None) -> str | None:
    """``NO ACTION``, ``RESTRICT`` and unset all mean "refuse"."""
    if action is None:
        return None
    action = " ".join(action.upper().split())
    return None if action in _SAFE_ACTIONS else action


def column_changes(from_column: Column, to_column: Column) -> tuple[str, ...]:
    """Names of the column attributes that differ after normalization."""
    changes: list[str] = []
    from_type = normalize_type(from_column.type)
    to_type = normalize_type(to_column.type)

    if from_type != to_type:
        changes.append("type")
    elif to_type == "varchar":
        if (from_column.length or DEFAULT_VARCHAR_LENGTH) != (to_column.length or DEFAULT_VARCHAR_LENGTH):
            changes.append("length")
    elif to_type == "char":
        if (from_column.length or 1) != (to_column.length or 1):
            changes.append("length")
    elif to_type == "decimal":
        if (from_column.precision or DEFAULT_DECIMAL_PRECISION) != (
            to_column.precision or DEFAULT_DECIMAL_PRECISION
        ):
            changes.append("precision")
        from_scale = DEFAULT_DECIMAL_SCALE if from_column.scale is None else from_column.scale
        to_scale = DEFAULT_DECIMAL_SCALE if to_column.scale is None else to_column.scale
        if from_scale != to_scale:
            changes.append("scale")

    if from_column.nullable != to_column.nullable:
        changes.append("nullable")
    if normalize_default(from_column.default, from_type) != normalize_default(to_column.default, to_type):
        changes.append("default")
    if from_column.autoincrement != to_column.autoincrement:
        changes.append("autoincrement")
    return tuple(changes)


def _index_key(index: Index) -> tuple:
    return (tuple(c.lower() for c in index.columns), index.unique, index.primary)


def _foreign_key_key(fk: ForeignKey) -> tuple:
    return (
        tuple(c.lower() for c in fk.columns),
        fk.foreign_table.lower(),
        tuple(c.lower() for c in fk.foreign_columns),
        normalize_action(fk.on_delete),
        normalize_action(fk.on_update),
    )


class SchemaComparator:
    """
    Stateless snapshot comparator.

    Example::

        diff = SchemaComparator().compare(live, target)
        for change in diff:
            print(change.kind.value, change.table_name)
    """

    def compare(self, from_schema: SchemaSnapshot, to_schema: SchemaSnapshot) -> SchemaDiff:
        """Return the changes that turn *from_schema* into *to_schema*."""
        creates: list[SchemaChange] = []
        drop_fks: list[SchemaChange] = []
        drop_indexes: list[SchemaChange] = []
        add_columns: list[SchemaChange] = []
        alter_columns: list[SchemaChange] = []
        drop_columns: list[SchemaChange] = []
        add_indexes: list[SchemaChange] = []
        drop_tables: list[SchemaChange] = []
        add_fks: list[SchemaChange] = []

        for to_table in to_schema:
            from_table = from_schema.get_table(to_table.name)
            if from_table is None:
                creates.append(CreateTable(to_table))
                add_fks.extend(AddForeignKey(to_table.name, fk) for fk in to_table.foreign_keys)
                continue

            name = to_table.name
            self._compare_columns(name, from_table, to_table, add_columns, alter_columns, drop_columns)

            for old, new in self._index_pairs(from_table, to_table):
                if old is not None and (new is None or _index_key(old) != _index_key(new)):
                    drop_indexes.append(DropIndex(name, old))
                if new is not None and (old is None or _index_key(old) != _index_key(new)):
                    add_indexes.append(AddIndex(name, new))

            for fk in from_table.foreign_keys:
                new_fk = to_table.get_foreign_key(fk.name)
                if new_fk is None or _foreign_key_key(fk) != _foreign_key_key(new_fk):
                    drop_fks.append(DropForeignKey(name, fk))
            for fk in to_table.foreign_keys:
                old_fk = from_table.get_foreign_key(fk.name)
                if old_fk is None or _foreign_key_key(old_fk) != _foreign_key_key(fk):
                    add_fks.append(AddForeignKey(name, fk))

        for from_table in from_schema:
            if not to_schema.has_table(from_table.name):
                drop_fks.extend(DropForeignKey(from_table.name, fk) for fk in from_table.foreign_keys)
                drop_tables.append(DropTable(from_table))

        diff = SchemaDiff(
            tuple(
                creates + drop_fks + drop_indexes + add_columns + alter_columns
                + drop_columns + add_indexes + drop_tables + add_fks
            )
        )
        log.debug("Schema diff: %s", diff.summary() or "no changes")
        return diff

    @staticmethod
    def _compare_columns(
        table_name: str,
        from_table: Table,
        to_table: Table,
        add_columns: list[SchemaChange],
        alter_columns: list[SchemaChange],
        drop_columns: list[SchemaChange],
    ) -> None:
        for column in to_table.columns:
            old = from_table.get_column(column.name)
            if old is None:
                add_columns.append(AddColumn(table_name, column))
                continue
            changes = column_changes(old, column)
            if changes:
                alter_columns.append(AlterColumn(table_name, old, column, changes))
        for column in from_table.columns:
            if to_table.get_column(column.name) is None:
                drop_columns.append(DropColumn(table_name, column))

    @staticmethod
    def _index_pairs(from_table: Table, to_table: Table) -> list[tuple[Index | None, Index | None]]:
        """Pair up indexes: primary keys by flag, the rest by name."""
        pairs: list[tuple[Index | None, Index | None]] = []
        if from_table.primary_key is not None or to_table.primary_key is not None:
            pairs.append((from_table.primary_key, to_table.primary_key))

        from_indexes = {i.name.lower(): i for i in from_table.indexes if not i.primary}
        to_indexes = {i.name.lower(): i for i in to_table.indexes if not i.primary}
        for key in sorted(from_indexes.keys() | to_indexes.keys()):
            pairs.append((from_indexes.get(key), to_indexes.get(key)))
        return pairs
