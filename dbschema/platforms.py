"""
dbschema/platforms.py
---------------------
Database platforms: dialect rendering, type mapping and introspection.

Every snapshot speaks a portable native type vocabulary::

    varchar char text mediumtext longtext tinyint smallint int bigint
    bool float decimal date datetime time json blob

A platform renders that vocabulary to its own dialect, maps introspected
dialect types back to it, and collapses types it cannot tell apart
(:meth:`Platform.canonical_type`) so a round trip never produces churn.

Design Decisions:
    * SQL is produced as plain strings; nothing here touches a connection.
    * Identifiers are always quoted (backticks for MySQL, double quotes for
      PostgreSQL) to avoid reserved-word collisions.
    * Type mappings registered by the field-type registry are kept per
      platform instance, keyed by native name (last registration wins).
    * Introspected defaults are decoded to the plain value metadata would
      declare (quotes, casts and wrapping parentheses removed) as the row is
      read. ``Column.default`` never holds dialect SQL.
"""
from __future__ import annotations

import re
from typing import Any

from models.snapshot import Column, ForeignKey, Index, Table

NUMERIC_TYPES = frozenset({"tinyint", "smallint", "int", "bigint", "float", "decimal"})
SIZED_TYPES = frozenset({"varchar", "char"})
TEMPORAL_KEYWORDS = frozenset({"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME"})

DEFAULT_VARCHAR_LENGTH = 255
DEFAULT_DECIMAL_PRECISION = 10
DEFAULT_DECIMAL_SCALE = 0


_CAST_RE = re.compile(r"::[a-z_ ]+(\(\d+(,\s*\d+)?\))?(\[\])?$", re.IGNORECASE)
_CASTS_ONLY_RE = re.compile(r"^(\s*::[a-z_ ]+(\(\d+(,\s*\d+)?\))?(\[\])?)*\s*$", re.IGNORECASE)


def as_text(value: Any) -> Any:
    """Decode bytes returned by some drivers for information_schema values."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


def split_quoted(text: str) -> tuple[str, str] | None:
    """
    Split a leading single-quoted SQL literal from whatever follows it.

    Returns ``(value, rest)`` with doubled quotes collapsed, or ``None`` when
    *text* does not start with a complete literal.

    Example::

        split_quoted("'it''s'::character varying")  →  ("it's", "::character varying")
    """
    if not text.startswith("'"):
        return None
    chars: list[str] = []
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == "'":
            if text[i + 1:i + 2] == "'":
                chars.append("'")
                i += 2
                continue
            return "".join(chars), text[i + 1:]
        chars.append(ch)
        i += 1
    return None


class Platform:
    """Base dialect. Subclasses fill in type names and introspection SQL."""

    name = "generic"
    quote_char = '"'

    TYPE_NAMES: dict[str, str] = {}
    CANONICAL_TYPES: dict[str, str] = {}
    NATIVE_TYPES: dict[str, str] = {}

    TABLES_SQL = ""
    COLUMNS_SQL = ""
    INDEXES_SQL = ""
    FOREIGN_KEYS_SQL = ""

    def __init__(self) -> None:
        self._type_mappings: dict[str, str] = {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    # ------------------------------------------------------------------
    # Type mapping
    # ------------------------------------------------------------------

    def register_type_mapping(self, native_name: str, logical_name: str) -> None:
        """Remember that *native_name* columns read back as *logical_name*."""
        self._type_mappings[self.canonical_type(native_name)] = logical_name

    def unregister_type_mapping(self, native_name: str, logical_name: str) -> None:
        """Forget *native_name* unless another logical type has claimed it since."""
        key = self.canonical_type(native_name)
        if self._type_mappings.get(key) == logical_name:
            del self._type_mappings[key]

    def logical_type_for(self, native_name: str) -> str | None:
        return self._type_mappings.get(self.canonical_type(native_name))

    @property
    def type_mappings(self) -> dict[str, str]:
        return dict(self._type_mappings)

    def canonical_type(self, native_name: str) -> str:
        name = native_name.strip().lower()
        return self.CANONICAL_TYPES.get(name, name)

    def portable_type(self, dialect_type: str) -> str:
        """Map an introspected dialect type to the portable vocabulary."""
        name = dialect_type.strip().lower()
        return self.canonical_type(self.NATIVE_TYPES.get(name, name))

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------

    def quote(self, identifier: str) -> str:
        q = self.quote_char
        return f"{q}{identifier.replace(q, q + q)}{q}"

    def quote_list(self, identifiers: tuple[str, ...] | list[str]) -> str:
        return ", ".join(self.quote(i) for i in identifiers)

    def type_declaration(self, column: Column) -> str:
        t = self.canonical_type(column.type)
        if t == "varchar":
            return f"VARCHAR({column.length or DEFAULT_VARCHAR_LENGTH})"
        if t == "char":
            return f"CHAR({column.length or 1})"
        if t == "decimal":
            precision = column.precision or DEFAULT_DECIMAL_PRECISION
            scale = column.scale if column.scale is not None else DEFAULT_DECIMAL_SCALE
            return f"{self.TYPE_NAMES['decimal']}({precision}, {scale})"
        return self.TYPE_NAMES.get(t, t.upper())

    def bool_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def default_literal(self, column: Column) -> str | None:
        """Render the column default as SQL, or ``None`` for no clause."""
        if column.default is None:
            return None
        value = str(column.default)
        t = self.canonical_type(column.type)
        if t == "bool":
            return self.bool_literal(value.strip().lower() in ("1", "true"))
        if t in NUMERIC_TYPES:
            return value
        if value.upper() in TEMPORAL_KEYWORDS:
            return value.upper()
        return "'" + value.replace("'", "''") + "'"

    def column_declaration(self, column: Column) -> str:
        parts = [self.quote(column.name), self.type_declaration(column)]
        if column.autoincrement:
            parts.append(self.autoincrement_clause())
        default = self.default_literal(column)
        if default is not None:
            parts.append(f"DEFAULT {default}")
        parts.append("NULL" if column.nullable else "NOT NULL")
        return " ".join(parts)

    def autoincrement_clause(self) -> str:
        raise NotImplementedError

    def foreign_key_declaration(self, fk: ForeignKey) -> str:
        sql = (
            f"CONSTRAINT {self.quote(fk.name)} FOREIGN KEY ({self.quote_list(fk.columns)}) "
            f"REFERENCES {self.quote(fk.foreign_table)} ({self.quote_list(fk.foreign_columns)})"
        )
        if fk.on_delete:
            sql += f" ON DELETE {fk.on_delete}"
        if fk.on_update:
            sql += f" ON UPDATE {fk.on_update}"
        return sql

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def create_table_sql(self, table: Table) -> list[str]:
        raise NotImplementedError

    def drop_table_sql(self, table: Table) -> list[str]:
        return [f"DROP TABLE {self.quote(table.name)}"]

    def add_column_sql(self, table_name: str, column: Column) -> list[str]:
        return [f"ALTER TABLE {self.quote(table_name)} ADD {self.column_declaration(column)}"]

    def drop_column_sql(self, table_name: str, column: Column) -> list[str]:
        return [f"ALTER TABLE {self.quote(table_name)} DROP {self.quote(column.name)}"]

    def alter_column_sql(
        self, table_name: str, from_column: Column, to_column: Column, changes: tuple[str, ...]
    ) -> list[str]:
        raise NotImplementedError

    def create_index_sql(self, table_name: str, index: Index) -> list[str]:
        if index.primary:
            return [
                f"ALTER TABLE {self.quote(table_name)} ADD PRIMARY KEY ({self.quote_list(index.columns)})"
            ]
        unique = "UNIQUE " if index.unique else ""
        return [
            f"CREATE {unique}INDEX {self.quote(index.name)} ON {self.quote(table_name)} "
            f"({self.quote_list(index.columns)})"
        ]

    def drop_index_sql(self, table_name: str, index: Index) -> list[str]:
        raise NotImplementedError

    def add_foreign_key_sql(self, table_name: str, fk: ForeignKey) -> list[str]:
        return [f"ALTER TABLE {self.quote(table_name)} ADD {self.foreign_key_declaration(fk)}"]

    def drop_foreign_key_sql(self, table_name: str, fk: ForeignKey) -> list[str]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Introspection rows → snapshot parts
    # ------------------------------------------------------------------

    def column_from_row(self, row: dict[str, Any]) -> Column:
        raise NotImplementedError

    def decode_default(self, raw: Any) -> str | None:
        """Plain default value for a ``column_default`` as the server reports it."""
        raw = as_text(raw)
        return None if raw is None else str(raw)

    def index_from_row(self, row: dict[str, Any]) -> tuple[str, str, str, bool, bool]:
        """Return ``(table, index_name, column, unique, primary)``."""
        raise NotImplementedError

    def foreign_key_from_row(
        self, row: dict[str, Any]
    ) -> tuple[str, str, str, str, str, str | None, str | None]:
        """Return ``(table, name, column, foreign_table, foreign_column, on_delete, on_update)``."""
        return (
            as_text(row["table_name"]),
            as_text(row["constraint_name"]),
            as_text(row["column_name"]),
            as_text(row["foreign_table_name"]),
            as_text(row["foreign_column_name"]),
            as_text(row.get("delete_rule")),
            as_text(row.get("update_rule")),
        )

    def _sized(self, portable: str, length: Any, precision: Any, scale: Any) -> dict[str, Any]:
        return {
            "length": int(length) if portable in SIZED_TYPES and length is not None else None,
            "precision": int(precision) if portable == "decimal" and precision is not None else None,
            "scale": int(scale) if portable == "decimal" and scale is not None else None,
        }


class MySQLPlatform(Platform):
    """MySQL dialect (InnoDB, utf8mb4)."""

    name = "mysql"
    quote_char = "`"

    TYPE_NAMES = {
        "text": "TEXT",
        "mediumtext": "MEDIUMTEXT",
        "longtext": "LONGTEXT",
        "tinyint": "TINYINT",
        "smallint": "SMALLINT",
        "int": "INT",
        "bigint": "BIGINT",
        "bool": "TINYINT(1)",
        "float": "DOUBLE PRECISION",
        "decimal": "DECIMAL",
        "date": "DATE",
        "datetime": "DATETIME",
        "time": "TIME",
        "json": "JSON",
        "blob": "LONGBLOB",
    }
    NATIVE_TYPES = {
        "integer": "int",
        "mediumint": "int",
        "double": "float",
        "real": "float",
        "numeric": "decimal",
        "timestamp": "datetime",
        "tinyblob": "blob",
        "mediumblob": "blob",
        "longblob": "blob",
        "tinytext": "text",
    }
    CANONICAL_TYPES = {"boolean": "bool", "integer": "int", "double": "float"}

    TABLES_SQL = (
        "SELECT TABLE_NAME AS table_name FROM information_schema.TABLES "
        "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE' "
        "ORDER BY TABLE_NAME"
    )
    COLUMNS_SQL = (
        "SELECT TABLE_NAME AS table_name, COLUMN_NAME AS column_name, "
        "DATA_TYPE AS data_type, COLUMN_TYPE AS column_type, "
        "IS_NULLABLE AS is_nullable, COLUMN_DEFAULT AS column_default, "
        "CHARACTER_MAXIMUM_LENGTH AS character_maximum_length, "
        "NUMERIC_PRECISION AS numeric_precision, NUMERIC_SCALE AS numeric_scale, "
        "EXTRA AS extra "
        "FROM information_schema.COLUMNS WHERE TABLE_SCHEMA = DATABASE() "
        "ORDER BY TABLE_NAME, ORDINAL_POSITION"
    )
    INDEXES_SQL = (
        "SELECT TABLE_NAME AS table_name, INDEX_NAME AS index_name, "
        "NON_UNIQUE AS non_unique, COLUMN_NAME AS column_name "
        "FROM information_schema.STATISTICS WHERE TABLE_SCHEMA = DATABASE() "
        "ORDER BY TABLE_NAME, INDEX_NAME, SEQ_IN_INDEX"
    )
    FOREIGN_KEYS_SQL = (
        "SELECT k.TABLE_NAME AS table_name, k.CONSTRAINT_NAME AS constraint_name, "
        "k.COLUMN_NAME AS column_name, k.REFERENCED_TABLE_NAME AS foreign_table_name, "
        "k.REFERENCED_COLUMN_NAME AS foreign_column_name, "
        "r.DELETE_RULE AS delete_rule, r.UPDATE_RULE AS update_rule "
        "FROM information_schema.KEY_COLUMN_USAGE k "
        "JOIN information_schema.REFERENTIAL_CONSTRAINTS r "
        "ON r.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA AND r.CONSTRAINT_NAME = k.CONSTRAINT_NAME "
        "AND r.TABLE_NAME = k.TABLE_NAME "
        "WHERE k.TABLE_SCHEMA = DATABASE() AND k.REFERENCED_TABLE_NAME IS NOT NULL "
        "ORDER BY k.TABLE_NAME, k.CONSTRAINT_NAME, k.ORDINAL_POSITION"
    )

    def __init__(
        self,
        charset: str = "utf8mb4",
        collation: str = "utf8mb4_unicode_ci",
        engine: str = "InnoDB",
    ) -> None:
        super().__init__()
        self.charset = charset
        self.collation = collation
        self.engine = engine

    def autoincrement_clause(self) -> str:
        return "AUTO_INCREMENT"

    def create_table_sql(self, table: Table) -> list[str]:
        parts = [self.column_declaration(c) for c in table.columns]
        for index in table.indexes:
            if index.primary:
                continue
            kind = "UNIQUE INDEX" if index.unique else "INDEX"
            parts.append(f"{kind} {self.quote(index.name)} ({self.quote_list(index.columns)})")
        if table.primary_key is not None:
            parts.append(f"PRIMARY KEY({self.quote_list(table.primary_key.columns)})")
        return [
            f"CREATE TABLE {self.quote(table.name)} ({', '.join(parts)}) "
            f"DEFAULT CHARACTER SET {self.charset} COLLATE `{self.collation}` ENGINE = {self.engine}"
        ]

    def alter_column_sql(
        self, table_name: str, from_column: Column, to_column: Column, changes: tuple[str, ...]
    ) -> list[str]:
        return [
            f"ALTER TABLE {self.quote(table_name)} CHANGE {self.quote(from_column.name)} "
            f"{self.column_declaration(to_column)}"
        ]

    def drop_index_sql(self, table_name: str, index: Index) -> list[str]:
        if index.primary:
            return [f"ALTER TABLE {self.quote(table_name)} DROP PRIMARY KEY"]
        return [f"DROP INDEX {self.quote(index.name)} ON {self.quote(table_name)}"]

    def drop_foreign_key_sql(self, table_name: str, fk: ForeignKey) -> list[str]:
        return [f"ALTER TABLE {self.quote(table_name)} DROP FOREIGN KEY {self.quote(fk.name)}"]

    def column_from_row(self, row: dict[str, Any]) -> Column:
        data_type = as_text(row["data_type"]).lower()
        column_type = (as_text(row.get("column_type")) or "").lower()
        if data_type == "tinyint" and column_type.startswith("tinyint(1)"):
            portable = "bool"
        else:
            portable = self.portable_type(data_type)
        extra = (as_text(row.get("extra")) or "").lower()
        return Column(
            name=as_text(row["column_name"]),
            type=portable,
            nullable=as_text(row["is_nullable"]) == "YES",
            default=self.decode_default(row.get("column_default")),
            autoincrement="auto_increment" in extra,
            logical_type=self.logical_type_for(portable),
            **self._sized(
                portable,
                row.get("character_maximum_length"),
                row.get("numeric_precision"),
                row.get("numeric_scale"),
            ),
        )

    def index_from_row(self, row: dict[str, Any]) -> tuple[str, str, str, bool, bool]:
        name = as_text(row["index_name"])
        return (
            as_text(row["table_name"]),
            name,
            as_text(row["column_name"]),
            int(row["non_unique"]) == 0,
            name == "PRIMARY",
        )


class MariaDBPlatform(MySQLPlatform):
    """
    MariaDB dialect.

    MariaDB (10.2.7+) reports ``column_default`` as SQL: string literals
    quoted, ``NULL`` spelled out, expressions as written. MySQL reports the
    bare value.
    """

    name = "mariadb"

    def decode_default(self, raw: Any) -> str | None:
        text = super().decode_default(raw)
        if text is None or text.upper() == "NULL":
            return None
        quoted = split_quoted(text)
        if quoted is not None and not quoted[1].strip():
            return quoted[0]
        return text


class PostgreSQLPlatform(Platform):
    """PostgreSQL dialect (current schema only)."""

    name = "postgresql"
    quote_char = '"'

    TYPE_NAMES = {
        "text": "TEXT",
        "smallint": "SMALLINT",
        "int": "INT",
        "bigint": "BIGINT",
        "bool": "BOOLEAN",
        "float": "DOUBLE PRECISION",
        "decimal": "NUMERIC",
        "date": "DATE",
        "datetime": "TIMESTAMP(0) WITHOUT TIME ZONE",
        "time": "TIME(0) WITHOUT TIME ZONE",
        "json": "JSONB",
        "blob": "BYTEA",
    }
    NATIVE_TYPES = {
        "character varying": "varchar",
        "character": "char",
        "integer": "int",
        "boolean": "bool",
        "double precision": "float",
        "real": "float",
        "numeric": "decimal",
        "timestamp without time zone": "datetime",
        "timestamp with time zone": "datetime",
        "time without time zone": "time",
        "jsonb": "json",
        "bytea": "blob",
    }
    CANONICAL_TYPES = {
        "mediumtext": "text",
        "longtext": "text",
        "tinyint": "smallint",
        "boolean": "bool",
        "integer": "int",
        "double": "float",
    }
    REFERENTIAL_ACTIONS = {
        "a": "NO ACTION",
        "r": "RESTRICT",
        "c": "CASCADE",
        "n": "SET NULL",
        "d": "SET DEFAULT",
    }

    TABLES_SQL = (
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' "
        "ORDER BY table_name"
    )
    COLUMNS_SQL = (
        "SELECT table_name, column_name, data_type, is_nullable, column_default, "
        "character_maximum_length, numeric_precision, numeric_scale, is_identity "
        "FROM information_schema.columns WHERE table_schema = current_schema() "
        "ORDER BY table_name, ordinal_position"
    )
    INDEXES_SQL = (
        "SELECT t.relname AS table_name, i.relname AS index_name, "
        "ix.indisunique AS is_unique, ix.indisprimary AS is_primary, a.attname AS column_name "
        "FROM pg_index ix "
        "JOIN pg_class t ON t.oid = ix.indrelid "
        "JOIN pg_class i ON i.oid = ix.indexrelid "
        "JOIN pg_namespace n ON n.oid = t.relnamespace "
        "JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord) ON TRUE "
        "JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum "
        "WHERE n.nspname = current_schema() "
        "ORDER BY t.relname, i.relname, k.ord"
    )
    FOREIGN_KEYS_SQL = (
        "SELECT cl.relname AS table_name, c.conname AS constraint_name, "
        "a.attname AS column_name, fcl.relname AS foreign_table_name, "
        "fa.attname AS foreign_column_name, "
        "c.confdeltype AS delete_rule, c.confupdtype AS update_rule "
        "FROM pg_constraint c "
        "JOIN pg_class cl ON cl.oid = c.conrelid "
        "JOIN pg_namespace n ON n.oid = cl.relnamespace "
        "JOIN pg_class fcl ON fcl.oid = c.confrelid "
        "JOIN LATERAL unnest(c.conkey, c.confkey) WITH ORDINALITY AS k(attnum, fattnum, ord) ON TRUE "
        "JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum "
        "JOIN pg_attribute fa ON fa.attrelid = c.confrelid AND fa.attnum = k.fattnum "
        "WHERE c.contype = 'f' AND n.nspname = current_schema() "
        "ORDER BY cl.relname, c.conname, k.ord"
    )

    def autoincrement_clause(self) -> str:
        return "GENERATED BY DEFAULT AS IDENTITY"

    def bool_literal(self, value: bool) -> str:
        return "true" if value else "false"

    def create_table_sql(self, table: Table) -> list[str]:
        parts = [self.column_declaration(c) for c in table.columns]
        if table.primary_key is not None:
            parts.append(f"PRIMARY KEY({self.quote_list(table.primary_key.columns)})")
        statements = [f"CREATE TABLE {self.quote(table.name)} ({', '.join(parts)})"]
        for index in table.indexes:
            if not index.primary:
                statements.extend(self.create_index_sql(table.name, index))
        return statements

    def alter_column_sql(
        self, table_name: str, from_column: Column, to_column: Column, changes: tuple[str, ...]
    ) -> list[str]:
        prefix = f"ALTER TABLE {self.quote(table_name)} ALTER {self.quote(to_column.name)}"
        statements: list[str] = []
        if {"type", "length", "precision", "scale"} & set(changes):
            statements.append(f"{prefix} TYPE {self.type_declaration(to_column)}")
        if "autoincrement" in changes:
            if to_column.autoincrement:
                statements.append(f"{prefix} ADD {self.autoincrement_clause()}")
            else:
                statements.append(f"{prefix} DROP IDENTITY IF EXISTS")
        if "default" in changes:
            default = self.default_literal(to_column)
            if default is None:
                statements.append(f"{prefix} DROP DEFAULT")
            else:
                statements.append(f"{prefix} SET DEFAULT {default}")
        if "nullable" in changes:
            statements.append(f"{prefix} {'DROP' if to_column.nullable else 'SET'} NOT NULL")
        return statements

    def drop_index_sql(self, table_name: str, index: Index) -> list[str]:
        if index.primary:
            return [f"ALTER TABLE {self.quote(table_name)} DROP CONSTRAINT {self.quote(index.name)}"]
        return [f"DROP INDEX {self.quote(index.name)}"]

    def drop_foreign_key_sql(self, table_name: str, fk: ForeignKey) -> list[str]:
        return [f"ALTER TABLE {self.quote(table_name)} DROP CONSTRAINT {self.quote(fk.name)}"]

    def column_from_row(self, row: dict[str, Any]) -> Column:
        portable = self.portable_type(as_text(row["data_type"]))
        default = as_text(row.get("column_default"))
        autoincrement = (as_text(row.get("is_identity")) or "").upper() == "YES"
        if default is not None and str(default).lower().startswith("nextval("):
            autoincrement = True
            default = None
        return Column(
            name=as_text(row["column_name"]),
            type=portable,
            nullable=as_text(row["is_nullable"]) == "YES",
            default=self.decode_default(default),
            autoincrement=autoincrement,
            logical_type=self.logical_type_for(portable),
            **self._sized(
                portable,
                row.get("character_maximum_length"),
                row.get("numeric_precision"),
                row.get("numeric_scale"),
            ),
        )

    def decode_default(self, raw: Any) -> str | None:
        """
        Strip the SQL PostgreSQL wraps around a default.

        Example::

            decode_default("'it''s'::character varying")  →  "it's"
            decode_default("NULL::character varying")     →  None
            decode_default("(-1)")                        →  "-1"
        """
        text = super().decode_default(raw)
        if text is None:
            return None
        text = text.strip()
        quoted = split_quoted(text)
        if quoted is not None:
            value, rest = quoted
            # A literal followed by anything but casts is an expression.
            return value if _CASTS_ONLY_RE.match(rest) else text
        while _CAST_RE.search(text):
            text = _CAST_RE.sub("", text).strip()
        if len(text) >= 2 and text[0] == "(" and text[-1] == ")":
            text = text[1:-1].strip()
            quoted = split_quoted(text)
            if quoted is not None and _CASTS_ONLY_RE.match(quoted[1]):
                return quoted[0]
        if text.upper() == "NULL":
            return None
        return text

    def index_from_row(self, row: dict[str, Any]) -> tuple[str, str, str, bool, bool]:
        return (
            as_text(row["table_name"]),
            as_text(row["index_name"]),
            as_text(row["column_name"]),
            bool(row["is_unique"]),
            bool(row["is_primary"]),
        )

    def foreign_key_from_row(
        self, row: dict[str, Any]
    ) -> tuple[str, str, str, str, str, str | None, str | None]:
        table, name, column, foreign_table, foreign_column, on_delete, on_update = (
            super().foreign_key_from_row(row)
        )
        return (
            table,
            name,
            column,
            foreign_table,
            foreign_column,
            self.REFERENTIAL_ACTIONS.get(on_delete, on_delete),
            self.REFERENTIAL_ACTIONS.get(on_update, on_update),
        )


_PLATFORMS: dict[str, type[Platform]] = {
    "mysql": MySQLPlatform,
    "mariadb": MariaDBPlatform,
    "postgresql": PostgreSQLPlatform,
    "postgres": PostgreSQLPlatform,
}


def get_platform(name: str, **options: Any) -> Platform:
    """
    Return a fresh platform instance for *name*.

    Raises:
        ValueError: If the platform is not supported.
    """
    try:
        platform_cls = _PLATFORMS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported database platform '{name}'. "
            f"Expected one of: {', '.join(sorted(_PLATFORMS))}."
        ) from None
    return platform_cls(**options)
