"""
dbschema/reader.py
------------------
Reads the live database structure into a :class:`SchemaSnapshot`.

Four introspection queries are issued per read (tables, columns, indexes,
foreign keys); the platform turns each row into snapshot parts. Nothing is
cached: every call reflects the database as it is right now.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Protocol

from dbschema.platforms import Platform, as_text
from logger import get_logger
from models.snapshot import Column, ForeignKey, Index, SchemaSnapshot, Table

log = get_logger(__name__)


class RowSource(Protocol):
    def fetch_all(self, sql: str, params: tuple | None = None) -> list[dict[str, Any]]: ...


class LiveSchemaReader:
    """
    Introspects a database through its platform's queries.

    The platform should be the one the type registry registered its
    mappings on, so live columns are tagged with their logical type.
    """

    def __init__(self, platform: Platform) -> None:
        self._platform = platform

    @property
    def platform(self) -> Platform:
        return self._platform

    def read(self, database: RowSource) -> SchemaSnapshot:
        """
        Return the current schema.

        Raises:
            DatabaseError: Propagated from the connection on query failure.
        """
        p = self._platform
        table_names = [as_text(r["table_name"]) for r in database.fetch_all(p.TABLES_SQL)]

        columns: dict[str, list[Column]] = defaultdict(list)
        for row in database.fetch_all(p.COLUMNS_SQL):
            columns[as_text(row["table_name"])].append(p.column_from_row(row))

        # table → index name → [columns, unique, primary]
        index_parts: dict[str, dict[str, list[Any]]] = defaultdict(dict)
        for row in database.fetch_all(p.INDEXES_SQL):
            table, name, column, unique, primary = p.index_from_row(row)
            entry = index_parts[table].setdefault(name, [[], unique, primary])
            entry[0].append(column)

        fk_parts: dict[str, dict[str, list[Any]]] = defaultdict(dict)
        for row in database.fetch_all(p.FOREIGN_KEYS_SQL):
            table, name, column, foreign_table, foreign_column, on_delete, on_update = (
                p.foreign_key_from_row(row)
            )
            entry = fk_parts[table].setdefault(name, [[], foreign_table, [], on_delete, on_update])
            entry[0].append(column)
            entry[2].append(foreign_column)

        tables = []
        for name in table_names:
            indexes = [
                Index(index_name, tuple(cols), unique=unique, primary=primary)
                for index_name, (cols, unique, primary) in index_parts.get(name, {}).items()
            ]
            foreign_keys = [
                ForeignKey(fk_name, tuple(cols), foreign_table, tuple(foreign_cols), on_delete, on_update)
                for fk_name, (cols, foreign_table, foreign_cols, on_delete, on_update)
                in fk_parts.get(name, {}).items()
            ]
            tables.append(
                Table(
                    name=name,
                    columns=tuple(columns.get(name, ())),
                    indexes=tuple(sorted(indexes, key=lambda i: i.name.lower())),
                    foreign_keys=tuple(sorted(foreign_keys, key=lambda f: f.name.lower())),
                )
            )

        snapshot = SchemaSnapshot.from_tables(tables)
        log.debug("Read live schema: %d table(s).", len(snapshot))
        return snapshot
