"""
models/snapshot.py
------------------
Immutable value objects describing the structure of a database schema.

A :class:`SchemaSnapshot` is built either from entity metadata (the target)
or from live introspection (the current state). Two snapshots are the only
inputs a comparison ever needs.

Design Decision:
    Frozen dataclasses holding tuples make every snapshot hashable and
    guarantee that nothing downstream (hooks included) can edit a table in
    place. Structural change is expressed as a new diff entry instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator


@dataclass(frozen=True)
class Column:
    """
    One column of a table.

    Attributes:
        name:         Column name.
        type:         Portable native type (``varchar``, ``int``, ``json`` …).
        nullable:     Whether NULL is allowed.
        default:      Default literal as a plain string, or ``None``.
        length:       Character length for sized string types.
        precision:    Total digits for ``decimal``.
        scale:        Fraction digits for ``decimal``.
        autoincrement: Whether the database generates values.
        logical_type: Registry type the column maps back to. Informational
                      only; excluded from equality.
    """
    name: str
    type: str
    nullable: bool = True
    default: str | None = None
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    autoincrement: bool = False
    logical_type: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Index:
    """A plain, unique or primary index over an ordered column list."""
    name: str
    columns: tuple[str, ...]
    unique: bool = False
    primary: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        if self.primary:
            object.__setattr__(self, "unique", True)


@dataclass(frozen=True)
class ForeignKey:
    """A foreign key constraint from local columns to another table."""
    name: str
    columns: tuple[str, ...]
    foreign_table: str
    foreign_columns: tuple[str, ...]
    on_delete: str | None = None
    on_update: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "foreign_columns", tuple(self.foreign_columns))


@dataclass(frozen=True)
class Table:
    """A table with ordered columns, its indexes and foreign keys."""
    name: str
    columns: tuple[Column, ...] = ()
    indexes: tuple[Index, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "indexes", tuple(self.indexes))
        object.__setattr__(self, "foreign_keys", tuple(self.foreign_keys))

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> Column | None:
        """Get column by name (case-insensitive)."""
        for col in self.columns:
            if col.name.lower() == name.lower():
                return col
        return None

    def get_index(self, name: str) -> Index | None:
        for index in self.indexes:
            if index.name.lower() == name.lower():
                return index
        return None

    @property
    def primary_key(self) -> Index | None:
        for index in self.indexes:
            if index.primary:
                return index
        return None

    def get_foreign_key(self, name: str) -> ForeignKey | None:
        for fk in self.foreign_keys:
            if fk.name.lower() == name.lower():
                return fk
        return None


@dataclass(frozen=True)
class SchemaSnapshot:
    """
    Structural picture of a schema at one point in time.

    Tables are kept sorted by name so two snapshots describing the same
    structure compare equal regardless of how they were assembled.
    """
    tables: tuple[Table, ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.tables, key=lambda t: t.name.lower()))
        object.__setattr__(self, "tables", ordered)

    @classmethod
    def from_tables(cls, tables: Iterable[Table]) -> "SchemaSnapshot":
        return cls(tables=tuple(tables))

    def __iter__(self) -> Iterator[Table]:
        return iter(self.tables)

    def __len__(self) -> int:
        return len(self.tables)

    @property
    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def has_table(self, name: str) -> bool:
        return self.get_table(name) is not None

    def get_table(self, name: str) -> Table | None:
        for table in self.tables:
            if table.name.lower() == name.lower():
                return table
        return None

    def restricted_to(self, table_names: Iterable[str]) -> "SchemaSnapshot":
        """Return a new snapshot holding only the named tables."""
        wanted = {name.lower() for name in table_names}
        return SchemaSnapshot(tuple(t for t in self.tables if t.name.lower() in wanted))
