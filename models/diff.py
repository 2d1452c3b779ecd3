"""
models/diff.py
--------------
Structural change operations produced by the schema comparator.

A :class:`SchemaDiff` is derived data: the comparator builds it from two
snapshots, the emitter renders it. The operation order inside a diff is the
execution order, so referential constraints hold at every step.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator, Union

from models.snapshot import Column, ForeignKey, Index, Table


class ChangeType(str, Enum):
    """Discriminator for the nine supported structural changes."""
    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ADD_COLUMN = "add_column"
    DROP_COLUMN = "drop_column"
    ALTER_COLUMN = "alter_column"
    ADD_INDEX = "add_index"
    DROP_INDEX = "drop_index"
    ADD_FOREIGN_KEY = "add_foreign_key"
    DROP_FOREIGN_KEY = "drop_foreign_key"


@dataclass(frozen=True)
class CreateTable:
    """Create a table with its columns and indexes (foreign keys come later)."""
    table: Table
    kind: ClassVar[ChangeType] = ChangeType.CREATE_TABLE

    @property
    def table_name(self) -> str:
        return self.table.name


@dataclass(frozen=True)
class DropTable:
    table: Table
    kind: ClassVar[ChangeType] = ChangeType.DROP_TABLE

    @property
    def table_name(self) -> str:
        return self.table.name


@dataclass(frozen=True)
class AddColumn:
    table_name: str
    column: Column
    kind: ClassVar[ChangeType] = ChangeType.ADD_COLUMN


@dataclass(frozen=True)
class DropColumn:
    table_name: str
    column: Column
    kind: ClassVar[ChangeType] = ChangeType.DROP_COLUMN


@dataclass(frozen=True)
class AlterColumn:
    """
    Change a column definition in place.

    Attributes:
        from_column: Definition currently in the database.
        to_column:   Definition the metadata asks for.
        changes:     Names of the attributes that differ after normalization.
    """
    table_name: str
    from_column: Column
    to_column: Column
    changes: tuple[str, ...] = ()
    kind: ClassVar[ChangeType] = ChangeType.ALTER_COLUMN


@dataclass(frozen=True)
class AddIndex:
    table_name: str
    index: Index
    kind: ClassVar[ChangeType] = ChangeType.ADD_INDEX


@dataclass(frozen=True)
class DropIndex:
    table_name: str
    index: Index
    kind: ClassVar[ChangeType] = ChangeType.DROP_INDEX


@dataclass(frozen=True)
class AddForeignKey:
    table_name: str
    foreign_key: ForeignKey
    kind: ClassVar[ChangeType] = ChangeType.ADD_FOREIGN_KEY


@dataclass(frozen=True)
class DropForeignKey:
    table_name: str
    foreign_key: ForeignKey
    kind: ClassVar[ChangeType] = ChangeType.DROP_FOREIGN_KEY


SchemaChange = Union[
    CreateTable,
    DropTable,
    AddColumn,
    DropColumn,
    AlterColumn,
    AddIndex,
    DropIndex,
    AddForeignKey,
    DropForeignKey,
]


@dataclass(frozen=True)
class SchemaDiff:
    """Ordered collection of structural changes between two snapshots."""
    changes: tuple[SchemaChange, ...] = ()

    def __iter__(self) -> Iterator[SchemaChange]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def of_kind(self, kind: ChangeType) -> list[SchemaChange]:
        return [c for c in self.changes if c.kind == kind]

    @property
    def dropped_table_names(self) -> set[str]:
        return {c.table_name.lower() for c in self.changes if c.kind == ChangeType.DROP_TABLE}

    def summary(self) -> dict[str, int]:
        """Count of changes per kind, e.g. ``{"create_table": 2}``."""
        counts: dict[str, int] = {}
        for change in self.changes:
            counts[change.kind.value] = counts.get(change.kind.value, 0) + 1
        return counts
