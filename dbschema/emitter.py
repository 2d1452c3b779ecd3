"""
dbschema/emitter.py
-------------------
Renders a :class:`SchemaDiff` into executable SQL for one platform.

Pure rendering: nothing is executed. Statements come out in diff order,
one or more per operation (PostgreSQL, for instance, creates indexes with
separate statements after ``CREATE TABLE``).

Save mode omits ``DropTable`` operations together with the foreign key
drops owned by those tables, so tables unknown to the metadata survive.
"""
from __future__ import annotations

from dbschema.platforms import Platform
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

log = get_logger(__name__)


class SqlEmitter:
    """Turns diff operations into platform statements."""

    def __init__(self, platform: Platform) -> None:
        self._platform = platform

    @property
    def platform(self) -> Platform:
        return self._platform

    def emit(self, diff: SchemaDiff, save_mode: bool = False) -> list[str]:
        """
        Render *diff* as a list of statements.

        Args:
            diff:      Changes in execution order.
            save_mode: Skip table drops (and the foreign key drops of the
                       dropped tables).
        """
        skipped_tables = diff.dropped_table_names if save_mode else set()
        statements: list[str] = []
        for change in diff:
            if save_mode and isinstance(change, DropTable):
                log.debug("Save mode: keeping table '%s'.", change.table_name)
                continue
            if isinstance(change, DropForeignKey) and change.table_name.lower() in skipped_tables:
                continue
            statements.extend(self.render(change))
        return statements

    def render(self, change: SchemaChange) -> list[str]:
        """Statements for a single operation."""
        p = self._platform
        if isinstance(change, CreateTable):
            return p.create_table_sql(change.table)
        if isinstance(change, DropTable):
            return p.drop_table_sql(change.table)
        if isinstance(change, AddColumn):
            return p.add_column_sql(change.table_name, change.column)
        if isinstance(change, DropColumn):
            return p.drop_column_sql(change.table_name, change.column)
        if isinstance(change, AlterColumn):
            return p.alter_column_sql(
                change.table_name, change.from_column, change.to_column, change.changes
            )
        if isinstance(change, AddIndex):
            return p.create_index_sql(change.table_name, change.index)
        if isinstance(change, DropIndex):
            return p.drop_index_sql(change.table_name, change.index)
        if isinstance(change, AddForeignKey):
            return p.add_foreign_key_sql(change.table_name, change.foreign_key)
        if isinstance(change, DropForeignKey):
            return p.drop_foreign_key_sql(change.table_name, change.foreign_key)
        raise TypeError(f"Unsupported schema change: {change!r}")
