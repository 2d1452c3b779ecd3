"""
dbschema/converter.py
---------------------
Turns entity metadata into the target :class:`SchemaSnapshot`.

Naming::

    Entity ``SalesOrder``            →  table  ``sales_order``
    Field  ``firstName``             →  column ``first_name``
    belongsTo link ``assignedUser``  →  column ``assigned_user_id``
                                        index  ``idx_<table>_assigned_user_id``
                                        fk     ``fk_<table>_assigned_user_id``
    manyMany ``relationName: entityTeam`` → table ``entity_team``

Design Decisions:
    * Output is deterministic: entities are processed in sorted order,
      columns keep declaration order, indexes and foreign keys are sorted
      by name. The comparator's diff stability depends on this.
    * Relation tables are built once even when both sides declare the
      link; their key columns are ordered by name so the result does not
      depend on which side was processed first.
    * Every failure is a :class:`ConversionFailed` naming the entity and
      field/link at fault.
"""
from __future__ import annotations

import hashlib
import re
from dataclasses import replace
from typing import Iterable

from dbschema.platforms import DEFAULT_VARCHAR_LENGTH, SIZED_TYPES
from dbschema.types import FieldType, TypeRegistry, TypeResolutionFailed
from logger import get_logger
from models.metadata import EntityDef, EntityDefs, FieldDef, LinkDef
from models.snapshot import Column, ForeignKey, Index, SchemaSnapshot, Table

log = get_logger(__name__)

MAX_IDENTIFIER_LENGTH = 60
PRIMARY_INDEX_NAME = "PRIMARY"

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


class ConversionFailed(Exception):
    """Raised when metadata cannot be converted into a schema snapshot."""


def to_underscore(name: str) -> str:
    """``firstName`` → ``first_name``, ``SalesOrder`` → ``sales_order``."""
    return _CAMEL_RE.sub(r"_\1", name).lower()


def make_identifier(prefix: str, table: str, parts: Iterable[str]) -> str:
    """
    Build an index/constraint name, shortened with a hash when too long.

    Example::

        make_identifier("idx", "account", ["name"])   →  "idx_account_name"
    """
    name = "_".join([prefix, table, *parts]).lower()
    if len(name) <= MAX_IDENTIFIER_LENGTH:
        return name
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:8]
    return f"{name[:MAX_IDENTIFIER_LENGTH - 9]}_{digest}"


class MetadataConverter:
    """
    Builds target snapshots from entity definitions.

    Args:
        type_registry: Registry resolving field types; its platform decides
                       how native types are canonicalized.
    """

    def __init__(self, type_registry: TypeRegistry) -> None:
        self._types = type_registry
        self._platform = type_registry.platform

    def process(
        self, entity_defs: EntityDefs, entity_list: Iterable[str] | None = None
    ) -> SchemaSnapshot:
        """
        Convert *entity_defs* into a snapshot.

        Args:
            entity_defs: Full declaration tree (link targets are looked up
                         here even when they are filtered out).
            entity_list: Restrict conversion to these entities (plus the
                         relation tables of their ``manyMany`` links).

        Raises:
            ConversionFailed: On unknown entities, types or link targets.
        """
        tables: dict[str, Table] = {}
        owners: dict[str, str] = {}

        for entity_name in self._select(entity_defs, entity_list):
            entity = entity_defs[entity_name]
            if entity.skip_rebuild:
                log.debug("Entity '%s' is marked skipRebuild, no table built.", entity_name)
                continue

            table = self._build_table(entity_name, entity, entity_defs)
            key = table.name.lower()
            if key in tables:
                raise ConversionFailed(
                    f"Entities '{owners[key]}' and '{entity_name}' both map to table '{table.name}'."
                )
            tables[key] = table
            owners[key] = entity_name

            for link_name, link in entity.links.items():
                if link.type != "manyMany":
                    continue
                relation = self._build_relation_table(entity_name, link_name, link, entity_defs)
                tables.setdefault(relation.name.lower(), relation)
                owners.setdefault(relation.name.lower(), entity_name)

        snapshot = SchemaSnapshot.from_tables(tables.values())
        log.info(
            "Converted metadata: %d table(s), %d column(s) total.",
            len(snapshot),
            sum(len(t.columns) for t in snapshot),
        )
        return snapshot

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    @staticmethod
    def _select(entity_defs: EntityDefs, entity_list: Iterable[str] | None) -> list[str]:
        if entity_list is None:
            return sorted(entity_defs)
        names = list(dict.fromkeys(entity_list))
        unknown = [n for n in names if n not in entity_defs]
        if unknown:
            raise ConversionFailed(f"Unknown entit(y/ies) requested: {', '.join(unknown)}.")
        return sorted(names)

    @staticmethod
    def table_name(entity_name: str, entity: EntityDef) -> str:
        return entity.table_name or to_underscore(entity_name)

    def _build_table(self, entity_name: str, entity: EntityDef, entity_defs: EntityDefs) -> Table:
        table_name = self.table_name(entity_name, entity)
        columns: dict[str, Column] = {}
        indexes: dict[str, Index] = {}
        foreign_keys: dict[str, ForeignKey] = {}
        primary_columns: list[str] = []

        def add_index(index: Index) -> None:
            indexes.setdefault(index.name.lower(), index)

        for field_name, field in entity.fields.items():
            if field.not_storable:
                continue
            column_name = to_underscore(field_name)
            if column_name in columns:
                raise ConversionFailed(
                    f"{entity_name}.{field_name}: column '{column_name}' is declared twice."
                )
            field_type = self._field_type(entity_name, field_name, field.type)
            columns[column_name] = self._build_column(column_name, field, field_type)

            if field_type.primary:
                primary_columns.append(column_name)
            elif field.unique:
                add_index(Index(make_identifier("uniq", table_name, [column_name]), (column_name,), unique=True))
            elif field.index:
                add_index(Index(make_identifier("idx", table_name, [column_name]), (column_name,)))

        for link_name, link in entity.links.items():
            if link.type == "belongsTo":
                target_name, target_pk = self._link_target(entity_name, link_name, link, entity_defs)
                column_name = f"{to_underscore(link_name)}_id"
                columns.setdefault(
                    column_name,
                    replace(
                        target_pk,
                        name=column_name,
                        nullable=not link.required,
                        autoincrement=False,
                        default=None,
                    ),
                )
                add_index(Index(make_identifier("idx", table_name, [column_name]), (column_name,)))
                fk = ForeignKey(
                    name=make_identifier("fk", table_name, [column_name]),
                    columns=(column_name,),
                    foreign_table=target_name,
                    foreign_columns=(target_pk.name,),
                    on_delete=link.on_delete,
                    on_update=link.on_update,
                )
                foreign_keys.setdefault(fk.name.lower(), fk)

            elif link.type == "belongsToParent":
                id_column = f"{to_underscore(link_name)}_id"
                type_column = f"{to_underscore(link_name)}_type"
                columns.setdefault(
                    id_column,
                    Column(name=id_column, type=self._platform.canonical_type("varchar"), length=24),
                )
                columns.setdefault(
                    type_column,
                    Column(name=type_column, type=self._platform.canonical_type("varchar"), length=100),
                )
                add_index(
                    Index(make_identifier("idx", table_name, [type_column, id_column]), (type_column, id_column))
                )

        for index_name, index_def in entity.indexes.items():
            index_columns = tuple(to_underscore(c) for c in index_def.columns)
            missing = [c for c in index_columns if c not in columns]
            if missing:
                raise ConversionFailed(
                    f"{entity_name}: index '{index_name}' references unknown column(s) {', '.join(missing)}."
                )
            prefix = "uniq" if index_def.unique else "idx"
            add_index(
                Index(
                    make_identifier(prefix, table_name, [to_underscore(index_name)]),
                    index_columns,
                    unique=index_def.unique,
                )
            )

        if primary_columns:
            add_index(Index(PRIMARY_INDEX_NAME, tuple(primary_columns), unique=True, primary=True))

        return Table(
            name=table_name,
            columns=tuple(columns.values()),
            indexes=tuple(sorted(indexes.values(), key=lambda i: i.name.lower())),
            foreign_keys=tuple(sorted(foreign_keys.values(), key=lambda f: f.name.lower())),
        )

    def _build_relation_table(
        self, entity_name: str, link_name: str, link: LinkDef, entity_defs: EntityDefs
    ) -> Table:
        table_name = to_underscore(link.relation_name or "")
        own_pk = self._primary_column(entity_name, entity_defs[entity_name])
        own_table = self.table_name(entity_name, entity_defs[entity_name])
        target_table, target_pk = self._link_target(entity_name, link_name, link, entity_defs)

        if link.mid_keys:
            left, right = (to_underscore(k) for k in link.mid_keys)
        else:
            left = f"{to_underscore(entity_name)}_id"
            right = f"{to_underscore(link.entity or '')}_id"
        if left == right:
            raise ConversionFailed(
                f"{entity_name}.{link_name}: relation '{table_name}' needs distinct 'midKeys'."
            )

        # Sorted by column name so either side of the link builds the same table.
        keys = sorted([(left, own_pk, own_table), (right, target_pk, target_table)], key=lambda k: k[0])

        columns = [
            Column(
                name="id",
                type=self._platform.canonical_type("int"),
                nullable=False,
                autoincrement=True,
                logical_type="intId",
            )
        ]
        indexes = [Index(PRIMARY_INDEX_NAME, ("id",), unique=True, primary=True)]
        foreign_keys = []
        for column_name, pk, referenced_table in keys:
            columns.append(
                replace(pk, name=column_name, nullable=False, autoincrement=False, default=None)
            )
            indexes.append(Index(make_identifier("idx", table_name, [column_name]), (column_name,)))
            foreign_keys.append(
                ForeignKey(
                    name=make_identifier("fk", table_name, [column_name]),
                    columns=(column_name,),
                    foreign_table=referenced_table,
                    foreign_columns=(pk.name,),
                    on_delete="CASCADE",
                )
            )
        key_columns = [k[0] for k in keys]
        indexes.append(
            Index(make_identifier("uniq", table_name, key_columns), tuple(key_columns), unique=True)
        )

        return Table(
            name=table_name,
            columns=tuple(columns),
            indexes=tuple(sorted(indexes, key=lambda i: i.name.lower())),
            foreign_keys=tuple(sorted(foreign_keys, key=lambda f: f.name.lower())),
        )

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def _field_type(self, entity_name: str, field_name: str, logical_name: str) -> FieldType:
        try:
            return self._types.get(logical_name)
        except TypeResolutionFailed as exc:
            raise ConversionFailed(f"{entity_name}.{field_name}: {exc}") from exc

    def _build_column(self, name: str, field: FieldDef, field_type: FieldType) -> Column:
        native = field.db_type or self._types.resolve_native_name(field.type)
        native = self._platform.canonical_type(native)
        options = field_type.column_options(field)

        if native not in SIZED_TYPES:
            options["length"] = None
        elif native == "varchar" and not options["length"]:
            options["length"] = DEFAULT_VARCHAR_LENGTH
        if native != "decimal":
            options["precision"] = None
            options["scale"] = None

        return Column(name=name, type=native, logical_type=field.type, **options)

    def _primary_column(self, entity_name: str, entity: EntityDef) -> Column:
        for field_name, field in entity.fields.items():
            if field.not_storable:
                continue
            field_type = self._field_type(entity_name, field_name, field.type)
            if field_type.primary:
                return self._build_column(to_underscore(field_name), field, field_type)
        raise ConversionFailed(f"Entity '{entity_name}' has no primary key field.")

    def _link_target(
        self, entity_name: str, link_name: str, link: LinkDef, entity_defs: EntityDefs
    ) -> tuple[str, Column]:
        target = entity_defs.get(link.entity or "")
        if target is None:
            raise ConversionFailed(
                f"{entity_name}.{link_name}: link target entity '{link.entity}' is not defined."
            )
        return self.table_name(link.entity or "", target), self._primary_column(link.entity or "", target)
