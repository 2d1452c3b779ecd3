"""
models/metadata.py
------------------
Typed entity/field declarations and the JSON metadata provider.

File Format (supported)::

    metadata/
      Account.json      {"fields": {...}, "links": {...}, "indexes": {...}}
      Contact.json

or a single file mapping entity names to definitions::

    {"Account": {"fields": {"name": {"type": "varchar", "maxLength": 50}}}}

Design Decisions:
    * Declarations are validated with pydantic so malformed metadata is
      rejected before any schema work starts.
    * Keys use the camelCase spelling found in metadata files
      (``maxLength``, ``notNull``, ``relationName`` …); snake_case names
      are accepted too.
    * Unknown keys are kept (``extra="allow"``) so custom field types can
      read their own options.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from logger import get_logger

log = get_logger(__name__)

REFERENTIAL_ACTIONS = frozenset({"CASCADE", "SET NULL", "SET DEFAULT", "RESTRICT", "NO ACTION"})

LinkType = Literal["belongsTo", "belongsToParent", "hasMany", "hasOne", "hasChildren", "manyMany"]


class MetadataError(Exception):
    """Raised when metadata cannot be read or does not validate."""


class FieldDef(BaseModel):
    """Declaration of one entity field."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    max_length: int | None = Field(
        default=None, ge=1, validation_alias=AliasChoices("maxLength", "len", "max_length")
    )
    required: bool = False
    not_null: bool | None = Field(default=None, validation_alias=AliasChoices("notNull", "not_null"))
    default: Any = None
    precision: int | None = Field(default=None, ge=1)
    scale: int | None = Field(default=None, ge=0)
    autoincrement: bool | None = None
    db_type: str | None = Field(default=None, validation_alias=AliasChoices("dbType", "db_type"))
    index: bool = False
    unique: bool = False
    not_storable: bool = Field(default=False, validation_alias=AliasChoices("notStorable", "not_storable"))

    @property
    def is_not_null(self) -> bool:
        if self.not_null is not None:
            return self.not_null
        return self.required


class LinkDef(BaseModel):
    """Declaration of one relationship."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: LinkType
    entity: str | None = None
    foreign: str | None = None
    relation_name: str | None = Field(
        default=None, validation_alias=AliasChoices("relationName", "relation_name")
    )
    mid_keys: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("midKeys", "mid_keys")
    )
    required: bool = False
    on_delete: str | None = Field(default=None, validation_alias=AliasChoices("onDelete", "on_delete"))
    on_update: str | None = Field(default=None, validation_alias=AliasChoices("onUpdate", "on_update"))

    @field_validator("on_delete", "on_update")
    @classmethod
    def _check_action(cls, value: str | None) -> str | None:
        if value is None:
            return None
        action = " ".join(value.upper().split())
        if action not in REFERENTIAL_ACTIONS:
            raise ValueError(f"unsupported referential action '{value}'")
        return action

    @model_validator(mode="after")
    def _check_cardinality(self) -> "LinkDef":
        if self.type in ("belongsTo", "manyMany") and not self.entity:
            raise ValueError(f"'{self.type}' link requires 'entity'")
        if self.type == "manyMany" and not self.relation_name:
            raise ValueError("'manyMany' link requires 'relationName'")
        if self.mid_keys is not None and len(self.mid_keys) != 2:
            raise ValueError("'midKeys' must name exactly two columns")
        return self


class IndexDef(BaseModel):
    """Declaration of an entity-level index."""
    model_config = ConfigDict(populate_by_name=True)

    columns: list[str] = Field(min_length=1)
    unique: bool = False


class EntityDef(BaseModel):
    """Declaration of one entity (one table)."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    fields: dict[str, FieldDef] = Field(default_factory=dict)
    links: dict[str, LinkDef] = Field(default_factory=dict)
    indexes: dict[str, IndexDef] = Field(default_factory=dict)
    table_name: str | None = Field(default=None, validation_alias=AliasChoices("tableName", "table_name"))
    skip_rebuild: bool = Field(default=False, validation_alias=AliasChoices("skipRebuild", "skip_rebuild"))


EntityDefs = dict[str, EntityDef]


def parse_entity_defs(data: dict[str, Any]) -> EntityDefs:
    """
    Validate a raw ``{entity_name: definition}`` mapping.

    Raises:
        MetadataError: If any definition is invalid. The message names the
                       offending entity.
    """
    if not isinstance(data, dict):
        raise MetadataError("Metadata root must be an object of entity definitions.")

    entities: EntityDefs = {}
    for name, raw in data.items():
        try:
            entities[name] = EntityDef.model_validate(raw)
        except ValidationError as exc:
            raise MetadataError(f"Invalid definition for entity '{name}': {exc}") from exc
    return entities


class MetadataProvider:
    """
    Supplies the entity declaration tree to the rebuild engine.

    Args:
        path: Directory of ``<Entity>.json`` files or a single JSON file.

    Example::

        provider = MetadataProvider("metadata")
        defs = provider.get_data(["Account"])
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._data: EntityDefs | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetadataProvider":
        """Build a provider over in-memory definitions (validated eagerly)."""
        provider = cls()
        provider._data = parse_entity_defs(data)
        return provider

    def reload(self) -> None:
        """Forget cached definitions so the next read goes back to disk."""
        if self._path is not None:
            self._data = None

    def get_data(self, entity_list: Iterable[str] | None = None) -> EntityDefs:
        """
        Return validated entity definitions, optionally only the named ones.

        Raises:
            MetadataError: On unreadable files, invalid JSON, failed
                           validation or an unknown name in *entity_list*.
        """
        if self._data is None:
            self._data = self._load()
        if entity_list is None:
            return dict(self._data)

        selected: EntityDefs = {}
        for name in entity_list:
            if name not in self._data:
                raise MetadataError(f"Unknown entity '{name}'.")
            selected[name] = self._data[name]
        return selected

    @property
    def entity_names(self) -> list[str]:
        return list(self.get_data().keys())

    def _load(self) -> EntityDefs:
        if self._path is None:
            return {}
        if self._path.is_dir():
            raw: dict[str, Any] = {}
            for file in sorted(self._path.glob("*.json")):
                raw[file.stem] = _read_json(file)
        elif self._path.exists():
            raw = _read_json(self._path)
        else:
            raise MetadataError(f"Metadata path not found: {self._path}")

        entities = parse_entity_defs(raw)
        log.info("Loaded metadata for %d entit(y/ies) from '%s'.", len(entities), self._path)
        return entities


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise MetadataError(f"Cannot read metadata file '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MetadataError(f"Corrupt metadata file '{path}': {exc}") from exc
