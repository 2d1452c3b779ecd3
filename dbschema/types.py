"""
dbschema/types.py
-----------------
Logical field types and the registry that maps them to native columns.

A logical type ("currency", "jsonArray") is what metadata declares; the
native type ("decimal", "json") is what the database stores. Each logical
type is a :class:`FieldType` subclass, registered under its name:

    * ``resolve_native_name("jsonArray")`` → ``"json"`` (explicit override)
    * ``resolve_native_name("bigInt")``    → ``"bigint"`` (lower-cased name)

Design Decisions:
    * Registering an existing name replaces the implementation (last
      registration wins); nothing is ever rejected for being a duplicate.
    * Each registration informs the platform of the native → logical
      mapping so live columns can be tagged with their logical type.
    * The registry is a constructed dependency handed to the converter,
      not process-global state, so tests can build as many as they like.
"""
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Union

from dbschema.discovery import DiscoveryError, classes_in_directory, classes_in_package
from dbschema.platforms import Platform
from logger import get_logger
from models.metadata import FieldDef

log = get_logger(__name__)

BUILTIN_TYPES_PACKAGE = "dbschema.field_types"


class TypeResolutionFailed(Exception):
    """Raised when a logical type or its implementation cannot be resolved."""


class FieldType:
    """
    Capability base class for logical field types.

    Subclasses set class attributes; the defaults describe a nullable column
    whose native type is the lower-cased logical name.

    Attributes:
        name:             Logical name. Empty → derived from the class name
                          (``JsonArrayType`` → ``jsonArray``).
        db_type_name:     Native type override.
        default_length:   Length used when metadata gives none.
        default_precision / default_scale: Same for ``decimal``.
        primary:          Columns of this type form the primary key.
        autoincrement:    Database-generated values.
        not_null:         Columns are NOT NULL unless metadata says otherwise.
        default:          Column default when metadata gives none.
    """
    abstract = True

    name: str = ""
    db_type_name: str | None = None
    default_length: int | None = None
    default_precision: int | None = None
    default_scale: int | None = None
    primary: bool = False
    autoincrement: bool = False
    not_null: bool = False
    default: Any = None

    @classmethod
    def get_name(cls) -> str:
        if cls.name:
            return cls.name
        base = cls.__name__
        if base.endswith("Type") and len(base) > 4:
            base = base[:-4]
        return base[:1].lower() + base[1:]

    @classmethod
    def get_db_type_name(cls) -> str | None:
        return cls.db_type_name

    def column_options(self, field: FieldDef) -> dict[str, Any]:
        """
        Map a field declaration to column attributes.

        This is the custom mapping hook: subclasses may override it to read
        their own metadata keys. The returned dict holds ``length``,
        ``precision``, ``scale``, ``nullable``, ``default`` and
        ``autoincrement``.
        """
        not_null = field.not_null if field.not_null is not None else (field.required or self.not_null)
        if self.primary:
            not_null = True
        autoincrement = self.autoincrement if field.autoincrement is None else field.autoincrement
        default = field.default if field.default is not None else self.default
        return {
            "length": field.max_length or self.default_length,
            "precision": field.precision or self.default_precision,
            "scale": field.scale if field.scale is not None else self.default_scale,
            "nullable": not not_null,
            "default": self.convert_default(default),
            "autoincrement": autoincrement,
        }

    def convert_default(self, value: Any) -> str | None:
        """Turn a metadata default into the plain string stored on a column."""
        if value is None:
            return None
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (list, dict)):
            # Structured defaults (e.g. json types) have no portable literal.
            return None
        return str(value)


Implementation = Union[type[FieldType], FieldType, str]


class TypeRegistry:
    """
    Registry of logical field types for one platform.

    Example::

        registry = TypeRegistry(MySQLPlatform())
        registry.load_builtin_types()
        registry.discover("custom/field_types")
        registry.resolve_native_name("currency")   # "decimal"
    """

    def __init__(self, platform: Platform) -> None:
        self._platform = platform
        self._types: dict[str, FieldType] = {}
        self._names: dict[str, str] = {}

    @property
    def platform(self) -> Platform:
        return self._platform

    def register(self, logical_name: str, implementation: Implementation) -> FieldType:
        """
        Register (or override) *logical_name*.

        Args:
            logical_name:   Name used by metadata ``type`` keys.
            implementation: A :class:`FieldType` subclass, an instance, or a
                            ``"package.module:ClassName"`` reference.

        Raises:
            TypeResolutionFailed: If the implementation cannot be resolved.
        """
        field_type = self._instantiate(logical_name, implementation)
        key = logical_name.lower()
        if key in self._types:
            log.debug("Overriding field type '%s' with %s.", logical_name, type(field_type).__name__)
            previous = self._platform.canonical_type(self._types[key].get_db_type_name() or key)
            self._platform.unregister_type_mapping(previous, self._names[key])
        self._types[key] = field_type
        self._names[key] = logical_name

        native = self.resolve_native_name(logical_name)
        self._platform.register_type_mapping(native, logical_name)
        return field_type

    def register_class(self, cls: type[FieldType]) -> FieldType:
        return self.register(cls.get_name(), cls)

    def load_builtin_types(self) -> int:
        """Register every type shipped in :mod:`dbschema.field_types`."""
        try:
            classes = classes_in_package(BUILTIN_TYPES_PACKAGE, FieldType)
        except DiscoveryError as exc:
            raise TypeResolutionFailed(str(exc)) from exc
        for cls in classes:
            self.register_class(cls)
        return len(classes)

    def discover(self, path: Path | str) -> int:
        """
        Register every :class:`FieldType` subclass found under *path*.

        Raises:
            TypeResolutionFailed: If a plugin file cannot be imported.
        """
        try:
            classes = classes_in_directory(path, FieldType)
        except DiscoveryError as exc:
            raise TypeResolutionFailed(str(exc)) from exc
        for cls in classes:
            self.register_class(cls)
        if classes:
            log.info("Registered %d custom field type(s) from '%s'.", len(classes), path)
        return len(classes)

    def has(self, logical_name: str) -> bool:
        return logical_name.lower() in self._types

    def get(self, logical_name: str) -> FieldType:
        try:
            return self._types[logical_name.lower()]
        except KeyError:
            raise TypeResolutionFailed(f"Unknown field type '{logical_name}'.") from None

    def resolve_native_name(self, logical_name: str) -> str:
        """Native type for *logical_name*, canonicalized for the platform."""
        field_type = self.get(logical_name)
        native = field_type.get_db_type_name() or logical_name.lower()
        return self._platform.canonical_type(native)

    def names(self) -> list[str]:
        return sorted(self._names.values(), key=str.lower)

    def __contains__(self, logical_name: object) -> bool:
        return isinstance(logical_name, str) and self.has(logical_name)

    def __len__(self) -> int:
        return len(self._types)

    @staticmethod
    def _instantiate(logical_name: str, implementation: Implementation) -> FieldType:
        if isinstance(implementation, str):
            implementation = _import_reference(implementation)
        if isinstance(implementation, FieldType):
            return implementation
        if isinstance(implementation, type) and issubclass(implementation, FieldType):
            return implementation()
        raise TypeResolutionFailed(
            f"Implementation for field type '{logical_name}' is not a FieldType: {implementation!r}"
        )


def _import_reference(reference: str) -> Any:
    module_name, _, attr = reference.partition(":")
    if not module_name or not attr:
        raise TypeResolutionFailed(
            f"Invalid type reference '{reference}' (expected 'package.module:ClassName')."
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise TypeResolutionFailed(f"Cannot import '{module_name}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError:
        raise TypeResolutionFailed(f"'{module_name}' has no attribute '{attr}'.") from None
