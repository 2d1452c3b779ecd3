"""
tests/test_type_registry.py
----------------------------
Unit tests for dbschema/types.py and the built-in field types.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from dbschema.platforms import MySQLPlatform, PostgreSQLPlatform
from dbschema.types import FieldType, TypeRegistry, TypeResolutionFailed
from models.metadata import FieldDef


@pytest.fixture
def registry() -> TypeRegistry:
    reg = TypeRegistry(MySQLPlatform())
    reg.load_builtin_types()
    return reg


def _write_plugin(directory: Path, filename: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    p = directory / filename
    p.write_text(textwrap.dedent(content), encoding="utf-8")
    return p


class LongTextType(FieldType):
    name = "varchar"
    db_type_name = "longtext"


# ---------------------------------------------------------------------------
# Built-in types
# ---------------------------------------------------------------------------

class TestBuiltinTypes:
    @pytest.mark.parametrize(
        "logical, native",
        [
            ("id", "varchar"),
            ("intId", "int"),
            ("varchar", "varchar"),
            ("enum", "varchar"),
            ("string", "varchar"),
            ("bigInt", "bigint"),
            ("bool", "bool"),
            ("jsonArray", "json"),
            ("jsonObject", "json"),
            ("currency", "decimal"),
            ("datetime", "datetime"),
        ],
    )
    def test_native_names(self, registry: TypeRegistry, logical: str, native: str) -> None:
        assert registry.resolve_native_name(logical) == native

    def test_lookup_is_case_insensitive(self, registry: TypeRegistry) -> None:
        assert registry.has("JSONARRAY")
        assert "jsonarray" in registry

    def test_names_keep_declared_spelling(self, registry: TypeRegistry) -> None:
        names = registry.names()
        assert "jsonArray" in names
        assert "bigInt" in names

    def test_platform_learns_reverse_mapping(self, registry: TypeRegistry) -> None:
        platform = registry.platform
        assert platform.logical_type_for("decimal") == "currency"
        # Varchar registers last among the varchar-backed types, so it wins the column.
        assert platform.logical_type_for("varchar") == "varchar"

    def test_unknown_type_raises(self, registry: TypeRegistry) -> None:
        with pytest.raises(TypeResolutionFailed, match="geoPoint"):
            registry.resolve_native_name("geoPoint")


# ---------------------------------------------------------------------------
# Registration / override
# ---------------------------------------------------------------------------

class TestRegister:
    def test_override_last_wins(self, registry: TypeRegistry) -> None:
        before = len(registry)
        registry.register("varchar", LongTextType)
        assert len(registry) == before
        assert registry.resolve_native_name("varchar") == "longtext"
        assert registry.platform.logical_type_for("longtext") == "varchar"

    def test_override_forgets_previous_native_type(self) -> None:
        reg = TypeRegistry(MySQLPlatform())
        reg.register("money", "dbschema.field_types.currency:CurrencyType")
        assert reg.platform.logical_type_for("decimal") == "money"

        reg.register("money", "dbschema.field_types.scalar:StringType")

        assert reg.platform.logical_type_for("decimal") is None
        assert reg.platform.logical_type_for("varchar") == "money"

    def test_override_keeps_native_type_claimed_by_another(self) -> None:
        reg = TypeRegistry(MySQLPlatform())
        reg.register("money", "dbschema.field_types.currency:CurrencyType")
        reg.register("currency", "dbschema.field_types.currency:CurrencyType")
        reg.register("money", "dbschema.field_types.scalar:StringType")
        assert reg.platform.logical_type_for("decimal") == "currency"

    def test_register_instance(self, registry: TypeRegistry) -> None:
        instance = LongTextType()
        assert registry.register("notes", instance) is instance
        assert registry.get("notes") is instance

    def test_register_dotted_reference(self, registry: TypeRegistry) -> None:
        registry.register("memo", "dbschema.field_types.scalar:TextType")
        assert registry.resolve_native_name("memo") == "memo"
        assert type(registry.get("memo")).__name__ == "TextType"

    def test_bad_reference_format(self, registry: TypeRegistry) -> None:
        with pytest.raises(TypeResolutionFailed, match="expected"):
            registry.register("memo", "dbschema.field_types.scalar.TextType")

    def test_unimportable_module(self, registry: TypeRegistry) -> None:
        with pytest.raises(TypeResolutionFailed, match="Cannot import"):
            registry.register("memo", "no_such_package.types:Memo")

    def test_missing_attribute(self, registry: TypeRegistry) -> None:
        with pytest.raises(TypeResolutionFailed, match="no attribute"):
            registry.register("memo", "dbschema.field_types.scalar:MemoType")

    def test_not_a_field_type(self, registry: TypeRegistry) -> None:
        with pytest.raises(TypeResolutionFailed, match="not a FieldType"):
            registry.register("memo", dict)

    def test_postgres_collapses_text_variants(self) -> None:
        reg = TypeRegistry(PostgreSQLPlatform())
        reg.register("varchar", LongTextType)
        assert reg.resolve_native_name("varchar") == "text"


# ---------------------------------------------------------------------------
# Directory discovery
# ---------------------------------------------------------------------------

class TestDiscover:
    def test_custom_type_overrides_builtin(self, registry: TypeRegistry, tmp_path: Path) -> None:
        _write_plugin(tmp_path, "money.py", """\
            from dbschema.types import FieldType

            class CurrencyType(FieldType):
                db_type_name = "bigint"

            class GeoPointType(FieldType):
                db_type_name = "varchar"
                default_length = 64
        """)
        assert registry.discover(tmp_path) == 2
        assert registry.resolve_native_name("currency") == "bigint"
        assert registry.resolve_native_name("geoPoint") == "varchar"

    def test_underscore_files_and_imported_bases_skipped(self, registry: TypeRegistry, tmp_path: Path) -> None:
        _write_plugin(tmp_path, "_helpers.py", """\
            from dbschema.types import FieldType

            class HiddenType(FieldType):
                pass
        """)
        _write_plugin(tmp_path, "reexport.py", """\
            from dbschema.field_types.scalar import TextType
        """)
        assert registry.discover(tmp_path) == 0
        assert not registry.has("hidden")

    def test_missing_directory_is_empty(self, registry: TypeRegistry, tmp_path: Path) -> None:
        assert registry.discover(tmp_path / "nowhere") == 0

    def test_broken_plugin_raises(self, registry: TypeRegistry, tmp_path: Path) -> None:
        _write_plugin(tmp_path, "broken.py", "class Oops(:\n")
        with pytest.raises(TypeResolutionFailed, match="broken.py"):
            registry.discover(tmp_path)


# ---------------------------------------------------------------------------
# Column options
# ---------------------------------------------------------------------------

class TestColumnOptions:
    def test_bool_defaults(self, registry: TypeRegistry) -> None:
        options = registry.get("bool").column_options(FieldDef(type="bool"))
        assert options["nullable"] is False
        assert options["default"] == "0"

    def test_required_means_not_null(self, registry: TypeRegistry) -> None:
        options = registry.get("varchar").column_options(FieldDef(type="varchar", required=True))
        assert options["nullable"] is False
        assert options["length"] == 255

    def test_not_null_overrides_required(self, registry: TypeRegistry) -> None:
        field = FieldDef.model_validate({"type": "varchar", "required": True, "notNull": False})
        assert registry.get("varchar").column_options(field)["nullable"] is True

    def test_primary_is_never_nullable(self, registry: TypeRegistry) -> None:
        field = FieldDef.model_validate({"type": "id", "notNull": False})
        options = registry.get("id").column_options(field)
        assert options["nullable"] is False
        assert options["length"] == 24

    def test_currency_default_is_decimal_text(self, registry: TypeRegistry) -> None:
        options = registry.get("currency").column_options(FieldDef(type="currency", default=1.5))
        assert options["default"] == "1.5"
        assert (options["precision"], options["scale"]) == (13, 4)

    def test_json_default_dropped(self, registry: TypeRegistry) -> None:
        options = registry.get("jsonArray").column_options(FieldDef(type="jsonArray", default=[]))
        assert options["default"] is None
