"""
tests/test_converter.py
------------------------
Unit tests for dbschema/converter.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import pytest

from dbschema.converter import ConversionFailed, MetadataConverter, make_identifier, to_underscore
from dbschema.platforms import MySQLPlatform, PostgreSQLPlatform
from dbschema.types import TypeRegistry
from models.metadata import parse_entity_defs


def _converter(platform=None) -> MetadataConverter:
    registry = TypeRegistry(platform or MySQLPlatform())
    registry.load_builtin_types()
    return MetadataConverter(registry)


@pytest.fixture
def converter() -> MetadataConverter:
    return _converter()


@pytest.fixture
def crm_defs():
    return parse_entity_defs({
        "Account": {
            "fields": {
                "id": {"type": "id"},
                "name": {"type": "varchar", "maxLength": 150, "required": True},
                "industry": {"type": "enum", "index": True},
                "amount": {"type": "currency"},
                "deleted": {"type": "bool"},
            },
            "links": {
                "assignedUser": {"type": "belongsTo", "entity": "User", "onDelete": "SET NULL"},
                "teams": {"type": "manyMany", "entity": "Team", "relationName": "entityTeam"},
                "contacts": {"type": "hasMany", "entity": "Contact"},
            },
            "indexes": {"nameIndustry": {"columns": ["name", "industry"]}},
        },
        "User": {"fields": {"id": {"type": "id"}, "userName": {"type": "varchar", "unique": True}}},
        "Team": {
            "fields": {"id": {"type": "id"}},
            "links": {"accounts": {"type": "manyMany", "entity": "Account", "relationName": "entityTeam"}},
        },
    })


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------

class TestNaming:
    @pytest.mark.parametrize(
        "name, expected",
        [("firstName", "first_name"), ("SalesOrder", "sales_order"), ("id", "id"), ("address2Street", "address2_street")],
    )
    def test_to_underscore(self, name: str, expected: str) -> None:
        assert to_underscore(name) == expected

    def test_short_identifier(self) -> None:
        assert make_identifier("idx", "account", ["name"]) == "idx_account_name"

    def test_long_identifier_is_hashed(self) -> None:
        name = make_identifier("uniq", "a_really_long_relation_table_name", ["first_column_id", "second_column_id"])
        assert len(name) == 60
        assert name.startswith("uniq_a_really_long")
        assert name == make_identifier(
            "uniq", "a_really_long_relation_table_name", ["first_column_id", "second_column_id"]
        )


# ---------------------------------------------------------------------------
# Basic tables
# ---------------------------------------------------------------------------

class TestBasicConversion:
    def test_minimal_account(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs(
            {"Account": {"fields": {"name": {"type": "varchar", "maxLength": 50, "required": True}}}}
        )
        snapshot = converter.process(defs)
        assert snapshot.table_names == ["account"]
        table = snapshot.get_table("account")
        assert len(table.columns) == 1
        column = table.columns[0]
        assert column.name == "name"
        assert column.type == "varchar"
        assert column.length == 50
        assert column.nullable is False
        assert table.indexes == ()

    def test_snake_case_table_and_columns(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"SalesOrder": {"fields": {"firstName": {"type": "varchar"}}}})
        table = converter.process(defs).get_table("sales_order")
        assert table.column_names == ["first_name"]
        assert table.columns[0].length == 255

    def test_table_name_override(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"Account": {"tableName": "crm_accounts", "fields": {}}})
        assert converter.process(defs).table_names == ["crm_accounts"]

    def test_skip_rebuild_and_not_storable(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({
            "Account": {"fields": {"name": {"type": "varchar"}, "fullName": {"type": "varchar", "notStorable": True}}},
            "Report": {"skipRebuild": True, "fields": {"name": {"type": "varchar"}}},
        })
        snapshot = converter.process(defs)
        assert snapshot.table_names == ["account"]
        assert snapshot.get_table("account").column_names == ["name"]

    def test_db_type_override(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"Note": {"fields": {"body": {"type": "text", "dbType": "mediumtext"}}}})
        assert converter.process(defs).get_table("note").columns[0].type == "mediumtext"

    def test_primary_key_index(self, converter: MetadataConverter, crm_defs) -> None:
        table = converter.process(crm_defs).get_table("account")
        pk = table.primary_key
        assert pk is not None and pk.name == "PRIMARY"
        assert pk.columns == ("id",)
        id_column = table.get_column("id")
        assert (id_column.type, id_column.length, id_column.nullable) == ("varchar", 24, False)

    def test_field_and_entity_indexes(self, converter: MetadataConverter, crm_defs) -> None:
        snapshot = converter.process(crm_defs)
        account = snapshot.get_table("account")
        assert account.get_index("idx_account_industry").columns == ("industry",)
        assert account.get_index("idx_account_name_industry").columns == ("name", "industry")
        user_index = snapshot.get_table("user").get_index("uniq_user_user_name")
        assert user_index.unique

    def test_currency_and_bool_columns(self, converter: MetadataConverter, crm_defs) -> None:
        account = converter.process(crm_defs).get_table("account")
        amount = account.get_column("amount")
        assert (amount.type, amount.precision, amount.scale) == ("decimal", 13, 4)
        deleted = account.get_column("deleted")
        assert (deleted.type, deleted.default, deleted.nullable) == ("bool", "0", False)
        assert deleted.logical_type == "bool"

    def test_logical_type_not_part_of_equality(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"A": {"fields": {"code": {"type": "enum"}}}})
        column = converter.process(defs).get_table("a").columns[0]
        assert column.logical_type == "enum"
        assert column == column.__class__(name="code", type="varchar", length=255)

    def test_output_is_deterministic(self, converter: MetadataConverter, crm_defs) -> None:
        assert converter.process(crm_defs) == converter.process(crm_defs)


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------

class TestLinks:
    def test_belongs_to(self, converter: MetadataConverter, crm_defs) -> None:
        account = converter.process(crm_defs).get_table("account")
        column = account.get_column("assigned_user_id")
        assert (column.type, column.length, column.nullable, column.autoincrement) == ("varchar", 24, True, False)
        assert account.get_index("idx_account_assigned_user_id") is not None
        fk = account.get_foreign_key("fk_account_assigned_user_id")
        assert fk.foreign_table == "user"
        assert fk.foreign_columns == ("id",)
        assert fk.on_delete == "SET NULL"

    def test_belongs_to_int_id_drops_autoincrement(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({
            "Order": {"fields": {"id": {"type": "intId"}}},
            "Line": {
                "fields": {"id": {"type": "intId"}},
                "links": {"order": {"type": "belongsTo", "entity": "Order", "required": True}},
            },
        })
        column = converter.process(defs).get_table("line").get_column("order_id")
        assert (column.type, column.autoincrement, column.nullable) == ("int", False, False)

    def test_belongs_to_parent(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({
            "Note": {"fields": {"id": {"type": "id"}}, "links": {"parent": {"type": "belongsToParent"}}}
        })
        note = converter.process(defs).get_table("note")
        assert note.get_column("parent_id").length == 24
        assert note.get_column("parent_type").length == 100
        assert note.get_index("idx_note_parent_type_parent_id").columns == ("parent_type", "parent_id")
        assert note.foreign_keys == ()

    def test_many_many_relation_table_built_once(self, converter: MetadataConverter, crm_defs) -> None:
        snapshot = converter.process(crm_defs)
        assert snapshot.table_names == ["account", "entity_team", "team", "user"]
        relation = snapshot.get_table("entity_team")
        assert relation.column_names == ["id", "account_id", "team_id"]
        id_column = relation.get_column("id")
        assert id_column.autoincrement and not id_column.nullable
        assert not relation.get_column("account_id").nullable
        assert relation.get_index("uniq_entity_team_account_id_team_id").unique
        assert {fk.foreign_table for fk in relation.foreign_keys} == {"account", "team"}
        assert all(fk.on_delete == "CASCADE" for fk in relation.foreign_keys)

    def test_relation_table_same_from_either_side(self, converter: MetadataConverter, crm_defs) -> None:
        from_account = converter.process(crm_defs, ["Account"]).get_table("entity_team")
        from_team = converter.process(crm_defs, ["Team"]).get_table("entity_team")
        assert from_account == from_team

    def test_mid_keys(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({
            "User": {
                "fields": {"id": {"type": "id"}},
                "links": {
                    "followers": {
                        "type": "manyMany", "entity": "User", "relationName": "userFollower",
                        "midKeys": ["userId", "followerId"],
                    }
                },
            }
        })
        relation = converter.process(defs).get_table("user_follower")
        assert relation.column_names == ["id", "follower_id", "user_id"]

    def test_self_relation_without_mid_keys_fails(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({
            "User": {
                "fields": {"id": {"type": "id"}},
                "links": {"friends": {"type": "manyMany", "entity": "User", "relationName": "userFriend"}},
            }
        })
        with pytest.raises(ConversionFailed, match="midKeys"):
            converter.process(defs)


# ---------------------------------------------------------------------------
# Filtering and failures
# ---------------------------------------------------------------------------

class TestFilterAndFailures:
    def test_entity_filter(self, converter: MetadataConverter, crm_defs) -> None:
        snapshot = converter.process(crm_defs, ["User"])
        assert snapshot.table_names == ["user"]

    def test_filter_keeps_relation_tables(self, converter: MetadataConverter, crm_defs) -> None:
        snapshot = converter.process(crm_defs, ["Account"])
        assert snapshot.table_names == ["account", "entity_team"]

    def test_unknown_entity_in_filter(self, converter: MetadataConverter, crm_defs) -> None:
        with pytest.raises(ConversionFailed, match="Ghost"):
            converter.process(crm_defs, ["Ghost"])

    def test_unknown_field_type(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"Place": {"fields": {"location": {"type": "geoPoint"}}}})
        with pytest.raises(ConversionFailed, match="Place.location"):
            converter.process(defs)

    def test_unknown_link_target(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"Call": {"links": {"lead": {"type": "belongsTo", "entity": "Lead"}}}})
        with pytest.raises(ConversionFailed, match="Lead"):
            converter.process(defs)

    def test_target_without_primary_key(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({
            "Lead": {"fields": {"name": {"type": "varchar"}}},
            "Call": {"links": {"lead": {"type": "belongsTo", "entity": "Lead"}}},
        })
        with pytest.raises(ConversionFailed, match="no primary key"):
            converter.process(defs)

    def test_index_on_unknown_column(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"A": {"fields": {}, "indexes": {"byName": {"columns": ["name"]}}}})
        with pytest.raises(ConversionFailed, match="byName"):
            converter.process(defs)

    def test_two_entities_one_table(self, converter: MetadataConverter) -> None:
        defs = parse_entity_defs({"A": {"tableName": "shared"}, "B": {"tableName": "shared"}})
        with pytest.raises(ConversionFailed, match="shared"):
            converter.process(defs)


class TestPostgresCanonicalTypes:
    def test_long_text_collapses(self) -> None:
        converter = _converter(PostgreSQLPlatform())
        defs = parse_entity_defs({"Note": {"fields": {"body": {"type": "text", "dbType": "longtext"}}}})
        assert converter.process(defs).get_table("note").columns[0].type == "text"
