"""
tests/test_cli.py
------------------
Unit tests for the command-line entry point (main.py).
Run with: python -m pytest tests/
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

import main
from dbschema.database import DatabaseError
from dbschema.manager import RebuildResult, RebuildState, StatementResult
from models.snapshot import Column, SchemaSnapshot, Table


@pytest.fixture(autouse=True)
def _no_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PASSWORD", "secret")


@pytest.fixture
def fake_db() -> MagicMock:
    db = MagicMock()
    db.__enter__.return_value = db
    db.__exit__.return_value = False
    return db


class TestParser:
    def test_entities_are_optional(self) -> None:
        args = main.build_parser().parse_args(["rebuild"])
        assert args.entities == []
        assert main._entities(args) is None

    def test_entities_collected(self) -> None:
        args = main.build_parser().parse_args(["diff", "Account", "Lead"])
        assert main._entities(args) == ["Account", "Lead"]

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            main.build_parser().parse_args([])


class TestCommands:
    def test_rebuild_exit_codes(self, fake_db: MagicMock, capsys) -> None:
        failed = RebuildResult(
            success=False,
            state=RebuildState.FAILED,
            statements=[StatementResult("DROP TABLE `x`", False)],
            errors=["boom"],
        )
        manager = MagicMock()
        manager.rebuild.side_effect = [RebuildResult(success=True), failed]
        with patch.object(main.DatabaseManager, "from_config", return_value=fake_db), \
                patch.object(main, "SchemaManager", return_value=manager):
            assert main.main(["rebuild"]) == 0
            assert main.main(["rebuild", "Account"]) == 1

        manager.rebuild.assert_called_with(["Account"])
        assert "FAILED: DROP TABLE `x`" in capsys.readouterr().out

    def test_diff_prints_statements(self, fake_db: MagicMock, capsys) -> None:
        manager = MagicMock()
        manager.get_metadata_schema.return_value = SchemaSnapshot.from_tables(
            [Table("account", (Column("name", "varchar"),))]
        )
        manager.get_current_schema.return_value = SchemaSnapshot()
        manager.get_diff_sql.return_value = ["CREATE TABLE `account` (`name` VARCHAR(255) NULL)"]
        with patch.object(main.DatabaseManager, "from_config", return_value=fake_db), \
                patch.object(main, "SchemaManager", return_value=manager):
            assert main.main(["diff"]) == 0
        assert "CREATE TABLE `account` (`name` VARCHAR(255) NULL);" in capsys.readouterr().out

    def test_types_lists_registry(self, capsys) -> None:
        assert main.main(["types"]) == 0
        out = capsys.readouterr().out
        assert "varchar" in out
        assert "currency" in out

    def test_connection_failure(self) -> None:
        with patch.object(main.DatabaseManager, "from_config", side_effect=DatabaseError("refused")):
            assert main.main(["rebuild"]) == 1
