"""
tests/test_rebuild_actions.py
------------------------------
Unit tests for dbschema/hooks.py and the built-in rebuild actions.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import logging
import sys
import textwrap
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dbschema.discovery import DiscoveryError
from dbschema.hooks import HookFailed, RebuildAction, RebuildActionRunner, RebuildPhase
from dbschema.rebuild_actions.change_summary import ChangeSummary
from models.snapshot import Column, SchemaSnapshot, Table

_ACTIONS = """\
    from dbschema.hooks import RebuildAction, RebuildPhase

    CALLS = []


    class Alpha(RebuildAction):
        phases = frozenset({RebuildPhase.BEFORE, RebuildPhase.AFTER})

        def before_rebuild(self):
            CALLS.append(("Alpha", "before", self.current_schema, self.metadata_schema))

        def after_rebuild(self):
            CALLS.append(("Alpha", "after", self.current_schema, self.metadata_schema))


    class Beta(RebuildAction):
        phases = frozenset({RebuildPhase.BEFORE})

        def before_rebuild(self):
            CALLS.append(("Beta", "before", self))


    class Idle(RebuildAction):
        def before_rebuild(self):
            CALLS.append(("Idle", "before"))
"""

_FAILING = """\
    from dbschema.hooks import RebuildAction, RebuildPhase

    CALLS = []


    class Boom(RebuildAction):
        phases = frozenset({RebuildPhase.BEFORE})

        def before_rebuild(self):
            raise RuntimeError("boom")
"""

_LATE = """\
    from dbschema.hooks import RebuildAction, RebuildPhase

    CALLS = []


    class Zulu(RebuildAction):
        phases = frozenset({RebuildPhase.BEFORE})

        def before_rebuild(self):
            CALLS.append("Zulu")
"""


def _write_action(directory: Path, filename: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    p = directory / filename
    p.write_text(textwrap.dedent(content), encoding="utf-8")
    return p


def _runner(path: Path) -> RebuildActionRunner:
    return RebuildActionRunner(MagicMock(), MagicMock(), MagicMock(), path=path, include_builtin=False)


def _calls(runner: RebuildActionRunner, class_name: str) -> list:
    cls = next(c for c in runner.action_classes if c.__name__ == class_name)
    return sys.modules[cls.__module__].CALLS


@pytest.fixture
def snapshots() -> tuple[SchemaSnapshot, SchemaSnapshot]:
    current = SchemaSnapshot.from_tables([Table("legacy", (Column("id", "int"),))])
    target = SchemaSnapshot.from_tables([Table("account", (Column("name", "varchar"),))])
    return current, target


# ---------------------------------------------------------------------------
# Discovery and phases
# ---------------------------------------------------------------------------

class TestDiscovery:
    def test_classes_in_file_order(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        _write_action(tmp_path, "z_late.py", _LATE)
        runner = _runner(tmp_path)
        assert [c.__name__ for c in runner.action_classes] == ["Alpha", "Beta", "Idle", "Zulu"]

    def test_builtin_actions_come_first(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        runner = RebuildActionRunner(MagicMock(), MagicMock(), MagicMock(), path=tmp_path)
        assert runner.action_classes[0] is ChangeSummary

    def test_broken_action_file(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "broken.py", "import no_such_module_here\n")
        with pytest.raises(DiscoveryError):
            _runner(tmp_path)

    def test_partitioned_by_phase(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        runner = _runner(tmp_path)
        runner.init()
        assert [a.get_name() for a in runner.actions(RebuildPhase.BEFORE)] == ["Alpha", "Beta"]
        assert [a.get_name() for a in runner.actions(RebuildPhase.AFTER)] == ["Alpha"]


class TestExecute:
    def test_snapshots_injected(self, tmp_path: Path, snapshots) -> None:
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        runner = _runner(tmp_path)
        current, target = snapshots
        calls = _calls(runner, "Alpha")
        calls.clear()

        runner.init(current, target)
        result = runner.execute(RebuildPhase.AFTER)

        assert result
        assert result.executed == ["Alpha"]
        assert calls == [("Alpha", "after", current, target)]

    def test_fresh_instances_per_init(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        runner = _runner(tmp_path)
        calls = _calls(runner, "Beta")
        calls.clear()

        runner.init()
        runner.execute(RebuildPhase.BEFORE)
        runner.init()
        runner.execute(RebuildPhase.BEFORE)

        instances = [c[2] for c in calls if c[0] == "Beta"]
        assert len(instances) == 2
        assert instances[0] is not instances[1]

    def test_execute_without_init(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        runner = _runner(tmp_path)
        calls = _calls(runner, "Alpha")
        calls.clear()

        assert runner.execute(RebuildPhase.AFTER)
        assert calls == [("Alpha", "after", None, None)]
        assert [a.get_name() for a in runner.actions(RebuildPhase.AFTER)] == ["Alpha"]

    def test_stops_at_first_failure(self, tmp_path: Path) -> None:
        _write_action(tmp_path, "a_failing.py", _FAILING)
        _write_action(tmp_path, "b_actions.py", _ACTIONS)
        runner = _runner(tmp_path)
        calls = _calls(runner, "Alpha")
        calls.clear()

        result = runner.execute(RebuildPhase.BEFORE)

        assert not result
        assert result.failed_action == "Boom"
        assert isinstance(result.error, HookFailed)
        assert isinstance(result.error.__cause__, RuntimeError)
        assert "beforeRebuild" in str(result.error)
        assert calls == []

    def test_empty_phase_succeeds(self, tmp_path: Path) -> None:
        runner = _runner(tmp_path / "none")
        result = runner.execute(RebuildPhase.AFTER)
        assert result.success
        assert result.executed == []


# ---------------------------------------------------------------------------
# Built-in: ChangeSummary
# ---------------------------------------------------------------------------

class TestChangeSummary:
    def test_logs_new_and_unknown_tables(self, snapshots, caplog: pytest.LogCaptureFixture) -> None:
        current, target = snapshots
        action = ChangeSummary(MagicMock(), MagicMock(), MagicMock())
        action.set_current_schema(current)
        action.set_metadata_schema(target)

        with caplog.at_level(logging.INFO, logger="dbschema"):
            action.before_rebuild()

        assert "Tables to create: account" in caplog.text
        assert "not described by metadata: legacy" in caplog.text

    def test_silent_without_snapshots(self, caplog: pytest.LogCaptureFixture) -> None:
        action = ChangeSummary(MagicMock(), MagicMock(), MagicMock())
        with caplog.at_level(logging.INFO, logger="dbschema"):
            action.before_rebuild()
        assert caplog.text == ""

    def test_is_a_before_action(self) -> None:
        assert ChangeSummary.phases == frozenset({RebuildPhase.BEFORE})
        assert issubclass(ChangeSummary, RebuildAction)
