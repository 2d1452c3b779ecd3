"""
dbschema/hooks.py
-----------------
Rebuild actions: user code run before and after schema statements execute.

An action is a :class:`RebuildAction` subclass declaring which phases it
takes part in::

    class WarmCache(RebuildAction):
        phases = frozenset({RebuildPhase.AFTER})

        def after_rebuild(self) -> None:
            self.log.info("Rebuilt %d tables", len(self.metadata_schema))

Actions are discovered once (built-in package first, then the configured
directory) and instantiated fresh for every rebuild, holding the current
and target snapshots of that rebuild only.

Design Decisions:
    * Phase membership is an explicit capability set, not method probing.
    * Within a phase, actions run in discovery order with no isolation:
      the first failure stops the phase and is reported in the
      :class:`HookResult`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from dbschema.discovery import classes_in_directory, classes_in_package
from logger import get_logger
from models.snapshot import SchemaSnapshot

log = get_logger(__name__)

BUILTIN_ACTIONS_PACKAGE = "dbschema.rebuild_actions"


class RebuildPhase(str, Enum):
    BEFORE = "beforeRebuild"
    AFTER = "afterRebuild"


_HANDLERS = {
    RebuildPhase.BEFORE: "before_rebuild",
    RebuildPhase.AFTER: "after_rebuild",
}


class HookFailed(Exception):
    """A rebuild action raised during its phase."""

    def __init__(self, phase: RebuildPhase, action: str, error: BaseException) -> None:
        super().__init__(f"{phase.value} action '{action}' failed: {error}")
        self.phase = phase
        self.action = action
        self.__cause__ = error


@dataclass
class HookResult:
    """Outcome of running one phase."""
    phase: RebuildPhase
    success: bool = True
    executed: list[str] = field(default_factory=list)
    failed_action: str | None = None
    error: HookFailed | None = None

    def __bool__(self) -> bool:
        return self.success


class RebuildAction:
    """
    Capability base class for rebuild actions.

    Attributes:
        phases:          Phases this action runs in.
        metadata:        The metadata provider of the running manager.
        config:          Application configuration.
        database:        Open database connection.
        log:             Logger scoped to the action.
        current_schema:  Live snapshot read for this rebuild (or ``None``).
        metadata_schema: Target snapshot built for this rebuild (or ``None``).
    """
    abstract = True

    phases: frozenset[RebuildPhase] = frozenset()

    def __init__(
        self,
        metadata: Any,
        config: Any,
        database: Any,
        log: logging.Logger | None = None,
    ) -> None:
        self.metadata = metadata
        self.config = config
        self.database = database
        self.log = log or get_logger(f"rebuild_actions.{type(self).__name__}")
        self.current_schema: SchemaSnapshot | None = None
        self.metadata_schema: SchemaSnapshot | None = None

    @classmethod
    def get_name(cls) -> str:
        return cls.__name__

    def set_current_schema(self, schema: SchemaSnapshot) -> None:
        self.current_schema = schema

    def set_metadata_schema(self, schema: SchemaSnapshot) -> None:
        self.metadata_schema = schema

    def before_rebuild(self) -> None:
        pass

    def after_rebuild(self) -> None:
        pass


class RebuildActionRunner:
    """
    Discovers rebuild actions and runs them per phase.

    Example::

        runner = RebuildActionRunner(metadata, CONFIG, db, path="custom/rebuild_actions")
        runner.init(current, target)
        if not runner.execute(RebuildPhase.BEFORE):
            ...

    Raises:
        DiscoveryError: At construction, if an action file fails to import.
    """

    def __init__(
        self,
        metadata: Any,
        config: Any,
        database: Any,
        path: Path | str | None = None,
        include_builtin: bool = True,
    ) -> None:
        self._metadata = metadata
        self._config = config
        self._database = database

        classes: list[type[RebuildAction]] = []
        if include_builtin:
            classes.extend(classes_in_package(BUILTIN_ACTIONS_PACKAGE, RebuildAction))
        if path is not None:
            classes.extend(classes_in_directory(path, RebuildAction))
        self._classes = classes
        self._actions: dict[RebuildPhase, list[RebuildAction]] | None = None
        log.debug("Rebuild actions available: %s", [c.get_name() for c in classes])

    @property
    def action_classes(self) -> list[type[RebuildAction]]:
        return list(self._classes)

    def actions(self, phase: RebuildPhase) -> list[RebuildAction]:
        if self._actions is None:
            return []
        return list(self._actions[phase])

    def init(
        self,
        current_schema: SchemaSnapshot | None = None,
        metadata_schema: SchemaSnapshot | None = None,
    ) -> None:
        """Instantiate every action afresh and inject the snapshots."""
        self._actions = self._instantiate(current_schema, metadata_schema)

    def _instantiate(
        self,
        current_schema: SchemaSnapshot | None = None,
        metadata_schema: SchemaSnapshot | None = None,
    ) -> dict[RebuildPhase, list[RebuildAction]]:
        by_phase: dict[RebuildPhase, list[RebuildAction]] = {phase: [] for phase in RebuildPhase}
        for cls in self._classes:
            action = cls(self._metadata, self._config, self._database)
            if current_schema is not None:
                action.set_current_schema(current_schema)
            if metadata_schema is not None:
                action.set_metadata_schema(metadata_schema)
            for phase in RebuildPhase:
                if phase in cls.phases:
                    by_phase[phase].append(action)
        return by_phase

    def execute(self, phase: RebuildPhase) -> HookResult:
        """
        Run every action of *phase* in order, stopping at the first failure.

        Actions are initialized without snapshots if :meth:`init` was never
        called.
        """
        if self._actions is None:
            self._actions = self._instantiate()

        result = HookResult(phase=phase)
        for action in self._actions[phase]:
            name = action.get_name()
            try:
                getattr(action, _HANDLERS[phase])()
            except Exception as exc:
                result.success = False
                result.failed_action = name
                result.error = HookFailed(phase, name, exc)
                return result
            result.executed.append(name)
        return result
