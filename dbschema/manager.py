"""
dbschema/manager.py
-------------------
Schema manager: reconciles the live database with entity metadata.

Rebuild sequence::

    IDLE → CONVERTING → READING_LIVE → PRE_HOOKS → DIFFING → EXECUTING
         → POST_HOOKS → SUCCESS | FAILED

Design Decisions:
    * The manager is a plain class with injected dependencies (database,
      metadata provider, config, optionally registry/reader/actions).
      No global state beyond the config default.
    * Conversion, live-read and pre-hook failures abort the rebuild before
      any statement runs. Statement failures do not: every statement is
      attempted, each failure is logged at ALERT with its traceback and
      kept in the result. There is no rollback.
    * Post hooks run whenever execution was reached; their failure makes
      the whole rebuild fail even if every statement succeeded.
    * Progress is reported via a callback (``progress_cb``) so a CLI can
      display statement progress without coupling to this module.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable

from config import CONFIG, AppConfig
from dbschema.comparator import SchemaComparator
from dbschema.converter import ConversionFailed, MetadataConverter
from dbschema.database import DatabaseError
from dbschema.emitter import SqlEmitter
from dbschema.hooks import RebuildActionRunner, RebuildPhase
from dbschema.reader import LiveSchemaReader
from dbschema.types import TypeRegistry
from logger import ALERT, get_logger
from models.diff import SchemaDiff
from models.metadata import MetadataError
from models.snapshot import SchemaSnapshot

log = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]  # message, current, total


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class RebuildState(str, Enum):
    IDLE = "idle"
    CONVERTING = "converting"
    READING_LIVE = "reading_live"
    PRE_HOOKS = "pre_hooks"
    DIFFING = "diffing"
    EXECUTING = "executing"
    POST_HOOKS = "post_hooks"
    SUCCESS = "success"
    FAILED = "failed"


class StatementFailed(Exception):
    """A single schema statement failed to execute."""

    def __init__(self, sql: str, error: BaseException) -> None:
        super().__init__(f"{error} | SQL: {sql}")
        self.sql = sql
        self.__cause__ = error


@dataclass
class StatementResult:
    """Outcome of one executed statement."""
    sql: str
    success: bool
    error: StatementFailed | None = None


@dataclass
class RebuildResult:
    """Outcome of a rebuild. Truthy exactly when the rebuild succeeded."""
    success: bool = False
    state: RebuildState = RebuildState.IDLE
    statements: list[StatementResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def __bool__(self) -> bool:
        return self.success

    @property
    def failed_statements(self) -> list[StatementResult]:
        return [s for s in self.statements if not s.success]

    def __str__(self) -> str:
        status = "OK" if self.success else "FAILED"
        executed = len(self.statements) - len(self.failed_statements)
        parts = [
            f"[{status}] {executed}/{len(self.statements)} statement(s) executed "
            f"in {self.elapsed_seconds:.2f}s"
        ]
        if self.errors:
            parts.append(f"  Errors: {'; '.join(self.errors)}")
        return "\n".join(parts)


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class SchemaManager:
    """
    Drives schema rebuilds for one database.

    Args:
        database:        Connected :class:`DatabaseManager` (anything with
                         ``platform``, ``execute`` and ``fetch_all``).
        metadata:        :class:`MetadataProvider` supplying entity definitions.
        config:          Application configuration.
        type_registry:   Pre-built registry. Built from the built-in types and
                         ``config.schema.field_types_path`` when omitted.
        reader:          Live schema reader. Defaults to one on the registry's
                         platform.
        rebuild_actions: Hook runner. Discovered from the built-in package and
                         ``config.schema.rebuild_actions_path`` when omitted.
        progress_cb:     Optional callback ``(message, current, total)``.

    Raises:
        TypeResolutionFailed: If a field type cannot be loaded.
        DiscoveryError:       If a rebuild action file cannot be imported.

    Example::

        with DatabaseManager.from_config(password) as db:
            manager = SchemaManager(db, MetadataProvider(CONFIG.schema.metadata_path))
            result = manager.rebuild(["Account"])
            print(result)
    """

    def __init__(
        self,
        database: Any,
        metadata: Any,
        config: AppConfig = CONFIG,
        type_registry: TypeRegistry | None = None,
        reader: LiveSchemaReader | None = None,
        rebuild_actions: RebuildActionRunner | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> None:
        self._db = database
        self._metadata = metadata
        self._config = config

        if type_registry is None:
            type_registry = TypeRegistry(database.platform)
            type_registry.load_builtin_types()
            type_registry.discover(config.schema.field_types_path)
        self._types = type_registry

        self._converter = MetadataConverter(type_registry)
        self._reader = reader if reader is not None else LiveSchemaReader(type_registry.platform)
        self._comparator = SchemaComparator()
        self._emitter = SqlEmitter(type_registry.platform)
        if rebuild_actions is None:
            rebuild_actions = RebuildActionRunner(
                metadata, config, database, path=config.schema.rebuild_actions_path
            )
        self._actions = rebuild_actions
        self._progress_cb = progress_cb or self._default_progress
        self.state = RebuildState.IDLE

    @staticmethod
    def _default_progress(msg: str, current: int, total: int) -> None:
        log.debug("%s (%d/%d)", msg, current, total)

    @property
    def type_registry(self) -> TypeRegistry:
        return self._types

    @property
    def rebuild_actions(self) -> RebuildActionRunner:
        return self._actions

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def get_metadata_schema(self, entity_list: Iterable[str] | None = None) -> SchemaSnapshot:
        """
        Target snapshot for *entity_list* (all entities when ``None``).

        Raises:
            ConversionFailed: Also for unreadable or invalid metadata.
        """
        try:
            entity_defs = self._metadata.get_data()
        except MetadataError as exc:
            raise ConversionFailed(str(exc)) from exc
        return self._converter.process(entity_defs, entity_list)

    def get_current_schema(self) -> SchemaSnapshot:
        """Live snapshot. Raises :class:`DatabaseError` on query failure."""
        return self._reader.read(self._db)

    # ------------------------------------------------------------------
    # SQL
    # ------------------------------------------------------------------

    def get_diff_sql(self, from_schema: SchemaSnapshot, to_schema: SchemaSnapshot) -> list[str]:
        """Statements turning *from_schema* into *to_schema*."""
        return self.to_sql(self._comparator.compare(from_schema, to_schema))

    def to_sql(self, diff: SchemaDiff) -> list[str]:
        """Render *diff*, honouring the configured save mode."""
        return self._emitter.emit(diff, save_mode=self._config.schema.save_mode)

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    def rebuild(self, entity_list: Iterable[str] | None = None) -> RebuildResult:
        """
        Bring the database in line with the metadata.

        Args:
            entity_list: Restrict the rebuild to these entities. Live tables
                         outside the resulting target are left untouched.

        Returns:
            RebuildResult: truthy on success, with per-statement outcomes.
        """
        started = time.perf_counter()
        result = RebuildResult()
        if entity_list is not None:
            entity_list = list(entity_list)

        self._enter(RebuildState.CONVERTING)
        self._metadata.reload()
        try:
            target = self.get_metadata_schema(entity_list)
        except ConversionFailed as exc:
            return self._abort(result, exc, started)

        self._enter(RebuildState.READING_LIVE)
        try:
            current = self.get_current_schema()
        except DatabaseError as exc:
            return self._abort(result, exc, started)
        if entity_list is not None:
            current = current.restricted_to(target.table_names)

        self._enter(RebuildState.PRE_HOOKS)
        self._actions.init(current, target)
        before = self._actions.execute(RebuildPhase.BEFORE)
        if not before:
            return self._abort(result, before.error, started)

        self._enter(RebuildState.DIFFING)
        queries = self.get_diff_sql(current, target)
        log.info("Rebuild: %d statement(s) to execute.", len(queries))

        self._enter(RebuildState.EXECUTING)
        for position, sql in enumerate(queries, start=1):
            self._progress_cb("Executing schema statement", position, len(queries))
            log.info("SCHEMA, Execute Query: %s", sql)
            try:
                self._db.execute(sql)
            except DatabaseError as exc:
                failure = StatementFailed(sql, exc)
                log.log(ALERT, "Rebuild database fault: %s", failure, exc_info=exc)
                result.statements.append(StatementResult(sql, False, failure))
                result.errors.append(str(failure))
                continue
            result.statements.append(StatementResult(sql, True))

        self._enter(RebuildState.POST_HOOKS)
        after = self._actions.execute(RebuildPhase.AFTER)
        if not after:
            log.log(ALERT, "Rebuild database fault: %s", after.error, exc_info=after.error)
            result.errors.append(str(after.error))

        result.success = not result.errors
        return self._finish(result, RebuildState.SUCCESS if result.success else RebuildState.FAILED, started)

    def _enter(self, state: RebuildState) -> None:
        log.debug("Rebuild state: %s → %s", self.state.value, state.value)
        self.state = state

    def _abort(self, result: RebuildResult, exc: BaseException | None, started: float) -> RebuildResult:
        log.log(ALERT, "Rebuild database fault: %s", exc, exc_info=exc)
        result.errors.append(str(exc))
        result.success = False
        return self._finish(result, RebuildState.FAILED, started)

    def _finish(self, result: RebuildResult, state: RebuildState, started: float) -> RebuildResult:
        self._enter(state)
        result.state = state
        result.elapsed_seconds = time.perf_counter() - started
        log.info("Rebuild finished: %s", str(result).splitlines()[0])
        return result
