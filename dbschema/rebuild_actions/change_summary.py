"""
dbschema/rebuild_actions/change_summary.py
------------------------------------------
Logs what a rebuild is about to do to the table set.
"""
from __future__ import annotations

from dbschema.hooks import RebuildAction, RebuildPhase


class ChangeSummary(RebuildAction):
    """Before the rebuild: list new tables and live tables the metadata does not know."""

    phases = frozenset({RebuildPhase.BEFORE})

    def before_rebuild(self) -> None:
        if self.current_schema is None or self.metadata_schema is None:
            return

        live = {name.lower() for name in self.current_schema.table_names}
        target = {name.lower() for name in self.metadata_schema.table_names}

        created = sorted(name for name in self.metadata_schema.table_names if name.lower() not in live)
        unknown = sorted(name for name in self.current_schema.table_names if name.lower() not in target)

        if created:
            self.log.info("Tables to create: %s", ", ".join(created))
        if unknown:
            self.log.info("Live tables not described by metadata: %s", ", ".join(unknown))
