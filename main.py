"""
main.py
-------
Command-line entry point for the schema rebuild engine.

Usage::

    python main.py rebuild               # rebuild every entity
    python main.py rebuild Account Lead  # only these entities
    python main.py diff [Entity ...]     # print statements, execute nothing
    python main.py types                 # list registered field types

Connection settings come from the environment (see ``config.py``); the
password is read from ``DB_PASSWORD`` or prompted for.
"""
from __future__ import annotations

import argparse
import getpass
import os
import sys

from config import CONFIG
from dbschema.converter import ConversionFailed
from dbschema.database import DatabaseError, DatabaseManager
from dbschema.discovery import DiscoveryError
from dbschema.manager import SchemaManager
from dbschema.platforms import get_platform
from dbschema.types import TypeRegistry, TypeResolutionFailed
from logger import get_logger
from models.metadata import MetadataProvider

log = get_logger(__name__)


def _password() -> str:
    password = os.getenv("DB_PASSWORD")
    if password is None:
        password = getpass.getpass(f"Password for {CONFIG.db.user}@{CONFIG.db.host}: ")
    return password


def _entities(args: argparse.Namespace) -> list[str] | None:
    return list(args.entities) if args.entities else None


def cmd_rebuild(args: argparse.Namespace) -> int:
    with DatabaseManager.from_config(_password()) as db:
        manager = SchemaManager(db, MetadataProvider(CONFIG.schema.metadata_path))
        result = manager.rebuild(_entities(args))
    print(result)
    for statement in result.failed_statements:
        print(f"  FAILED: {statement.sql}")
    return 0 if result else 1


def cmd_diff(args: argparse.Namespace) -> int:
    with DatabaseManager.from_config(_password()) as db:
        manager = SchemaManager(db, MetadataProvider(CONFIG.schema.metadata_path))
        entity_list = _entities(args)
        try:
            target = manager.get_metadata_schema(entity_list)
        except ConversionFailed as exc:
            log.error("Cannot convert metadata: %s", exc)
            return 1
        current = manager.get_current_schema()
        if entity_list is not None:
            current = current.restricted_to(target.table_names)
        statements = manager.get_diff_sql(current, target)

    if not statements:
        print("-- Schema is up to date.")
    for sql in statements:
        print(f"{sql};")
    return 0


def cmd_types(args: argparse.Namespace) -> int:
    registry = TypeRegistry(get_platform(CONFIG.db.platform))
    registry.load_builtin_types()
    registry.discover(CONFIG.schema.field_types_path)
    for name in registry.names():
        print(f"{name:<16} {registry.resolve_native_name(name)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbschema",
        description=f"{CONFIG.app_name} {CONFIG.app_version}: reconcile the database with entity metadata.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    rebuild = sub.add_parser("rebuild", help="Apply metadata to the database")
    rebuild.add_argument("entities", nargs="*", help="Restrict to these entities")
    rebuild.set_defaults(func=cmd_rebuild)

    diff = sub.add_parser("diff", help="Print the statements a rebuild would run")
    diff.add_argument("entities", nargs="*", help="Restrict to these entities")
    diff.set_defaults(func=cmd_diff)

    types = sub.add_parser("types", help="List registered field types")
    types.set_defaults(func=cmd_types)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (DatabaseError, DiscoveryError, TypeResolutionFailed) as exc:
        log.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
