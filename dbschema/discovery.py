"""
dbschema/discovery.py
---------------------
Plugin class discovery for field types and rebuild actions.

Given a directory (or an importable package) and a capability base class,
returns every subclass defined there. Order is discovery order: files sorted
by name, then classes in the order their module defines them.

Design Decisions:
    * Directory plugins are imported under a private ``_dbschema_plugins``
      namespace so a plugin file named ``json.py`` never shadows a real
      module.
    * Only classes *defined* in the scanned module count; imported base
      classes and helpers are skipped.
    * Classes that set ``abstract = True`` in their own body are skipped.
"""
from __future__ import annotations

import hashlib
import importlib
import importlib.util
import pkgutil
import sys
from pathlib import Path
from types import ModuleType
from typing import TypeVar

from logger import get_logger

log = get_logger(__name__)

T = TypeVar("T", bound=type)

_PLUGIN_NAMESPACE = "_dbschema_plugins"


class DiscoveryError(Exception):
    """Raised when a plugin file or package cannot be imported."""


def classes_in_directory(path: Path | str, base: T) -> list[T]:
    """
    Import every ``*.py`` file under *path* and collect subclasses of *base*.

    Files whose name starts with an underscore are ignored. A missing
    directory yields an empty list.

    Raises:
        DiscoveryError: If a plugin file fails to import.
    """
    directory = Path(path)
    if not directory.is_dir():
        log.debug("Plugin directory '%s' not found, nothing to discover.", directory)
        return []

    tag = hashlib.md5(str(directory.resolve()).encode("utf-8")).hexdigest()[:8]
    found: list[T] = []
    for file in sorted(directory.glob("*.py")):
        if file.name.startswith("_"):
            continue
        module_name = f"{_PLUGIN_NAMESPACE}.{tag}.{file.stem}"
        found.extend(_collect(_import_file(module_name, file), base))

    log.debug("Discovered %d %s class(es) in '%s'.", len(found), base.__name__, directory)
    return found


def classes_in_package(package: str, base: T) -> list[T]:
    """
    Import every submodule of *package* and collect subclasses of *base*.

    Raises:
        DiscoveryError: If the package or one of its modules fails to import.
    """
    try:
        pkg = importlib.import_module(package)
    except ImportError as exc:
        raise DiscoveryError(f"Cannot import plugin package '{package}': {exc}") from exc

    found: list[T] = []
    names = sorted(info.name for info in pkgutil.iter_modules(pkg.__path__))
    for name in names:
        if name.startswith("_"):
            continue
        module_name = f"{package}.{name}"
        try:
            module = importlib.import_module(module_name)
        except Exception as exc:
            raise DiscoveryError(f"Cannot import plugin module '{module_name}': {exc}") from exc
        found.extend(_collect(module, base))
    return found


def _import_file(module_name: str, file: Path) -> ModuleType:
    if module_name in sys.modules:
        return sys.modules[module_name]
    spec = importlib.util.spec_from_file_location(module_name, file)
    if spec is None or spec.loader is None:
        raise DiscoveryError(f"Cannot load plugin file '{file}'.")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        del sys.modules[module_name]
        raise DiscoveryError(f"Cannot import plugin file '{file}': {exc}") from exc
    return module


def _collect(module: ModuleType, base: T) -> list[T]:
    classes: list[T] = []
    for obj in vars(module).values():
        if not isinstance(obj, type) or obj is base:
            continue
        if obj.__module__ != module.__name__ or not issubclass(obj, base):
            continue
        if obj.__dict__.get("abstract", False):
            continue
        classes.append(obj)
    return classes
