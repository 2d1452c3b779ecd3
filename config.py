"""
config.py
---------
Centralised configuration management for the schema rebuild engine.

Loads settings from environment variables (with .env file support via
python-dotenv if available). Provides typed, validated settings as a
frozen dataclass so configuration is immutable at runtime.

Design Decision:
    Using a dataclass with class-level defaults means the tool works
    "out of the box" without any .env file, while still allowing
    environment-based overrides for production deployments.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

# Optional: load a .env file if python-dotenv is installed
try:
    from dotenv import load_dotenv
    _env_path = Path(__file__).parent / ".env"
    if _env_path.exists():
        load_dotenv(dotenv_path=_env_path)
except ImportError:
    pass  # python-dotenv not installed; rely solely on real env vars


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection settings."""
    platform: str = field(default_factory=lambda: os.getenv("DB_PLATFORM", "mysql").lower())
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("DB_PORT", "3306")))
    name: str = field(default_factory=lambda: os.getenv("DB_NAME", ""))
    user: str = field(default_factory=lambda: os.getenv("DB_USER", ""))
    charset: str = field(default_factory=lambda: os.getenv("DB_CHARSET", "utf8mb4"))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )
    # The password is NOT stored here; it is read from DB_PASSWORD or
    # prompted for at runtime by the CLI.


@dataclass(frozen=True)
class SchemaConfig:
    """Rebuild engine settings."""
    metadata_path: Path = field(
        default_factory=lambda: Path(os.getenv("METADATA_PATH", "metadata"))
    )
    field_types_path: Path = field(
        default_factory=lambda: Path(os.getenv("FIELD_TYPES_PATH", "custom/field_types"))
    )
    rebuild_actions_path: Path = field(
        default_factory=lambda: Path(os.getenv("REBUILD_ACTIONS_PATH", "custom/rebuild_actions"))
    )
    # Save mode never drops tables the metadata does not know about.
    save_mode: bool = field(default_factory=lambda: _env_bool("SCHEMA_SAVE_MODE", "true"))
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    schema: SchemaConfig = field(default_factory=SchemaConfig)
    app_name: str = "Schema Rebuild"
    app_version: str = "1.0.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Returns:
        AppConfig: Fully populated (and frozen) configuration object.

    Example::

        cfg = load_config()
        print(cfg.db.platform)          # "mysql"
        print(cfg.schema.save_mode)     # True
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.schema.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
