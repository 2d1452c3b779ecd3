"""
dbschema/database.py
--------------------
Database connection management and statement execution.

Design Decisions:
    * ``DatabaseManager`` is a context manager so callers can use it with
      ``with`` statements and be guaranteed the connection is closed on exit.
    * One manager wraps either driver: mysql-connector-python for MySQL /
      MariaDB, psycopg2 for PostgreSQL. Driver errors never leak; they are
      wrapped in :class:`DatabaseError`.
    * Connections run in autocommit mode. DDL is not transactional on MySQL
      anyway, and the rebuild engine executes statements one by one on a
      best-effort basis.
    * Retry logic is implemented for transient connection errors using
      exponential back-off (configurable via ``max_retries`` / ``retry_delay``).
    * Rows are returned as dicts keyed by lower-case column alias so the
      introspection code is driver-agnostic.
"""
from __future__ import annotations

import time
from typing import Any

import mysql.connector
import psycopg2
from psycopg2.extras import RealDictCursor

from config import CONFIG
from dbschema.platforms import Platform, get_platform
from logger import get_logger

log = get_logger(__name__)

_POSTGRES_NAMES = {"postgresql", "postgres"}


class DatabaseError(Exception):
    """Raised for database-level failures reported by this module."""


class ConnectionLostError(DatabaseError):
    """Raised when the connection to the server is detected as lost."""


class DatabaseManager:
    """
    Connection wrapper for the schema rebuild engine.

    Provides:
        * Lazy connect / reconnect with retry back-off.
        * Context-manager support (``with DatabaseManager(...) as db``).
        * ``execute`` for DDL and ``fetch_all`` for introspection queries.
        * The dialect :class:`Platform` matching the server.

    Example::

        with DatabaseManager("mysql", host="localhost", port=3306,
                             user="root", password="secret",
                             database="crm") as db:
            rows = db.fetch_all(db.platform.TABLES_SQL)
    """

    def __init__(
        self,
        platform: str,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self._platform_name = platform.lower()
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._database = database
        self._charset = charset
        self._connect_timeout = connect_timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        self._platform = get_platform(self._platform_name)
        self._conn: Any = None

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, password: str) -> "DatabaseManager":
        """Convenience factory using values from the application config."""
        return cls(
            platform=CONFIG.db.platform,
            host=CONFIG.db.host,
            port=CONFIG.db.port,
            user=CONFIG.db.user,
            password=password,
            database=CONFIG.db.name,
            charset=CONFIG.db.charset,
            connect_timeout=CONFIG.db.connect_timeout,
        )

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "DatabaseManager":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            log.warning("Unhandled exception in DatabaseManager context: %s", exc_val)
        self.close()
        return False  # Never suppress exceptions

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def platform(self) -> Platform:
        return self._platform

    @property
    def database(self) -> str:
        return self._database

    @property
    def is_postgres(self) -> bool:
        return self._platform_name in _POSTGRES_NAMES

    def connect(self) -> None:
        """
        Open (or re-open) the connection with exponential back-off retries.

        Raises:
            DatabaseError: If connection fails after all retries.
        """
        for attempt in range(1, self._max_retries + 1):
            try:
                log.info(
                    "Connecting to %s at %s:%s/%s (attempt %d/%d)",
                    self._platform.name, self._host, self._port, self._database,
                    attempt, self._max_retries,
                )
                self._conn = self._open()
                log.info("Connected to %s successfully.", self._platform.name)
                return
            except (mysql.connector.Error, psycopg2.Error) as exc:
                log.warning("Connection attempt %d failed: %s", attempt, exc)
                if attempt < self._max_retries:
                    time.sleep(self._retry_delay * attempt)
        raise DatabaseError(
            f"Could not connect to {self._platform.name} at {self._host}:{self._port} "
            f"after {self._max_retries} attempts."
        )

    def _open(self) -> Any:
        if self.is_postgres:
            conn = psycopg2.connect(
                host=self._host,
                port=self._port,
                user=self._user,
                password=self._password,
                database=self._database,
                connect_timeout=self._connect_timeout,
                cursor_factory=RealDictCursor,
            )
            conn.autocommit = True
            return conn
        return mysql.connector.connect(
            host=self._host,
            port=self._port,
            user=self._user,
            password=self._password,
            database=self._database,
            charset=self._charset,
            connect_timeout=self._connect_timeout,
            autocommit=True,
        )

    def close(self) -> None:
        """Close the connection, logging any cleanup errors."""
        try:
            if self.is_connected:
                self._conn.close()
                log.info("Database connection closed.")
        except (mysql.connector.Error, psycopg2.Error) as exc:
            log.warning("Error while closing connection: %s", exc)
        self._conn = None

    @property
    def is_connected(self) -> bool:
        if self._conn is None:
            return False
        if self.is_postgres:
            return self._conn.closed == 0
        return bool(self._conn.is_connected())

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise ConnectionLostError(
                "Database connection is not open. Call connect() first."
            )

    def _cursor(self) -> Any:
        if self.is_postgres:
            return self._conn.cursor()
        return self._conn.cursor(dictionary=True)

    # ------------------------------------------------------------------
    # Public query helpers
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: tuple | None = None) -> int:
        """
        Execute a single SQL statement.

        Args:
            sql:    SQL statement. Use %s placeholders for values.
            params: Tuple of parameter values (optional).

        Returns:
            The number of affected rows reported by the driver.

        Raises:
            ConnectionLostError: If not connected.
            DatabaseError: On execution errors.
        """
        self._ensure_connected()
        cursor = self._cursor()
        try:
            cursor.execute(sql, params)
            return cursor.rowcount
        except (mysql.connector.Error, psycopg2.Error) as exc:
            log.error("SQL execution error: %s | SQL: %.500s", exc, sql)
            raise DatabaseError(str(exc)) from exc
        finally:
            cursor.close()

    def fetch_all(self, sql: str, params: tuple | None = None) -> list[dict[str, Any]]:
        """
        Run a query and return every row as a dict.

        Keys are lower-cased so aliases compare equally across drivers.

        Raises:
            ConnectionLostError: If not connected.
            DatabaseError: On execution errors.
        """
        self._ensure_connected()
        cursor = self._cursor()
        try:
            cursor.execute(sql, params)
            rows = cursor.fetchall() or []
        except (mysql.connector.Error, psycopg2.Error) as exc:
            log.error("SQL query error: %s | SQL: %.500s", exc, sql)
            raise DatabaseError(str(exc)) from exc
        finally:
            cursor.close()
        return [{str(k).lower(): v for k, v in row.items()} for row in rows]
