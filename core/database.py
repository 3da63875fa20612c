"""
core/database.py
----------------
Database drivers for MySQL, PostgreSQL and SQLite behind one async interface.

Design Decisions:
    * ``DatabaseDriver`` is the only thing the coordinator talks to. Concrete
      drivers wrap the blocking client libraries (mysql-connector-python,
      psycopg2, sqlite3) and run every call through ``asyncio.to_thread`` so
      the event loop is never blocked.
    * Connections are opened in autocommit mode; transactions are controlled
      explicitly with ``BEGIN`` / ``COMMIT`` / ``ROLLBACK`` statements.
    * ``query`` reports SQL errors in ``QueryResult.error`` instead of
      raising, so one failed statement is data, not a crash. Connection
      failures raise :class:`DatabaseError`.
    * No retry / back-off: a failed connect is reported once and the caller
      decides what to do.
    * Parameterised execution is used for all data values; only generated,
      quoted identifiers are inlined into SQL text.
"""
from __future__ import annotations

import asyncio
import sqlite3
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

import mysql.connector
import psycopg2

from config import CONFIG
from logger import get_logger
from models.results import ConnectionConfig

log = get_logger(__name__)


class DatabaseError(Exception):
    """Raised for database-level failures reported by this module."""


class ConnectionLostError(DatabaseError):
    """Raised when a statement is issued on a driver that is not connected."""


class UnsupportedDatabaseError(DatabaseError):
    """Raised by :func:`create_driver` for an unknown connection type."""


@dataclass
class QueryResult:
    """Rows and row count of one statement, or the error it produced."""
    rows: list[tuple] = field(default_factory=list)
    row_count: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ConnectionStatus:
    connected: bool
    last_connected: datetime | None = None


class DatabaseDriver(ABC):
    """
    Async connection wrapper for one :class:`ConnectionConfig`.

    Subclasses implement the blocking ``_open`` / ``_close`` / ``_ping`` /
    ``_execute`` hooks; this class moves them off the event loop.

    Example::

        driver = create_driver(ConnectionConfig(id="local", type="sqlite", database="app.db"))
        await driver.connect()
        result = await driver.query("SELECT name FROM sqlite_master")
        await driver.disconnect()
    """

    display_name = "database"
    #: Exception types of the client library that mean "statement failed".
    driver_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._conn: Any = None
        self._last_connected: datetime | None = None

    # ------------------------------------------------------------------
    # Blocking hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _open(self) -> Any:
        """Open and return a client connection in autocommit mode."""

    def _close(self) -> None:
        self._conn.close()

    def _ping(self) -> bool:
        return self._conn is not None

    def _execute(self, sql: str, params: Sequence[Any] | None) -> QueryResult:
        cursor = self._conn.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, tuple(params))
            rows = list(cursor.fetchall()) if cursor.description else []
            row_count = cursor.rowcount if cursor.rowcount and cursor.rowcount > 0 else len(rows)
            return QueryResult(rows=rows, row_count=row_count)
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    def _target(self) -> str:
        return f"{self.config.host or CONFIG.db.host}:{self._port()}"

    def _port(self) -> int | None:
        return self.config.port

    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            DatabaseError: If the client library cannot connect.
        """
        log.info("Connecting to %s at %s", self.display_name, self._target())
        try:
            self._conn = await asyncio.to_thread(self._open)
        except self.driver_errors as exc:
            self._conn = None
            raise DatabaseError(
                f"Could not connect to {self.display_name} at {self._target()}: {exc}"
            ) from exc
        self._last_connected = datetime.now(timezone.utc)
        log.info("Connected to %s (%s).", self.display_name, self.config.id)

    async def disconnect(self) -> None:
        """Close the connection; a no-op when already closed."""
        if self._conn is None:
            return
        try:
            await asyncio.to_thread(self._close)
            log.info("%s connection '%s' closed.", self.display_name, self.config.id)
        finally:
            self._conn = None

    async def is_connected(self) -> bool:
        if self._conn is None:
            return False
        try:
            return await asyncio.to_thread(self._ping)
        except self.driver_errors as exc:
            log.debug("Connection check failed for '%s': %s", self.config.id, exc)
            return False

    async def query(self, sql: str, params: Sequence[Any] | None = None) -> QueryResult:
        """
        Execute one statement.

        Raises:
            ConnectionLostError: If :meth:`connect` has not been called.
        """
        if self._conn is None:
            raise ConnectionLostError(
                f"{self.display_name} connection '{self.config.id}' is not open. "
                "Call connect() first."
            )
        start = time.perf_counter()
        try:
            result = await asyncio.to_thread(self._execute, sql, params)
        except self.driver_errors as exc:
            log.debug("SQL execution error: %s | SQL: %.500s", exc, sql)
            return QueryResult(error=str(exc))
        log.debug(
            "Executed in %.1f ms on '%s': %.200s",
            (time.perf_counter() - start) * 1000, self.config.id, sql,
        )
        return result

    async def get_connection_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            connected=await self.is_connected(),
            last_connected=self._last_connected,
        )


class MySQLDriver(DatabaseDriver):
    display_name = "MySQL"
    driver_errors = (mysql.connector.Error,)

    def _port(self) -> int:
        return self.config.port or CONFIG.db.mysql_port

    def _open(self) -> Any:
        options = {
            "host": self.config.host or CONFIG.db.host,
            "port": self._port(),
            "user": self.config.username,
            "password": self.config.password or "",
            "charset": CONFIG.db.charset,
            "connect_timeout": CONFIG.db.connect_timeout,
            "autocommit": True,
        }
        if self.config.database:
            options["database"] = self.config.database
        if not self.config.ssl:
            options["ssl_disabled"] = True
        options.update(self.config.options)
        return mysql.connector.connect(**options)

    def _ping(self) -> bool:
        return bool(self._conn.is_connected())

    def _execute(self, sql: str, params: Sequence[Any] | None) -> QueryResult:
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, tuple(params) if params is not None else None)
            rows = list(cursor.fetchall()) if cursor.with_rows else []
            row_count = cursor.rowcount if cursor.rowcount and cursor.rowcount > 0 else len(rows)
            return QueryResult(rows=rows, row_count=row_count)
        finally:
            cursor.close()


class PostgreSQLDriver(DatabaseDriver):
    display_name = "PostgreSQL"
    driver_errors = (psycopg2.Error,)

    def _port(self) -> int:
        return self.config.port or CONFIG.db.postgres_port

    def _open(self) -> Any:
        options = {
            "host": self.config.host or CONFIG.db.host,
            "port": self._port(),
            "user": self.config.username,
            "password": self.config.password,
            "dbname": self.config.database or None,
            "connect_timeout": CONFIG.db.connect_timeout,
            "sslmode": "require" if self.config.ssl else "prefer",
        }
        options.update(self.config.options)
        conn = psycopg2.connect(**options)
        conn.autocommit = True
        return conn

    def _ping(self) -> bool:
        return self._conn.closed == 0


class SQLiteDriver(DatabaseDriver):
    """
    File or in-memory SQLite database (``database`` is the path;
    empty or ``":memory:"`` opens an in-memory database).
    """
    display_name = "SQLite"
    driver_errors = (sqlite3.Error,)

    def _target(self) -> str:
        return self.config.database or ":memory:"

    def _open(self) -> Any:
        options = {"isolation_level": None, "check_same_thread": False}
        options.update(self.config.options)
        conn = sqlite3.connect(self.config.database or ":memory:", **options)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ping(self) -> bool:
        self._conn.execute("SELECT 1")
        return True


_DRIVERS: dict[str, type[DatabaseDriver]] = {
    "mysql": MySQLDriver,
    "postgresql": PostgreSQLDriver,
    "sqlite": SQLiteDriver,
}


def create_driver(config: ConnectionConfig) -> DatabaseDriver:
    """
    Instantiate (without connecting) the driver for ``config.type``.

    Raises:
        UnsupportedDatabaseError: For an unknown type, before any connection attempt.
    """
    driver_cls = _DRIVERS.get((config.type or "").lower())
    if driver_cls is None:
        raise UnsupportedDatabaseError(f"Unsupported database type: {config.type}")
    return driver_cls(config)
