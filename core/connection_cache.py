"""
core/connection_cache.py
------------------------
Pool of open drivers keyed by connection id.

Design Decisions:
    * One ``asyncio.Lock`` per connection id guards driver creation, so two
      coroutines asking for the same id never open two connections.
    * A second per-id lock serialises statements. A transaction holds it
      from ``BEGIN`` to ``COMMIT`` / ``ROLLBACK`` so nothing else is
      interleaved on the same connection.
    * A cached driver is reused only while it still answers a ping; a dead
      one is disconnected (best effort) and replaced. The ping and any
      reconnect run under the statement lock, so they never land inside
      another coroutine's open transaction.
    * The cache is owned by one :class:`~core.executor.DDLExecutor`; tests
      pass a fresh instance rather than sharing module state.
"""
from __future__ import annotations

import asyncio
from typing import Callable

from core.database import DatabaseDriver, create_driver
from logger import get_logger
from models.results import ConnectionConfig

log = get_logger(__name__)

DriverFactory = Callable[[ConnectionConfig], DatabaseDriver]


class ConnectionCache:
    """
    Connected drivers by ``ConnectionConfig.id``.

    Example::

        cache = ConnectionCache()
        driver = await cache.get_driver(config)
        async with cache.statement_lock(config.id):
            await driver.query("SELECT 1")
        await cache.close_all()
    """

    def __init__(self, driver_factory: DriverFactory = create_driver) -> None:
        self._driver_factory = driver_factory
        self._drivers: dict[str, DatabaseDriver] = {}
        self._create_locks: dict[str, asyncio.Lock] = {}
        self._statement_locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._drivers

    def __len__(self) -> int:
        return len(self._drivers)

    def get(self, connection_id: str) -> DatabaseDriver | None:
        """The cached driver for *connection_id*, without checking it."""
        return self._drivers.get(connection_id)

    def statement_lock(self, connection_id: str) -> asyncio.Lock:
        return self._statement_locks.setdefault(connection_id, asyncio.Lock())

    async def get_driver(self, config: ConnectionConfig) -> DatabaseDriver:
        """
        Return a connected driver for *config*, creating one if needed.

        Takes ``statement_lock(config.id)`` internally; do not call it while
        holding that lock.

        Raises:
            UnsupportedDatabaseError: For an unknown ``config.type``.
            DatabaseError: If a new connection cannot be opened.
        """
        lock = self._create_locks.setdefault(config.id, asyncio.Lock())
        async with lock, self.statement_lock(config.id):
            driver = self._drivers.get(config.id)
            if driver is not None:
                if await driver.is_connected():
                    return driver
                log.info("Connection '%s' is no longer alive; reconnecting.", config.id)
                self._drivers.pop(config.id, None)
                try:
                    await driver.disconnect()
                except Exception as exc:
                    log.warning("Could not close stale connection '%s': %s", config.id, exc)

            driver = self._driver_factory(config)
            await driver.connect()
            self._drivers[config.id] = driver
            return driver

    async def close_all(self) -> None:
        """Disconnect every cached driver. Failures are logged and skipped."""
        drivers = list(self._drivers.items())
        self._drivers.clear()
        for connection_id, driver in drivers:
            try:
                await driver.disconnect()
            except Exception as exc:
                log.warning("Error closing connection '%s': %s", connection_id, exc)
        if drivers:
            log.info("Closed %d cached connection(s).", len(drivers))
