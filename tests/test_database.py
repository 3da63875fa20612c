"""
tests/test_database.py
----------------------
Tests for core/database.py and core/connection_cache.py.

Drivers are exercised against a real SQLite file under ``tmp_path``;
MySQL / PostgreSQL are covered only up to construction, since no server
is available in the test environment.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from core.connection_cache import ConnectionCache
from core.database import (
    ConnectionLostError,
    DatabaseError,
    MySQLDriver,
    PostgreSQLDriver,
    SQLiteDriver,
    UnsupportedDatabaseError,
    create_driver,
)
from models.results import ConnectionConfig


class TestCreateDriver:
    @pytest.mark.parametrize(
        "type_, cls",
        [("mysql", MySQLDriver), ("PostgreSQL", PostgreSQLDriver), ("sqlite", SQLiteDriver)],
    )
    def test_selects_by_type(self, type_: str, cls: type) -> None:
        driver = create_driver(ConnectionConfig(id="x", type=type_))
        assert isinstance(driver, cls)

    def test_unknown_type(self) -> None:
        with pytest.raises(UnsupportedDatabaseError, match="Unsupported database type: oracle"):
            create_driver(ConnectionConfig(id="x", type="oracle"))


class TestSQLiteDriver:
    @pytest.mark.asyncio
    async def test_connect_query_disconnect(self, sqlite_conn: ConnectionConfig) -> None:
        driver = create_driver(sqlite_conn)
        await driver.connect()
        assert await driver.is_connected()

        created = await driver.query('CREATE TABLE "t" ("id" INTEGER PRIMARY KEY, "name" TEXT)')
        assert created.success
        inserted = await driver.query('INSERT INTO "t" ("name") VALUES (?)', ["alice"])
        assert inserted.row_count == 1
        selected = await driver.query('SELECT "name" FROM "t"')
        assert selected.rows == [("alice",)]

        status = await driver.get_connection_status()
        assert status.connected
        assert status.last_connected is not None

        await driver.disconnect()
        assert not await driver.is_connected()
        await driver.disconnect()  # second close is a no-op

    @pytest.mark.asyncio
    async def test_sql_error_is_reported_not_raised(self, sqlite_conn: ConnectionConfig) -> None:
        driver = create_driver(sqlite_conn)
        await driver.connect()
        try:
            result = await driver.query("SELECT * FROM missing_table")
            assert not result.success
            assert "missing_table" in result.error
        finally:
            await driver.disconnect()

    @pytest.mark.asyncio
    async def test_query_before_connect(self, sqlite_conn: ConnectionConfig) -> None:
        with pytest.raises(ConnectionLostError):
            await create_driver(sqlite_conn).query("SELECT 1")

    @pytest.mark.asyncio
    async def test_explicit_transaction_rolls_back(self, sqlite_conn: ConnectionConfig) -> None:
        driver = create_driver(sqlite_conn)
        await driver.connect()
        try:
            await driver.query("BEGIN")
            await driver.query('CREATE TABLE "tmp" ("id" INTEGER)')
            await driver.query("ROLLBACK")
            tables = await driver.query("SELECT name FROM sqlite_master WHERE name = 'tmp'")
            assert tables.rows == []
        finally:
            await driver.disconnect()

    @pytest.mark.asyncio
    async def test_connect_failure_raises_database_error(self, tmp_path: Path) -> None:
        conn = ConnectionConfig(
            id="bad", type="sqlite", database=str(tmp_path / "missing" / "dir" / "x.db")
        )
        with pytest.raises(DatabaseError, match="Could not connect to SQLite"):
            await create_driver(conn).connect()


class TestConnectionCache:
    @pytest.mark.asyncio
    async def test_reuses_live_driver(self, sqlite_conn: ConnectionConfig, driver_factory) -> None:
        cache = ConnectionCache(driver_factory)
        first = await cache.get_driver(sqlite_conn)
        second = await cache.get_driver(sqlite_conn)
        assert first is second
        assert len(driver_factory.created) == 1
        assert sqlite_conn.id in cache

    @pytest.mark.asyncio
    async def test_recreates_dead_driver(self, sqlite_conn: ConnectionConfig, driver_factory) -> None:
        cache = ConnectionCache(driver_factory)
        first = await cache.get_driver(sqlite_conn)
        first.is_connected.return_value = False
        second = await cache.get_driver(sqlite_conn)
        assert second is not first
        first.disconnect.assert_awaited_once()
        second.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_disconnect_failure_is_tolerated(
        self, sqlite_conn: ConnectionConfig, driver_factory
    ) -> None:
        cache = ConnectionCache(driver_factory)
        first = await cache.get_driver(sqlite_conn)
        first.is_connected.return_value = False
        first.disconnect.side_effect = RuntimeError("socket gone")
        assert await cache.get_driver(sqlite_conn) is not first

    @pytest.mark.asyncio
    async def test_concurrent_requests_create_one_driver(
        self, sqlite_conn: ConnectionConfig, driver_factory
    ) -> None:
        cache = ConnectionCache(driver_factory)
        drivers = await asyncio.gather(*(cache.get_driver(sqlite_conn) for _ in range(5)))
        assert len(driver_factory.created) == 1
        assert all(d is drivers[0] for d in drivers)

    @pytest.mark.asyncio
    async def test_close_all_is_idempotent_and_tolerant(self, driver_factory) -> None:
        cache = ConnectionCache(driver_factory)
        a = await cache.get_driver(ConnectionConfig(id="a", type="sqlite"))
        b = await cache.get_driver(ConnectionConfig(id="b", type="sqlite"))
        a.disconnect.side_effect = RuntimeError("already closed")

        await cache.close_all()
        await cache.close_all()

        b.disconnect.assert_awaited_once()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_real_sqlite_driver(self, sqlite_conn: ConnectionConfig) -> None:
        cache = ConnectionCache()
        driver = await cache.get_driver(sqlite_conn)
        async with cache.statement_lock(sqlite_conn.id):
            assert (await driver.query("SELECT 1")).rows == [(1,)]
        await cache.close_all()
        assert cache.get(sqlite_conn.id) is None
