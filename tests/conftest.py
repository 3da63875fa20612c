"""
tests/conftest.py
-----------------
Shared fixtures: sample definitions, connection descriptors and a fake
driver factory that records every statement instead of touching a server.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.database import QueryResult
from models.results import ConnectionConfig
from models.schema import (
    ColumnDefinition,
    ConstraintDefinition,
    ConstraintType,
    IndexDefinition,
    ReferentialAction,
    TableDefinition,
)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

@pytest.fixture
def users_table() -> TableDefinition:
    return TableDefinition(
        name="users",
        columns=[
            ColumnDefinition("id", "INTEGER", nullable=False, is_primary_key=True),
            ColumnDefinition("email", "VARCHAR(255)", nullable=False),
            ColumnDefinition("status", "VARCHAR(20)", default_value="active"),
            ColumnDefinition("age", "INTEGER"),
        ],
    )


@pytest.fixture
def orders_table() -> TableDefinition:
    return TableDefinition(
        name="orders",
        columns=[
            ColumnDefinition("id", "INTEGER", nullable=False, is_primary_key=True),
            ColumnDefinition("user_id", "INTEGER", nullable=False),
            ColumnDefinition("total", "DECIMAL", precision=10, scale=2),
        ],
        constraints=[
            ConstraintDefinition(
                "fk_orders_user",
                ConstraintType.FOREIGN_KEY,
                ["user_id"],
                referenced_table="users",
                referenced_columns=["id"],
                on_delete=ReferentialAction.CASCADE,
            ),
        ],
    )


@pytest.fixture
def email_index() -> IndexDefinition:
    return IndexDefinition("idx_users_email", "users", ["email"], unique=True)


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

@pytest.fixture
def mysql_conn() -> ConnectionConfig:
    return ConnectionConfig(id="mysql-test", type="mysql", database="app", username="root")


@pytest.fixture
def pg_conn() -> ConnectionConfig:
    return ConnectionConfig(id="pg-test", type="postgresql", database="app", username="postgres")


@pytest.fixture
def sqlite_conn(tmp_path: Path) -> ConnectionConfig:
    return ConnectionConfig(id="sqlite-test", type="sqlite", database=str(tmp_path / "app.db"))


# ---------------------------------------------------------------------------
# Fake drivers
# ---------------------------------------------------------------------------

def make_fake_driver(config: ConnectionConfig, fail_on: list[str]) -> MagicMock:
    """
    A driver double whose ``query`` records SQL and fails any statement
    containing one of the *fail_on* markers.
    """
    driver = MagicMock()
    driver.config = config
    driver.statements = []

    async def query(sql: str, params=None) -> QueryResult:
        driver.statements.append(sql)
        if any(marker in sql for marker in fail_on):
            return QueryResult(error=f"simulated failure: {sql}")
        return QueryResult(row_count=0)

    driver.query = AsyncMock(side_effect=query)
    driver.connect = AsyncMock()
    driver.disconnect = AsyncMock()
    driver.is_connected = AsyncMock(return_value=True)
    return driver


@pytest.fixture
def driver_factory() -> Callable[[ConnectionConfig], MagicMock]:
    """
    Factory handing out fake drivers.

    ``driver_factory.created`` lists every driver built and appending to
    ``driver_factory.fail_on`` makes matching statements fail.
    """
    created: list[MagicMock] = []
    fail_on: list[str] = []

    def factory(config: ConnectionConfig) -> MagicMock:
        driver = make_fake_driver(config, fail_on)
        created.append(driver)
        return driver

    factory.created = created
    factory.fail_on = fail_on
    return factory
