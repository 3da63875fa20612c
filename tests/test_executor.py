"""
tests/test_executor.py
----------------------
Tests for core/executor.py.

Most tests use the fake driver factory from conftest (statements are
recorded, nothing is sent anywhere); ``TestSQLiteIntegration`` runs the
executor end to end against a real SQLite file.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.connection_cache import ConnectionCache
from core.database import QueryResult
from core.executor import (
    ConstraintOperation,
    DDLExecutor,
    IndexOperation,
    InvalidOperationError,
)
from logger import SQL_LOGGER_NAME
from models.results import ConnectionConfig
from models.schema import (
    ColumnDefinition,
    ConstraintDefinition,
    ConstraintType,
    IndexDefinition,
    TableDefinition,
)

USER_COLUMNS = ["id", "email", "age", "department_id"]


@pytest.fixture
def executor(driver_factory) -> DDLExecutor:
    return DDLExecutor(driver_factory=driver_factory)


def _sent(driver_factory) -> list[str]:
    return [sql for driver in driver_factory.created for sql in driver.statements]


# ---------------------------------------------------------------------------
# execute_ddl / execute_transaction
# ---------------------------------------------------------------------------

class TestExecuteDDL:
    @pytest.mark.asyncio
    async def test_success(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        result = await executor.execute_ddl("CREATE TABLE x (id INT)", pg_conn)
        assert result.success
        assert result.sql == "CREATE TABLE x (id INT)"
        assert result.execution_time >= 0

    @pytest.mark.asyncio
    async def test_driver_is_pooled(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        await executor.execute_ddl("SELECT 1", pg_conn)
        await executor.execute_ddl("SELECT 2", pg_conn)
        assert len(driver_factory.created) == 1

    @pytest.mark.asyncio
    async def test_sql_error_becomes_failed_result(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        driver_factory.fail_on.append("BROKEN")
        result = await executor.execute_ddl("BROKEN SQL", pg_conn)
        assert not result.success
        assert "simulated failure" in result.error

    @pytest.mark.asyncio
    async def test_unknown_database_type_never_raises(self) -> None:
        result = await DDLExecutor().execute_ddl("SELECT 1", ConnectionConfig(id="o", type="oracle"))
        assert not result.success
        assert "Unsupported database type" in result.error

    @pytest.mark.asyncio
    async def test_statements_go_to_sql_logger(
        self, executor: DDLExecutor, driver_factory, pg_conn, caplog
    ) -> None:
        caplog.set_level(logging.DEBUG, logger=SQL_LOGGER_NAME)
        await executor.execute_ddl("CREATE TABLE x (id INT)", pg_conn)
        [record] = [r for r in caplog.records if r.name == SQL_LOGGER_NAME]
        assert record.getMessage().endswith("ok: CREATE TABLE x (id INT)")

    @pytest.mark.asyncio
    async def test_driver_exception_never_raises(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        await executor.execute_ddl("SELECT 1", pg_conn)
        driver_factory.created[0].query.side_effect = RuntimeError("wire broke")
        result = await executor.execute_ddl("SELECT 2", pg_conn)
        assert not result.success
        assert result.error == "wire broke"


class TestExecuteTransaction:
    @pytest.mark.asyncio
    async def test_commit(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        results = await executor.execute_transaction(["S1", "S2"], pg_conn)
        assert [r.success for r in results] == [True, True]
        assert _sent(driver_factory) == ["BEGIN", "S1", "S2", "COMMIT"]

    @pytest.mark.asyncio
    async def test_rollback_pads_results(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        driver_factory.fail_on.append("S2")
        results = await executor.execute_transaction(["S1", "S2", "S3", "S4"], pg_conn)

        assert len(results) == 4
        assert [r.success for r in results] == [True, False, False, False]
        assert results[2] == results[3]
        assert results[2].error.startswith("Transaction rolled back: ")
        assert _sent(driver_factory) == ["BEGIN", "S1", "S2", "ROLLBACK"]

    @pytest.mark.asyncio
    async def test_commit_failure_fails_everything(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        driver_factory.fail_on.append("COMMIT")
        results = await executor.execute_transaction(["S1", "S2"], pg_conn)
        assert [r.success for r in results] == [False, False]
        assert all(r.error.startswith("Commit failed") for r in results)

    @pytest.mark.asyncio
    async def test_liveness_check_waits_for_open_transaction(self, pg_conn) -> None:
        state = {"in_transaction": False}
        pings: list[bool] = []

        async def query(sql: str, params=None) -> QueryResult:
            if sql == "BEGIN":
                state["in_transaction"] = True
            await asyncio.sleep(0.01)
            if sql in ("COMMIT", "ROLLBACK"):
                state["in_transaction"] = False
            return QueryResult(row_count=0)

        async def is_connected() -> bool:
            pings.append(state["in_transaction"])
            return True

        def factory(config: ConnectionConfig) -> MagicMock:
            driver = MagicMock()
            driver.config = config
            driver.query = AsyncMock(side_effect=query)
            driver.is_connected = AsyncMock(side_effect=is_connected)
            driver.connect = AsyncMock()
            driver.disconnect = AsyncMock()
            return driver

        executor = DDLExecutor(driver_factory=factory)
        await executor.execute_ddl("SELECT 1", pg_conn)
        transaction, single = await asyncio.gather(
            executor.execute_transaction(["A", "B", "C"], pg_conn),
            executor.execute_ddl("D", pg_conn),
        )

        assert all(r.success for r in transaction) and single.success
        assert pings == [False, False]

    @pytest.mark.asyncio
    async def test_empty(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        assert await executor.execute_transaction([], pg_conn) == []
        assert driver_factory.created == []


# ---------------------------------------------------------------------------
# Single operations
# ---------------------------------------------------------------------------

class TestOperations:
    @pytest.mark.asyncio
    async def test_create_table(
        self, executor: DDLExecutor, driver_factory, pg_conn, users_table: TableDefinition
    ) -> None:
        result = await executor.create_table(users_table, pg_conn)
        assert result.success
        [sql] = _sent(driver_factory)
        assert sql.startswith('CREATE TABLE "users"')

    @pytest.mark.asyncio
    async def test_create_table_with_comments_is_one_transaction(
        self, executor: DDLExecutor, driver_factory, pg_conn, users_table: TableDefinition
    ) -> None:
        users_table.comment = "people"
        result = await executor.create_table(users_table, pg_conn)
        assert result.success
        sent = _sent(driver_factory)
        assert sent[0] == "BEGIN"
        assert sent[2] == "COMMENT ON TABLE \"users\" IS 'people'"
        assert sent[-1] == "COMMIT"

    @pytest.mark.asyncio
    async def test_create_table_creates_its_indexes(
        self,
        executor: DDLExecutor,
        driver_factory,
        pg_conn,
        users_table: TableDefinition,
        email_index: IndexDefinition,
    ) -> None:
        users_table.indexes.append(email_index)
        result = await executor.create_table(users_table, pg_conn)
        assert result.success
        sent = _sent(driver_factory)
        assert sent[0] == "BEGIN"
        assert sent[2] == (
            'CREATE UNIQUE INDEX IF NOT EXISTS "idx_users_email" ON "users" ("email")'
        )
        assert sent[-1] == "COMMIT"

    @pytest.mark.asyncio
    async def test_invalid_table_sends_nothing(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        result = await executor.create_table(TableDefinition(name="select"), pg_conn)
        assert not result.success
        assert result.error.startswith("Table validation failed: ")
        assert driver_factory.created == []

    @pytest.mark.asyncio
    async def test_drop_table_if_exists(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        result = await executor.drop_table("users", pg_conn, if_exists=True)
        assert result.sql == 'DROP TABLE IF EXISTS "users" CASCADE'

    @pytest.mark.asyncio
    async def test_rename_table_validates_new_name(
        self, executor: DDLExecutor, driver_factory, mysql_conn
    ) -> None:
        result = await executor.rename_table("users", "bad name", mysql_conn)
        assert not result.success
        assert driver_factory.created == []
        ok = await executor.rename_table("users", "members", mysql_conn)
        assert ok.sql == "RENAME TABLE `users` TO `members`"

    @pytest.mark.asyncio
    async def test_add_column(self, executor: DDLExecutor, driver_factory, mysql_conn) -> None:
        result = await executor.add_column(
            "users", ColumnDefinition("nick", "VARCHAR(30)"), mysql_conn
        )
        assert result.sql == "ALTER TABLE `users` ADD COLUMN `nick` VARCHAR(30)"

    @pytest.mark.asyncio
    async def test_modify_column_postgresql_folds_statements(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        old = ColumnDefinition("age", "INTEGER")
        new = ColumnDefinition("age", "BIGINT", nullable=False)
        result = await executor.modify_column("users", old, new, pg_conn)
        assert result.success
        assert result.sql == (
            'ALTER TABLE "users" ALTER COLUMN "age" TYPE BIGINT;\n'
            'ALTER TABLE "users" ALTER COLUMN "age" SET NOT NULL'
        )
        assert _sent(driver_factory)[0] == "BEGIN"

    @pytest.mark.asyncio
    async def test_modify_column_without_changes(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        col = ColumnDefinition("age", "INTEGER")
        result = await executor.modify_column("users", col, col, pg_conn)
        assert result.success
        assert result.sql == ""
        assert driver_factory.created == []

    @pytest.mark.asyncio
    async def test_sqlite_unsupported_operation_is_failed_result(
        self, executor: DDLExecutor, driver_factory, sqlite_conn
    ) -> None:
        result = await executor.drop_column("users", "age", sqlite_conn)
        assert not result.success
        assert result.error.startswith("SQLite does not support DROP COLUMN")
        assert driver_factory.created == []

    @pytest.mark.asyncio
    async def test_add_constraint_validation_failure(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        uq = ConstraintDefinition("uk_login", ConstraintType.UNIQUE, ["login"])
        result = await executor.add_constraint("users", uq, pg_conn, USER_COLUMNS)
        assert result.error == (
            'Constraint validation failed: Column "login" does not exist in the table'
        )
        assert driver_factory.created == []

    @pytest.mark.asyncio
    async def test_add_constraint(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        uq = ConstraintDefinition("uk_users_email", ConstraintType.UNIQUE, ["email"])
        result = await executor.add_constraint("users", uq, pg_conn, USER_COLUMNS)
        assert result.success
        assert result.sql == 'ALTER TABLE "users" ADD CONSTRAINT "uk_users_email" UNIQUE ("email")'

    @pytest.mark.asyncio
    async def test_create_index_on_sqlite_with_include(
        self, executor: DDLExecutor, driver_factory, sqlite_conn
    ) -> None:
        idx = IndexDefinition("idx_e", "users", ["email"], include=["age"])
        result = await executor.create_index(idx, sqlite_conn, USER_COLUMNS)
        assert result.error.startswith("Index validation failed: ")
        assert "covering indexes" in result.error

    @pytest.mark.asyncio
    async def test_drop_index_mysql(self, executor: DDLExecutor, driver_factory, mysql_conn) -> None:
        result = await executor.drop_index("idx_e", mysql_conn, table_name="users")
        assert result.sql == "DROP INDEX `idx_e` ON `users`"


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------

class TestBatches:
    @pytest.mark.asyncio
    async def test_constraint_batch(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        ops = [
            ConstraintOperation(
                "add",
                "users",
                constraint=ConstraintDefinition("uk_users_email", ConstraintType.UNIQUE, ["email"]),
                available_columns=USER_COLUMNS,
            ),
            ConstraintOperation("drop", "users", constraint_name="ck_users_age"),
        ]
        results = await executor.batch_constraint_operations(ops, pg_conn)
        assert [r.success for r in results] == [True, True]
        sent = _sent(driver_factory)
        assert sent[0] == "BEGIN" and sent[-1] == "COMMIT"
        assert sent[2] == 'ALTER TABLE "users" DROP CONSTRAINT "ck_users_age"'

    @pytest.mark.asyncio
    async def test_invalid_definition_rejects_whole_batch(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        ops = [
            ConstraintOperation(
                "add", "users",
                constraint=ConstraintDefinition("uk_users_email", ConstraintType.UNIQUE, ["email"]),
                available_columns=USER_COLUMNS,
            ),
            ConstraintOperation(
                "add", "users",
                constraint=ConstraintDefinition("", ConstraintType.UNIQUE, ["email"]),
                available_columns=USER_COLUMNS,
            ),
            ConstraintOperation("drop", "users", constraint_name="ck_users_age"),
        ]
        results = await executor.batch_constraint_operations(ops, pg_conn)
        assert len(results) == 3
        assert not any(r.success for r in results)
        assert results[1].error == "Constraint validation failed: Constraint name is required"
        assert driver_factory.created == []

    @pytest.mark.asyncio
    async def test_malformed_operations_raise(self, executor: DDLExecutor, pg_conn) -> None:
        with pytest.raises(InvalidOperationError):
            await executor.batch_constraint_operations(
                [ConstraintOperation("add", "users")], pg_conn
            )
        with pytest.raises(InvalidOperationError):
            await executor.batch_index_operations([IndexOperation("drop")], pg_conn)

    @pytest.mark.asyncio
    async def test_failure_mid_batch_rolls_back(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        driver_factory.fail_on.append("idx_b")
        ops = [
            IndexOperation("create", index=IndexDefinition("idx_a", "users", ["email"])),
            IndexOperation("create", index=IndexDefinition("idx_b", "users", ["age"])),
            IndexOperation("drop", index_name="idx_c"),
        ]
        results = await executor.batch_index_operations(ops, pg_conn)
        assert [r.success for r in results] == [True, False, False]
        assert _sent(driver_factory)[-1] == "ROLLBACK"

    @pytest.mark.asyncio
    async def test_rebuild_index(
        self, executor: DDLExecutor, driver_factory, mysql_conn, email_index: IndexDefinition
    ) -> None:
        results = await executor.rebuild_index(email_index, mysql_conn)
        assert len(results) == 2
        assert _sent(driver_factory) == [
            "BEGIN",
            "DROP INDEX `idx_users_email` ON `users`",
            "CREATE UNIQUE INDEX `idx_users_email` ON `users` (`email`)",
            "COMMIT",
        ]


class TestOptimizeTableIndexes:
    @pytest.mark.asyncio
    async def test_suggestions_without_apply(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        indexes = [
            IndexDefinition("idx_email", "users", ["email"]),
            IndexDefinition("idx_email_age", "users", ["email", "age"]),
        ]
        report = await executor.optimize_table_indexes(
            "users", indexes, ["email", "age", "department_id"], pg_conn
        )
        kinds = [(op.kind, op.index_name or op.index.name) for op in report.suggested_operations]
        assert kinds == [("drop", "idx_email"), ("create", "idx_users_department_id")]
        assert not report.applied
        assert driver_factory.created == []

    @pytest.mark.asyncio
    async def test_apply(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        report = await executor.optimize_table_indexes(
            "orders", [], ["user_id"], pg_conn, apply=True
        )
        assert [r.success for r in report.results] == [True]
        assert 'CREATE INDEX IF NOT EXISTS "idx_orders_user_id"' in _sent(driver_factory)[1]


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

class TestConnections:
    @pytest.mark.asyncio
    async def test_test_connection_uses_fresh_driver(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        outcome = await executor.test_connection(pg_conn)
        assert outcome.success
        driver_factory.created[0].disconnect.assert_awaited_once()
        assert (await executor.get_connection_status(pg_conn.id)).connected is False

    @pytest.mark.asyncio
    async def test_test_connection_failure(
        self, executor: DDLExecutor, driver_factory, pg_conn
    ) -> None:
        def broken(config):
            raise ConnectionRefusedError("refused")

        outcome = await DDLExecutor(driver_factory=broken).test_connection(pg_conn)
        assert not outcome.success
        assert outcome.message == "Connection failed: refused"

    @pytest.mark.asyncio
    async def test_status_and_close(self, executor: DDLExecutor, driver_factory, pg_conn) -> None:
        await executor.execute_ddl("SELECT 1", pg_conn)
        await executor.close_connections()
        await executor.close_connections()
        driver_factory.created[0].disconnect.assert_awaited_once()
        assert (await executor.get_connection_status(pg_conn.id)).connected is False


# ---------------------------------------------------------------------------
# End to end on SQLite
# ---------------------------------------------------------------------------

class TestSQLiteIntegration:
    @pytest.mark.asyncio
    async def test_full_lifecycle(
        self,
        sqlite_conn: ConnectionConfig,
        users_table: TableDefinition,
        orders_table: TableDefinition,
    ) -> None:
        executor = DDLExecutor()
        try:
            assert (await executor.create_table(users_table, sqlite_conn)).success
            assert (await executor.create_table(orders_table, sqlite_conn)).success

            idx = IndexDefinition("idx_orders_user", "orders", ["user_id"], where="user_id > 0")
            assert (await executor.create_index(idx, sqlite_conn, ["id", "user_id"])).success
            rebuilt = await executor.rebuild_index(idx, sqlite_conn)
            assert all(r.success for r in rebuilt)

            added = await executor.add_column(
                "users", ColumnDefinition("nick", "TEXT"), sqlite_conn
            )
            assert added.success
            assert (await executor.rename_table("orders", "purchases", sqlite_conn)).success

            duplicate = await executor.create_table(users_table, sqlite_conn)
            assert not duplicate.success
            assert "already exists" in duplicate.error

            assert (await executor.drop_table("purchases", sqlite_conn)).success
            assert (await executor.drop_table("purchases", sqlite_conn, if_exists=True)).success
        finally:
            await executor.close_connections()

    @pytest.mark.asyncio
    async def test_create_table_indexes_exist(
        self,
        sqlite_conn: ConnectionConfig,
        users_table: TableDefinition,
        email_index: IndexDefinition,
    ) -> None:
        cache = ConnectionCache()
        executor = DDLExecutor(cache=cache)
        users_table.indexes.append(email_index)
        try:
            assert (await executor.create_table(users_table, sqlite_conn)).success
            driver = await cache.get_driver(sqlite_conn)
            indexes = await driver.query(
                "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'users' "
                "AND name = 'idx_users_email'"
            )
            assert indexes.rows == [("idx_users_email",)]
        finally:
            await executor.close_connections()

    @pytest.mark.asyncio
    async def test_transaction_rollback_undoes_ddl(self, sqlite_conn: ConnectionConfig) -> None:
        executor = DDLExecutor()
        try:
            results = await executor.execute_transaction(
                ['CREATE TABLE "a" ("id" INTEGER)', "THIS IS NOT SQL", 'CREATE TABLE "b" ("id" INTEGER)'],
                sqlite_conn,
            )
            assert [r.success for r in results] == [True, False, False]
            lookup = await executor.execute_ddl('SELECT * FROM "a"', sqlite_conn)
            assert not lookup.success
        finally:
            await executor.close_connections()
