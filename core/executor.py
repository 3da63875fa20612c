"""
core/executor.py
----------------
DDL execution coordinator: validate → generate → execute.

Every public operation is a coroutine that returns :class:`DDLResult`
objects instead of raising; driver and SQL failures become failed results.
Only programmer errors (malformed batch operations) raise.

Design Decisions:
    * The executor is a plain class with injected dependencies (connection
      cache, driver factory). No global state.
    * Validation is the single gate before SQL reaches a database. A
      rejected definition never opens a connection.
    * Operations that render to more than one statement (PostgreSQL column
      changes, CREATE TABLE plus ``COMMENT ON``) run inside one transaction
      and are reported as one result.
    * Transactions are explicit ``BEGIN`` / ``COMMIT`` / ``ROLLBACK`` on an
      autocommit connection. MySQL commits DDL implicitly, so a rollback
      there only undoes statements after the last DDL; the results still
      report the failure correctly.
    * Nothing is retried. Retry policy belongs to the caller.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Literal, Sequence, Union

from config import CONFIG
from core.analyzer import (
    CREATE_INDEX,
    DROP_INDEX,
    analyze_constraint_dependencies,
    analyze_index_maintenance,
    analyze_table_dependencies,
)
from core.connection_cache import ConnectionCache, DriverFactory
from core.database import ConnectionStatus, DatabaseDriver, create_driver
from core.dialects import DialectPolicy, UnsupportedOperationError, get_dialect
from core.generator import (
    generate_add_column_sql,
    generate_add_constraint_sql,
    generate_comment_sql,
    generate_create_index_sql,
    generate_create_table_sql,
    generate_drop_column_sql,
    generate_drop_constraint_sql,
    generate_drop_index_sql,
    generate_drop_table_sql,
    generate_modify_column_sql,
    generate_rename_table_sql,
    split_statements,
)
from core.type_families import ConversionSafety, classify_conversion
from core.validation import (
    ValidationContext,
    validate_column,
    validate_constraint,
    validate_index,
    validate_name,
    validate_table,
)
from logger import get_logger, get_sql_logger
from models.results import (
    ConnectionConfig,
    ConnectionTestResult,
    ConstraintAnalysis,
    DDLResult,
    IndexManagementResult,
    TableDependencyReport,
    ValidationResult,
)
from models.schema import (
    ColumnDefinition,
    ConstraintDefinition,
    IndexDefinition,
    TableDefinition,
)

log = get_logger(__name__)
sql_log = get_sql_logger()


class InvalidOperationError(ValueError):
    """Raised for a batch operation that is missing what its kind requires."""


class OperationState(str, Enum):
    PENDING = "pending"
    VALIDATING = "validating"
    REJECTED = "rejected"
    GENERATING = "generating"
    EXECUTING = "executing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


class _OperationTrace:
    """Tracks one logical operation through its states (DEBUG log only)."""

    def __init__(self, operation: str, connection_id: str) -> None:
        self.operation = operation
        self.connection_id = connection_id
        self.state = OperationState.PENDING

    def advance(self, state: OperationState) -> None:
        log.debug(
            "%s on '%s': %s -> %s",
            self.operation, self.connection_id, self.state.value, state.value,
        )
        self.state = state


# ---------------------------------------------------------------------------
# Batch operations
# ---------------------------------------------------------------------------

@dataclass
class ConstraintOperation:
    """
    One step of :meth:`DDLExecutor.batch_constraint_operations`.

    ``kind="add"`` needs ``constraint``; ``kind="drop"`` needs
    ``constraint_name``.
    """
    kind: Literal["add", "drop"]
    table_name: str
    constraint: ConstraintDefinition | None = None
    constraint_name: str | None = None
    schema: str | None = None
    available_columns: list[str] | None = None
    existing_constraints: list[ConstraintDefinition] = field(default_factory=list)

    def check(self) -> None:
        """Raises :class:`InvalidOperationError` if the operation is malformed."""
        if not self.table_name:
            raise InvalidOperationError("Invalid constraint operation: table_name is required")
        if self.kind == "add":
            if self.constraint is None:
                raise InvalidOperationError(
                    f"Invalid constraint operation: add on '{self.table_name}' has no constraint"
                )
        elif self.kind == "drop":
            if not self.constraint_name:
                raise InvalidOperationError(
                    f"Invalid constraint operation: drop on '{self.table_name}' "
                    "has no constraint_name"
                )
        else:
            raise InvalidOperationError(f"Invalid constraint operation kind: {self.kind!r}")

    def validate(self, policy: DialectPolicy) -> ValidationResult:
        if self.kind != "add":
            return ValidationResult()
        context = ValidationContext(
            policy,
            available_columns=self.available_columns,
            existing_constraints=list(self.existing_constraints),
        )
        return validate_constraint(self.constraint, context)

    def to_sql(self, policy: DialectPolicy) -> str:
        if self.kind == "add":
            return generate_add_constraint_sql(
                self.table_name, self.constraint, policy, self.schema
            )
        return generate_drop_constraint_sql(
            self.table_name, self.constraint_name, policy, self.schema
        )


@dataclass
class IndexOperation:
    """
    One step of :meth:`DDLExecutor.batch_index_operations`.

    ``kind="create"`` needs ``index``; ``kind="drop"`` needs ``index_name``
    (``table_name`` too on MySQL, where ``DROP INDEX`` is table scoped).
    """
    kind: Literal["create", "drop"]
    index: IndexDefinition | None = None
    index_name: str | None = None
    table_name: str | None = None
    available_columns: list[str] | None = None
    existing_indexes: list[IndexDefinition] = field(default_factory=list)

    def check(self) -> None:
        if self.kind == "create":
            if self.index is None:
                raise InvalidOperationError("Invalid index operation: create has no index")
        elif self.kind == "drop":
            if not self.index_name:
                raise InvalidOperationError("Invalid index operation: drop has no index_name")
        else:
            raise InvalidOperationError(f"Invalid index operation kind: {self.kind!r}")

    def validate(self, policy: DialectPolicy) -> ValidationResult:
        if self.kind != "create":
            return ValidationResult()
        context = ValidationContext(
            policy,
            available_columns=self.available_columns,
            existing_indexes=list(self.existing_indexes),
        )
        return validate_index(self.index, context)

    def to_sql(self, policy: DialectPolicy) -> str:
        if self.kind == "create":
            return generate_create_index_sql(self.index, policy)
        table_name = self.table_name or (self.index.table_name if self.index else None)
        return generate_drop_index_sql(self.index_name, policy, table_name)


BatchOperation = Union[ConstraintOperation, IndexOperation]


@dataclass
class OptimizationReport:
    """What :meth:`DDLExecutor.optimize_table_indexes` found and (maybe) did."""
    table_name: str
    analysis: IndexManagementResult
    suggested_operations: list[IndexOperation] = field(default_factory=list)
    results: list[DDLResult] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return bool(self.results)


def _fold_results(statements: Sequence[str], results: Sequence[DDLResult]) -> DDLResult:
    """Collapse per-statement results of one logical operation into one."""
    sql = ";\n".join(statements)
    elapsed = sum(r.execution_time for r in results)
    for result in results:
        if not result.success:
            return DDLResult.failed(
                result.error or "Statement failed", sql=sql, execution_time=elapsed
            )
    return DDLResult.ok(sql=sql, execution_time=elapsed)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class DDLExecutor:
    """
    Runs validated DDL against live connections.

    Args:
        cache:          Connection cache to use; a private one by default.
        driver_factory: Builds a driver for a :class:`ConnectionConfig`.
                        Used for the default cache and for
                        :meth:`test_connection`.

    Example::

        executor = DDLExecutor()
        conn = ConnectionConfig(id="local", type="sqlite", database="app.db")
        result = await executor.create_table(users_table, conn)
        if not result.success:
            print(result.error)
        await executor.close_connections()
    """

    def __init__(
        self,
        cache: ConnectionCache | None = None,
        driver_factory: DriverFactory = create_driver,
    ) -> None:
        self._driver_factory = driver_factory
        self._cache = cache if cache is not None else ConnectionCache(driver_factory)

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    async def _run_statement(self, driver: DatabaseDriver, sql: str) -> DDLResult:
        """Execute one statement on an already-held driver. Never raises."""
        start = time.perf_counter()
        try:
            outcome = await driver.query(sql)
        except Exception as exc:
            log.error("Statement failed on '%s': %s", driver.config.id, exc, exc_info=True)
            return DDLResult.failed(str(exc), sql=sql, execution_time=_elapsed_ms(start))
        elapsed = _elapsed_ms(start)
        sql_log.debug(
            "%s %.1fms %s: %s",
            driver.config.id, elapsed, "ok" if outcome.success else "failed", sql,
        )
        if not outcome.success:
            return DDLResult.failed(outcome.error, sql=sql, execution_time=elapsed)
        return DDLResult.ok(sql=sql, execution_time=elapsed, affected_rows=outcome.row_count)

    async def execute_ddl(self, sql: str, connection: ConnectionConfig) -> DDLResult:
        """
        Execute one statement on the pooled driver for *connection*.

        Never raises: connection and SQL errors become a failed result.
        """
        start = time.perf_counter()
        try:
            driver = await self._cache.get_driver(connection)
        except Exception as exc:
            log.error("Could not obtain connection '%s': %s", connection.id, exc, exc_info=True)
            return DDLResult.failed(str(exc), sql=sql, execution_time=_elapsed_ms(start))

        async with self._cache.statement_lock(connection.id):
            result = await self._run_statement(driver, sql)
        if not result.success:
            log.warning("DDL failed on '%s': %s", connection.id, result.error)
        return result

    async def execute_transaction(
        self, statements: Iterable[str], connection: ConnectionConfig
    ) -> list[DDLResult]:
        """
        Run *statements* in one transaction.

        Returns exactly one result per statement. On the first failure the
        transaction is rolled back and every later slot holds the same
        ``Transaction rolled back: ...`` failure. A failed ``COMMIT`` fails
        every slot.
        """
        statements = list(statements)
        if not statements:
            return []

        try:
            driver = await self._cache.get_driver(connection)
        except Exception as exc:
            log.error("Could not obtain connection '%s': %s", connection.id, exc, exc_info=True)
            return [DDLResult.failed(str(exc), sql=sql) for sql in statements]

        async with self._cache.statement_lock(connection.id):
            begin = await self._run_statement(driver, "BEGIN")
            if not begin.success:
                error = f"Could not start transaction: {begin.error}"
                log.error("%s (connection '%s')", error, connection.id)
                return [DDLResult.failed(error, sql=sql) for sql in statements]

            results: list[DDLResult] = []
            for sql in statements:
                result = await self._run_statement(driver, sql)
                results.append(result)
                if result.success:
                    continue

                rollback = await self._run_statement(driver, "ROLLBACK")
                if not rollback.success:
                    log.error("ROLLBACK failed on '%s': %s", connection.id, rollback.error)
                log.warning(
                    "Transaction on '%s' rolled back at statement %d/%d: %s",
                    connection.id, len(results), len(statements), result.error,
                )
                padding = DDLResult.failed(error=f"Transaction rolled back: {result.error}")
                results.extend([padding] * (len(statements) - len(results)))
                return results

            commit = await self._run_statement(driver, "COMMIT")
            if not commit.success:
                log.error("COMMIT failed on '%s': %s", connection.id, commit.error)
                await self._run_statement(driver, "ROLLBACK")
                return [
                    DDLResult.failed(
                        f"Commit failed: {commit.error}",
                        sql=r.sql,
                        execution_time=r.execution_time,
                    )
                    for r in results
                ]

        log.info("Committed %d statement(s) on '%s'.", len(statements), connection.id)
        return results

    # ------------------------------------------------------------------
    # Single operations
    # ------------------------------------------------------------------

    async def _run_operation(
        self,
        operation: str,
        connection: ConnectionConfig,
        build: Callable[[DialectPolicy], list[str]],
        validate: Callable[[DialectPolicy], ValidationResult] | None = None,
        label: str = "",
    ) -> DDLResult:
        trace = _OperationTrace(operation, connection.id)
        try:
            policy = get_dialect(connection.type)
        except ValueError as exc:
            trace.advance(OperationState.FAILED)
            return DDLResult.failed(str(exc))

        if validate is not None:
            trace.advance(OperationState.VALIDATING)
            validation = validate(policy)
            if not validation.is_valid:
                trace.advance(OperationState.REJECTED)
                message = f"{label} validation failed: {validation.messages()}"
                log.info("%s rejected: %s", operation, message)
                return DDLResult.failed(message)

        trace.advance(OperationState.GENERATING)
        try:
            statements = [sql for sql in build(policy) if sql.strip()]
        except (UnsupportedOperationError, ValueError) as exc:
            trace.advance(OperationState.FAILED)
            log.warning("%s cannot be generated for %s: %s", operation, policy.display_name, exc)
            return DDLResult.failed(str(exc))

        if not statements:
            trace.advance(OperationState.COMMITTED)
            return DDLResult.ok(sql="")

        trace.advance(OperationState.EXECUTING)
        if len(statements) == 1:
            result = await self.execute_ddl(statements[0], connection)
            trace.advance(OperationState.COMMITTED if result.success else OperationState.FAILED)
            return result

        result = _fold_results(statements, await self.execute_transaction(statements, connection))
        trace.advance(OperationState.COMMITTED if result.success else OperationState.ROLLED_BACK)
        return result

    async def create_table(self, table: TableDefinition, connection: ConnectionConfig) -> DDLResult:
        """
        Validate and create *table*, including its comments and indexes.

        PostgreSQL ``COMMENT ON`` statements and the table's ``CREATE INDEX``
        statements run in the same transaction as the ``CREATE TABLE``.
        """
        return await self._run_operation(
            f"create_table {table.name}",
            connection,
            build=lambda policy: [
                generate_create_table_sql(table, policy),
                *generate_comment_sql(table, policy),
                *(generate_create_index_sql(index, policy) for index in table.indexes),
            ],
            validate=lambda policy: validate_table(table, ValidationContext(policy)),
            label="Table",
        )

    async def add_column(
        self,
        table_name: str,
        column: ColumnDefinition,
        connection: ConnectionConfig,
        schema: str | None = None,
    ) -> DDLResult:
        return await self._run_operation(
            f"add_column {table_name}.{column.name}",
            connection,
            build=lambda policy: [generate_add_column_sql(table_name, column, policy, schema)],
            validate=lambda policy: validate_column(column, ValidationContext(policy)),
            label="Column",
        )

    async def modify_column(
        self,
        table_name: str,
        old_column: ColumnDefinition,
        new_column: ColumnDefinition,
        connection: ConnectionConfig,
        schema: str | None = None,
    ) -> DDLResult:
        """
        Change *old_column* into *new_column*.

        A lossy or unsafe type change is logged as a warning but not blocked;
        the database has the final word on whether existing data converts.
        """
        safety = ConversionSafety.SAFE
        if old_column.data_type and new_column.data_type:
            safety = classify_conversion(old_column.data_type, new_column.data_type)
        if safety != ConversionSafety.SAFE:
            log.warning(
                "Changing %s.%s from %s to %s is %s.",
                table_name, new_column.name, old_column.full_type,
                new_column.full_type, safety.value,
            )
        return await self._run_operation(
            f"modify_column {table_name}.{new_column.name}",
            connection,
            build=lambda policy: split_statements(
                generate_modify_column_sql(table_name, old_column, new_column, policy, schema)
            ),
            validate=lambda policy: validate_column(new_column, ValidationContext(policy)),
            label="Column",
        )

    async def drop_column(
        self,
        table_name: str,
        column_name: str,
        connection: ConnectionConfig,
        schema: str | None = None,
    ) -> DDLResult:
        return await self._run_operation(
            f"drop_column {table_name}.{column_name}",
            connection,
            build=lambda policy: [
                generate_drop_column_sql(table_name, column_name, policy, schema)
            ],
        )

    async def rename_table(
        self,
        old_name: str,
        new_name: str,
        connection: ConnectionConfig,
        schema: str | None = None,
    ) -> DDLResult:
        return await self._run_operation(
            f"rename_table {old_name}",
            connection,
            build=lambda policy: [generate_rename_table_sql(old_name, new_name, policy, schema)],
            validate=lambda policy: validate_name(new_name, "table", ValidationContext(policy)),
            label="Table",
        )

    async def drop_table(
        self,
        table_name: str,
        connection: ConnectionConfig,
        if_exists: bool = False,
        schema: str | None = None,
    ) -> DDLResult:
        return await self._run_operation(
            f"drop_table {table_name}",
            connection,
            build=lambda policy: [
                generate_drop_table_sql(table_name, policy, if_exists=if_exists, schema=schema)
            ],
        )

    async def add_constraint(
        self,
        table_name: str,
        constraint: ConstraintDefinition,
        connection: ConnectionConfig,
        available_columns: list[str] | None = None,
        existing_constraints: Sequence[ConstraintDefinition] = (),
        schema: str | None = None,
    ) -> DDLResult:
        operation = ConstraintOperation(
            "add",
            table_name,
            constraint=constraint,
            schema=schema,
            available_columns=available_columns,
            existing_constraints=list(existing_constraints),
        )
        return await self._run_operation(
            f"add_constraint {table_name}.{constraint.name}",
            connection,
            build=lambda policy: [operation.to_sql(policy)],
            validate=operation.validate,
            label="Constraint",
        )

    async def drop_constraint(
        self,
        table_name: str,
        constraint_name: str,
        connection: ConnectionConfig,
        schema: str | None = None,
    ) -> DDLResult:
        return await self._run_operation(
            f"drop_constraint {table_name}.{constraint_name}",
            connection,
            build=lambda policy: [
                generate_drop_constraint_sql(table_name, constraint_name, policy, schema)
            ],
        )

    async def create_index(
        self,
        index: IndexDefinition,
        connection: ConnectionConfig,
        available_columns: list[str] | None = None,
        existing_indexes: Sequence[IndexDefinition] = (),
    ) -> DDLResult:
        operation = IndexOperation(
            "create",
            index=index,
            available_columns=available_columns,
            existing_indexes=list(existing_indexes),
        )
        return await self._run_operation(
            f"create_index {index.name}",
            connection,
            build=lambda policy: [operation.to_sql(policy)],
            validate=operation.validate,
            label="Index",
        )

    async def drop_index(
        self,
        index_name: str,
        connection: ConnectionConfig,
        table_name: str | None = None,
    ) -> DDLResult:
        return await self._run_operation(
            f"drop_index {index_name}",
            connection,
            build=lambda policy: [generate_drop_index_sql(index_name, policy, table_name)],
        )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def _run_batch(
        self,
        operations: Sequence[BatchOperation],
        connection: ConnectionConfig,
        label: str,
    ) -> list[DDLResult]:
        for op in operations:
            op.check()
        if not operations:
            return []

        try:
            policy = get_dialect(connection.type)
        except ValueError as exc:
            return [DDLResult.failed(str(exc)) for _ in operations]

        # Every operation is validated and rendered before BEGIN, so a bad
        # definition never leaves a half-applied batch behind.
        statements: list[str] = []
        for position, op in enumerate(operations, start=1):
            validation = op.validate(policy)
            if validation.is_valid:
                try:
                    statements.append(op.to_sql(policy))
                    continue
                except (UnsupportedOperationError, ValueError) as exc:
                    error = str(exc)
            else:
                error = f"{label} validation failed: {validation.messages()}"

            log.info("Batch on '%s' rejected at operation %d: %s", connection.id, position, error)
            rejected = DDLResult.failed(
                f"Batch rejected: operation {position} is invalid; no changes were made"
            )
            return [
                DDLResult.failed(error) if i == position - 1 else rejected
                for i in range(len(operations))
            ]

        return await self.execute_transaction(statements, connection)

    async def batch_constraint_operations(
        self, operations: Sequence[ConstraintOperation], connection: ConnectionConfig
    ) -> list[DDLResult]:
        """
        Apply constraint adds / drops in one transaction.

        Raises:
            InvalidOperationError: If any operation is malformed; nothing is sent.
        """
        return await self._run_batch(list(operations), connection, "Constraint")

    async def batch_index_operations(
        self, operations: Sequence[IndexOperation], connection: ConnectionConfig
    ) -> list[DDLResult]:
        """
        Apply index creates / drops in one transaction.

        Raises:
            InvalidOperationError: If any operation is malformed; nothing is sent.
        """
        return await self._run_batch(list(operations), connection, "Index")

    async def rebuild_index(
        self, index: IndexDefinition, connection: ConnectionConfig
    ) -> list[DDLResult]:
        """Drop (if it exists) and recreate *index* in one transaction."""
        return await self.batch_index_operations(
            [
                IndexOperation("drop", index_name=index.name, table_name=index.table_name),
                IndexOperation("create", index=index),
            ],
            connection,
        )

    async def optimize_table_indexes(
        self,
        table_name: str,
        indexes: Sequence[IndexDefinition],
        table_columns: Sequence[str],
        connection: ConnectionConfig,
        apply: bool = False,
    ) -> OptimizationReport:
        """
        Analyze the indexes of *table_name* and turn the recommendations
        into index operations; with ``apply=True`` run them as one batch.
        """
        analysis = analyze_index_maintenance(indexes, table_columns, table_name)
        by_name = {idx.name: idx for idx in indexes}

        operations: list[IndexOperation] = []
        dropped: set[str] = set()
        for suggestion in analysis.recommendations:
            if suggestion.action == DROP_INDEX and suggestion.index_name not in dropped:
                dropped.add(suggestion.index_name)
                operations.append(IndexOperation(
                    "drop",
                    index_name=suggestion.index_name,
                    table_name=suggestion.table_name or table_name,
                ))
            elif suggestion.action == CREATE_INDEX and suggestion.columns:
                name = f"idx_{table_name}_{'_'.join(suggestion.columns)}"
                name = name[: CONFIG.ddl.max_identifier_length]
                if name in by_name:
                    continue
                operations.append(IndexOperation(
                    "create",
                    index=IndexDefinition(
                        name=name, table_name=table_name, columns=list(suggestion.columns)
                    ),
                    available_columns=list(table_columns),
                ))

        report = OptimizationReport(table_name, analysis, operations)
        if apply and operations:
            log.info(
                "Applying %d index optimization(s) to '%s'.", len(operations), table_name
            )
            report.results = await self.batch_index_operations(operations, connection)
        return report

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def test_connection(self, connection: ConnectionConfig) -> ConnectionTestResult:
        """Open and close a fresh, uncached connection."""
        try:
            driver = self._driver_factory(connection)
            await driver.connect()
            await driver.disconnect()
        except Exception as exc:
            log.warning("Connection test for '%s' failed: %s", connection.id, exc)
            return ConnectionTestResult(False, f"Connection failed: {exc}")
        return ConnectionTestResult(True, "Connection successful")

    async def get_connection_status(self, connection_id: str) -> ConnectionStatus:
        driver = self._cache.get(connection_id)
        if driver is None:
            return ConnectionStatus(connected=False)
        return await driver.get_connection_status()

    async def close_connections(self) -> None:
        await self._cache.close_all()

    # ------------------------------------------------------------------
    # Pass-throughs
    # ------------------------------------------------------------------

    def validate_table(self, table: TableDefinition, connection: ConnectionConfig) -> ValidationResult:
        return validate_table(table, ValidationContext(connection.type))

    def validate_constraint(
        self,
        constraint: ConstraintDefinition,
        connection: ConnectionConfig,
        available_columns: list[str] | None = None,
        existing_constraints: Sequence[ConstraintDefinition] = (),
    ) -> ValidationResult:
        context = ValidationContext(
            connection.type,
            available_columns=available_columns,
            existing_constraints=list(existing_constraints),
        )
        return validate_constraint(constraint, context)

    def validate_index(
        self,
        index: IndexDefinition,
        connection: ConnectionConfig,
        available_columns: list[str] | None = None,
        existing_indexes: Sequence[IndexDefinition] = (),
    ) -> ValidationResult:
        context = ValidationContext(
            connection.type,
            available_columns=available_columns,
            existing_indexes=list(existing_indexes),
        )
        return validate_index(index, context)

    def analyze_constraint_dependencies(
        self,
        constraints: Sequence[ConstraintDefinition],
        table_name: str | None = None,
        tables: Sequence[TableDefinition] = (),
    ) -> ConstraintAnalysis:
        return analyze_constraint_dependencies(constraints, table_name, tables)

    def analyze_table_dependencies(
        self, tables: Sequence[TableDefinition]
    ) -> TableDependencyReport:
        return analyze_table_dependencies(tables)

    def analyze_index_maintenance(
        self,
        indexes: Sequence[IndexDefinition],
        table_columns: Sequence[str] = (),
        table_name: str | None = None,
    ) -> IndexManagementResult:
        return analyze_index_maintenance(indexes, table_columns, table_name)
