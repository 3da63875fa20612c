"""
core/dialects.py
----------------
Per-engine SQL rendering policies.

Each supported engine is one :class:`DialectPolicy` subclass that answers the
questions the generator would otherwise answer with ``if engine == ...``
branches: how identifiers are quoted, which trailing table options apply,
how a column is modified, whether index DDL takes ``IF [NOT] EXISTS``, and so on.

Design Decisions:
    * Policies are stateless singletons held in a registry keyed by
      :class:`~models.schema.Dialect`; ``get_dialect`` accepts the enum, its
      string value or an already-resolved policy.
    * Operations an engine cannot express raise
      :class:`UnsupportedOperationError` instead of returning partial SQL.
    * Identifier quoting follows each engine: backticks for MySQL, double
      quotes for PostgreSQL and SQLite; the delimiter is doubled inside names.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from config import CONFIG
from core.capabilities import (
    DEFERRABLE_CONSTRAINT_TYPES,
    ENGINE_CAPABILITIES,
    SUPPORTED_INDEX_TYPES,
    EngineCapabilities,
)
from models.schema import (
    ConstraintDefinition,
    ConstraintType,
    Dialect,
    IndexDefinition,
    IndexType,
    TableDefinition,
)


class UnsupportedOperationError(Exception):
    """Raised when an engine cannot express the requested DDL operation."""

    def __init__(self, dialect: Dialect, operation: str, detail: str = "") -> None:
        self.dialect = dialect
        self.operation = operation
        message = f"{_DISPLAY_NAMES[dialect]} does not support {operation}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


_DISPLAY_NAMES = {
    Dialect.MYSQL: "MySQL",
    Dialect.POSTGRESQL: "PostgreSQL",
    Dialect.SQLITE: "SQLite",
}


@dataclass(frozen=True)
class ColumnChange:
    """What differs between the old and new version of a column."""
    column: str
    new_type: str
    type_changed: bool
    nullable: bool
    nullable_changed: bool
    default_sql: str | None
    default_changed: bool

    @property
    def has_changes(self) -> bool:
        return self.type_changed or self.nullable_changed or self.default_changed


class DialectPolicy(ABC):
    """Rendering rules for one database engine."""

    name: Dialect
    quote_char: str = '"'
    index_if_not_exists: bool = True
    drop_table_suffix: str = ""

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self.name]

    @property
    def capabilities(self) -> EngineCapabilities:
        return ENGINE_CAPABILITIES[self.name]

    @property
    def supported_index_types(self) -> tuple[IndexType, ...]:
        return SUPPORTED_INDEX_TYPES[self.name]

    def supports_deferrable(self, constraint_type: ConstraintType | str) -> bool:
        return constraint_type in DEFERRABLE_CONSTRAINT_TYPES[self.name]

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def quote_identifier(self, identifier: str) -> str:
        q = self.quote_char
        return f"{q}{identifier.replace(q, q + q)}{q}"

    def qualified_name(self, name: str, schema: str | None = None) -> str:
        """Quoted ``schema.name``; ``public`` and empty schemas are omitted."""
        if schema and schema != "public":
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(name)}"
        return self.quote_identifier(name)

    # ------------------------------------------------------------------
    # Tables and columns
    # ------------------------------------------------------------------

    def table_options(self, table: TableDefinition) -> str:
        return ""

    def auto_increment_clause(self) -> str:
        return ""

    def inline_column_comment(self, comment: str | None) -> str:
        return ""

    def comment_statements(self, table: TableDefinition) -> list[str]:
        """Separate COMMENT statements to run after CREATE TABLE."""
        return []

    @abstractmethod
    def render_modify_column(
        self, table_sql: str, column_def: str, change: ColumnChange
    ) -> str:
        """SQL that turns the old column into the new one."""

    def render_drop_column(self, table_sql: str, column: str) -> str:
        return f"ALTER TABLE {table_sql} DROP COLUMN {self.quote_identifier(column)}"

    def render_rename_table(self, old_name: str, new_name: str, schema: str | None = None) -> str:
        return (
            f"ALTER TABLE {self.qualified_name(old_name, schema)} "
            f"RENAME TO {self.quote_identifier(new_name)}"
        )

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def render_add_constraint(
        self, table_sql: str, constraint_def: str, constraint: ConstraintDefinition
    ) -> str:
        return f"ALTER TABLE {table_sql} ADD CONSTRAINT {constraint_def}"

    def render_drop_constraint(self, table_sql: str, constraint_name: str) -> str:
        return (
            f"ALTER TABLE {table_sql} DROP CONSTRAINT "
            f"{self.quote_identifier(constraint_name)}"
        )

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def render_index_method(self, index: IndexDefinition) -> tuple[str, str]:
        """``(before_columns, after_columns)`` fragments for the index method."""
        return "", ""

    def render_drop_index(
        self, index_name: str, table_sql: str | None, if_exists: bool
    ) -> str:
        clause = "IF EXISTS " if if_exists and self.index_if_not_exists else ""
        return f"DROP INDEX {clause}{self.quote_identifier(index_name)}"


def _index_type(index: IndexDefinition) -> str:
    value = getattr(index.type, "value", index.type)
    return str(value).upper() if value else IndexType.BTREE.value


def _sql_string(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


class MySQLDialect(DialectPolicy):
    name = Dialect.MYSQL
    quote_char = "`"
    index_if_not_exists = False

    def table_options(self, table: TableDefinition) -> str:
        ddl = CONFIG.ddl
        options = (
            f" ENGINE={ddl.mysql_engine} DEFAULT CHARSET={ddl.mysql_charset}"
            f" COLLATE={ddl.mysql_collation}"
        )
        if table.comment:
            options += f" COMMENT={_sql_string(table.comment)}"
        return options

    def auto_increment_clause(self) -> str:
        return " AUTO_INCREMENT"

    def inline_column_comment(self, comment: str | None) -> str:
        return f" COMMENT {_sql_string(comment)}" if comment else ""

    def render_modify_column(
        self, table_sql: str, column_def: str, change: ColumnChange
    ) -> str:
        return f"ALTER TABLE {table_sql} MODIFY COLUMN {column_def}"

    def render_rename_table(self, old_name: str, new_name: str, schema: str | None = None) -> str:
        return (
            f"RENAME TABLE {self.qualified_name(old_name, schema)} "
            f"TO {self.qualified_name(new_name, schema)}"
        )

    def render_index_method(self, index: IndexDefinition) -> tuple[str, str]:
        index_type = _index_type(index)
        if index_type != IndexType.BTREE.value:
            return "", f" USING {index_type}"
        return "", ""

    def render_drop_index(
        self, index_name: str, table_sql: str | None, if_exists: bool
    ) -> str:
        sql = f"DROP INDEX {self.quote_identifier(index_name)}"
        if table_sql:
            sql += f" ON {table_sql}"
        return sql


class PostgreSQLDialect(DialectPolicy):
    name = Dialect.POSTGRESQL
    drop_table_suffix = " CASCADE"

    def auto_increment_clause(self) -> str:
        return " GENERATED BY DEFAULT AS IDENTITY"

    def comment_statements(self, table: TableDefinition) -> list[str]:
        table_sql = self.qualified_name(table.name, table.schema)
        statements: list[str] = []
        if table.comment:
            statements.append(f"COMMENT ON TABLE {table_sql} IS {_sql_string(table.comment)}")
        for column in table.columns:
            if column.comment:
                statements.append(
                    f"COMMENT ON COLUMN {table_sql}.{self.quote_identifier(column.name)} "
                    f"IS {_sql_string(column.comment)}"
                )
        return statements

    def render_modify_column(
        self, table_sql: str, column_def: str, change: ColumnChange
    ) -> str:
        prefix = f"ALTER TABLE {table_sql} ALTER COLUMN {self.quote_identifier(change.column)}"
        statements: list[str] = []
        if change.type_changed:
            statements.append(f"{prefix} TYPE {change.new_type}")
        if change.nullable_changed:
            statements.append(f"{prefix} {'DROP NOT NULL' if change.nullable else 'SET NOT NULL'}")
        if change.default_changed:
            if change.default_sql is None:
                statements.append(f"{prefix} DROP DEFAULT")
            else:
                statements.append(f"{prefix} SET DEFAULT {change.default_sql}")
        return ";\n".join(statements)

    def render_add_constraint(
        self, table_sql: str, constraint_def: str, constraint: ConstraintDefinition
    ) -> str:
        sql = super().render_add_constraint(table_sql, constraint_def, constraint)
        if constraint.deferrable and self.supports_deferrable(constraint.type):
            sql += " DEFERRABLE"
            if constraint.initially_deferred:
                sql += " INITIALLY DEFERRED"
        return sql

    def render_index_method(self, index: IndexDefinition) -> tuple[str, str]:
        index_type = _index_type(index)
        if index_type != IndexType.BTREE.value:
            return f"USING {index_type} ", ""
        return "", ""


class SQLiteDialect(DialectPolicy):
    name = Dialect.SQLITE

    def render_modify_column(
        self, table_sql: str, column_def: str, change: ColumnChange
    ) -> str:
        raise UnsupportedOperationError(
            self.name, "column modification", "Table recreation required."
        )

    def render_drop_column(self, table_sql: str, column: str) -> str:
        raise UnsupportedOperationError(
            self.name, "DROP COLUMN", "Table recreation required."
        )

    def render_add_constraint(
        self, table_sql: str, constraint_def: str, constraint: ConstraintDefinition
    ) -> str:
        raise UnsupportedOperationError(
            self.name, "ADD CONSTRAINT", "Table recreation required."
        )

    def render_drop_constraint(self, table_sql: str, constraint_name: str) -> str:
        raise UnsupportedOperationError(
            self.name, "DROP CONSTRAINT", "Table recreation required."
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_DIALECTS: dict[Dialect, DialectPolicy] = {}

DialectLike = Union[Dialect, str, DialectPolicy]


def register_dialect(policy: DialectPolicy) -> None:
    _DIALECTS[policy.name] = policy


def get_dialect(dialect: DialectLike) -> DialectPolicy:
    """
    Resolve *dialect* to its registered policy.

    Raises:
        ValueError: If no policy is registered for the name.
    """
    if isinstance(dialect, DialectPolicy):
        return dialect
    try:
        key = dialect if isinstance(dialect, Dialect) else Dialect(str(dialect).lower())
        return _DIALECTS[key]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported database type: {dialect}") from None


register_dialect(MySQLDialect())
register_dialect(PostgreSQLDialect())
register_dialect(SQLiteDialect())
