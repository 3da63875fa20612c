"""
core/generator.py
-----------------
Pure functions that render DDL for one engine.

Every ``generate_*_sql`` function takes definitions plus a dialect (a
:class:`~models.schema.Dialect`, its string value, or a
:class:`~core.dialects.DialectPolicy`) and returns SQL text. Nothing here
performs I/O or validates; callers run :mod:`core.validation` first.

Design Decisions:
    * Engine differences live in :mod:`core.dialects`; this module only
      assembles clauses in a fixed order.
    * Operations an engine cannot express raise
      :class:`~core.dialects.UnsupportedOperationError`.
    * Multi-statement output (PostgreSQL column modification) is joined with
      ``";\\n"``; :func:`split_statements` undoes that for execution.
"""
from __future__ import annotations

import re
from typing import Any

from core.dialects import (
    ColumnChange,
    DialectLike,
    DialectPolicy,
    get_dialect,
)
from logger import get_logger
from models.schema import (
    ColumnDefinition,
    ConstraintDefinition,
    ConstraintType,
    IndexDefinition,
    ReferentialAction,
    TableDefinition,
)

log = get_logger(__name__)

STATEMENT_SEPARATOR = ";\n"

_TIME_FUNCTIONS = frozenset({
    "NOW()",
    "CURRENT_TIMESTAMP",
    "CURRENT_DATE",
    "CURRENT_TIME",
    "LOCALTIMESTAMP",
    "LOCALTIME",
})
_FUNCTION_CALL_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*\(\)$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")


# ---------------------------------------------------------------------------
# Default values
# ---------------------------------------------------------------------------

def is_verbatim_default(value: Any) -> bool:
    """True for string defaults emitted unquoted (time keywords and zero-argument calls)."""
    if not isinstance(value, str):
        return False
    stripped = value.strip()
    return stripped.upper() in _TIME_FUNCTIONS or bool(_FUNCTION_CALL_RE.match(stripped))


def format_default_value(value: Any) -> str:
    """
    Render a Python default value as a SQL literal.

    Examples::

        format_default_value(None)                 → "NULL"
        format_default_value(True)                 → "TRUE"
        format_default_value(42)                   → "42"
        format_default_value("CURRENT_TIMESTAMP")  → "CURRENT_TIMESTAMP"
        format_default_value("gen_random_uuid()")  → "gen_random_uuid()"
        format_default_value("it's")               → "'it''s'"
        format_default_value("Pending (review)")   → "'Pending (review)'"
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value)
    stripped = text.strip()
    if stripped.upper() == "NULL":
        return "NULL"
    if is_verbatim_default(text):
        return stripped
    return "'" + text.replace("'", "''") + "'"


def parse_default_value(sql: str | None) -> Any:
    """
    Inverse of :func:`format_default_value` for literals.

    ``NULL`` becomes ``None``, ``TRUE``/``FALSE`` become booleans, quoted
    strings are unescaped and numerics are converted. Anything else
    (function calls, expressions) is returned unchanged.
    """
    if sql is None:
        return None
    text = sql.strip()
    upper = text.upper()
    if upper == "NULL":
        return None
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False
    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return text[1:-1].replace("''", "'")
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return text


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------

def _quote_list(columns: list[str], policy: DialectPolicy) -> str:
    return ", ".join(policy.quote_identifier(col) for col in columns)


def _referential_action(action: ReferentialAction | str | None) -> str | None:
    if action is None:
        return None
    action = ReferentialAction(str(getattr(action, "value", action)).upper())
    if action == ReferentialAction.RESTRICT:
        return None
    return action.sql


def column_definition(column: ColumnDefinition, dialect: DialectLike) -> str:
    """``name TYPE [NOT NULL] [auto-increment] [DEFAULT x] [COMMENT]``."""
    policy = get_dialect(dialect)
    parts = [f"{policy.quote_identifier(column.name)} {column.full_type}"]
    if not column.nullable:
        parts.append(" NOT NULL")
    if column.auto_increment:
        parts.append(policy.auto_increment_clause())
    if column.default_value is not None:
        parts.append(f" DEFAULT {format_default_value(column.default_value)}")
    parts.append(policy.inline_column_comment(column.comment))
    return "".join(parts)


def constraint_definition(constraint: ConstraintDefinition, dialect: DialectLike) -> str:
    """
    ``name <body>`` for one constraint, as used after ``ADD CONSTRAINT``.

    Raises:
        ValueError: For NOT_NULL or unknown constraint types, which have no
                    table-level form.
    """
    policy = get_dialect(dialect)
    name = policy.quote_identifier(constraint.name)
    ctype = constraint.type

    if ctype == ConstraintType.PRIMARY_KEY:
        return f"{name} PRIMARY KEY ({_quote_list(constraint.columns, policy)})"

    if ctype == ConstraintType.UNIQUE:
        return f"{name} UNIQUE ({_quote_list(constraint.columns, policy)})"

    if ctype == ConstraintType.CHECK:
        return f"{name} CHECK ({constraint.check_expression})"

    if ctype == ConstraintType.FOREIGN_KEY:
        sql = (
            f"{name} FOREIGN KEY ({_quote_list(constraint.columns, policy)}) "
            f"REFERENCES {policy.quote_identifier(constraint.referenced_table or '')} "
            f"({_quote_list(constraint.referenced_columns, policy)})"
        )
        on_delete = _referential_action(constraint.on_delete)
        if on_delete:
            sql += f" ON DELETE {on_delete}"
        on_update = _referential_action(constraint.on_update)
        if on_update:
            sql += f" ON UPDATE {on_update}"
        return sql

    raise ValueError(f"Unsupported constraint type: {getattr(ctype, 'value', ctype)}")


def _deferrable_clause(constraint: ConstraintDefinition, policy: DialectPolicy) -> str:
    if not (constraint.deferrable and policy.supports_deferrable(constraint.type)):
        return ""
    return " DEFERRABLE INITIALLY DEFERRED" if constraint.initially_deferred else " DEFERRABLE"


def split_statements(sql: str) -> list[str]:
    """Split generator output joined with ``";\\n"`` back into statements."""
    return [part.strip() for part in sql.split(STATEMENT_SEPARATOR) if part.strip()]


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def generate_create_table_sql(table: TableDefinition, dialect: DialectLike) -> str:
    """
    Render ``CREATE TABLE`` for *table*.

    The primary key comes from column flags; a PRIMARY_KEY constraint is
    used only when no column is flagged. NOT_NULL constraints are expressed
    through column nullability and are not rendered.
    """
    policy = get_dialect(dialect)
    lines = [f"  {column_definition(col, policy)}" for col in table.columns]

    pk_columns = table.primary_key_columns
    if pk_columns:
        lines.append(f"  PRIMARY KEY ({_quote_list(pk_columns, policy)})")

    for constraint in table.constraints:
        if constraint.type == ConstraintType.NOT_NULL:
            continue
        if constraint.type == ConstraintType.PRIMARY_KEY and pk_columns:
            continue
        lines.append(
            f"  CONSTRAINT {constraint_definition(constraint, policy)}"
            f"{_deferrable_clause(constraint, policy)}"
        )

    sql = (
        f"CREATE TABLE {policy.qualified_name(table.name, table.schema)} (\n"
        + ",\n".join(lines)
        + "\n)"
        + policy.table_options(table)
    )
    log.debug("Generated %s CREATE TABLE for '%s'", policy.display_name, table.name)
    return sql


def generate_comment_sql(table: TableDefinition, dialect: DialectLike) -> list[str]:
    """Table / column comment statements to run after CREATE TABLE (may be empty)."""
    return get_dialect(dialect).comment_statements(table)


def generate_drop_table_sql(
    table_name: str,
    dialect: DialectLike,
    if_exists: bool = False,
    schema: str | None = None,
) -> str:
    policy = get_dialect(dialect)
    clause = "IF EXISTS " if if_exists else ""
    return (
        f"DROP TABLE {clause}{policy.qualified_name(table_name, schema)}"
        f"{policy.drop_table_suffix}"
    )


def generate_rename_table_sql(
    old_name: str,
    new_name: str,
    dialect: DialectLike,
    schema: str | None = None,
) -> str:
    policy = get_dialect(dialect)
    return policy.render_rename_table(old_name, new_name, schema)


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

def generate_add_column_sql(
    table_name: str,
    column: ColumnDefinition,
    dialect: DialectLike,
    schema: str | None = None,
) -> str:
    policy = get_dialect(dialect)
    return (
        f"ALTER TABLE {policy.qualified_name(table_name, schema)} "
        f"ADD COLUMN {column_definition(column, policy)}"
    )


def _default_sql(column: ColumnDefinition) -> str | None:
    if column.default_value is None:
        return None
    return format_default_value(column.default_value)


def generate_modify_column_sql(
    table_name: str,
    old_column: ColumnDefinition,
    new_column: ColumnDefinition,
    dialect: DialectLike,
    schema: str | None = None,
) -> str:
    """
    Turn *old_column* into *new_column*.

    Returns an empty string when the engine renders per-attribute changes
    (PostgreSQL) and nothing differs.

    Raises:
        UnsupportedOperationError: On SQLite.
    """
    policy = get_dialect(dialect)
    old_default = _default_sql(old_column)
    new_default = _default_sql(new_column)
    change = ColumnChange(
        column=new_column.name,
        new_type=new_column.full_type,
        type_changed=old_column.full_type.strip().upper() != new_column.full_type.strip().upper(),
        nullable=new_column.nullable,
        nullable_changed=old_column.nullable != new_column.nullable,
        default_sql=new_default,
        default_changed=old_default != new_default,
    )
    return policy.render_modify_column(
        policy.qualified_name(table_name, schema),
        column_definition(new_column, policy),
        change,
    )


def generate_drop_column_sql(
    table_name: str,
    column_name: str,
    dialect: DialectLike,
    schema: str | None = None,
) -> str:
    policy = get_dialect(dialect)
    return policy.render_drop_column(policy.qualified_name(table_name, schema), column_name)


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

def generate_add_constraint_sql(
    table_name: str,
    constraint: ConstraintDefinition,
    dialect: DialectLike,
    schema: str | None = None,
) -> str:
    policy = get_dialect(dialect)
    return policy.render_add_constraint(
        policy.qualified_name(table_name, schema),
        constraint_definition(constraint, policy),
        constraint,
    )


def generate_drop_constraint_sql(
    table_name: str,
    constraint_name: str,
    dialect: DialectLike,
    schema: str | None = None,
) -> str:
    policy = get_dialect(dialect)
    return policy.render_drop_constraint(
        policy.qualified_name(table_name, schema), constraint_name
    )


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------

def generate_create_index_sql(index: IndexDefinition, dialect: DialectLike) -> str:
    """
    Render ``CREATE [UNIQUE] INDEX``.

    ``INCLUDE`` is emitted only where covering indexes are supported and
    ``WHERE`` only where partial indexes are; elsewhere they are dropped
    silently, since validation has already reported them.
    """
    policy = get_dialect(dialect)
    caps = policy.capabilities
    before, after = policy.render_index_method(index)

    sql = "CREATE "
    if index.unique:
        sql += "UNIQUE "
    sql += "INDEX "
    if policy.index_if_not_exists:
        sql += "IF NOT EXISTS "
    sql += (
        f"{policy.quote_identifier(index.name)} ON {policy.quote_identifier(index.table_name)} "
        f"{before}({_quote_list(index.columns, policy)}){after}"
    )
    if index.is_covering and caps.supports_covering_indexes:
        sql += f" INCLUDE ({_quote_list(index.include, policy)})"
    if index.is_partial and caps.supports_partial_indexes:
        sql += f" WHERE {index.where.strip()}"
    return sql


def generate_drop_index_sql(
    index_name: str,
    dialect: DialectLike,
    table_name: str | None = None,
) -> str:
    """``DROP INDEX``; MySQL appends ``ON table`` when *table_name* is given."""
    policy = get_dialect(dialect)
    table_sql = policy.quote_identifier(table_name) if table_name else None
    return policy.render_drop_index(index_name, table_sql, if_exists=True)
