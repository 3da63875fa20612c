"""
core/validation.py
------------------
Validation pipeline for table, column, constraint and index definitions.

Every ``validate_*`` function returns a :class:`~models.results.ValidationResult`
and never raises for malformed definitions: problems are reported as issues
typed ``validation``, ``security``, ``database``, ``performance`` or
``optimization``. Only severity ``error`` makes a result invalid; the rest is
advisory.

Design Decisions:
    * Engine limits (name lengths, covering / partial index support, index
      methods) are looked up on the dialect's capability row, never branched
      on by engine name.
    * Free-text SQL fragments (CHECK expressions, partial-index predicates,
      unquoted default expressions)
      are emitted verbatim by the generator, so they are screened here for
      statement keywords, comments and statement chaining first.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from config import CONFIG
from core.capabilities import is_reserved_keyword
from core.dialects import DialectLike, DialectPolicy, get_dialect
from core.generator import is_verbatim_default
from core.type_families import is_integer_type, is_known_type
from logger import get_logger
from models.results import (
    DATABASE,
    INFO,
    OPTIMIZATION,
    PERFORMANCE,
    SECURITY,
    VALIDATION,
    ValidationResult,
)
from models.schema import (
    ColumnDefinition,
    ConstraintDefinition,
    ConstraintType,
    Dialect,
    IndexDefinition,
    ReferentialAction,
    TableDefinition,
)

log = get_logger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DANGEROUS_PATTERNS = (
    re.compile(r"\b(DROP|DELETE|INSERT|UPDATE|CREATE|ALTER)\b", re.IGNORECASE),
    re.compile(r"\b(EXEC|EXECUTE)\b", re.IGNORECASE),
    re.compile(r"--"),
    re.compile(r"/\*"),
    re.compile(r";"),
)
_LOW_SELECTIVITY_HINTS = ("status", "type", "flag")
_VALID_ACTIONS = {action.value for action in ReferentialAction}


@dataclass
class ValidationContext:
    """
    What a definition is validated against.

    Attributes:
        dialect:              Target engine.
        available_columns:    Columns of the target table; ``None`` skips
                              column-existence checks.
        existing_indexes:     Indexes already on the table (duplicate checks).
        existing_constraints: Constraints already on the table.
    """
    dialect: DialectLike
    available_columns: list[str] | None = None
    existing_indexes: list[IndexDefinition] = field(default_factory=list)
    existing_constraints: list[ConstraintDefinition] = field(default_factory=list)

    @property
    def policy(self) -> DialectPolicy:
        return get_dialect(self.dialect)


# ---------------------------------------------------------------------------
# Shared rules
# ---------------------------------------------------------------------------

def _check_name(
    name: str | None,
    kind: str,
    policy: DialectPolicy,
    result: ValidationResult,
    field_: str = "name",
) -> None:
    """Non-empty, within the engine limit, identifier-shaped, not reserved."""
    label = kind.capitalize()
    if not name or not name.strip():
        result.error(VALIDATION, field_, f"{label} name is required")
        return

    max_length = policy.capabilities.max_name_length(kind)
    if len(name) > max_length:
        result.error(
            VALIDATION, field_, f"{label} name must be {max_length} characters or less"
        )
    elif len(name) > CONFIG.ddl.max_identifier_length:
        result.warning(
            DATABASE,
            field_,
            f"{label} name is longer than {CONFIG.ddl.max_identifier_length} "
            "characters and will not be portable to every engine",
        )

    if not _NAME_RE.match(name):
        result.error(
            VALIDATION,
            field_,
            f"{label} name must start with letter or underscore, contain only "
            "alphanumeric characters and underscores",
        )
    elif is_reserved_keyword(name):
        result.error(
            VALIDATION, field_, f"Reserved keyword cannot be used as {kind} name: {name}"
        )


def _check_columns_exist(
    columns: Iterable[str],
    available: list[str] | None,
    result: ValidationResult,
    field_: str = "columns",
    template: str = 'Column "{}" does not exist in the table',
) -> None:
    if available is None:
        return
    for column in columns:
        if column not in available:
            result.error(VALIDATION, field_, template.format(column))


def screen_expression(
    expression: str, field_: str, subject: str, result: ValidationResult
) -> None:
    """
    Screen a SQL fragment that will be emitted verbatim.

    Reports unbalanced parentheses as a ``validation`` error and statement
    keywords, comments or ``;`` as one ``security`` error.
    """
    depth = 0
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        result.error(VALIDATION, field_, f"Unbalanced parentheses in {subject}")

    if any(pattern.search(expression) for pattern in _DANGEROUS_PATTERNS):
        result.error(
            SECURITY,
            field_,
            f"{subject[0].upper()}{subject[1:]} contains potentially dangerous SQL",
        )


def _enum_value(value: object) -> str:
    return str(getattr(value, "value", value))


def validate_name(name: str, kind: str, context: ValidationContext) -> ValidationResult:
    """Name rules alone, for operations that only introduce a new identifier."""
    result = ValidationResult()
    _check_name(name, kind, context.policy, result)
    return result


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

def validate_column(column: ColumnDefinition, context: ValidationContext) -> ValidationResult:
    result = ValidationResult()
    policy = context.policy
    caps = policy.capabilities

    _check_name(column.name, "column", policy, result)

    if not column.data_type or not column.data_type.strip():
        result.error(VALIDATION, "data_type", "Data type is required")
    elif not is_known_type(column.data_type, policy.name):
        result.warning(
            DATABASE,
            "data_type",
            f'Unknown data type "{column.data_type}" for {policy.display_name}',
        )

    if column.is_primary_key and column.nullable:
        result.error(VALIDATION, "nullable", "Primary key column must be NOT NULL")

    if is_verbatim_default(column.default_value):
        screen_expression(
            column.default_value.strip(), "default_value", "default expression", result
        )

    if column.auto_increment:
        if column.data_type and not is_integer_type(column.data_type):
            result.error(
                VALIDATION, "auto_increment", "Auto-increment requires an integer column type"
            )
        if not column.is_primary_key:
            result.warning(
                VALIDATION,
                "auto_increment",
                "Auto-increment is normally used on a primary key column",
            )
        if not policy.auto_increment_clause():
            result.warning(
                DATABASE,
                "auto_increment",
                f"{policy.display_name} assigns INTEGER PRIMARY KEY values automatically; "
                "no auto-increment clause is emitted",
                severity=INFO,
            )

    if column.comment and not caps.supports_column_comments:
        result.warning(
            DATABASE,
            "comment",
            f"{policy.display_name} does not support column comments; the comment is ignored",
        )
    return result


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

def _validate_primary_key(
    constraint: ConstraintDefinition, context: ValidationContext, result: ValidationResult
) -> None:
    if not constraint.columns:
        result.error(
            VALIDATION, "columns", "Primary key constraint must specify at least one column"
        )
        return
    _check_columns_exist(constraint.columns, context.available_columns, result)


def _validate_unique(
    constraint: ConstraintDefinition, context: ValidationContext, result: ValidationResult
) -> None:
    if not constraint.columns:
        result.error(
            VALIDATION, "columns", "Unique constraint must specify at least one column"
        )
        return
    _check_columns_exist(constraint.columns, context.available_columns, result)


def _validate_foreign_key(
    constraint: ConstraintDefinition, context: ValidationContext, result: ValidationResult
) -> None:
    if not constraint.columns:
        result.error(
            VALIDATION, "columns", "Foreign key constraint must specify at least one local column"
        )
    if not constraint.referenced_table or not constraint.referenced_table.strip():
        result.error(
            VALIDATION,
            "referenced_table",
            "Foreign key constraint must specify a referenced table",
        )
    if not constraint.referenced_columns:
        result.error(
            VALIDATION,
            "referenced_columns",
            "Foreign key constraint must specify at least one referenced column",
        )
    if len(constraint.columns) != len(constraint.referenced_columns):
        result.error(
            VALIDATION,
            "columns",
            "Number of local columns must match number of referenced columns",
        )
    _check_columns_exist(
        constraint.columns,
        context.available_columns,
        result,
        template='Local column "{}" does not exist in the table',
    )
    for field_, action, label in (
        ("on_delete", constraint.on_delete, "ON DELETE"),
        ("on_update", constraint.on_update, "ON UPDATE"),
    ):
        if action is not None and _enum_value(action).upper() not in _VALID_ACTIONS:
            result.error(VALIDATION, field_, f"Invalid {label} action: {_enum_value(action)}")


def _validate_check(
    constraint: ConstraintDefinition, context: ValidationContext, result: ValidationResult
) -> None:
    policy = context.policy
    if not policy.capabilities.supports_check_constraints:
        result.error(
            DATABASE,
            "type",
            f"{policy.display_name} does not support CHECK constraints",
        )
    expression = (constraint.check_expression or "").strip()
    if not expression:
        result.error(
            VALIDATION, "check_expression", "Check constraint must specify an expression"
        )
        return
    screen_expression(expression, "check_expression", "check expression", result)
    if "ROWID" in expression.upper() and policy.name == Dialect.SQLITE:
        result.warning(
            DATABASE, "check_expression", "SQLite CHECK constraints cannot reference ROWID"
        )


_CONSTRAINT_RULES = {
    ConstraintType.PRIMARY_KEY: _validate_primary_key,
    ConstraintType.UNIQUE: _validate_unique,
    ConstraintType.FOREIGN_KEY: _validate_foreign_key,
    ConstraintType.CHECK: _validate_check,
}


def validate_constraint(
    constraint: ConstraintDefinition, context: ValidationContext
) -> ValidationResult:
    """
    Validate *constraint* against the table described by *context*.

    Example::

        ctx = ValidationContext(Dialect.POSTGRESQL, available_columns=["id", "email"])
        result = validate_constraint(
            ConstraintDefinition("uq_login", ConstraintType.UNIQUE, ["login"]), ctx
        )
        result.messages()   # 'Column "login" does not exist in the table'
    """
    result = ValidationResult()
    policy = context.policy

    _check_name(constraint.name, "constraint", policy, result)

    ctype = constraint.type
    if ctype == ConstraintType.NOT_NULL:
        result.error(
            VALIDATION,
            "type",
            "NOT NULL is not a table constraint; set nullable=False on the column instead",
        )
    elif ctype in _CONSTRAINT_RULES:
        _CONSTRAINT_RULES[ConstraintType(ctype)](constraint, context, result)
    else:
        result.error(VALIDATION, "type", f"Unsupported constraint type: {_enum_value(ctype)}")

    if constraint.deferrable and not policy.capabilities.supports_deferrable_constraints:
        result.error(
            DATABASE,
            "deferrable",
            f"{policy.display_name} does not support deferrable constraints",
        )
    elif constraint.deferrable and not policy.supports_deferrable(ctype):
        result.error(
            DATABASE,
            "deferrable",
            f"{policy.display_name} does not support deferrable "
            f"{_enum_value(ctype).upper().replace('_', ' ')} constraints",
        )

    for existing in context.existing_constraints:
        if constraint.name and existing.name == constraint.name:
            result.warning(
                VALIDATION, "name", f'Constraint name "{constraint.name}" already exists'
            )
        if ctype == ConstraintType.PRIMARY_KEY and existing.type == ConstraintType.PRIMARY_KEY:
            result.warning(
                VALIDATION,
                "type",
                "Multiple primary key constraints defined. Only one primary key per table is allowed.",
            )
        if (
            ctype == ConstraintType.UNIQUE
            and existing.type == ConstraintType.UNIQUE
            and sorted(existing.columns) == sorted(constraint.columns)
        ):
            result.warning(
                OPTIMIZATION,
                "columns",
                f"Duplicate unique constraint on columns: {','.join(sorted(constraint.columns))}",
            )
    return result


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------

def _check_existing_indexes(
    index: IndexDefinition, existing_indexes: list[IndexDefinition], result: ValidationResult
) -> None:
    new_columns = list(index.columns)
    for existing in existing_indexes:
        if existing.name == index.name:
            result.warning(VALIDATION, "name", f'Index name "{index.name}" already exists')

        old_columns = list(existing.columns)
        if not new_columns or not old_columns:
            continue
        if sorted(new_columns) == sorted(old_columns):
            result.warning(
                OPTIMIZATION,
                "columns",
                f"Index on columns [{', '.join(sorted(new_columns))}] already exists "
                f'as "{existing.name}"',
            )
        elif old_columns[: len(new_columns)] == new_columns:
            result.warning(
                OPTIMIZATION,
                "columns",
                f'Index columns are a prefix of existing index "{existing.name}"; '
                "the new index may be redundant",
            )
        elif new_columns[: len(old_columns)] == old_columns:
            result.warning(
                OPTIMIZATION,
                "columns",
                f'Index extends existing index "{existing.name}"; consider replacing it',
            )


def _check_index_performance(index: IndexDefinition, result: ValidationResult) -> None:
    if len(index.columns) > CONFIG.ddl.wide_index_threshold:
        result.warning(
            PERFORMANCE,
            "columns",
            "Very wide composite index may have poor performance and high maintenance cost",
        )
    if index.columns:
        leading = index.columns[0].lower()
        if any(hint in leading for hint in _LOW_SELECTIVITY_HINTS):
            result.warning(
                PERFORMANCE,
                "columns",
                "Leading column appears to have low selectivity - consider reordering",
            )


def validate_index(index: IndexDefinition, context: ValidationContext) -> ValidationResult:
    result = ValidationResult()
    policy = context.policy
    caps = policy.capabilities

    _check_name(index.name, "index", policy, result)
    if not index.table_name or not index.table_name.strip():
        result.error(VALIDATION, "table_name", "Index table name is required")

    if not index.columns:
        result.error(VALIDATION, "columns", "Index must specify at least one column")
    else:
        _check_columns_exist(index.columns, context.available_columns, result)
        seen: set[str] = set()
        duplicates: list[str] = []
        for column in index.columns:
            if column in seen and column not in duplicates:
                duplicates.append(column)
            seen.add(column)
        if duplicates:
            result.error(
                VALIDATION, "columns", f"Duplicate columns in index: {', '.join(duplicates)}"
            )

    if index.is_covering:
        if caps.supports_covering_indexes:
            _check_columns_exist(
                index.include,
                context.available_columns,
                result,
                field_="include",
                template='Include column "{}" does not exist in the table',
            )
        else:
            result.error(
                DATABASE, "include", f"{policy.display_name} does not support covering indexes"
            )
        for column in index.include:
            if column in index.columns:
                result.error(
                    VALIDATION,
                    "include",
                    f'Column "{column}" cannot be both in index columns and include columns',
                )

    if index.is_partial:
        if caps.supports_partial_indexes:
            screen_expression(index.where.strip(), "where", "WHERE clause", result)
        else:
            result.error(
                DATABASE, "where", f"{policy.display_name} does not support partial indexes"
            )

    if index.type is not None:
        index_type = _enum_value(index.type).upper()
        supported = {t.value for t in policy.supported_index_types}
        if index_type not in supported:
            result.error(
                DATABASE,
                "type",
                f'Index type "{index_type}" is not supported by {policy.display_name}',
            )

    _check_existing_indexes(index, context.existing_indexes, result)
    _check_index_performance(index, result)
    return result


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def validate_table(table: TableDefinition, context: ValidationContext) -> ValidationResult:
    """
    Validate a whole table: its name, every column, constraint and index.

    Column, constraint and index issues are folded in with their field
    scoped by the owning object, e.g. ``columns.email.data_type``.
    ``context.available_columns`` is ignored; the table's own columns are used.
    """
    result = ValidationResult()
    policy = context.policy

    _check_name(table.name, "table", policy, result)

    if not table.columns:
        result.error(VALIDATION, "columns", "Table must have at least one column")

    seen: set[str] = set()
    for column in table.columns:
        lowered = (column.name or "").lower()
        if lowered and lowered in seen:
            result.error(VALIDATION, "columns", f"Duplicate column name: {column.name}")
        seen.add(lowered)
        result.merge(validate_column(column, context), prefix=f"columns.{column.name}")

    if table.comment and not policy.capabilities.supports_table_comments:
        result.warning(
            DATABASE,
            "comment",
            f"{policy.display_name} does not support table comments; the comment is ignored",
        )

    column_names = table.column_names
    checked: list[ConstraintDefinition] = []
    for constraint in table.constraints:
        ctx = ValidationContext(
            policy, available_columns=column_names, existing_constraints=list(checked)
        )
        result.merge(
            validate_constraint(constraint, ctx), prefix=f"constraints.{constraint.name}"
        )
        checked.append(constraint)

    pk_constraints = [c for c in table.constraints if c.type == ConstraintType.PRIMARY_KEY]
    for constraint in pk_constraints:
        for name in constraint.columns:
            column = table.get_column(name)
            if column is not None and column.nullable:
                result.warning(
                    VALIDATION,
                    f"constraints.{constraint.name}.columns",
                    f'Primary key column "{column.name}" is declared nullable; '
                    "the database will make it NOT NULL",
                )

    if table.primary_key_columns and pk_constraints:
        result.warning(
            VALIDATION,
            "constraints",
            "Primary key defined on both column flags and a PRIMARY_KEY constraint; "
            "the column flags take precedence",
        )

    previous: list[IndexDefinition] = []
    for index in table.indexes:
        if index.table_name and index.table_name != table.name:
            result.error(
                VALIDATION,
                f"indexes.{index.name}.table_name",
                f'Index "{index.name}" belongs to table "{index.table_name}", not "{table.name}"',
            )
        ctx = ValidationContext(
            policy, available_columns=column_names, existing_indexes=list(previous)
        )
        result.merge(validate_index(index, ctx), prefix=f"indexes.{index.name}")
        previous.append(index)

    log.debug(
        "Validated table '%s' for %s: %d error(s), %d warning(s)",
        table.name, policy.display_name, len(result.errors), len(result.warnings),
    )
    return result

