"""
models/results.py
-----------------
Result and report types returned by the validation pipeline, the analyzer
and the execution coordinator, plus the connection descriptor.

Design Decisions:
    * ``DDLResult`` is frozen: once a statement has run, its outcome never
      changes. ``ok`` / ``failed`` constructors keep call sites short.
    * Validation issues carry a ``type`` (validation, security, database,
      performance, optimization) and a ``severity`` so callers can decide
      what blocks and what is merely advisory.
    * ``ConnectionConfig`` is a pydantic model because it crosses the
      boundary with the UI / host process and must be validated on the way in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

from models.schema import Dialect

# Issue types
VALIDATION = "validation"
SECURITY = "security"
DATABASE = "database"
PERFORMANCE = "performance"
OPTIMIZATION = "optimization"

# Severities
ERROR = "error"
WARNING = "warning"
INFO = "info"


# ---------------------------------------------------------------------------
# Execution results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DDLResult:
    """
    Outcome of executing one DDL statement (or one logical operation).

    Attributes:
        success:        True if the statement ran without error.
        sql:            The statement that was (or would have been) sent.
        error:          Human-readable failure message.
        execution_time: Wall time in milliseconds.
        affected_rows:  Row count reported by the driver, when any.
    """
    success: bool
    sql: str | None = None
    error: str | None = None
    execution_time: float = 0.0
    affected_rows: int | None = None

    @classmethod
    def ok(
        cls,
        sql: str | None = None,
        execution_time: float = 0.0,
        affected_rows: int | None = None,
    ) -> "DDLResult":
        return cls(
            success=True,
            sql=sql,
            execution_time=execution_time,
            affected_rows=affected_rows,
        )

    @classmethod
    def failed(
        cls,
        error: str,
        sql: str | None = None,
        execution_time: float = 0.0,
    ) -> "DDLResult":
        return cls(success=False, sql=sql, error=error, execution_time=execution_time)

    def __str__(self) -> str:
        status = "OK" if self.success else "FAILED"
        text = f"[{status}] {self.execution_time:.1f} ms"
        if self.error:
            text += f": {self.error}"
        return text


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationIssue:
    """One finding of the validation pipeline."""
    type: str
    field: str
    message: str
    severity: str = ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR


@dataclass
class ValidationResult:
    """Aggregated outcome of validating one definition."""
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, issue: ValidationIssue) -> None:
        if issue.is_error:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def error(self, type_: str, field_: str, message: str) -> None:
        self.add(ValidationIssue(type_, field_, message, ERROR))

    def warning(self, type_: str, field_: str, message: str, severity: str = WARNING) -> None:
        self.add(ValidationIssue(type_, field_, message, severity))

    def merge(self, other: "ValidationResult", prefix: str = "") -> None:
        """Fold *other* into this result, optionally scoping its field names."""
        for issue in [*other.errors, *other.warnings]:
            if prefix:
                issue = ValidationIssue(
                    issue.type, f"{prefix}.{issue.field}", issue.message, issue.severity
                )
            self.add(issue)

    def messages(self, separator: str = "; ") -> str:
        """All error messages joined into one line."""
        return separator.join(issue.message for issue in self.errors)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IndexSuggestion:
    """
    An advisory finding about an index set.

    ``action`` is machine readable (``create_index``, ``drop_index``) and the
    remaining fields say what to act on, so callers never parse ``message``.
    """
    type: str
    priority: str
    message: str
    action: str | None = None
    index_name: str | None = None
    table_name: str | None = None
    columns: tuple[str, ...] = ()
    related_index: str | None = None


@dataclass
class IndexPerformanceAnalysis:
    """Heuristic profile of one index."""
    estimated_selectivity: float
    estimated_size_mb: float
    maintenance_cost: str
    suggestions: list[IndexSuggestion] = field(default_factory=list)


@dataclass
class IndexManagementResult:
    """Summary and recommendations for every index of one table."""
    summary: dict[str, Any]
    recommendations: list[IndexSuggestion] = field(default_factory=list)
    can_optimize: bool = False


@dataclass
class ConstraintAnalysis:
    """Dependency view of a constraint set."""
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    warnings: list[ValidationIssue] = field(default_factory=list)
    circular_dependencies: list[list[str]] = field(default_factory=list)

    @property
    def can_apply(self) -> bool:
        return not self.circular_dependencies


@dataclass
class TableDependencyReport:
    """Cross-table foreign-key graph of a migration batch."""
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    cycles: list[list[str]] = field(default_factory=list)
    creation_order: list[str] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)


@dataclass(frozen=True)
class ConnectionTestResult:
    """Outcome of a one-off connect / disconnect check."""
    success: bool
    message: str


# ---------------------------------------------------------------------------
# Connection descriptor
# ---------------------------------------------------------------------------

class ConnectionConfig(BaseModel):
    """Everything needed to open one database connection."""
    id: str
    name: str = ""
    type: str
    host: Optional[str] = None
    port: Optional[int] = None
    database: str = ""
    username: Optional[str] = None
    password: Optional[str] = None
    ssl: bool = False
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def dialect(self) -> Dialect:
        """The :class:`Dialect` for ``type``; raises ValueError if unknown."""
        return Dialect(self.type.lower())
