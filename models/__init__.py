"""models/__init__.py"""
from models.schema import (
    Dialect,
    ConstraintType,
    ReferentialAction,
    IndexType,
    ColumnDefinition,
    ConstraintDefinition,
    IndexDefinition,
    TableDefinition,
)
from models.results import (
    DDLResult,
    ValidationIssue,
    ValidationResult,
    IndexSuggestion,
    IndexPerformanceAnalysis,
    IndexManagementResult,
    ConstraintAnalysis,
    TableDependencyReport,
    ConnectionConfig,
    ConnectionTestResult,
)

__all__ = [
    "Dialect",
    "ConstraintType",
    "ReferentialAction",
    "IndexType",
    "ColumnDefinition",
    "ConstraintDefinition",
    "IndexDefinition",
    "TableDefinition",
    "DDLResult",
    "ValidationIssue",
    "ValidationResult",
    "IndexSuggestion",
    "IndexPerformanceAnalysis",
    "IndexManagementResult",
    "ConstraintAnalysis",
    "TableDependencyReport",
    "ConnectionConfig",
    "ConnectionTestResult",
]
