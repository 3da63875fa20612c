"""core/__init__.py"""
from core.database import (
    DatabaseDriver,
    DatabaseError,
    ConnectionLostError,
    UnsupportedDatabaseError,
    create_driver,
)
from core.dialects import DialectPolicy, UnsupportedOperationError, get_dialect
from core.type_families import classify_conversion, ConversionSafety, get_base_type
from core.validation import (
    ValidationContext,
    validate_column,
    validate_constraint,
    validate_index,
    validate_table,
)
from core.analyzer import (
    analyze_constraint_dependencies,
    analyze_index_maintenance,
    analyze_index_performance,
    analyze_table_dependencies,
)
from core.connection_cache import ConnectionCache
from core.executor import (
    DDLExecutor,
    ConstraintOperation,
    IndexOperation,
    InvalidOperationError,
    OperationState,
    OptimizationReport,
)

__all__ = [
    "DatabaseDriver",
    "DatabaseError",
    "ConnectionLostError",
    "UnsupportedDatabaseError",
    "create_driver",
    "DialectPolicy",
    "UnsupportedOperationError",
    "get_dialect",
    "classify_conversion",
    "ConversionSafety",
    "get_base_type",
    "ValidationContext",
    "validate_column",
    "validate_constraint",
    "validate_index",
    "validate_table",
    "analyze_constraint_dependencies",
    "analyze_index_maintenance",
    "analyze_index_performance",
    "analyze_table_dependencies",
    "ConnectionCache",
    "DDLExecutor",
    "ConstraintOperation",
    "IndexOperation",
    "InvalidOperationError",
    "OperationState",
    "OptimizationReport",
]
