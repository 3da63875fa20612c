"""
core/capabilities.py
--------------------
Static per-engine feature table.

Design Decisions:
    * One immutable ``EngineCapabilities`` row per dialect. Validation and
      generation ask the row instead of branching on the engine name, so
      supporting a new engine means adding a row here and a policy class in
      ``core/dialects.py``.
    * Reserved keywords are checked case-insensitively against one shared
      set; engine-specific keyword lists are not modelled.
"""
from __future__ import annotations

from dataclasses import dataclass

from models.schema import ConstraintType, Dialect, IndexType


@dataclass(frozen=True)
class EngineCapabilities:
    supports_partial_indexes: bool
    supports_expression_indexes: bool
    supports_covering_indexes: bool
    supports_check_constraints: bool
    supports_deferrable_constraints: bool
    supports_table_comments: bool
    supports_column_comments: bool
    supports_auto_increment: bool
    supports_sequences: bool
    max_table_name_length: int
    max_column_name_length: int
    max_index_name_length: int
    max_constraint_name_length: int

    def max_name_length(self, kind: str) -> int:
        """Limit for ``kind`` in {"table", "column", "index", "constraint"}."""
        return {
            "table": self.max_table_name_length,
            "column": self.max_column_name_length,
            "index": self.max_index_name_length,
            "constraint": self.max_constraint_name_length,
        }[kind]


ENGINE_CAPABILITIES: dict[Dialect, EngineCapabilities] = {
    Dialect.MYSQL: EngineCapabilities(
        supports_partial_indexes=False,
        supports_expression_indexes=True,
        supports_covering_indexes=False,
        supports_check_constraints=True,
        supports_deferrable_constraints=False,
        supports_table_comments=True,
        supports_column_comments=True,
        supports_auto_increment=True,
        supports_sequences=False,
        max_table_name_length=64,
        max_column_name_length=64,
        max_index_name_length=64,
        max_constraint_name_length=64,
    ),
    Dialect.POSTGRESQL: EngineCapabilities(
        supports_partial_indexes=True,
        supports_expression_indexes=True,
        supports_covering_indexes=True,
        supports_check_constraints=True,
        supports_deferrable_constraints=True,
        supports_table_comments=True,
        supports_column_comments=True,
        supports_auto_increment=False,  # identity columns / sequences instead
        supports_sequences=True,
        max_table_name_length=63,
        max_column_name_length=63,
        max_index_name_length=63,
        max_constraint_name_length=63,
    ),
    Dialect.SQLITE: EngineCapabilities(
        supports_partial_indexes=True,
        supports_expression_indexes=True,
        supports_covering_indexes=False,
        supports_check_constraints=True,
        supports_deferrable_constraints=True,
        supports_table_comments=False,
        supports_column_comments=False,
        supports_auto_increment=True,
        supports_sequences=False,
        max_table_name_length=1000,
        max_column_name_length=1000,
        max_index_name_length=1000,
        max_constraint_name_length=1000,
    ),
}

SUPPORTED_INDEX_TYPES: dict[Dialect, tuple[IndexType, ...]] = {
    Dialect.MYSQL: (IndexType.BTREE, IndexType.HASH),
    Dialect.POSTGRESQL: (
        IndexType.BTREE,
        IndexType.HASH,
        IndexType.GIN,
        IndexType.GIST,
        IndexType.SPGIST,
        IndexType.BRIN,
    ),
    Dialect.SQLITE: (IndexType.BTREE,),
}

# Constraint types that accept DEFERRABLE.
DEFERRABLE_CONSTRAINT_TYPES: dict[Dialect, tuple[ConstraintType, ...]] = {
    Dialect.MYSQL: (),
    Dialect.POSTGRESQL: (
        ConstraintType.PRIMARY_KEY,
        ConstraintType.UNIQUE,
        ConstraintType.FOREIGN_KEY,
    ),
    Dialect.SQLITE: (ConstraintType.FOREIGN_KEY,),
}

RESERVED_KEYWORDS: frozenset[str] = frozenset({
    "SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER",
    "TABLE", "INDEX", "VIEW", "DATABASE", "SCHEMA", "FROM", "WHERE",
    "JOIN", "INNER", "LEFT", "RIGHT", "FULL", "OUTER", "UNION", "GROUP",
    "ORDER", "BY", "HAVING", "LIMIT", "OFFSET", "AS", "AND", "OR", "NOT",
    "IN", "EXISTS", "BETWEEN", "LIKE", "IS", "NULL", "TRUE", "FALSE",
    "CASE", "WHEN", "THEN", "ELSE", "END", "IF", "WHILE", "FOR", "LOOP",
    "FUNCTION", "PROCEDURE", "TRIGGER", "PRIMARY", "FOREIGN", "KEY",
    "REFERENCES", "CONSTRAINT", "UNIQUE", "CHECK", "DEFAULT",
    "AUTO_INCREMENT", "SERIAL", "BOOLEAN", "INTEGER", "DECIMAL", "FLOAT",
    "DOUBLE", "VARCHAR", "TEXT", "DATE", "TIME", "TIMESTAMP", "BLOB",
})


def is_reserved_keyword(name: str) -> bool:
    return name.upper() in RESERVED_KEYWORDS
