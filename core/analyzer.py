"""
core/analyzer.py
----------------
Dependency ordering and index heuristics.

Everything here is advisory: nothing blocks execution, and all sizes,
selectivities and costs are rough estimates from definitions alone. No
database is consulted.

Design Decisions:
    * Foreign keys are the only edges of the table graph. Column flags such
      as ``is_foreign_key`` are not guessed into references.
    * Cycle detection is a full depth-first walk over every table in the
      batch; each elementary cycle is reported once, rotated so that it
      starts at its earliest table in input order. Self references are legal
      and never reported.
    * Suggestions carry machine-readable ``action`` / ``index_name`` /
      ``columns`` fields, so callers never parse the human message.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from config import CONFIG
from logger import get_logger
from models.results import (
    OPTIMIZATION,
    VALIDATION,
    WARNING,
    ConstraintAnalysis,
    IndexManagementResult,
    IndexPerformanceAnalysis,
    IndexSuggestion,
    TableDependencyReport,
    ValidationIssue,
)
from models.schema import (
    ConstraintDefinition,
    ConstraintType,
    IndexDefinition,
    TableDefinition,
)

log = get_logger(__name__)

CREATE_INDEX = "create_index"
DROP_INDEX = "drop_index"


# ---------------------------------------------------------------------------
# Constraint ordering and dependencies
# ---------------------------------------------------------------------------

def get_constraint_creation_order(
    constraints: Sequence[ConstraintDefinition],
) -> list[ConstraintDefinition]:
    """Non-foreign-key constraints first, then foreign keys; input order kept."""
    non_fk = [c for c in constraints if not c.is_foreign_key]
    fk = [c for c in constraints if c.is_foreign_key]
    return non_fk + fk


def _find_cycles(graph: dict[str, list[str]], order: list[str]) -> list[list[str]]:
    """
    Every elementary cycle of *graph* (self loops excluded), each once.

    A cycle is reported starting from its member that comes first in
    *order*; only nodes at or after the start are explored from it, which
    is what keeps each cycle from being found more than once.
    """
    position = {node: i for i, node in enumerate(order)}
    cycles: list[list[str]] = []

    for start in order:
        start_pos = position[start]
        stack: list[tuple[str, list[str]]] = [(start, [start])]
        while stack:
            node, path = stack.pop()
            for neighbour in reversed(graph.get(node, [])):
                if neighbour == node or neighbour not in position:
                    continue
                if neighbour == start:
                    cycles.append(list(path))
                elif position[neighbour] > start_pos and neighbour not in path:
                    stack.append((neighbour, path + [neighbour]))
    cycles.sort(key=lambda cycle: [position[n] for n in cycle])
    return cycles


def _foreign_key_graph(tables: Iterable[TableDefinition]) -> dict[str, list[str]]:
    """Table name → distinct tables its FOREIGN_KEY constraints reference."""
    graph: dict[str, list[str]] = {}
    for table in tables:
        targets = graph.setdefault(table.name, [])
        for constraint in table.constraints:
            target = constraint.referenced_table
            if constraint.is_foreign_key and target and target not in targets:
                targets.append(target)
    return graph


def analyze_constraint_dependencies(
    constraints: Sequence[ConstraintDefinition],
    table_name: str | None = None,
    tables: Sequence[TableDefinition] = (),
) -> ConstraintAnalysis:
    """
    Map each foreign key to the tables it references and flag conflicts.

    *constraints* belong to *table_name*. Circular dependencies are found by
    walking the foreign keys of *tables* (the rest of the schema) together
    with these constraints; without a table name there is nothing to walk.
    """
    analysis = ConstraintAnalysis()
    for constraint in constraints:
        if constraint.is_foreign_key and constraint.referenced_table:
            analysis.dependencies.setdefault(constraint.name, []).append(
                constraint.referenced_table
            )

    primary_keys = [c for c in constraints if c.type == ConstraintType.PRIMARY_KEY]
    if len(primary_keys) > 1:
        analysis.warnings.append(ValidationIssue(
            VALIDATION,
            "constraints",
            "Multiple primary key constraints defined. Only one primary key per table is allowed.",
            WARNING,
        ))

    seen_sets: set[str] = set()
    for unique in (c for c in constraints if c.type == ConstraintType.UNIQUE):
        column_set = ",".join(sorted(unique.columns))
        if column_set in seen_sets:
            analysis.warnings.append(ValidationIssue(
                OPTIMIZATION,
                "constraints",
                f"Duplicate unique constraint on columns: {column_set}",
                WARNING,
            ))
        seen_sets.add(column_set)

    if table_name:
        graph = _foreign_key_graph(t for t in tables if t.name != table_name)
        own = graph.setdefault(table_name, [])
        for targets in analysis.dependencies.values():
            for target in targets:
                if target not in own:
                    own.append(target)
        order = [table_name] + [name for name in graph if name != table_name]
        for targets in list(graph.values()):
            for target in targets:
                if target not in graph:
                    graph[target] = []
                    order.append(target)
        analysis.circular_dependencies = _find_cycles(graph, order)
        if not analysis.can_apply:
            log.warning(
                "Constraints on '%s' close a foreign-key cycle: %s",
                table_name,
                "; ".join(" -> ".join(cycle) for cycle in analysis.circular_dependencies),
            )
    return analysis


def analyze_table_dependencies(tables: Sequence[TableDefinition]) -> TableDependencyReport:
    """
    Build the cross-table foreign-key graph of a migration batch.

    Returns the referenced tables per table (only tables inside the batch),
    every cycle, and a creation order in which referenced tables come first.
    Members of cycles cannot be ordered and are appended in input order.

    Example::

        report = analyze_table_dependencies([orders, users])
        report.creation_order   # ["users", "orders"]
    """
    names = [t.name for t in tables]
    known = set(names)
    graph = {
        name: [target for target in targets if target in known]
        for name, targets in _foreign_key_graph(tables).items()
    }

    cycles = _find_cycles(graph, names)

    # Kahn's algorithm, stable on input order; self references ignored.
    in_degree = {name: 0 for name in names}
    dependants: dict[str, list[str]] = defaultdict(list)
    for name, targets in graph.items():
        for target in targets:
            if target != name:
                in_degree[name] += 1
                dependants[target].append(name)

    ordered: list[str] = []
    ready = [name for name in names if in_degree[name] == 0]
    while ready:
        current = ready.pop(0)
        ordered.append(current)
        for dependant in dependants[current]:
            in_degree[dependant] -= 1
            if in_degree[dependant] == 0:
                ready.append(dependant)
        ready.sort(key=names.index)

    ordered.extend(name for name in names if name not in ordered)

    report = TableDependencyReport(dependencies=graph, cycles=cycles, creation_order=ordered)
    if report.has_cycles:
        log.warning(
            "Circular foreign-key dependencies between tables: %s",
            "; ".join(" -> ".join(cycle + [cycle[0]]) for cycle in cycles),
        )
    return report


# ---------------------------------------------------------------------------
# Index heuristics
# ---------------------------------------------------------------------------

def estimate_index_size(index: IndexDefinition) -> float:
    """Estimated size in MB: 1 MB per key or included column."""
    column_count = len(index.columns) + len(index.include)
    size = 1.0 * column_count
    if index.unique:
        size *= 0.8
    if index.is_partial:
        size *= 0.3
    return size


def estimate_maintenance_cost(index: IndexDefinition) -> str:
    column_count = len(index.columns) + len(index.include)
    if column_count > 8 or len(index.columns) > 5:
        return "high"
    if column_count > 4:
        return "medium"
    return "low"


def analyze_index_performance(
    index: IndexDefinition, available_columns: Iterable[str] = ()
) -> IndexPerformanceAnalysis:
    """Heuristic selectivity, size, maintenance cost and advice for one index."""
    available = list(available_columns)
    suggestions: list[IndexSuggestion] = []
    selectivity = 0.1

    def suggest(type_: str, priority: str, message: str) -> None:
        suggestions.append(IndexSuggestion(
            type=type_,
            priority=priority,
            message=message,
            index_name=index.name,
            table_name=index.table_name,
            columns=tuple(index.columns),
        ))

    if index.columns:
        missing = [col for col in index.columns if col not in available]
        if missing:
            suggest(
                "warning",
                "high",
                f"Columns [{', '.join(missing)}] not found in available columns. "
                "Index references non-existent columns",
            )

        if len(index.columns) == 1:
            column = index.columns[0].lower()
            if "id" in column or "uuid" in column:
                selectivity = 0.001
                suggest(
                    "optimization",
                    "high",
                    f'Column "{index.columns[0]}" appears to be highly selective - excellent for indexing',
                )
            elif "status" in column or "type" in column:
                selectivity = 0.3
                suggest(
                    "warning",
                    "medium",
                    f'Column "{index.columns[0]}" may have low selectivity - consider composite index',
                )
        else:
            selectivity = 0.01
            first = index.columns[0].lower()
            if "status" in first or "type" in first:
                suggest(
                    "optimization",
                    "high",
                    "Consider placing more selective columns first in composite index",
                )
            if len(index.columns) > 5:
                suggest(
                    "warning",
                    "medium",
                    "Very wide composite index may have high maintenance cost",
                )

    if index.is_partial:
        selectivity *= 0.1
        suggest(
            "optimization",
            "high",
            "Partial index can significantly reduce index size and maintenance cost",
        )

    if index.include:
        suggest(
            "optimization",
            "medium",
            "Covering index can eliminate table lookups for covered columns",
        )
        if len(index.include) > 10:
            suggest("warning", "low", "Very wide covering index may have diminishing returns")

    if index.unique:
        selectivity = min(selectivity, 0.001)
        suggest(
            "optimization",
            "high",
            "Unique index provides both constraint enforcement and excellent selectivity",
        )

    return IndexPerformanceAnalysis(
        estimated_selectivity=selectivity,
        estimated_size_mb=estimate_index_size(index),
        maintenance_cost=estimate_maintenance_cost(index),
        suggestions=suggestions,
    )


def _is_prefix(shorter: list[str], longer: list[str]) -> bool:
    return bool(shorter) and longer[: len(shorter)] == shorter


def find_redundant_indexes(indexes: Sequence[IndexDefinition]) -> list[IndexSuggestion]:
    """
    Pairs where one index's columns are a prefix of (or equal to) another's.

    The suggestion targets the shorter index with ``action=drop_index``
    unless that index is unique, since dropping it would lose the constraint.
    """
    suggestions: list[IndexSuggestion] = []
    for i, first in enumerate(indexes):
        for second in indexes[i + 1:]:
            if len(first.columns) <= len(second.columns):
                shorter, longer = first, second
            else:
                shorter, longer = second, first
            if not _is_prefix(list(shorter.columns), list(longer.columns)):
                continue
            suggestions.append(IndexSuggestion(
                type="warning",
                priority="medium",
                message=f'Index "{second.name}" may be redundant with "{first.name}"',
                action=None if shorter.unique else DROP_INDEX,
                index_name=shorter.name,
                table_name=shorter.table_name,
                columns=tuple(shorter.columns),
                related_index=longer.name,
            ))
    return suggestions


def find_missing_fk_indexes(
    indexes: Sequence[IndexDefinition],
    columns: Iterable[str],
    table_name: str | None = None,
) -> list[IndexSuggestion]:
    """Columns named like foreign keys (``*id`` / ``*_id``) that no index leads with."""
    suggestions: list[IndexSuggestion] = []
    for column in columns:
        if not column.lower().endswith("id"):
            continue
        if any(idx.columns and idx.columns[0] == column for idx in indexes):
            continue
        suggestions.append(IndexSuggestion(
            type="optimization",
            priority="high",
            message=f'Consider adding index on foreign key column "{column}"',
            action=CREATE_INDEX,
            table_name=table_name,
            columns=(column,),
        ))
    return suggestions


def analyze_index_maintenance(
    indexes: Sequence[IndexDefinition],
    table_columns: Iterable[str] = (),
    table_name: str | None = None,
) -> IndexManagementResult:
    """Summary of an index set plus redundancy / missing-index recommendations."""
    total_size = sum(estimate_index_size(idx) for idx in indexes)
    if len(indexes) > 15 or total_size > 1000:
        complexity = "high"
    elif len(indexes) > 8 or total_size > 500:
        complexity = "medium"
    else:
        complexity = "low"

    summary = {
        "total_indexes": len(indexes),
        "unique_indexes": sum(1 for idx in indexes if idx.unique),
        "partial_indexes": sum(1 for idx in indexes if idx.is_partial),
        "covering_indexes": sum(1 for idx in indexes if idx.is_covering),
        "estimated_total_size_mb": total_size,
        "maintenance_complexity": complexity,
    }

    recommendations = find_redundant_indexes(indexes)
    recommendations.extend(find_missing_fk_indexes(indexes, table_columns, table_name))
    if len(indexes) > CONFIG.ddl.many_indexes_threshold:
        recommendations.append(IndexSuggestion(
            type="warning",
            priority="low",
            message="Table has many indexes - consider consolidating or removing unused ones",
            table_name=table_name,
        ))

    log.debug(
        "Index maintenance for %s: %d index(es), %d recommendation(s)",
        table_name or "<table>", len(indexes), len(recommendations),
    )
    return IndexManagementResult(
        summary=summary,
        recommendations=recommendations,
        can_optimize=bool(recommendations),
    )
