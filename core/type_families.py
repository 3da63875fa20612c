"""
core/type_families.py
---------------------
Data type families, per-engine type vocabularies and conversion safety.

Classifies any old→new column type pairing as:
    SAFE   – Will succeed without data loss (e.g. INT → BIGINT).
    LOSSY  – Will succeed but may truncate or lose precision
             (e.g. FLOAT → INT, TIMESTAMP → DATE).
    UNSAFE – Likely to fail or produce silently wrong data
             (e.g. TEXT → INT, DATETIME → BYTEA).

Used by validation (unknown types, auto-increment on non-integers) and by
the coordinator to warn before a column type is modified.

Design Decision:
    Pure functions with no side effects make this module trivially testable.
    The classification table encodes domain knowledge as data (sets + a
    simple priority model) rather than a deeply nested if/else tree.
"""
from __future__ import annotations

from enum import Enum

from models.schema import Dialect


class ConversionSafety(str, Enum):
    SAFE = "safe"
    LOSSY = "lossy"
    UNSAFE = "unsafe"


# ---------------------------------------------------------------------------
# Type category sets
# ---------------------------------------------------------------------------
INTEGER_TYPES = frozenset({
    "tinyint", "smallint", "mediumint", "int", "integer", "bigint",
    "int2", "int4", "int8", "serial", "bigserial", "smallserial",
})
_APPROX_NUMERIC = frozenset({"float", "double", "double precision", "real", "float4", "float8"})
_EXACT_NUMERIC = frozenset({"decimal", "numeric", "fixed", "money"})
_STRING_TYPES = frozenset({
    "char", "varchar", "character", "character varying", "tinytext", "text",
    "mediumtext", "longtext", "enum", "set", "citext", "uuid",
})
_DATETIME_TYPES = frozenset({
    "date", "datetime", "timestamp", "timestamptz", "time", "timetz", "year",
    "interval",
})
_BINARY_TYPES = frozenset({
    "binary", "varbinary", "tinyblob", "blob", "mediumblob", "longblob", "bit",
    "bytea",
})
_BOOLEAN_TYPES = frozenset({"boolean", "bool"})
_JSON_TYPES = frozenset({"json", "jsonb"})

_CAT_MAP = (
    ("int",    INTEGER_TYPES),
    ("approx", _APPROX_NUMERIC),
    ("exact",  _EXACT_NUMERIC),
    ("str",    _STRING_TYPES),
    ("dt",     _DATETIME_TYPES),
    ("bin",    _BINARY_TYPES),
    ("bool",   _BOOLEAN_TYPES),
    ("json",   _JSON_TYPES),
)

# Multi-word base types that must not be cut at the first space.
_COMPOUND_TYPES = ("double precision", "character varying")

# Base types each engine accepts. Anything else is reported as a warning,
# never an error, since engines accept aliases this table does not list.
KNOWN_TYPES: dict[Dialect, frozenset[str]] = {
    Dialect.MYSQL: frozenset({
        "tinyint", "smallint", "mediumint", "int", "integer", "bigint",
        "decimal", "numeric", "float", "double", "real", "bit", "boolean", "bool",
        "char", "varchar", "tinytext", "text", "mediumtext", "longtext",
        "enum", "set", "date", "time", "datetime", "timestamp", "year",
        "binary", "varbinary", "tinyblob", "blob", "mediumblob", "longblob",
        "json",
    }),
    Dialect.POSTGRESQL: frozenset({
        "smallint", "integer", "int", "bigint", "int2", "int4", "int8",
        "serial", "bigserial", "smallserial", "decimal", "numeric", "real",
        "double precision", "float", "float4", "float8", "money",
        "char", "character", "varchar", "character varying", "text", "citext",
        "boolean", "bool", "date", "time", "timetz", "timestamp",
        "timestamptz", "interval", "bytea", "uuid", "json", "jsonb", "array",
        "inet", "cidr", "macaddr", "xml", "tsvector", "point",
    }),
    Dialect.SQLITE: frozenset({
        "integer", "int", "bigint", "smallint", "tinyint", "real", "double",
        "float", "numeric", "decimal", "boolean", "text", "varchar", "char",
        "clob", "blob", "date", "datetime", "timestamp", "time",
    }),
}


def get_base_type(dtype_string: str) -> str:
    """
    Extract the base SQL type keyword from a full type definition string.

    Examples::

        get_base_type("VARCHAR(255) NOT NULL")   →  "varchar"
        get_base_type("INT UNSIGNED")            →  "int"
        get_base_type("DOUBLE PRECISION")        →  "double precision"
        get_base_type("INTEGER[]")               →  "integer"
        get_base_type("")                        →  ""
    """
    if not dtype_string or not dtype_string.strip():
        return ""
    lowered = " ".join(dtype_string.lower().split())
    for compound in _COMPOUND_TYPES:
        if lowered.startswith(compound):
            return compound
    return lowered.split("(")[0].split()[0].rstrip("[]")


def _category(base_type: str) -> str:
    for cat, types in _CAT_MAP:
        if base_type in types:
            return cat
    return "other"


def is_integer_type(dtype_string: str) -> bool:
    return get_base_type(dtype_string) in INTEGER_TYPES


def is_known_type(dtype_string: str, dialect: Dialect) -> bool:
    """True if the base type is part of *dialect*'s known vocabulary."""
    return get_base_type(dtype_string) in KNOWN_TYPES.get(dialect, frozenset())


def classify_conversion(old_type: str, new_type: str) -> ConversionSafety:
    """
    Classify the safety of converting *old_type* data into *new_type*.

    Args:
        old_type: Existing column type (whole definition or base keyword).
        new_type: Target column type (whole definition or base keyword).

    Returns:
        :class:`ConversionSafety` enum value.

    Examples::

        classify_conversion("INT", "BIGINT")          → SAFE
        classify_conversion("FLOAT", "INT")           → LOSSY
        classify_conversion("TEXT", "INT")            → UNSAFE
        classify_conversion("VARCHAR(255)", "TEXT")   → SAFE
    """
    old_base = get_base_type(old_type)
    new_base = get_base_type(new_type)

    if old_base == new_base:
        return ConversionSafety.SAFE

    old_cat = _category(old_base)
    new_cat = _category(new_base)

    # --- Anything → String ---
    if new_cat == "str":
        if new_base == "uuid":
            return ConversionSafety.SAFE if old_cat == "str" else ConversionSafety.UNSAFE
        return ConversionSafety.LOSSY if old_cat == "bin" else ConversionSafety.SAFE

    # --- Numeric → Numeric ---
    if old_cat in ("int", "approx", "exact") and new_cat in ("int", "approx", "exact"):
        if new_cat == "int":
            return ConversionSafety.LOSSY if old_cat in ("approx", "exact") else ConversionSafety.SAFE
        if new_cat == "approx":
            return ConversionSafety.LOSSY
        return ConversionSafety.LOSSY if old_cat == "approx" else ConversionSafety.SAFE

    # --- Boolean ↔ Integer ---
    if old_cat == "bool" and new_cat == "int":
        return ConversionSafety.SAFE
    if old_cat == "int" and new_cat == "bool":
        return ConversionSafety.LOSSY

    # --- DateTime → DateTime ---
    if old_cat == "dt" and new_cat == "dt":
        if old_base == "date" and new_base in ("datetime", "timestamp", "timestamptz"):
            return ConversionSafety.SAFE
        if {old_base, new_base} <= {"datetime", "timestamp", "timestamptz"}:
            return ConversionSafety.SAFE
        return ConversionSafety.LOSSY

    # --- Binary → Binary ---
    if old_cat == "bin" and new_cat == "bin":
        return ConversionSafety.SAFE

    # --- String → Binary ---
    if old_cat == "str" and new_cat == "bin":
        return ConversionSafety.LOSSY

    # --- * → JSON ---
    if new_cat == "json":
        return ConversionSafety.SAFE

    return ConversionSafety.UNSAFE
