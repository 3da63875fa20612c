"""
models/schema.py
----------------
Typed data models describing tables, columns, constraints and indexes.

Design Decision:
    Using ``@dataclass`` and ``Enum`` instead of plain dicts ensures:
    * Type checking / IDE auto-complete throughout the codebase.
    * A single source of truth for valid constraint, action and index types.
    * Easy serialisation / deserialisation with explicit to_dict / from_dict
      methods. ``from_dict`` accepts both the snake_case keys used here and
      the camelCase keys sent by the editor UI (``dataType``,
      ``isPrimaryKey``, ``referencedTable`` ...).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

DefaultValue = Union[str, int, float, bool, None]


class Dialect(str, Enum):
    """Database engines the generator knows how to speak."""
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class ConstraintType(str, Enum):
    PRIMARY_KEY = "PRIMARY_KEY"
    FOREIGN_KEY = "FOREIGN_KEY"
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"
    NOT_NULL = "NOT_NULL"


class ReferentialAction(str, Enum):
    """ON DELETE / ON UPDATE actions for foreign keys."""
    CASCADE = "CASCADE"
    SET_NULL = "SET_NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO_ACTION"
    SET_DEFAULT = "SET_DEFAULT"

    @property
    def sql(self) -> str:
        return self.value.replace("_", " ")


class IndexType(str, Enum):
    BTREE = "BTREE"
    HASH = "HASH"
    GIN = "GIN"
    GIST = "GIST"
    SPGIST = "SPGIST"
    BRIN = "BRIN"


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in *data* (snake_case or camelCase)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _enum_or_raw(enum_cls: type[Enum], value: Any) -> Any:
    """
    Coerce *value* into *enum_cls* when it names a member.

    Unknown strings are kept verbatim so the validation pipeline can report
    them as structured errors instead of failing during deserialisation.
    """
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        return value


_SIZED_TYPE_RE = re.compile(r"\(\s*\d")


@dataclass
class ColumnDefinition:
    """
    One column of a table.

    Attributes:
        name:           Column name (unquoted).
        data_type:      Engine type string, e.g. ``"VARCHAR(255)"``.
        nullable:       False renders ``NOT NULL``.
        default_value:  ``None`` means no DEFAULT clause; the string
                        ``"NULL"`` renders an explicit ``DEFAULT NULL``.
        is_primary_key: Column participates in the table primary key.
        auto_increment: Engine-specific identity generation.
        max_length / precision / scale:
                        Appended to ``data_type`` when it has no size yet.
    """
    name: str
    data_type: str
    nullable: bool = True
    default_value: DefaultValue = None
    comment: str | None = None
    is_primary_key: bool = False
    is_foreign_key: bool = False
    auto_increment: bool = False
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None

    @property
    def full_type(self) -> str:
        """``data_type`` with length / precision appended when not explicit."""
        data_type = (self.data_type or "").strip()
        if _SIZED_TYPE_RE.search(data_type):
            return data_type
        if self.max_length is not None:
            return f"{data_type}({self.max_length})"
        if self.precision is not None:
            if self.scale is not None:
                return f"{data_type}({self.precision},{self.scale})"
            return f"{data_type}({self.precision})"
        return data_type

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type,
            "nullable": self.nullable,
            "default_value": self.default_value,
            "comment": self.comment,
            "is_primary_key": self.is_primary_key,
            "is_foreign_key": self.is_foreign_key,
            "auto_increment": self.auto_increment,
            "max_length": self.max_length,
            "precision": self.precision,
            "scale": self.scale,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ColumnDefinition":
        return ColumnDefinition(
            name=data.get("name", ""),
            data_type=_pick(data, "data_type", "dataType", default=""),
            nullable=bool(_pick(data, "nullable", default=True)),
            default_value=_pick(data, "default_value", "defaultValue"),
            comment=data.get("comment"),
            is_primary_key=bool(_pick(data, "is_primary_key", "isPrimaryKey", default=False)),
            is_foreign_key=bool(_pick(data, "is_foreign_key", "isForeignKey", default=False)),
            auto_increment=bool(_pick(data, "auto_increment", "autoIncrement", default=False)),
            max_length=_pick(data, "max_length", "maxLength"),
            precision=data.get("precision"),
            scale=data.get("scale"),
        )


@dataclass
class ConstraintDefinition:
    """
    A table-level constraint.

    ``type`` is normally a :class:`ConstraintType`; an unrecognised string is
    kept as-is so validation can reject it with a readable message.
    """
    name: str
    type: ConstraintType | str
    columns: list[str] = field(default_factory=list)
    referenced_table: str | None = None
    referenced_columns: list[str] = field(default_factory=list)
    on_delete: ReferentialAction | str | None = None
    on_update: ReferentialAction | str | None = None
    check_expression: str | None = None
    deferrable: bool = False
    initially_deferred: bool = False

    @property
    def is_foreign_key(self) -> bool:
        return self.type == ConstraintType.FOREIGN_KEY

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": getattr(self.type, "value", self.type),
            "columns": list(self.columns),
            "referenced_table": self.referenced_table,
            "referenced_columns": list(self.referenced_columns),
            "on_delete": getattr(self.on_delete, "value", self.on_delete),
            "on_update": getattr(self.on_update, "value", self.on_update),
            "check_expression": self.check_expression,
            "deferrable": self.deferrable,
            "initially_deferred": self.initially_deferred,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ConstraintDefinition":
        return ConstraintDefinition(
            name=data.get("name", ""),
            type=_enum_or_raw(ConstraintType, data.get("type")),
            columns=list(data.get("columns") or []),
            referenced_table=_pick(data, "referenced_table", "referencedTable"),
            referenced_columns=list(
                _pick(data, "referenced_columns", "referencedColumns", default=None) or []
            ),
            on_delete=_enum_or_raw(ReferentialAction, _pick(data, "on_delete", "onDelete")),
            on_update=_enum_or_raw(ReferentialAction, _pick(data, "on_update", "onUpdate")),
            check_expression=_pick(data, "check_expression", "checkExpression"),
            deferrable=bool(data.get("deferrable", False)),
            initially_deferred=bool(
                _pick(data, "initially_deferred", "initiallyDeferred", default=False)
            ),
        )


@dataclass
class IndexDefinition:
    """
    A (possibly unique, partial or covering) index on one table.

    Attributes:
        columns: Ordered key columns.
        where:   Partial-index predicate, emitted verbatim after screening.
        include: Covering (non-key) columns.
    """
    name: str
    table_name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False
    type: IndexType | str | None = None
    where: str | None = None
    include: list[str] = field(default_factory=list)
    comment: str | None = None

    @property
    def is_partial(self) -> bool:
        return bool(self.where and self.where.strip())

    @property
    def is_covering(self) -> bool:
        return bool(self.include)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "table_name": self.table_name,
            "columns": list(self.columns),
            "unique": self.unique,
            "type": getattr(self.type, "value", self.type),
            "where": self.where,
            "include": list(self.include),
            "comment": self.comment,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "IndexDefinition":
        return IndexDefinition(
            name=data.get("name", ""),
            table_name=_pick(data, "table_name", "tableName", default=""),
            columns=list(data.get("columns") or []),
            unique=bool(data.get("unique", False)),
            type=_enum_or_raw(IndexType, data.get("type")),
            where=data.get("where"),
            include=list(data.get("include") or []),
            comment=data.get("comment"),
        )


@dataclass
class TableDefinition:
    """
    A complete table: columns plus optional constraints and indexes.

    Attributes:
        name:    Table name (unquoted).
        schema:  Namespace; ``None`` / ``"public"`` emit no prefix.
        columns: Ordered column list (at least one required).
    """
    name: str
    columns: list[ColumnDefinition] = field(default_factory=list)
    schema: str | None = None
    comment: str | None = None
    constraints: list[ConstraintDefinition] = field(default_factory=list)
    indexes: list[IndexDefinition] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    @property
    def primary_key_columns(self) -> list[str]:
        return [col.name for col in self.columns if col.is_primary_key]

    def get_column(self, name: str) -> ColumnDefinition | None:
        """Get column by name (case-insensitive)."""
        for col in self.columns:
            if col.name.lower() == name.lower():
                return col
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "schema": self.schema,
            "comment": self.comment,
            "columns": [col.to_dict() for col in self.columns],
            "constraints": [c.to_dict() for c in self.constraints],
            "indexes": [idx.to_dict() for idx in self.indexes],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "TableDefinition":
        return TableDefinition(
            name=data.get("name", ""),
            schema=data.get("schema"),
            comment=data.get("comment"),
            columns=[ColumnDefinition.from_dict(c) for c in data.get("columns") or []],
            constraints=[
                ConstraintDefinition.from_dict(c) for c in data.get("constraints") or []
            ],
            indexes=[IndexDefinition.from_dict(i) for i in data.get("indexes") or []],
        )
