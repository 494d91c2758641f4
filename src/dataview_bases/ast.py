"""
Abstract Syntax Tree (AST) definitions for Dataview queries.

Every node is a plain dataclass; consumers dispatch on the concrete class
with ``isinstance`` rather than on methods of the nodes.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Union


class QueryType(Enum):
    """Type of Dataview query."""

    TABLE = "TABLE"
    LIST = "LIST"
    TASK = "TASK"
    CALENDAR = "CALENDAR"


class SortDirection(Enum):
    """Sort direction for SORT clause."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Duration:
    """A quantity of time such as ``7 days``.

    ``unit`` is always the canonical singular unit name (``day``, ``week``...).
    """

    amount: int | float
    unit: str


# --- Fields ---


@dataclass(frozen=True)
class Variable:
    """Bare identifier (e.g. ``status``, ``file``)."""

    name: str


@dataclass(frozen=True)
class Literal:
    """Literal value (string, number, boolean, date, duration, null)."""

    value: str | int | float | bool | date | datetime | Duration | None


@dataclass(frozen=True)
class Index:
    """Property or index access (``file.name``, ``row["key"]``)."""

    object: "Field"
    key: "Field"


@dataclass(frozen=True)
class BinaryOp:
    """Binary operation. ``op`` is one of = != < > <= >= + - * / % & |."""

    op: str
    left: "Field"
    right: "Field"


@dataclass(frozen=True)
class Function:
    """Function call (e.g. ``contains(tags, "bug")``)."""

    name: str
    args: tuple["Field", ...] = ()


@dataclass(frozen=True)
class Negated:
    """Logical negation (``!expr``)."""

    child: "Field"


@dataclass(frozen=True)
class ListField:
    """List literal (``[1, 2, 3]``)."""

    items: tuple["Field", ...] = ()


Field = Union[Variable, Literal, Index, BinaryOp, Function, Negated, ListField]


# --- Sources ---


@dataclass(frozen=True)
class FolderSource:
    path: str


@dataclass(frozen=True)
class TagSource:
    tag: str


@dataclass(frozen=True)
class LinkSource:
    target: str


@dataclass(frozen=True)
class NegatedSource:
    child: "Source"


@dataclass(frozen=True)
class BinaryOpSource:
    """``op`` is ``&`` (and) or ``|`` (or)."""

    op: str
    left: "Source"
    right: "Source"


@dataclass(frozen=True)
class EmptySource:
    """No FROM clause, or ``FROM ""``."""


Source = Union[FolderSource, TagSource, LinkSource, NegatedSource, BinaryOpSource, EmptySource]


# --- Query structure ---


@dataclass(frozen=True)
class NamedField:
    """A field with its display label.

    ``name`` is the alias when one was given, otherwise the source text of the
    expression. ``alias`` records whether the label was explicit.
    """

    name: str
    field: Field
    alias: str | None = None


@dataclass(frozen=True)
class SortField:
    field: Field
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class TableHeader:
    fields: tuple[NamedField, ...] = ()
    show_id: bool = True

    query_type = QueryType.TABLE


@dataclass(frozen=True)
class ListHeader:
    format: Field | None = None
    show_id: bool = True

    query_type = QueryType.LIST


@dataclass(frozen=True)
class TaskHeader:
    query_type = QueryType.TASK


@dataclass(frozen=True)
class CalendarHeader:
    field: NamedField

    query_type = QueryType.CALENDAR


Header = Union[TableHeader, ListHeader, TaskHeader, CalendarHeader]


@dataclass(frozen=True)
class Where:
    clause: Field


@dataclass(frozen=True)
class SortBy:
    fields: tuple[SortField, ...]


@dataclass(frozen=True)
class Limit:
    amount: Field


@dataclass(frozen=True)
class Group:
    field: NamedField


@dataclass(frozen=True)
class Flatten:
    field: NamedField


@dataclass(frozen=True)
class Extract:
    """Virtual step; produced programmatically, never by the grammar."""

    fields: dict[str, Field]


Operation = Union[Where, SortBy, Limit, Group, Flatten, Extract]


@dataclass(frozen=True)
class Query:
    """Complete Dataview query AST."""

    header: Header
    source: Source = field(default_factory=EmptySource)
    operations: tuple[Operation, ...] = ()

    @property
    def query_type(self) -> QueryType:
        return self.header.query_type

    def __repr__(self) -> str:
        parts = [f"Query(type={self.query_type.value}"]
        if isinstance(self.header, TableHeader) and self.header.fields:
            parts.append(f"fields={len(self.header.fields)}")
        if not isinstance(self.source, EmptySource):
            parts.append(f"source={self.source!r}")
        if self.operations:
            parts.append(f"operations={len(self.operations)}")
        return ", ".join(parts) + ")"
