"""
Transformer that converts a parsed Dataview query into a Bases configuration.

Filters are built from two shapes: a leaf is an expression string such as
``status != "done"``, a group is a one-key mapping ``{"and"|"or"|"not": [...]}``.
Outside of filters (columns, formulas, sort and group keys) groups are rendered
back into inline expressions.
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from loguru import logger

from dataview_bases.ast import (
    BinaryOp,
    BinaryOpSource,
    Duration,
    EmptySource,
    Extract,
    Field,
    Flatten,
    FolderSource,
    Function,
    Group,
    Index,
    Limit,
    LinkSource,
    ListField,
    Literal,
    NamedField,
    Negated,
    NegatedSource,
    Query,
    SortBy,
    Source,
    TableHeader,
    TagSource,
    Variable,
    Where,
)
from dataview_bases.config import ConverterConfig, get_config
from dataview_bases.errors import DataviewTransformError, UnsupportedConstructError
from dataview_bases.properties import (
    DATE_ACCESSORS,
    FILTER_FUNCTIONS,
    RELATIVE_DATES,
    canonical_unit,
    display_label,
    format_duration,
    map_function,
    map_property,
)
from dataview_bases.schemas import BasesConfig, BasesView, SortSpec

OPERATOR_MAP = {
    "=": "==",
    "!=": "!=",
    ">": ">",
    ">=": ">=",
    "<": "<",
    "<=": "<=",
    "+": "+",
    "-": "-",
    "*": "*",
    "/": "/",
    "%": "%",
    "&": "&&",
    "|": "||",
}

COMPARISON_OPS = ("=", "!=", ">", ">=", "<", "<=")

# Binding strength in the rendered expression language (&& binds tighter than ||)
PRECEDENCE = {"|": 1, "&": 2, **{op: 3 for op in COMPARISON_OPS}, "+": 4, "-": 4, "*": 5, "/": 5, "%": 5}
POSTFIX_PREC = 6

LOGICAL_KEYS = {"&": "and", "|": "or"}

DURATION_TEXT = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*$")
PLAIN_KEY = re.compile(r"^[^\W\d][\w-]*$")

ID_COLUMN = "file.name"
ID_LABEL = "Name"


@dataclass
class _Column:
    """A rendered TABLE column, kept so SORT/GROUP BY can refer back to it."""

    path: str
    expression: str
    alias: str | None


class DataviewToBasesTransformer:
    """Converts a Dataview ``Query`` into a ``BasesConfig``.

    The formula counter and column bookkeeping are per call: ``transform`` resets
    them, so one instance must not be shared between threads.
    """

    def __init__(self, config: ConverterConfig | None = None):
        self.config = config or get_config()
        self.formula_counter = 0
        self.formulas: dict[str, str] = {}
        self.columns: list[_Column] = []
        self._depth = 0

    def _reset(self):
        self.formula_counter = 0
        self.formulas = {}
        self.columns = []
        self._depth = 0

    @contextmanager
    def _descend(self):
        self._depth += 1
        if self._depth > self.config.max_tree_depth:
            raise self._too_deep()
        try:
            yield
        finally:
            self._depth -= 1

    def _too_deep(self) -> DataviewTransformError:
        return DataviewTransformError(f"Query is nested deeper than {self.config.max_tree_depth} levels")

    def _left_spine(self, node, node_type) -> list:
        """Nodes of a left-deep chain of ``&``/``|`` operators, innermost first.

        Flat chains such as ``a or b or c`` are walked in a loop and do not count
        as nesting; each change of operator along the chain does.
        """
        spine = []
        while isinstance(node, node_type) and node.op in LOGICAL_KEYS:
            spine.append(node)
            node = node.left
        spine.reverse()

        changes = sum(1 for inner, outer in zip(spine, spine[1:]) if inner.op != outer.op)
        if self._depth + changes > self.config.max_tree_depth:
            raise self._too_deep()
        return spine

    def transform(self, query: Query, place_filters_in_view: bool | None = None) -> BasesConfig:
        """Transform a parsed Dataview query to a Bases configuration.

        Raises:
            UnsupportedConstructError: For LIST, TASK and CALENDAR queries.
            DataviewTransformError: If the query cannot be represented.
        """
        self._reset()
        if place_filters_in_view is None:
            place_filters_in_view = self.config.place_filters_in_view

        view = BasesView(type="table", name=self.config.view_name)
        result = BasesConfig(views=[view])

        self._transform_header(query.header, result, view)

        source_filters = self.transform_source(query.source)

        # Each clause assigns its own slot, so the last one of a kind wins
        where_filters = None
        for operation in query.operations:
            if isinstance(operation, Where):
                where_filters = self.transform_field(operation.clause)
            elif isinstance(operation, SortBy):
                view.sort = [
                    SortSpec(column=self._column_reference(sort.field), direction=sort.direction.value)
                    for sort in operation.fields
                ]
            elif isinstance(operation, Limit):
                self._transform_limit(operation, view)
            elif isinstance(operation, Group):
                view.group_by = self._column_reference(operation.field.field)
            elif isinstance(operation, (Flatten, Extract)):
                logger.debug(f"Ignoring {type(operation).__name__.upper()} step; Bases has no equivalent")
            else:
                raise DataviewTransformError(f"Unknown operation: {operation!r}")

        combined = self.combine_filters(source_filters, where_filters)
        if combined is not None:
            if place_filters_in_view:
                view.filters = combined
            else:
                result.filters = combined

        if self.formulas:
            result.formulas = dict(self.formulas)

        return result

    def to_yaml(self, query: Query, place_filters_in_view: bool | None = None) -> str:
        """Transform and encode as YAML."""
        from dataview_bases.serializer import to_yaml

        return to_yaml(self.transform(query, place_filters_in_view))

    # --- Header ---

    def _transform_header(self, header, result: BasesConfig, view: BasesView):
        if not isinstance(header, TableHeader):
            keyword = header.query_type.value
            raise UnsupportedConstructError(
                keyword,
                f"{keyword} queries are not supported. Please use TABLE queries instead.",
            )

        display: dict[str, str] = {}
        order: list[str] = []

        if header.show_id:
            display[ID_COLUMN] = ID_LABEL
            order.append(ID_COLUMN)

        for named in header.fields:
            path, label = self._transform_column(named)
            display[path] = label
            if path not in order:
                order.append(path)

        if display:
            result.display = display
            view.order = order

    def _transform_column(self, named: NamedField) -> tuple[str, str]:
        """Return the display path and label of a TABLE column."""
        expression = self.transform_expression(named.field)
        if self.is_formula_field(named.field):
            key = self._formula_key(named)
            self.formulas[key] = expression
            path, label = f"formula.{key}", named.name
        else:
            path = expression
            label = named.alias or display_label(path)

        self.columns.append(_Column(path=path, expression=expression, alias=named.alias))
        return path, label

    @staticmethod
    def is_formula_field(field: Field) -> bool:
        """A column is a formula unless it is a variable or a property chain on one."""
        while isinstance(field, Index):
            field = field.object
        return not isinstance(field, Variable)

    def _formula_key(self, named: NamedField) -> str:
        self.formula_counter += 1
        base = re.sub(r"\s+", "_", named.alias.strip().lower()) if named.alias else ""
        base = base or f"formula_{self.formula_counter}"

        key, suffix = base, 2
        while key in self.formulas:
            key = f"{base}_{suffix}"
            suffix += 1
        return key

    def _column_reference(self, field: Field) -> str:
        """Resolve a SORT/GROUP BY key, preferring an existing column."""
        expression = self.transform_expression(field)
        for column in self.columns:
            if column.expression == expression:
                return column.path
            if (
                isinstance(field, Variable)
                and column.alias is not None
                and column.alias.lower() == field.name.lower()
            ):
                return column.path
        return expression

    def _transform_limit(self, operation: Limit, view: BasesView):
        amount = operation.amount
        text = self.transform_expression(amount)

        count = None
        value = amount.value if isinstance(amount, Literal) else None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if float(value).is_integer():
                count = int(value)
        elif text.lstrip("-").isdecimal():
            count = int(text)

        if count is not None and count > 0:
            view.limit = count
            return

        if self.config.strict_limit:
            raise UnsupportedConstructError("LIMIT", f"LIMIT amount must be a positive integer, got {text}")
        # Lenient: the view stays unlimited
        logger.warning(f"Ignoring LIMIT amount that is not a positive integer: {text}")

    # --- Sources ---

    def transform_source(self, source: Source) -> Any:
        """Lower a FROM source to a filter, or None when it selects everything."""
        with self._descend():
            if isinstance(source, FolderSource):
                return f"file.inFolder({self._quote(source.path)})" if source.path else None

            if isinstance(source, TagSource):
                return f"file.hasTag({self._quote(source.tag.lstrip('#'))})"

            if isinstance(source, LinkSource):
                return f"file.hasLink({self._quote(source.target)})"

            if isinstance(source, NegatedSource):
                inner = self.transform_source(source.child)
                return {"not": [inner]} if inner is not None else None

            if isinstance(source, BinaryOpSource):
                spine = self._left_spine(source, BinaryOpSource)
                value = self.transform_source(spine[0].left)
                for node in spine:
                    right = self.transform_source(node.right)
                    if value is None:
                        value = right
                    elif right is not None:
                        value = self.flatten_logical(LOGICAL_KEYS[node.op], [value, right])
                return value

            if isinstance(source, EmptySource):
                return None

            raise DataviewTransformError(f"Unknown source type: {type(source).__name__}")

    # --- Filters ---

    @staticmethod
    def flatten_logical(operator: str, operations: list[Any]) -> Any:
        """Build an ``and``/``or`` group, inlining children of the same operator.

        A single remaining operand is returned as is, not wrapped in a group.
        """
        flattened = []
        for op in operations:
            if isinstance(op, dict) and operator in op:
                flattened.extend(op[operator])
            elif op is not None:
                flattened.append(op)

        if len(flattened) == 1:
            return flattened[0]
        return {operator: flattened} if flattened else None

    @classmethod
    def combine_filters(cls, source_filters: Any, where_filters: Any) -> Any:
        """AND the FROM and WHERE filters together."""
        if source_filters is None:
            return where_filters
        if where_filters is None:
            return source_filters
        return cls.flatten_logical("and", [source_filters, where_filters])

    @staticmethod
    def is_logical_group(value: Any) -> bool:
        return isinstance(value, dict) and ("and" in value or "or" in value or "not" in value)

    @staticmethod
    def is_filter_expression(field: Field) -> bool:
        """Whether a field is a predicate (comparison, filter function or negation)."""
        pending = [field]
        while pending:
            node = pending.pop()
            if isinstance(node, BinaryOp):
                if node.op in COMPARISON_OPS:
                    return True
                if node.op in LOGICAL_KEYS:
                    pending.extend((node.left, node.right))
            elif isinstance(node, Function):
                if node.name.lower() in FILTER_FUNCTIONS:
                    return True
            elif isinstance(node, Negated):
                return True
        return False

    # --- Fields ---

    def transform_expression(self, field: Field) -> str:
        """Lower a field to a single inline expression (columns, formulas, sort keys)."""
        return self._inline(self.transform_field(field))

    def transform_field(self, field: Field) -> Any:
        """Lower a field; logical combinations of predicates become filter groups."""
        with self._descend():
            if isinstance(field, Variable):
                return map_property(field.name)
            elif isinstance(field, Literal):
                return self._transform_literal(field.value)
            elif isinstance(field, Index):
                return self._transform_index(field)
            elif isinstance(field, BinaryOp):
                return self._transform_binary_op(field)
            elif isinstance(field, Function):
                return self._transform_function(field)
            elif isinstance(field, Negated):
                # Always a one-element group, whatever the child is
                return {"not": [self.transform_field(field.child)]}
            elif isinstance(field, ListField):
                return "[" + ", ".join(self.transform_expression(item) for item in field.items) + "]"
            raise DataviewTransformError(f"Unknown field type: {type(field).__name__}")

    def _inline(self, value: Any) -> str:
        """Render a filter group as an inline boolean expression."""
        if not isinstance(value, dict):
            return value
        if "not" in value:
            inner = value["not"][0] if len(value["not"]) == 1 else {"and": value["not"]}
            rendered = self._inline(inner)
            return f"!{rendered}" if isinstance(inner, dict) else f"!({rendered})"
        key = "and" if "and" in value else "or"
        joiner = " && " if key == "and" else " || "
        return "(" + joiner.join(self._inline(item) for item in value[key]) + ")"

    @staticmethod
    def _quote(value: str) -> str:
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
        )
        return f'"{escaped}"'

    def _transform_literal(self, value: Any) -> str:
        """Transform literal values."""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return self._quote(value)
        if isinstance(value, (int, float)):
            return str(value)
        if value is None:
            return "null"
        if isinstance(value, datetime):
            return f"date({self._quote(value.isoformat())})"
        if isinstance(value, date):
            return f"date({self._quote(value.isoformat())})"
        if isinstance(value, Duration):
            return self._quote(format_duration(value))
        return str(value)

    def _transform_index(self, field: Index) -> str:
        """Transform a property chain; date parts become prefix calls."""
        keys = []
        while isinstance(field, Index):
            keys.append(field.key)
            field = field.object
        keys.reverse()

        raw = self.transform_field(field)
        value = self._wrap(field, raw, POSTFIX_PREC, right_side=False)
        inner = self._inline(raw)

        for key in keys:
            if isinstance(key, Literal) and isinstance(key.value, str):
                name = key.value
                if name.lower() in DATE_ACCESSORS:
                    value = f"{name.lower()}({inner})"
                elif PLAIN_KEY.match(name):
                    value = map_property(f"{value}.{name}")
                else:
                    value = f"{value}[{self._quote(name)}]"
            else:
                # Dynamic index access
                value = f"{value}[{self.transform_expression(key)}]"
            inner = value
        return value

    def _wrap(self, child: Field, value: Any, parent_prec: int, right_side: bool) -> str:
        """Parenthesize a rendered operand when it binds looser than its parent."""
        if isinstance(value, dict):
            return self._inline(value)
        if isinstance(child, BinaryOp):
            child_prec = PRECEDENCE.get(child.op, 0)
            if child_prec < parent_prec or (right_side and child_prec == parent_prec):
                return f"({value})"
        return value

    def _operand(self, child: Field, parent_prec: int, right_side: bool) -> str:
        return self._wrap(child, self.transform_field(child), parent_prec, right_side)

    def _transform_binary_op(self, field: BinaryOp) -> Any:
        """Transform binary operations.

        Left-deep chains (``a or b or c``, ``x + 1 + 2``) are lowered in a loop,
        so a long flat chain costs no recursion depth.
        """
        if field.op in LOGICAL_KEYS:
            return self._transform_logical(field)

        prec = PRECEDENCE.get(field.op, 0)
        spine = []
        node = field
        while isinstance(node, BinaryOp) and node.op not in LOGICAL_KEYS and PRECEDENCE.get(node.op, 0) == prec:
            spine.append(node)
            node = node.left
        spine.reverse()

        value = self._operand(node, prec, False)
        is_date = self.is_date_expression(node)
        for parent in spine:
            duration = self.duration_of(parent.right) if parent.op in ("+", "-") else None
            if is_date and duration is not None:
                # Bases moves dates only by adding a (possibly negative) duration
                if parent.op == "-":
                    duration = Duration(-duration.amount, duration.unit)
                value = f'{value} + "{format_duration(duration)}"'
            else:
                is_date = False
                right = self._operand(parent.right, prec, True)
                value = f"{value} {OPERATOR_MAP.get(parent.op, parent.op)} {right}"
        return value

    def _transform_logical(self, field: BinaryOp) -> Any:
        spine = self._left_spine(field, BinaryOp)
        left_field = spine[0].left
        value = self.transform_field(left_field)
        is_filter = self.is_filter_expression(left_field)

        for parent in spine:
            right = self.transform_field(parent.right)
            is_filter = is_filter or self.is_filter_expression(parent.right)

            if is_filter or self.is_logical_group(value) or self.is_logical_group(right):
                value = self.flatten_logical(
                    LOGICAL_KEYS[parent.op],
                    [self._group_member(left_field, value), self._group_member(parent.right, right)],
                )
            else:
                # Not a predicate: keep it as an inline boolean expression
                prec = PRECEDENCE[parent.op]
                value = (
                    f"{self._wrap(left_field, value, prec, False)} {OPERATOR_MAP[parent.op]} "
                    f"{self._wrap(parent.right, right, prec, True)}"
                )
            left_field = parent
        return value

    @staticmethod
    def _group_member(field: Field, value: Any) -> Any:
        # An inline a && b string inside a group keeps its own parentheses
        if isinstance(value, str) and isinstance(field, BinaryOp) and field.op in LOGICAL_KEYS:
            return f"({value})"
        return value

    @classmethod
    def is_date_expression(cls, field: Field) -> bool:
        """date(...), now(), a date literal, or date arithmetic on one of those."""
        while isinstance(field, BinaryOp) and field.op in ("+", "-"):
            if cls.duration_of(field.right) is None:
                return False
            field = field.left
        if isinstance(field, Function):
            return field.name.lower() in ("date", "now")
        if isinstance(field, Literal):
            return isinstance(field.value, date)
        return False

    @staticmethod
    def duration_of(field: Field) -> Duration | None:
        """The duration denoted by a duration literal or a dur(...) call, if any."""
        if isinstance(field, Literal) and isinstance(field.value, Duration):
            return field.value
        if isinstance(field, Function) and field.name.lower() == "dur" and len(field.args) == 1:
            arg = field.args[0]
            if isinstance(arg, Literal) and isinstance(arg.value, Duration):
                return arg.value
            if isinstance(arg, Literal) and isinstance(arg.value, str):
                match = DURATION_TEXT.match(arg.value)
                unit = canonical_unit(match.group(2)) if match else None
                if unit:
                    number = match.group(1)
                    return Duration(float(number) if "." in number else int(number), unit)
        return None

    def _duration_text(self, field: Field) -> str | None:
        duration = self.duration_of(field)
        return format_duration(duration) if duration is not None else None

    def _transform_function(self, field: Function) -> str:
        """Transform function calls."""
        name = field.name.lower()
        args = field.args

        if name == "date" and len(args) == 1:
            arg = args[0]
            if isinstance(arg, Variable) and arg.name.lower() in RELATIVE_DATES:
                return RELATIVE_DATES[arg.name.lower()]
            if isinstance(arg, Literal) and isinstance(arg.value, str) and arg.value.lower() in RELATIVE_DATES:
                return RELATIVE_DATES[arg.value.lower()]
            if isinstance(arg, Literal) and isinstance(arg.value, date):
                return self._transform_literal(arg.value)

        if name == "dur":
            duration = self._duration_text(field)
            if duration is not None:
                return self._quote(duration)

        if name == "contains" and len(args) == 2 and self._is_tags(args[0]):
            tag = args[1]
            if isinstance(tag, Literal) and isinstance(tag.value, str):
                return f"file.hasTag({self._quote(tag.value.lstrip('#'))})"

        rendered = [self.transform_expression(arg) for arg in args]

        if name == "notempty":
            return f"!isEmpty({', '.join(rendered)})"

        if name == "link":
            return f"link({', '.join(rendered)})"

        return f"{map_function(field.name)}({', '.join(rendered)})"

    @staticmethod
    def _is_tags(field: Field) -> bool:
        if isinstance(field, Variable):
            return field.name.lower() == "tags"
        return (
            isinstance(field, Index)
            and isinstance(field.object, Variable)
            and field.object.name == "file"
            and field.key == Literal(value="tags")
        )


def transform(query: Query, config: ConverterConfig | None = None) -> BasesConfig:
    """Transform with a fresh transformer, so concurrent calls share no state."""
    return DataviewToBasesTransformer(config).transform(query)
