"""Tests for the Dataview expression grammar."""

from datetime import date, datetime

import pytest

from dataview_bases.ast import (
    BinaryOp,
    Duration,
    Function,
    Index,
    ListField,
    Literal,
    NamedField,
    Negated,
    Variable,
)
from dataview_bases.errors import DataviewSyntaxError
from dataview_bases.expression import ExpressionParser, parse_date_literal
from dataview_bases.lexer import DataviewLexer


def parse(text: str, **kwargs):
    return ExpressionParser.parse(text, **kwargs)


def named(text: str) -> NamedField:
    parser = ExpressionParser(DataviewLexer(text).tokenize(), text)
    field = parser.parse_named_field()
    parser._expect_end("TABLE")
    return field


class TestPrecedence:
    """Test operator precedence and associativity."""

    def test_logical_operators_share_one_level(self):
        """& and | associate to the left at the same precedence."""
        assert parse("a | b & c") == BinaryOp(
            "&", BinaryOp("|", Variable("a"), Variable("b")), Variable("c")
        )

    def test_comparisons_bind_tighter_than_logic(self):
        """Test comparisons group before AND/OR."""
        assert parse("a = 1 and b = 2") == BinaryOp(
            "&",
            BinaryOp("=", Variable("a"), Literal(1)),
            BinaryOp("=", Variable("b"), Literal(2)),
        )

    def test_multiplication_binds_tighter_than_addition(self):
        """Test * groups before +."""
        assert parse("a + b * c") == BinaryOp(
            "+", Variable("a"), BinaryOp("*", Variable("b"), Variable("c"))
        )

    def test_subtraction_is_left_associative(self):
        """Test a - b - c is (a - b) - c."""
        assert parse("a - b - c") == BinaryOp(
            "-", BinaryOp("-", Variable("a"), Variable("b")), Variable("c")
        )

    def test_parentheses_override_precedence(self):
        """Test parentheses group explicitly."""
        assert parse("(a + b) * c") == BinaryOp(
            "*", BinaryOp("+", Variable("a"), Variable("b")), Variable("c")
        )


class TestUnaryAndPostfix:
    """Test unary operators and property access."""

    def test_not(self):
        """Test ! negation."""
        assert parse("!done") == Negated(Variable("done"))

    def test_not_keyword(self):
        """Test NOT negation of a parenthesized comparison."""
        assert parse('x AND NOT (status = "done")') == BinaryOp(
            "&", Variable("x"), Negated(BinaryOp("=", Variable("status"), Literal("done")))
        )

    def test_negative_number(self):
        """Test minus folds into numeric literals."""
        assert parse("-5") == Literal(-5)
        assert parse("-2.5") == Literal(-2.5)

    def test_negative_expression(self):
        """Test minus on a non-literal multiplies by -1."""
        assert parse("-x") == BinaryOp("*", Literal(-1), Variable("x"))

    def test_property_chain(self):
        """Test dotted access builds nested Index nodes."""
        assert parse("file.mtime.year") == Index(
            Index(Variable("file"), Literal("mtime")), Literal("year")
        )

    def test_bracket_index(self):
        """Test bracket access."""
        assert parse('row["my key"]') == Index(Variable("row"), Literal("my key"))

    def test_missing_property_name(self):
        """Test a trailing dot is an error."""
        with pytest.raises(DataviewSyntaxError, match="Expected property name"):
            parse("file.")


class TestPrimary:
    """Test literals, calls and lists."""

    def test_string_and_numbers(self):
        """Test string, integer and float literals."""
        assert parse('"done"') == Literal("done")
        assert parse("42") == Literal(42)
        assert parse("3.5") == Literal(3.5)

    def test_boolean_and_null(self):
        """Test keyword literals inside an expression."""
        assert parse("x = true") == BinaryOp("=", Variable("x"), Literal(True))
        assert parse("x != null") == BinaryOp("!=", Variable("x"), Literal(None))

    def test_date_literals(self):
        """Test date and datetime literals."""
        assert parse("2024-01-15") == Literal(date(2024, 1, 15))
        assert parse("2024-1-5T10:30") == Literal(datetime(2024, 1, 5, 10, 30))

    def test_invalid_date(self):
        """Test impossible dates are syntax errors."""
        with pytest.raises(DataviewSyntaxError):
            parse("2024-02-30")

    def test_link(self):
        """Test wiki links become link() calls."""
        assert parse("[[Home]]") == Function("link", (Literal("Home"),))

    def test_function_call(self):
        """Test function calls keep their arguments in order."""
        assert parse('contains(tags, "bug")') == Function(
            "contains", (Variable("tags"), Literal("bug"))
        )

    def test_call_without_arguments(self):
        """Test empty argument lists."""
        assert parse("now()") == Function("now", ())

    def test_duration_call(self):
        """Test dur(N unit) yields a duration literal with a canonical unit."""
        assert parse("dur(7 days)") == Function("dur", (Literal(Duration(7, "day")),))
        assert parse("dur(2 wks)") == Function("dur", (Literal(Duration(2, "week")),))

    def test_duration_call_with_string(self):
        """Test dur("3 days") keeps the string argument."""
        assert parse('dur("3 days")') == Function("dur", (Literal("3 days"),))

    def test_relative_date_call(self):
        """Test date(today) keeps today as a variable."""
        assert parse("date(today)") == Function("date", (Variable("today"),))

    def test_list_literal(self):
        """Test list literals."""
        assert parse("[1, 2]") == ListField((Literal(1), Literal(2)))
        assert parse("[]") == ListField(())


class TestNamedFields:
    """Test expressions with display names."""

    def test_alias_string(self):
        """Test AS with a quoted alias."""
        field = named('file.size / 1024 AS "Size KB"')
        assert field.name == "Size KB"
        assert field.alias == "Size KB"

    def test_alias_identifier(self):
        """Test AS with a bare alias."""
        assert named("file.mtime.year as Year").alias == "Year"

    def test_unaliased_name_is_source_text(self):
        """Test unaliased fields are named after their normalized source."""
        field = named("file.size  /\n 1024")
        assert field.name == "file.size / 1024"
        assert field.alias is None

    def test_missing_alias(self):
        """Test AS without a name."""
        with pytest.raises(DataviewSyntaxError, match="Expected alias after AS"):
            named("title AS")


class TestExpressionErrors:
    """Test expression error reporting."""

    def test_dangling_operator(self):
        """Test an operator without a right operand."""
        with pytest.raises(DataviewSyntaxError, match="Unexpected end of expression"):
            parse("a +")

    def test_unclosed_paren(self):
        """Test a missing closing parenthesis."""
        with pytest.raises(DataviewSyntaxError, match=r"Expected '\)' after expression"):
            parse("(a")

    def test_trailing_tokens(self):
        """Test leftover tokens are rejected."""
        with pytest.raises(DataviewSyntaxError, match="Unexpected 'b'"):
            parse("a b")

    def test_nesting_limit(self):
        """Test deep nesting fails cleanly instead of recursing without bound."""
        deep = "(" * 40 + "a" + ")" * 40
        with pytest.raises(DataviewSyntaxError, match="Maximum nesting depth of 32 exceeded"):
            parse(deep)
        assert parse(deep, max_depth=64) == Variable("a")


class TestDateLiteral:
    """Test parse_date_literal."""

    def test_fractional_seconds(self):
        """Test milliseconds are kept as microseconds."""
        assert parse_date_literal("2024-03-01T08:05:09.25") == datetime(2024, 3, 1, 8, 5, 9, 250000)

    def test_rejects_garbage(self):
        """Test non-dates raise ValueError."""
        with pytest.raises(ValueError, match="Invalid date literal"):
            parse_date_literal("yesterday")
