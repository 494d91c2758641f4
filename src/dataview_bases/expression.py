"""
Expression grammar: turns the tokens of one clause body into a Field tree.

Precedence, lowest first:

    logical         &  |  (and, or)
    comparison      =  !=  <  >  <=  >=
    additive        +  -
    multiplicative  *  /  %
    unary           !  -
    postfix         .name  [index]
    primary         literals, variables, calls, (expr), [list]

All binary levels associate to the left.
"""

import re
from datetime import date, datetime

from dataview_bases.ast import (
    BinaryOp,
    Duration,
    Field,
    Function,
    Index,
    ListField,
    Literal,
    NamedField,
    Negated,
    Variable,
)
from dataview_bases.cursor import TokenParser
from dataview_bases.lexer import DataviewLexer, TokenType
from dataview_bases.properties import canonical_unit

LOGICAL_OPS = {TokenType.AND: "&", TokenType.OR: "|"}

COMPARISON_OPS = {
    TokenType.EQUALS: "=",
    TokenType.NOT_EQUALS: "!=",
    TokenType.LESS_THAN: "<",
    TokenType.GREATER_THAN: ">",
    TokenType.LESS_EQUAL: "<=",
    TokenType.GREATER_EQUAL: ">=",
}

ADDITIVE_OPS = {TokenType.PLUS: "+", TokenType.MINUS: "-"}

MULTIPLICATIVE_OPS = {TokenType.STAR: "*", TokenType.SLASH: "/", TokenType.PERCENT: "%"}

DATE_PATTERN = re.compile(
    r"(\d{4})-(\d{1,2})-(\d{1,2})(?:T(\d{1,2}):(\d{2})(?::(\d{2})(?:\.(\d+))?)?)?$"
)


def parse_date_literal(text: str) -> date | datetime:
    """Parse ``YYYY-M-D`` with an optional ``THH:MM[:SS[.fff]]`` time part."""
    match = DATE_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid date literal: {text}")
    year, month, day, hour, minute, second, fraction = match.groups()
    if hour is None:
        return date(int(year), int(month), int(day))
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second or 0), micros
    )


class ExpressionParser(TokenParser):
    """Precedence-climbing parser for Dataview expressions."""

    @classmethod
    def parse(cls, text: str, max_depth: int = 32) -> Field:
        """Parse a standalone expression such as ``status = "done"``."""
        parser = cls(DataviewLexer(text).tokenize(), text, max_depth)
        expr = parser.parse_expression()
        parser._expect_end("expression")
        return expr

    def parse_expression(self) -> Field:
        """Parse an expression (handles operator precedence)."""
        return self._parse_binary(LOGICAL_OPS, self._parse_comparison)

    def parse_named_field(self) -> NamedField:
        """Parse ``expr [AS alias]``; unaliased fields are named by their source text."""
        first = self._current()
        expr = self.parse_expression()
        last = self._previous()

        alias = None
        if self._check(TokenType.AS):
            self._advance()
            if self._check_any([TokenType.IDENTIFIER, TokenType.STRING]):
                alias = self._advance().value
            else:
                raise self._error("Expected alias after AS")

        name = alias if alias is not None else self._source_text(first, last)
        return NamedField(name=name, field=expr, alias=alias)

    def parse_comma_separated(self, parse_item) -> list:
        items = [parse_item()]
        while self._check(TokenType.COMMA):
            self._advance()
            items.append(parse_item())
        return items

    def _parse_binary(self, operators: dict, parse_operand) -> Field:
        left = parse_operand()
        while self._check_any(operators):
            op = operators[self._advance().type]
            right = parse_operand()
            left = BinaryOp(op=op, left=left, right=right)
        return left

    def _parse_comparison(self) -> Field:
        return self._parse_binary(COMPARISON_OPS, self._parse_additive)

    def _parse_additive(self) -> Field:
        return self._parse_binary(ADDITIVE_OPS, self._parse_multiplicative)

    def _parse_multiplicative(self) -> Field:
        return self._parse_binary(MULTIPLICATIVE_OPS, self._parse_unary)

    def _parse_unary(self) -> Field:
        if self._check(TokenType.NOT):
            self._advance()
            with self._nested():
                return Negated(child=self._parse_unary())

        if self._check(TokenType.MINUS):
            self._advance()
            with self._nested():
                operand = self._parse_unary()
            return self._negate(operand)

        return self._parse_postfix()

    @staticmethod
    def _negate(operand: Field) -> Field:
        if isinstance(operand, Literal):
            value = operand.value
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return Literal(value=-value)
            if isinstance(value, Duration):
                return Literal(value=Duration(-value.amount, value.unit))
        return BinaryOp(op="*", left=Literal(value=-1), right=operand)

    def _parse_postfix(self) -> Field:
        expr = self._parse_primary()

        while True:
            if self._check(TokenType.DOT):
                self._advance()
                name = self._expect(TokenType.IDENTIFIER, "Expected property name after '.'")
                expr = Index(object=expr, key=Literal(value=name.value))
            elif self._check(TokenType.LBRACKET):
                self._advance()
                with self._nested():
                    key = self.parse_expression()
                self._expect(TokenType.RBRACKET, "Expected ']' after index")
                expr = Index(object=expr, key=key)
            else:
                return expr

    def _parse_primary(self) -> Field:
        """Parse primary expression (literals, fields, function calls)."""
        token = self._current()

        if token.type == TokenType.STRING:
            self._advance()
            return Literal(value=token.value)

        if token.type == TokenType.NUMBER:
            self._advance()
            return Literal(value=float(token.value) if "." in token.value else int(token.value))

        if token.type == TokenType.BOOLEAN:
            self._advance()
            return Literal(value=token.value.lower() == "true")

        if token.type == TokenType.NULL:
            self._advance()
            return Literal(value=None)

        if token.type == TokenType.DATE:
            self._advance()
            try:
                return Literal(value=parse_date_literal(token.value))
            except ValueError as exc:
                raise self._error(str(exc), token) from exc

        if token.type == TokenType.LINK:
            self._advance()
            return Function(name="link", args=(Literal(value=token.value),))

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LPAREN):
                return self._parse_call(token.value)
            return Variable(name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            with self._nested():
                expr = self.parse_expression()
            if not self._check(TokenType.RPAREN):
                raise self._error("Expected ')' after expression")
            self._advance()
            return expr

        if token.type == TokenType.LBRACKET:
            self._advance()
            with self._nested():
                items = [] if self._check(TokenType.RBRACKET) else self.parse_comma_separated(
                    self.parse_expression
                )
            self._expect(TokenType.RBRACKET, "Expected ']' after list items")
            return ListField(items=tuple(items))

        if token.type == TokenType.EOF:
            raise self._error("Unexpected end of expression")
        raise self._error(f"Unexpected token: {token.value}")

    def _parse_call(self, name: str) -> Function:
        self._advance()  # (
        with self._nested():
            if self._check(TokenType.RPAREN):
                args = []
            elif name.lower() == "dur" and self._at_duration():
                args = [Literal(value=self._parse_duration())]
            else:
                args = self.parse_comma_separated(self.parse_expression)
        if not self._check(TokenType.RPAREN):
            raise self._error("Expected ')' after function arguments")
        self._advance()
        return Function(name=name, args=tuple(args))

    def _at_duration(self) -> bool:
        """Lookahead for ``[-]N unit`` inside dur()."""
        offset = 1 if self._check(TokenType.MINUS) else 0
        number, unit = self._peek(offset), self._peek(offset + 1)
        return (
            number.type == TokenType.NUMBER
            and unit.type == TokenType.IDENTIFIER
            and canonical_unit(unit.value) is not None
        )

    def _parse_duration(self) -> Duration:
        sign = -1 if self._check(TokenType.MINUS) else 1
        if sign < 0:
            self._advance()
        number = self._advance().value
        unit = canonical_unit(self._advance().value)
        amount = float(number) if "." in number else int(number)
        return Duration(amount=sign * amount, unit=unit)
