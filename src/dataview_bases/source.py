"""
Source grammar: parses the body of a FROM clause into a Source tree.

    "folder/path"      folder (empty string means no restriction)
    #tag               tag, stored without the leading '#'
    [[Note]]           files linking to Note
    -src  !src  NOT src
    src AND src, src OR src (same precedence, left associative)
    ( src )
"""

from dataview_bases.ast import (
    BinaryOpSource,
    EmptySource,
    FolderSource,
    LinkSource,
    NegatedSource,
    Source,
    TagSource,
)
from dataview_bases.cursor import TokenParser
from dataview_bases.lexer import TokenType


class SourceParser(TokenParser):
    """Parser for FROM clause bodies."""

    def parse_source(self) -> Source:
        left = self._parse_atom()

        while self._check_any([TokenType.AND, TokenType.OR]):
            op = "&" if self._advance().type == TokenType.AND else "|"
            right = self._parse_atom()
            left = BinaryOpSource(op=op, left=left, right=right)

        return left

    def _parse_atom(self) -> Source:
        token = self._current()

        if token.type in (TokenType.NOT, TokenType.MINUS):
            self._advance()
            with self._nested():
                return NegatedSource(child=self._parse_atom())

        if token.type == TokenType.STRING:
            self._advance()
            return FolderSource(path=token.value) if token.value else EmptySource()

        if token.type == TokenType.TAG:
            self._advance()
            return TagSource(tag=token.value.lstrip("#"))

        if token.type == TokenType.LINK:
            self._advance()
            return LinkSource(target=token.value)

        if token.type == TokenType.IDENTIFIER:
            # Unquoted folder name, e.g. FROM projects
            self._advance()
            return FolderSource(path=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            with self._nested():
                source = self.parse_source()
            if not self._check(TokenType.RPAREN):
                raise self._error("Expected ')' after source")
            self._advance()
            return source

        if token.type == TokenType.EOF:
            raise self._error("Expected source after FROM")
        raise self._error(f"Expected source path, got {token.value}")
