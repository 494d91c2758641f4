"""
Token cursor shared by the query, source and expression grammars.
"""

from contextlib import contextmanager

from dataview_bases.errors import DataviewSyntaxError
from dataview_bases.lexer import Token, TokenType

DEFAULT_MAX_DEPTH = 32


class TokenParser:
    """Base class holding a token list, a position and a nesting depth counter."""

    def __init__(self, tokens: list[Token], text: str = "", max_depth: int = DEFAULT_MAX_DEPTH):
        if not tokens or tokens[-1].type != TokenType.EOF:
            last = tokens[-1] if tokens else Token(TokenType.EOF, "", 0, 0)
            tokens = [*tokens, Token(TokenType.EOF, "", last.line, last.column, last.end, last.end)]
        self.tokens = tokens
        self.text = text
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth

    @contextmanager
    def _nested(self):
        """Track one level of recursion, failing cleanly past ``max_depth``."""
        self.depth += 1
        if self.depth > self.max_depth:
            raise self._error(f"Maximum nesting depth of {self.max_depth} exceeded")
        try:
            yield
        finally:
            self.depth -= 1

    def _error(self, message: str, token: Token | None = None) -> DataviewSyntaxError:
        token = token or self._current()
        return DataviewSyntaxError(message, token.line or None, token.column or None, self._fragment(token))

    def _fragment(self, token: Token) -> str:
        """Source text from ``token`` to the end of its line."""
        if token.type == TokenType.EOF:
            return "end of input"
        rest = self.text[token.start :] if self.text else token.value
        return rest.split("\n", 1)[0].strip()[:40] or token.value

    def _source_text(self, first: Token, last: Token) -> str:
        if not self.text:
            return " ".join(t.value for t in self.tokens[self.tokens.index(first) : self.tokens.index(last) + 1])
        return " ".join(self.text[first.start : last.end].split())

    # Helper methods

    def _current(self) -> Token:
        """Get the current token."""
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # Return EOF

    def _peek(self, offset: int = 1) -> Token:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else self.tokens[-1]

    def _previous(self) -> Token:
        return self.tokens[max(self.pos - 1, 0)]

    def _advance(self) -> Token:
        """Advance to the next token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token matches the given type."""
        if self._is_at_end():
            return token_type == TokenType.EOF
        return self._current().type == token_type

    def _check_any(self, token_types) -> bool:
        """Check if current token matches any of the given types."""
        return any(self._check(t) for t in token_types)

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if not self._check(token_type):
            raise self._error(message)
        return self._advance()

    def _is_at_end(self) -> bool:
        """Check if we're at the end of tokens."""
        return self._current().type == TokenType.EOF

    def _expect_end(self, clause: str):
        """Fail if any tokens are left over in the current clause."""
        if not self._is_at_end():
            raise self._error(f"Unexpected '{self._current().value}' in {clause} clause")
