"""
Lexical analyzer (tokenizer) for Dataview queries.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto

from dataview_bases.errors import DataviewSyntaxError


class TokenType(Enum):
    """Token types for Dataview queries."""

    # Header keywords (only at the start of a query)
    TABLE = auto()
    LIST = auto()
    TASK = auto()
    CALENDAR = auto()

    # Clause keywords
    FROM = auto()
    WHERE = auto()
    SORT = auto()
    LIMIT = auto()
    FLATTEN = auto()
    GROUP_BY = auto()  # GROUP BY
    WITHOUT_ID = auto()  # WITHOUT ID
    AS = auto()

    # Logical operators
    AND = auto()  # AND, &
    OR = auto()  # OR, |
    NOT = auto()  # NOT, !

    # Comparison operators
    EQUALS = auto()  # =
    NOT_EQUALS = auto()  # !=
    LESS_THAN = auto()  # <
    GREATER_THAN = auto()  # >
    LESS_EQUAL = auto()  # <=
    GREATER_EQUAL = auto()  # >=

    # Arithmetic operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()

    # Literals
    STRING = auto()
    NUMBER = auto()
    BOOLEAN = auto()
    NULL = auto()
    DATE = auto()  # 2024-01-15, 2024-01-15T10:30
    LINK = auto()  # [[Some Note]]
    TAG = auto()  # #project/active

    IDENTIFIER = auto()

    # Punctuation
    COMMA = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    DOT = auto()

    EOF = auto()


@dataclass
class Token:
    """A token in the Dataview query.

    ``start``/``end`` are offsets into the query text so parsers can recover the
    exact source of a clause or expression.
    """

    type: TokenType
    value: str
    line: int
    column: int
    start: int = 0
    end: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


# Tokens that begin a new top-level clause.
CLAUSE_KEYWORDS = frozenset(
    {
        TokenType.FROM,
        TokenType.WHERE,
        TokenType.SORT,
        TokenType.LIMIT,
        TokenType.FLATTEN,
        TokenType.GROUP_BY,
    }
)


class DataviewLexer:
    """Tokenizer for Dataview queries."""

    HEADER_KEYWORDS = {
        "TABLE": TokenType.TABLE,
        "LIST": TokenType.LIST,
        "TASK": TokenType.TASK,
        "CALENDAR": TokenType.CALENDAR,
    }

    KEYWORDS = {
        "FROM": TokenType.FROM,
        "WHERE": TokenType.WHERE,
        "SORT": TokenType.SORT,
        "LIMIT": TokenType.LIMIT,
        "FLATTEN": TokenType.FLATTEN,
        "AS": TokenType.AS,
        "AND": TokenType.AND,
        "OR": TokenType.OR,
        "NOT": TokenType.NOT,
        "TRUE": TokenType.BOOLEAN,
        "FALSE": TokenType.BOOLEAN,
        "NULL": TokenType.NULL,
    }

    # Two-word keywords, matched with lookahead on the following word
    GROUP_BY = re.compile(r"group\s+by\b", re.IGNORECASE)
    WITHOUT_ID = re.compile(r"without\s+id\b", re.IGNORECASE)

    DATE = re.compile(r"\d{4}-\d{1,2}-\d{1,2}(?:T\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?(?![\w.])")
    NUMBER = re.compile(r"\d+(?:\.\d+)?")
    IDENTIFIER = re.compile(r"[^\W\d](?:\w|-(?=\w))*")
    TAG = re.compile(r"#[\w/-]+")

    OPERATORS = {
        "!=": TokenType.NOT_EQUALS,
        "<=": TokenType.LESS_EQUAL,
        ">=": TokenType.GREATER_EQUAL,
        "=": TokenType.EQUALS,
        "<": TokenType.LESS_THAN,
        ">": TokenType.GREATER_THAN,
        "+": TokenType.PLUS,
        "-": TokenType.MINUS,
        "*": TokenType.STAR,
        "/": TokenType.SLASH,
        "%": TokenType.PERCENT,
        "&": TokenType.AND,
        "|": TokenType.OR,
        "!": TokenType.NOT,
    }

    PUNCTUATION = {
        ",": TokenType.COMMA,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        ".": TokenType.DOT,
    }

    ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """Tokenize the entire input."""
        while self.pos < len(self.text):
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break

            # Try to match a token
            if not self._try_tokenize_one():
                raise DataviewSyntaxError(
                    f"Unexpected character '{self.text[self.pos]}'",
                    self.line,
                    self.column,
                    fragment=self.text[self.pos : self.pos + 20],
                )

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column, self.pos, self.pos))
        return self.tokens

    def _try_tokenize_one(self) -> bool:
        """Try to tokenize one token. Returns True if successful."""
        return (
            self._match_comment()
            or self._match_string()
            or self._match_link()
            or self._match_date()
            or self._match_number()
            or self._match_tag()
            or self._match_operator()
            or self._match_identifier()
            or self._match_punctuation()
        )

    def _emit(self, token_type: TokenType, value: str, length: int):
        self.tokens.append(
            Token(token_type, value, self.line, self.column, self.pos, self.pos + length)
        )
        self._advance(length)

    def _advance(self, length: int):
        for char in self.text[self.pos : self.pos + length]:
            if char == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += length

    def _skip_whitespace(self):
        """Skip whitespace but track newlines."""
        while self.pos < len(self.text) and self.text[self.pos] in " \t\r\n":
            self._advance(1)

    def _match_comment(self) -> bool:
        """Match // line comments."""
        if self.text.startswith("//", self.pos):
            end = self.text.find("\n", self.pos)
            self._advance((end if end != -1 else len(self.text)) - self.pos)
            return True
        return False

    def _match_string(self) -> bool:
        """Match string literals."""
        if self.text[self.pos] not in ('"', "'"):
            return False

        quote = self.text[self.pos]
        start_pos = self.pos
        start_line, start_col = self.line, self.column
        i = self.pos + 1

        value = ""
        while i < len(self.text) and self.text[i] != quote:
            if self.text[i] == "\\" and i + 1 < len(self.text):
                value += self.ESCAPES.get(self.text[i + 1], self.text[i + 1])
                i += 2
            else:
                value += self.text[i]
                i += 1

        if i >= len(self.text):
            raise DataviewSyntaxError(
                "Unterminated string",
                start_line,
                start_col,
                fragment=self.text[start_pos : start_pos + 20],
            )

        self._emit(TokenType.STRING, value, i + 1 - start_pos)
        return True

    def _match_link(self) -> bool:
        """Match [[wiki links]]."""
        if not self.text.startswith("[[", self.pos):
            return False
        end = self.text.find("]]", self.pos + 2)
        if end == -1:
            raise DataviewSyntaxError(
                "Unterminated link",
                self.line,
                self.column,
                fragment=self.text[self.pos : self.pos + 20],
            )
        target = self.text[self.pos + 2 : end]
        # [[Note|Display]]: keep only the link target
        self._emit(TokenType.LINK, target.split("|", 1)[0].strip(), end + 2 - self.pos)
        return True

    def _match_date(self) -> bool:
        match = self.DATE.match(self.text, self.pos)
        if not match:
            return False
        self._emit(TokenType.DATE, match.group(0), len(match.group(0)))
        return True

    def _match_number(self) -> bool:
        """Match numeric literals (signs are handled by the parser)."""
        match = self.NUMBER.match(self.text, self.pos)
        if not match:
            return False
        self._emit(TokenType.NUMBER, match.group(0), len(match.group(0)))
        return True

    def _match_tag(self) -> bool:
        match = self.TAG.match(self.text, self.pos)
        if not match:
            return False
        self._emit(TokenType.TAG, match.group(0), len(match.group(0)))
        return True

    def _match_operator(self) -> bool:
        """Match operators (two-character operators first)."""
        two_char = self.text[self.pos : self.pos + 2]
        if two_char in self.OPERATORS:
            self._emit(self.OPERATORS[two_char], two_char, 2)
            return True

        char = self.text[self.pos]
        if char in self.OPERATORS:
            self._emit(self.OPERATORS[char], char, 1)
            return True

        return False

    def _match_identifier(self) -> bool:
        """Match identifiers and keywords."""
        match = self.IDENTIFIER.match(self.text, self.pos)
        if not match:
            return False

        value = match.group(0)
        after_dot = bool(self.tokens) and self.tokens[-1].type == TokenType.DOT

        if not after_dot:
            token_type = self._keyword_type(value, match.end())
            if token_type in (TokenType.GROUP_BY, TokenType.WITHOUT_ID):
                phrase = (self.GROUP_BY if token_type == TokenType.GROUP_BY else self.WITHOUT_ID).match(
                    self.text, self.pos
                )
                self._emit(token_type, " ".join(phrase.group(0).upper().split()), len(phrase.group(0)))
                return True
            if token_type == TokenType.BOOLEAN:
                # Preserve case for boolean values
                self._emit(token_type, value, len(value))
                return True
            if token_type is not None:
                self._emit(token_type, value.upper(), len(value))
                return True

        self._emit(TokenType.IDENTIFIER, value, len(value))
        return True

    def _keyword_type(self, value: str, end: int) -> TokenType | None:
        """Resolve a word to a keyword using lookahead, or None for identifiers."""
        upper = value.upper()

        # Header keywords only open a query
        if not self.tokens:
            return self.HEADER_KEYWORDS.get(upper)

        if upper == "GROUP" and self.GROUP_BY.match(self.text, self.pos):
            return TokenType.GROUP_BY
        if upper == "WITHOUT" and self.WITHOUT_ID.match(self.text, self.pos):
            return TokenType.WITHOUT_ID

        token_type = self.KEYWORDS.get(upper)
        # `sort(list)` and friends are function calls, not clauses
        if token_type in CLAUSE_KEYWORDS and self.text.startswith("(", end):
            return None
        return token_type

    def _match_punctuation(self) -> bool:
        """Match punctuation."""
        char = self.text[self.pos]
        token_type = self.PUNCTUATION.get(char)
        if token_type:
            self._emit(token_type, char, 1)
            return True
        return False
