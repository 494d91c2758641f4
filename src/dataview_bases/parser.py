"""
Parser for Dataview queries.

The token stream is first split into clauses at every clause keyword that sits
outside parentheses and brackets, so clause bodies may span lines and contain
nested calls. Each clause body is then handed to the source or expression
grammar, which must consume it completely.
"""

from loguru import logger

from dataview_bases.ast import (
    CalendarHeader,
    EmptySource,
    Flatten,
    Group,
    Header,
    Limit,
    ListHeader,
    Operation,
    Query,
    SortBy,
    SortDirection,
    SortField,
    Source,
    TableHeader,
    TaskHeader,
    Where,
)
from dataview_bases.config import ConverterConfig, get_config
from dataview_bases.cursor import DEFAULT_MAX_DEPTH, TokenParser
from dataview_bases.errors import DataviewSyntaxError
from dataview_bases.expression import ExpressionParser
from dataview_bases.lexer import CLAUSE_KEYWORDS, DataviewLexer, Token, TokenType
from dataview_bases.result import Failure, Result, Success
from dataview_bases.source import SourceParser

HEADER_TYPES = (TokenType.TABLE, TokenType.LIST, TokenType.TASK, TokenType.CALENDAR)

SORT_DIRECTIONS = {
    "ASC": SortDirection.ASC,
    "ASCENDING": SortDirection.ASC,
    "DESC": SortDirection.DESC,
    "DESCENDING": SortDirection.DESC,
}

CLOSING = {TokenType.RPAREN: TokenType.LPAREN, TokenType.RBRACKET: TokenType.LBRACKET}

Segment = tuple[Token, list[Token]]


class DataviewParser(TokenParser):
    """Parser for Dataview queries."""

    def __init__(self, tokens: list[Token], text: str = "", max_depth: int = DEFAULT_MAX_DEPTH):
        super().__init__(tokens, text, max_depth)

    @classmethod
    def parse(cls, query_text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Query:
        """Parse a Dataview query string into an AST.

        Raises:
            DataviewSyntaxError: If the query cannot be parsed.
        """
        lexer = DataviewLexer(query_text)
        tokens = lexer.tokenize()
        parser = cls(tokens, query_text, max_depth)
        return parser.parse_query()

    def parse_query(self) -> Query:
        """Parse the complete query."""
        header_segment, clauses = self._segment()
        header = self._parse_header(*header_segment)

        source: Source | None = None
        operations: list[Operation] = []
        for keyword, body in clauses:
            if keyword.type == TokenType.FROM:
                if source is not None:
                    raise self._error("Duplicate FROM clause", keyword)
                source = self._parse_from(keyword, body)
            else:
                operations.append(self._parse_operation(keyword, body))

        return Query(
            header=header,
            source=source if source is not None else EmptySource(),
            operations=tuple(operations),
        )

    def _segment(self) -> tuple[Segment, list[Segment]]:
        """Split tokens into the header and one segment per top-level clause."""
        header = self.tokens[0]
        if header.type not in HEADER_TYPES:
            raise self._error(
                f"Expected query type (TABLE, LIST, TASK, CALENDAR), got {header.value or 'nothing'}",
                header,
            )

        open_tokens: list[Token] = []
        segments: list[Segment] = []
        keyword, body = header, []

        for token in self.tokens[1:]:
            if token.type == TokenType.EOF:
                break
            if token.type in (TokenType.LPAREN, TokenType.LBRACKET):
                open_tokens.append(token)
            elif token.type in CLOSING:
                if not open_tokens or open_tokens[-1].type != CLOSING[token.type]:
                    raise self._error(f"Unmatched '{token.value}'", token)
                open_tokens.pop()
            elif not open_tokens and token.type in CLAUSE_KEYWORDS:
                segments.append((keyword, body))
                keyword, body = token, []
                continue
            body.append(token)

        if open_tokens:
            raise self._error(f"Unmatched '{open_tokens[-1].value}'", open_tokens[-1])

        segments.append((keyword, body))
        return segments[0], segments[1:]

    def _clause_parser(self, keyword: Token, body: list[Token], cls=ExpressionParser):
        if not body:
            raise self._error(f"Expected a value after {keyword.value}", keyword)
        return cls(body, self.text, self.max_depth)

    def _parse_header(self, keyword: Token, body: list[Token]) -> Header:
        """Parse the query type and its fields."""
        parser = ExpressionParser(body, self.text, self.max_depth)

        if keyword.type == TokenType.TASK:
            parser._expect_end("TASK")
            return TaskHeader()

        if keyword.type == TokenType.CALENDAR:
            parser = self._clause_parser(keyword, body)
            field = parser.parse_named_field()
            parser._expect_end("CALENDAR")
            return CalendarHeader(field=field)

        show_id = True
        if parser._check(TokenType.WITHOUT_ID):
            parser._advance()
            show_id = False

        if keyword.type == TokenType.LIST:
            format_field = None if parser._is_at_end() else parser.parse_expression()
            parser._expect_end("LIST")
            return ListHeader(format=format_field, show_id=show_id)

        fields = [] if parser._is_at_end() else parser.parse_comma_separated(parser.parse_named_field)
        parser._expect_end("TABLE")
        return TableHeader(fields=tuple(fields), show_id=show_id)

    def _parse_from(self, keyword: Token, body: list[Token]) -> Source:
        """Parse FROM source."""
        parser = self._clause_parser(keyword, body, SourceParser)
        source = parser.parse_source()
        parser._expect_end("FROM")
        return source

    def _parse_operation(self, keyword: Token, body: list[Token]) -> Operation:
        parser = self._clause_parser(keyword, body)

        if keyword.type == TokenType.WHERE:
            operation = Where(clause=parser.parse_expression())
        elif keyword.type == TokenType.SORT:
            operation = SortBy(fields=tuple(parser.parse_comma_separated(lambda: self._parse_sort_field(parser))))
        elif keyword.type == TokenType.LIMIT:
            operation = Limit(amount=parser.parse_expression())
        elif keyword.type == TokenType.GROUP_BY:
            operation = Group(field=parser.parse_named_field())
        else:
            operation = Flatten(field=parser.parse_named_field())

        parser._expect_end(keyword.value)
        return operation

    @staticmethod
    def _parse_sort_field(parser: ExpressionParser) -> SortField:
        field = parser.parse_expression()
        direction = SortDirection.ASC
        if parser._check(TokenType.IDENTIFIER) and parser._current().value.upper() in SORT_DIRECTIONS:
            direction = SORT_DIRECTIONS[parser._advance().value.upper()]
        return SortField(field=field, direction=direction)


def parse_query(text: str, config: ConverterConfig | None = None) -> Result[Query]:
    """Parse a query, returning ``Success(query)`` or ``Failure(message)``.

    Never raises for malformed input.
    """
    config = config or get_config()
    try:
        return Success(DataviewParser.parse(text, max_depth=config.max_nesting_depth))
    except DataviewSyntaxError as e:
        logger.debug(f"Dataview syntax error: {e}")
        return Failure.from_exception(e)
    except RecursionError:
        return Failure(error="Query is nested too deeply to parse", fragment=text.strip()[:40])
