"""
Dataview to Bases converter.

Parses Dataview TABLE queries and rewrites them as Obsidian Bases definitions.
"""

__version__ = "0.1.0"

from dataview_bases.ast import Query, QueryType, SortDirection
from dataview_bases.config import ConverterConfig, get_config
from dataview_bases.converter import DataviewConverter, convert_query, create_converter
from dataview_bases.detector import DataviewDetector
from dataview_bases.errors import (
    DataviewError,
    DataviewSyntaxError,
    DataviewTransformError,
    UnsupportedConstructError,
)
from dataview_bases.lexer import DataviewLexer, Token, TokenType
from dataview_bases.parser import DataviewParser, parse_query
from dataview_bases.result import Failure, Result, Success
from dataview_bases.schemas import BasesConfig, BasesView, SortSpec
from dataview_bases.serializer import to_yaml
from dataview_bases.transformer import DataviewToBasesTransformer, transform

__all__ = [
    # AST
    "Query",
    "QueryType",
    "SortDirection",
    # Config
    "ConverterConfig",
    "get_config",
    # Converter
    "DataviewConverter",
    "convert_query",
    "create_converter",
    # Detector
    "DataviewDetector",
    # Errors
    "DataviewError",
    "DataviewSyntaxError",
    "DataviewTransformError",
    "UnsupportedConstructError",
    # Lexer
    "DataviewLexer",
    "Token",
    "TokenType",
    # Parser
    "DataviewParser",
    "parse_query",
    "Failure",
    "Result",
    "Success",
    # Output
    "BasesConfig",
    "BasesView",
    "SortSpec",
    "to_yaml",
    "DataviewToBasesTransformer",
    "transform",
]
