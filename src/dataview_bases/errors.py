"""
Custom exceptions for Dataview parsing and conversion.
"""


class DataviewError(Exception):
    """Base exception for all Dataview-related errors."""

    pass


class DataviewSyntaxError(DataviewError):
    """Raised when a Dataview query has invalid syntax."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        fragment: str | None = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.fragment = fragment
        location = ""
        if line is not None:
            location = f" at line {line}"
            if column is not None:
                location += f", column {column}"
        near = f" near {fragment!r}" if fragment else ""
        super().__init__(f"{message}{location}{near}")


class DataviewTransformError(DataviewError):
    """Raised when a parsed query cannot be converted to a base."""

    pass


class UnsupportedConstructError(DataviewTransformError):
    """Raised for valid query constructs that have no base equivalent."""

    def __init__(self, construct: str, message: str | None = None):
        self.construct = construct
        super().__init__(message or f"{construct} is not supported")
