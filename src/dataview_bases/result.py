"""
Two-variant outcome returned by the top-level parse entry point.
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from dataview_bases.errors import DataviewSyntaxError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    successful = True

    def map(self, f: Callable[[T], U]) -> "Result[U]":
        return Success(f(self.value))

    def or_else(self, default: T) -> T:
        return self.value

    def or_else_raise(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """A parse failure with the offending fragment and its location."""

    error: str
    fragment: str | None = None
    line: int | None = None
    column: int | None = None

    successful = False

    @classmethod
    def from_exception(cls, exc: DataviewSyntaxError) -> "Failure":
        return cls(error=str(exc), fragment=exc.fragment, line=exc.line, column=exc.column)

    def map(self, f: Callable) -> "Failure":
        return self

    def or_else(self, default: T) -> T:
        return default

    def or_else_raise(self):
        # error already carries location and fragment
        exc = DataviewSyntaxError(self.error)
        exc.fragment, exc.line, exc.column = self.fragment, self.line, self.column
        raise exc


Result = Union[Success[T], Failure]
