"""
Name: Result type.
Description: Two-variant outcome type (Ok / Err) returned by every fallible operation in openapi-mcp.
Callers branch on the variant explicitly; a result is never truthy or falsy.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


class UnwrapError(Exception):
    """Raised when unwrapping the wrong variant of a result."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise UnwrapError(f"Called unwrap_err on Ok({self.value!r})")

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[Any], Any]) -> "Ok[T]":
        return self

    def __bool__(self) -> bool:
        raise TypeError("Result has no truth value; use is_ok() or is_err()")


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying a typed error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise UnwrapError(f"Called unwrap on Err({self.error!r})")

    def unwrap_err(self) -> E:
        return self.error

    def map(self, fn: Callable[[Any], Any]) -> "Err[E]":
        return self

    def map_err(self, fn: Callable[[E], F]) -> "Err[F]":
        return Err(fn(self.error))

    def __bool__(self) -> bool:
        raise TypeError("Result has no truth value; use is_ok() or is_err()")


Result = Union[Ok[T], Err[E]]
