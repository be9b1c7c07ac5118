"""Result values and error taxonomy for query resolution.

Expected validation failures are returned, not raised: every resolver
produces a ``Result`` carrying either a value or a list of ``QueryError``.
Exceptions are kept for programmer errors and unimplemented branches.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar('T')

__all__ = ['ErrorKind', 'QueryError', 'QueryResolutionError', 'Result']


class ErrorKind(Enum):
    NOT_FOUND = 'not_found'
    INVALID_PATH = 'invalid_path'
    INVALID_VALUE = 'invalid_value'
    DECODE_ERROR = 'decode_error'


@dataclass(frozen=True)
class QueryError:
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


class QueryResolutionError(Exception):
    """Raised by ``Result.unwrap`` when a failed result reaches a boundary."""

    def __init__(self, errors: List[QueryError]):
        self.errors = list(errors)
        super().__init__('; '.join(e.message for e in self.errors))

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.errors[0].kind if self.errors else None


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    errors: List[QueryError] = field(default_factory=list)

    @classmethod
    def ok(cls, value: Any = None) -> 'Result[Any]':
        return cls(value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> 'Result[Any]':
        return cls(errors=[QueryError(kind, message)])

    @classmethod
    def from_errors(cls, errors: List[QueryError]) -> 'Result[Any]':
        if not errors:
            raise ValueError('from_errors requires at least one error')
        return cls(errors=list(errors))

    @property
    def is_ok(self) -> bool:
        return not self.errors

    @property
    def is_failed(self) -> bool:
        return bool(self.errors)

    @property
    def error(self) -> Optional[QueryError]:
        return self.errors[0] if self.errors else None

    def unwrap(self) -> T:
        if self.errors:
            raise QueryResolutionError(self.errors)
        return self.value  # type: ignore[return-value]
