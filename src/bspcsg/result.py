"""Success/failure values returned by tree and boolean operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Failure categories reported by the engine."""
    INVALID_GEOMETRY = "invalid_geometry"
    OPERATION_FAILURE = "operation_failure"
    EXCEEDS_LIMITS = "exceeds_limits"


class CSGError(Exception):
    """Raised by :meth:`Result.unwrap` on a failed result."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.OPERATION_FAILURE):
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> T:
        if not self.ok:
            raise CSGError(self.error or "operation failed",
                           self.kind or ErrorKind.OPERATION_FAILURE)
        return self.value

    def prefixed(self, prefix: str) -> "Result[T]":
        """Return a failure with ``prefix`` prepended to the message."""

        if self.ok:
            return self
        return Result(False, None, f"{prefix}: {self.error}", self.kind)


def success(value: Any = None) -> Result[Any]:
    return Result(True, value)


def failure(message: str, kind: ErrorKind = ErrorKind.OPERATION_FAILURE) -> Result[Any]:
    return Result(False, None, message, kind)


__all__ = ['CSGError', 'ErrorKind', 'Result', 'failure', 'success']
