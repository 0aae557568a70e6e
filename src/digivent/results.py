"""Typed success/failure results returned by every public operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure taxonomy shared by the session manager and resource stores."""

    NOT_AUTHENTICATED = "not_authenticated"
    NOT_FOUND = "not_found"
    STORAGE_FAILURE = "storage_failure"
    VALIDATION_FAILURE = "validation_failure"
    AUTH_ERROR = "auth_error"


_DEFAULT_MESSAGES = {
    ErrorKind.NOT_AUTHENTICATED: "Not authenticated",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.STORAGE_FAILURE: "Storage failure",
    ErrorKind.VALIDATION_FAILURE: "Invalid input",
    ErrorKind.AUTH_ERROR: "Authentication failed",
}


class AppError(Exception):
    """A display-safe error with a kind from :class:`ErrorKind`."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"AppError({self.kind.value!r}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AppError):
            return NotImplemented
        return self.kind == other.kind and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.kind, self.message))


def not_authenticated(message: Optional[str] = None) -> AppError:
    return AppError(ErrorKind.NOT_AUTHENTICATED, message)


def not_found(message: Optional[str] = None) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message)


def storage_failure(message: Optional[str] = None) -> AppError:
    return AppError(ErrorKind.STORAGE_FAILURE, message)


def validation_failure(message: Optional[str] = None) -> AppError:
    return AppError(ErrorKind.VALIDATION_FAILURE, message)


def auth_error(message: Optional[str] = None) -> AppError:
    return AppError(ErrorKind.AUTH_ERROR, message)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation: either ``value`` or ``error`` is meaningful."""

    value: Optional[T] = None
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried :class:`AppError`."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
