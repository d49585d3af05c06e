"""Engine error taxonomy and the typed result returned at the engine boundary."""

from __future__ import annotations

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from . import messages


logger = logging.getLogger("app.core.errors")

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND_OR_HIDDEN = "NOT_FOUND_OR_HIDDEN"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


class EngineError(Exception):
    """Base class for errors the engine reports to its callers."""

    code: ErrorCode = ErrorCode.INTERNAL
    default_message: str = messages.INTERNAL_ERROR

    def __init__(self, message: Optional[str] = None, *, reason: Optional[str] = None):
        self.message = message or self.default_message
        self.reason = reason
        super().__init__(self.message)


class InvalidArgumentError(EngineError):
    code = ErrorCode.VALIDATION
    default_message = "Invalid input"


class ImmutableRecordError(InvalidArgumentError):
    """Raised when code attempts to rewrite append-only or write-once data."""

    default_message = messages.VERSION_IMMUTABLE


class NotFoundOrHiddenError(EngineError):
    code = ErrorCode.NOT_FOUND_OR_HIDDEN
    default_message = messages.NOT_FOUND_OR_HIDDEN


class PermissionDeniedError(EngineError):
    code = ErrorCode.PERMISSION_DENIED
    default_message = messages.PERMISSION_DENIED


class ConflictError(EngineError):
    code = ErrorCode.CONFLICT
    default_message = "Conflicting update"


class InternalError(EngineError):
    code = ErrorCode.INTERNAL


@dataclass(frozen=True)
class ErrorInfo:
    code: ErrorCode
    message: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of an engine operation: either data or a stable error."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, data: T) -> "OperationResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, exc: EngineError) -> "OperationResult[T]":
        return cls(ok=False, error=ErrorInfo(code=exc.code, message=exc.message, reason=exc.reason))


def engine_operation(name: str) -> Callable[[Callable[..., T]], Callable[..., OperationResult[T]]]:
    """
    Decorate an engine entry point so nothing but an OperationResult escapes it.

    Engine errors become typed failures. Storage and unexpected errors are
    logged with their traceback and surfaced as INTERNAL with a generic
    message.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., OperationResult[T]]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> OperationResult[T]:
            try:
                return OperationResult.success(func(*args, **kwargs))
            except EngineError as exc:
                if exc.code is ErrorCode.INTERNAL:
                    logger.error("%s failed: %s", name, exc.message)
                else:
                    logger.info("%s rejected: %s (%s)", name, exc.code.value, exc.reason or exc.message)
                return OperationResult.failure(exc)
            except SQLAlchemyError:
                logger.exception("%s failed with a storage error", name)
                return OperationResult.failure(InternalError())
            except Exception:
                logger.exception("%s failed unexpectedly", name)
                return OperationResult.failure(InternalError())

        return wrapper

    return decorator
