"""Translate engine results into HTTP responses."""

from typing import TypeVar

from fastapi import HTTPException, status

from app.core.errors import ErrorCode, OperationResult


T = TypeVar("T")

STATUS_BY_CODE = {
    ErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND_OR_HIDDEN: status.HTTP_404_NOT_FOUND,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def unwrap(result: OperationResult[T]) -> T:
    """Return the data of a successful result or raise the mapped HTTPException."""
    if result.ok:
        return result.data
    error = result.error
    detail = {"code": error.code.value, "message": error.message}
    if error.reason:
        detail["reason"] = error.reason
    raise HTTPException(status_code=STATUS_BY_CODE[error.code], detail=detail)
