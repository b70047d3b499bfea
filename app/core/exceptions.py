"""Application errors and their HTTP mapping."""

from typing import Any

from fastapi import HTTPException, status

from app.schemas.common import error_body


class AppException(HTTPException):
    """Base application exception.

    Subclasses set ``status_code``, ``code`` and a default message; the
    HTTP detail is the standard error body built from them.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"
    default_message = "An internal server error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.status_code, detail=error_body(self.code, self.message, self.details))

    def __str__(self) -> str:
        return self.message


class ValidationError(AppException):
    status_code = 422
    code = "VALIDATION_ERROR"
    default_message = "Validation error"


class ConsistencyError(AppException):
    """Operation would violate a record invariant. Raised before any write."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONSISTENCY_ERROR"
    default_message = "Consistency error"


class UploadError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "UPLOAD_FAILED"
    default_message = "Upload failed"


class StoreError(AppException):
    """The persistent store could not complete a call."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"
    default_message = "Store unavailable"


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", identifier: str | None = None):
        super().__init__(f"{resource} not found", {"identifier": identifier} if identifier else None)
