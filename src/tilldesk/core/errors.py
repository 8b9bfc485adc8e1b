"""Application errors and their JSON error body."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Body returned for every AppError."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(None, description="Additional context")


class AppError(Exception):
    """Base class for errors that map onto an HTTP response.

    Subclasses set ``code`` and ``status_code``; callers supply the message and
    any structured ``details`` the client needs to act on the error.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorDetail:
        return ErrorDetail(
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class ValidationError(AppError):
    """Request is well-formed but not acceptable (e.g. a count that does not reconcile)."""

    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} with ID {resource_id} not found",
            details={"resource": resource, "resource_id": resource_id},
        )


class ConflictError(AppError):
    """Operation collides with existing state (e.g. a second open session)."""

    code = "CONFLICT"
    status_code = 409


class InvalidStateError(AppError):
    """Resource is in the wrong lifecycle state for the operation."""

    code = "INVALID_STATE"
    status_code = 400


class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class InternalError(AppError):
    """Infrastructure failure the caller cannot fix."""

    code = "INTERNAL_ERROR"
    status_code = 500


class DatabaseError(InternalError):
    code = "DATABASE_ERROR"


class AuditLogImmutableError(RuntimeError):
    """Raised when code tries to modify or delete an append-only record."""
