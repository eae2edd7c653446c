"""Standardized error payloads and the domain error kinds raised by services."""
from typing import Any

from fastapi import HTTPException, status


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class DomainError(HTTPException):
    """Base class for typed failures surfaced to callers.

    Subclasses fix the HTTP status and error code so routers can let them
    propagate untouched to the shared ``HTTPException`` handler.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(status_code=self.status_code, detail=error_response(self.code, message, details))

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class Unauthorized(DomainError):
    """The principal's role does not permit the action."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "UNAUTHORIZED"


class Forbidden(DomainError):
    """The principal has the right role but does not own the entity."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ValidationFailed(DomainError):
    status_code = 422
    code = "VALIDATION_ERROR"


class Conflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class PreconditionFailed(DomainError):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    code = "PRECONDITION_FAILED"


class InvalidStateTransition(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_STATE_TRANSITION"


__all__ = [
    "error_response",
    "DomainError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "ValidationFailed",
    "Conflict",
    "PreconditionFailed",
    "InvalidStateTransition",
]
