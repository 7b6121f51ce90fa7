"""
Error taxonomy.

Every failure the service reports to a caller is one of these. They are
``HTTPException`` subclasses so services can raise them directly and the
app's exception handler renders them in the standard response envelope.
"""

from typing import Any, Optional
from fastapi import HTTPException, status

class ServiceError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[dict[str, Any]]] = None,
        data: Optional[dict[str, Any]] = None,
    ):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.errors = errors
        self.data = data

    @property
    def message(self) -> str:
        return self.detail

class BadRequest(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"

class ValidationFailed(ServiceError):
    status_code = 422
    default_message = "Validation failed"

class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"

class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access forbidden"

class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"

class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"

class InvalidTransition(BadRequest):
    def __init__(self, current: str, requested: str):
        message = f"Cannot transition from {current} to {requested}"
        super().__init__(
            message,
            errors=[{"field": "status", "message": message}],
            data={"currentStatus": current, "requestedStatus": requested},
        )
        self.current = current
        self.requested = requested

class InvalidState(BadRequest):
    default_message = "Operation not allowed in the current state"
