"""
Lifecycle error taxonomy.

Every service raises a subclass of LifecycleError. Routers convert them
into structured HTTP errors with ``to_http_exception``.
"""

from uuid import UUID

from fastapi import HTTPException


class LifecycleError(Exception):
    """Base exception for lifecycle service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(LifecycleError):
    """A referenced user, listing, application or admission does not exist."""

    def __init__(self, resource: str, resource_id: UUID | str | None = None):
        message = f"{resource} {resource_id} not found" if resource_id else f"{resource} not found"
        super().__init__(
            message=message,
            error_code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
        )


class ForbiddenError(LifecycleError):
    def __init__(self, message: str, error_code: str = "FORBIDDEN"):
        super().__init__(message=message, error_code=error_code, status_code=403)


class ConflictError(LifecycleError):
    """The request is well-formed but conflicts with current state."""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message=message, error_code=error_code, status_code=409)


class CapacityExceededError(LifecycleError):
    def __init__(self, message: str = "No seats available"):
        super().__init__(message=message, error_code="CAPACITY_EXCEEDED", status_code=409)


class LifecycleValidationError(LifecycleError):
    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=400)


def to_http_exception(e: LifecycleError) -> HTTPException:
    """Convert a service error to an HTTPException with a structured body."""
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )
