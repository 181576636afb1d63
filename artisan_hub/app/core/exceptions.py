"""
Unified base exception classes for all services.

Every domain failure is a ServiceError carrying the HTTP status and the
machine-readable error code the API renders. StorageFailure wraps anything
the persistence layer throws so driver details never reach a response body.
"""


class ServiceError(Exception):
    """Base exception for all service-layer errors."""

    status_code = 400
    error_code = "BAD_REQUEST"

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class ConflictError(ServiceError):
    status_code = 409
    error_code = "CONFLICT"


class ForbiddenError(ServiceError):
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"


class InvalidStateError(ServiceError):
    status_code = 409
    error_code = "INVALID_REQUEST_STATE"


class StorageFailure(ServiceError):
    """Unexpected persistence fault. The message shown to callers is always generic."""

    status_code = 500
    error_code = "STORAGE_FAILURE"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__("Internal storage error")
