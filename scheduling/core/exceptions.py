"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, field: str | None = None):
        """Initialize exception with message, status code and the offending field."""
        self.message = message
        self.status_code = status_code
        self.field = field
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Requester lacks rights for the operation on this record."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Requested slot overlaps an existing appointment."""

    def __init__(self, message: str = "Conflict", field: str | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, field=field)


class InvalidStateException(AppException):
    """Transition is not allowed from the record's current status."""

    def __init__(self, message: str = "Invalid state transition"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, field="status")


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", field: str | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, field=field)


class InvalidTimeException(ValidationException):
    """Malformed or out-of-range time of day."""

    def __init__(self, message: str = "Invalid time of day", field: str | None = "start_time"):
        """Initialize with 422 status code."""
        super().__init__(message, field=field)


class DatabaseException(AppException):
    """Persistence layer failure; rendered without internal detail."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
