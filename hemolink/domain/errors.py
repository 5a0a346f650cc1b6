# SPDX-License-Identifier: Apache-2.0

"""
Typed application errors.

Each error carries the HTTP status it maps to and a problem type slug used by
the error handler middleware when rendering responses.
"""


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Exception for malformed input."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors (forbidden)."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    """Exception for resource conflict errors."""

    def __init__(self, message: str, error_type: str = "resource-conflict"):
        super().__init__(message, 409, error_type)


class InvalidTransitionException(ConflictException):
    """Raised when a blood request cannot move to the requested status."""

    def __init__(self, current_status: str, target_status: str, message: str = None):
        super().__init__(
            message or f"Cannot transition request from '{current_status}' to '{target_status}'",
            "invalid-transition"
        )
        self.current_status = current_status
        self.target_status = target_status


class InsufficientStockException(ConflictException):
    """Raised when a removal exceeds the available quantity."""

    def __init__(self, blood_type: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for blood type {blood_type}. "
            f"Available: {available}, Requested: {requested}.",
            "insufficient-stock"
        )
        self.blood_type = blood_type
        self.available = available
        self.requested = requested


class UpstreamUnavailableException(CustomException):
    """Exception for failing external dependencies (geocoding, notifications)."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")
