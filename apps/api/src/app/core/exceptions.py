"""
Service Exceptions

Error taxonomy shared by all modules. Each error carries the message shown
to the client, a machine readable code and the HTTP status it maps to.
The handlers in app.main render them as {"success": false, "message": ...}.
"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when request input is missing or malformed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class InvalidCredentialsError(ServiceError):
    """Raised when a password, OTP or token is rejected."""

    def __init__(self, message: str = "Invalid email or password."):
        super().__init__(
            message=message,
            error_code="INVALID_CREDENTIALS",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class NotFoundError(ServiceError):
    """Raised when an identifier or resource does not exist."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ExpiredError(ServiceError):
    """Raised when an OTP is past its validity."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="EXPIRED",
            status_code=status.HTTP_410_GONE,
        )


class RateLimitExceededError(ServiceError):
    """Raised when too many attempts were made."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )


class ConfigurationError(ServiceError):
    """
    Raised when the server is misconfigured (e.g. missing JWT_SECRET).

    The detail is logged; clients only see a generic message.
    """

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(
            message="Server configuration error.",
            error_code="CONFIGURATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class UpstreamError(ServiceError):
    """Raised when the database or the mailer fails or times out."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="UPSTREAM_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidCredentialsError",
    "NotFoundError",
    "ExpiredError",
    "RateLimitExceededError",
    "ConfigurationError",
    "UpstreamError",
]
