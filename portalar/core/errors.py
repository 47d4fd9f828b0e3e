"""Application error taxonomy.

Services raise these; ``portalar.api.errors`` is the only place that turns
them into HTTP responses.
"""

from typing import Any


class AppError(Exception):
    """Base error carrying an HTTP status code and optional details"""

    status_code = 500

    def __init__(self, message: str, details: Any = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, message: str, reason: str = "invalid", details: Any = None):
        super().__init__(message, details)
        # missing | malformed | invalid_signature | invalid_claims | expired | bad_password
        self.reason = reason


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ExpiredError(AppError):
    status_code = 410


class RateLimitError(AppError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message, {"retryAfter": retry_after})
        self.retry_after = retry_after


class ServiceUnavailableError(AppError):
    status_code = 503


class StorageError(AppError):
    status_code = 500


class UnconfiguredError(AppError):
    status_code = 500
