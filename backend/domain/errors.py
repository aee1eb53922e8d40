"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthorizedError(DomainError):
    """Unauthorized access (401)."""
    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class RateLimitError(DomainError):
    """Rate limit exceeded (429). `retry_after` is sent as the Retry-After header."""
    def __init__(self, message: str = "Rate limit exceeded", retry_after: int | None = None, details: dict | None = None):
        headers = None
        if retry_after is not None:
            details = {**(details or {}), "retryAfter": retry_after}
            headers = {"Retry-After": str(retry_after)}
        super().__init__(
            message, status_code=status.HTTP_429_TOO_MANY_REQUESTS, details=details, headers=headers
        )
        self.retry_after = retry_after


class UpstreamError(DomainError):
    """
    Payment or messaging provider rejected a request (502).

    `code` and `error_type` carry the provider's structured error fields
    when the response included them.
    """
    def __init__(
        self,
        message: str,
        code: str | None = None,
        error_type: str | None = None,
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: dict | None = None,
    ):
        details = dict(details or {})
        if code:
            details.setdefault("providerCode", code)
        if error_type:
            details.setdefault("providerType", error_type)
        super().__init__(message, status_code=status_code, details=details)
        self.code = code
        self.error_type = error_type


class ConflictError(UpstreamError):
    """Resource already exists upstream (409)."""
    def __init__(self, message: str, code: str | None = "resource_already_exists", details: dict | None = None):
        super().__init__(message, code=code, status_code=status.HTTP_409_CONFLICT, details=details)
