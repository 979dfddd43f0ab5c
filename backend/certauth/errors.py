"""Application error taxonomy.

Services raise these; ``main.py`` renders them as JSON with the matching
HTTP status. Messages are user-safe: they never reveal whether an email or
credential exists for some other account.
"""

from typing import Any


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    """Bad credentials, bad code, or bad token."""

    status_code = 401
    code = "AUTHENTICATION_FAILED"


class TokenExpiredError(AuthenticationError):
    """Signed token is past its expiry."""

    code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """Signed token is malformed, tampered, or of the wrong class."""

    code = "INVALID_TOKEN"


class AccountStatusError(AppError):
    """Credentials are fine but the account cannot log in yet (or ever)."""

    status_code = 403
    code = "ACCOUNT_NOT_ACTIVE"


class AuthorizationError(AppError):
    """Authenticated but lacking the required role."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    """Duplicate email, student id, or credential."""

    status_code = 409
    code = "CONFLICT"


class RateLimitedError(AppError):
    """Identifier is locked out."""

    status_code = 429
    code = "ACCOUNT_LOCKED"

    def __init__(self, message: str, *, retry_after_seconds: int, **extra: Any):
        super().__init__(message, locked=True, retryAfterSeconds=retry_after_seconds, **extra)
        self.retry_after_seconds = retry_after_seconds


class DependencyError(AppError):
    """Credential store (or another critical collaborator) failed."""

    status_code = 500
    code = "DEPENDENCY_ERROR"
