"""Domain error taxonomy.

Every error raised by services or the authorization gate derives from
``AppError`` and carries the HTTP status the API layer responds with.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        errors: Optional[list[dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.errors = errors or []


class InvalidInputError(ValidationError):
    """Input rejected by a low-level primitive (e.g. an empty password)."""

    default_message = "Invalid input"


class AuthenticationError(AppError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class TokenError(AuthenticationError):
    """Base class for token verification failures."""

    default_message = "Token verification failed"


class TokenExpiredError(TokenError):
    default_message = "Token has expired"


class TokenMalformedError(TokenError):
    default_message = "Invalid token"


class TokenNotYetValidError(TokenError):
    default_message = "Token not active yet"


class AuthorizationError(AppError):
    """Valid identity without ownership of the target resource."""

    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Duplicate value for a unique field."""

    status_code = 409
    default_message = "Resource already exists"


class InternalError(AppError):
    status_code = 500


class StoreUnavailableError(AppError):
    """The backing store timed out or could not be reached."""

    status_code = 503
    default_message = "Database temporarily unavailable"
