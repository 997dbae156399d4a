"""Application error types.

Every error carries the HTTP status and the message shown to the caller.
Handlers in ``main.py`` render them into the ``{success, message, errors}``
envelope, so nothing here knows about FastAPI.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class AppError(Exception):
    """Base class for errors that map onto an API response."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingCredentials(AppError):
    status_code = 400
    message = "Email and password are required"


class InvalidCredentials(AppError):
    status_code = 401
    message = "Invalid email or password"


class AccountDisabled(AppError):
    status_code = 403
    message = "Account is deactivated"


class AccountLocked(AppError):
    status_code = 403
    message = "Account is temporarily locked. Please try again later."


class MissingToken(AppError):
    status_code = 401
    message = "Access token is required"


class InvalidToken(AppError):
    status_code = 401
    message = "Invalid token"


class ExpiredToken(AppError):
    status_code = 401
    message = "Token has expired"


class ValidationFailed(AppError):
    status_code = 400
    message = "Validation error"

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class NotFound(AppError):
    status_code = 404
    message = "Not found"


class StorageError(AppError):
    status_code = 500
    message = "Internal server error"


class NotificationError(Exception):
    """Raised when an email notification cannot be delivered."""
