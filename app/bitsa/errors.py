"""
Domain errors raised by services and route handlers.

Each error carries the HTTP status it maps to; the app-level error handler
renders it as ``{"message": ...}`` JSON.
"""
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Invalid email or password"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden: Admin access required"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Invalid request body"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class DuplicateEmail(AppError):
    status_code = 400
    default_message = "An account with this email already exists"


class DuplicateSlug(AppError):
    status_code = 400
    default_message = "A blog post with this slug already exists"


class AlreadyRegistered(AppError):
    status_code = 400
    default_message = "You are already registered for this event"


class Mismatch(AppError):
    status_code = 400
    default_message = "Reply does not belong to this discussion"


class InvalidOrExpiredToken(AppError):
    status_code = 400
    default_message = "Invalid or expired reset token"


class InvalidFormat(AppError):
    status_code = 400
    default_message = "Invalid image format"


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many login attempts. Please wait 5 minutes."


class PayloadTooLarge(AppError):
    status_code = 413
    default_message = "Request is too large. Images must be 5MB or smaller."


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
