"""
auth/errors.py -- Typed failures for the auth core.

Every failure kind of the auth/session/authorization core has its own class.
Callers catch the kind they can handle; everything else propagates to the API
layer, where one exception handler renders the ErrorResponse envelope from
status_code + error_code + message. Nothing here is retried.

Kinds:
  Unauthenticated        -- no session where one is required (401)
  InvalidCredentials     -- signin failed; same code/message for unknown email
                            and wrong password so accounts cannot be enumerated
  Forbidden              -- authenticated but lacking ownership/permission (403)
  NotFound               -- referenced user or resource absent (404)
  Conflict               -- duplicate email (409)
  InvalidInput           -- password confirmation mismatch (400)
  InvalidOrExpiredToken  -- reset token unknown, consumed, or out of window (400)
  InternalError          -- hashing/signing/persistence failure (500)

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. Subclasses pin status_code and error_code."""

    status_code: int = 400
    error_code: str = "bad_request"
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AuthError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "You must be logged in to do that."


class InvalidCredentials(AuthError):
    status_code = 401
    error_code = "bad_credentials"
    default_message = "Invalid email or password."


class Forbidden(AuthError):
    status_code = 403
    error_code = "forbidden"
    default_message = "You do not have permission to do that."


class NotFound(AuthError):
    status_code = 404
    error_code = "not_found"
    default_message = "Not found."


class UserNotFound(NotFound):
    def __init__(self, email: str | None = None) -> None:
        super().__init__(f"No such user found for email {email}" if email else "User not found.")


class ResourceNotFound(NotFound):
    pass


class Conflict(AuthError):
    status_code = 409
    error_code = "conflict"
    default_message = "Conflicting record."


class DuplicateEmail(Conflict):
    default_message = "An account with that email already exists."


class InvalidInput(AuthError):
    status_code = 400
    error_code = "invalid_input"
    default_message = "Invalid input."


class PasswordMismatch(InvalidInput):
    error_code = "password_mismatch"
    default_message = "Passwords don't match."


class InvalidOrExpiredToken(AuthError):
    status_code = 400
    error_code = "invalid_reset_token"
    default_message = "This reset token is either invalid or expired."


class InternalError(AuthError):
    status_code = 500
    error_code = "internal_error"
    default_message = "An unexpected error occurred."
