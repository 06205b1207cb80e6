"""Domain errors raised by the auth services.

Each error carries a stable ``code`` and a user-facing ``message``. The HTTP
layer maps ``status_code`` onto the response; messages never reveal whether an
email is registered.
"""


class AuthError(Exception):
    """Base class for recoverable auth failures."""

    code = "auth_error"
    message = "Authentication failed"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    message = "Invalid email or password"
    status_code = 401


class AccountInactive(AuthError):
    code = "account_inactive"
    message = "User account is inactive"
    status_code = 401


class Throttled(AuthError):
    code = "throttled"
    message = "Too many attempts. Please try again later."
    status_code = 429


class MalformedToken(AuthError):
    code = "malformed_token"
    message = "Invalid token"
    status_code = 401


class BadSignature(AuthError):
    code = "bad_signature"
    message = "Invalid token"
    status_code = 401


class TokenExpired(AuthError):
    code = "token_expired"
    message = "Token has expired"
    status_code = 401


class SessionInvalid(AuthError):
    code = "session_invalid"
    message = "Invalid session"
    status_code = 401


class SessionExpired(AuthError):
    code = "session_expired"
    message = "Session has expired"
    status_code = 401


class ResetTokenInvalidOrExpired(AuthError):
    code = "reset_token_invalid"
    message = "Invalid or expired reset token"
    status_code = 400


class InvalidInput(AuthError):
    code = "invalid_input"
    message = "Invalid request"
    status_code = 400


class EmailAlreadyRegistered(AuthError):
    code = "email_registered"
    message = "Email already registered"
    status_code = 409


class StorageFailure(AuthError):
    """The storage backend is unreachable or failed mid-operation."""

    code = "storage_failure"
    message = "Service temporarily unavailable. Please try again later."
    status_code = 503
