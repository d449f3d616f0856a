"""Typed failures of the auth flows.

Each carries the HTTP status and the client-safe message; the internal cause
is logged where it is detected and never attached here.
"""


class AuthError(Exception):
    status = 400
    message = "Bad request"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidCredentials(AuthError):
    # same message for unknown email and wrong password
    status = 401
    message = "Invalid email or password"


class MissingToken(AuthError):
    status = 401
    message = "Missing refresh token"


class InvalidToken(AuthError):
    status = 401
    message = "Invalid refresh token"


class InvalidOrExpiredResetToken(AuthError):
    status = 400
    message = "Invalid or expired token"


class Unauthorized(AuthError):
    status = 401
    message = "Please sign in"


class Forbidden(AuthError):
    status = 403
    message = "Insufficient role"
