from services.container import ServiceContainer, build_services
from services.errors import (
    AuthError,
    Forbidden,
    InvalidCredentials,
    InvalidOrExpiredResetToken,
    InvalidToken,
    MissingToken,
    Unauthorized,
)
from services.password_reset import RESET_SUCCESS_MESSAGE, PasswordResetFlow
from services.session_service import IssuedTokens, SessionService

__all__ = [
    "AuthError",
    "Forbidden",
    "InvalidCredentials",
    "InvalidOrExpiredResetToken",
    "InvalidToken",
    "IssuedTokens",
    "MissingToken",
    "PasswordResetFlow",
    "RESET_SUCCESS_MESSAGE",
    "ServiceContainer",
    "SessionService",
    "Unauthorized",
    "build_services",
]
