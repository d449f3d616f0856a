"""
Password reset: one-time, time-boxed tokens delivered by mail.

request_reset() answers the same way whether or not the email is registered.
reset_password() consumes the token exactly once and then logs the user out
everywhere.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable
from urllib.parse import quote

from sqlalchemy.exc import SQLAlchemyError

from models.base_model import utcnow
from models.token_store import TokenStore
from models.user_store import UserStore
from services.errors import InvalidOrExpiredResetToken
from services.mailer import Mailer, redact_email
from services.session_service import SessionService
from utils.password_hasher import PasswordHasher
from utils.security import generate_reset_token

logger = logging.getLogger(__name__)

RESET_SUCCESS_MESSAGE = "Password successfully changed — logging out of all devices"


class PasswordResetFlow:
    def __init__(
        self,
        users: UserStore,
        tokens: TokenStore,
        hasher: PasswordHasher,
        sessions: SessionService,
        mailer: Mailer,
        *,
        token_ttl: timedelta = timedelta(hours=1),
        frontend_url: str = "http://localhost:5173",
        now: Callable[[], datetime] = utcnow,
    ):
        self.users = users
        self.tokens = tokens
        self.hasher = hasher
        self.sessions = sessions
        self.mailer = mailer
        self.token_ttl = token_ttl
        self.frontend_url = frontend_url.rstrip("/")
        self._now = now

    def reset_link(self, raw_token: str) -> str:
        return f"{self.frontend_url}/reset-password?token={quote(raw_token, safe='')}"

    def request_reset(self, email: str) -> None:
        user = self.users.find_by_email(email)
        if user is None:
            logger.info("password reset requested for unregistered email %s", redact_email(email))
            return

        raw_token = generate_reset_token()
        self.tokens.create_password_reset_token(raw_token, user.id, self._now() + self.token_ttl)

        # the token is persisted; delivery is best-effort from here on
        try:
            sent = self.mailer.send_password_reset(user.email, self.reset_link(raw_token))
        except Exception:
            logger.exception("password reset mail to %s raised", redact_email(user.email))
            return
        if not sent:
            logger.warning("password reset mail to %s was not delivered", redact_email(user.email))

    def reset_password(self, raw_token: str, new_password: str) -> str:
        """
        Set a new password using a reset token. Returns the confirmation message.

        Raises InvalidOrExpiredResetToken for an unknown, already used or
        expired token; an expired token is deleted before failing.
        """
        record = self.tokens.find_password_reset_token(raw_token)
        if record is None:
            raise InvalidOrExpiredResetToken()
        if record.expires_at <= self._now():
            self.tokens.consume_password_reset_token(raw_token)
            raise InvalidOrExpiredResetToken()

        new_hash = self.hasher.hash(new_password)
        # consuming first makes the token single-use under concurrent resets
        if not self.tokens.consume_password_reset_token(raw_token):
            raise InvalidOrExpiredResetToken()
        if not self.users.update_password_hash(record.user_id, new_hash):
            raise InvalidOrExpiredResetToken()

        try:
            self.sessions.revoke_all_sessions(record.user_id)
        except SQLAlchemyError:
            logger.exception("password changed but revoking sessions failed for user %s", record.user_id)
        logger.info("password reset completed for user %s", record.user_id)
        return RESET_SUCCESS_MESSAGE
