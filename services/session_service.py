"""
Session lifecycle: login, refresh (rotation with reuse detection), logout and
revoke-all.

Anonymous -> Authenticated -> Refreshed (N times) -> LoggedOut, with Revoked
reachable from any authenticated state through revoke_all_sessions().
All session state lives in the stores; this class keeps none between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.base_model import utcnow
from models.token_store import TokenStore
from models.user import parse_roles
from models.user_store import UserStore
from services.errors import InvalidCredentials, InvalidToken, MissingToken
from utils.cookies import CookieSettings, clear_auth_cookies, set_auth_cookies
from utils.password_hasher import PasswordHasher
from utils.security import AccessTokenCodec, generate_jti, generate_refresh_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    access_max_age: int
    refresh_max_age: int


class SessionService:
    def __init__(
        self,
        users: UserStore,
        tokens: TokenStore,
        hasher: PasswordHasher,
        codec: AccessTokenCodec,
        cookies: CookieSettings,
        *,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=30),
        default_token_future: timedelta = timedelta(hours=1),
        now: Callable[[], datetime] = utcnow,
    ):
        self.users = users
        self.tokens = tokens
        self.hasher = hasher
        self.codec = codec
        self.cookies = cookies
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.default_token_future = default_token_future
        self._now = now
        self._dummy_hash: Optional[str] = None

    # -----------------------------
    # helpers
    # -----------------------------

    def _burn_verify(self, password) -> None:
        # keeps "no such user" as slow as "wrong password"
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash(generate_jti())
        self.hasher.verify(password, self._dummy_hash)

    def _issue(self, user_id: int, roles: List[str], refresh_token: str) -> IssuedTokens:
        access_token = self.codec.sign(
            {"userId": user_id, "roles": roles, "jti": generate_jti()},
            self.access_ttl,
        )
        return IssuedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            access_max_age=int(self.access_ttl.total_seconds()),
            refresh_max_age=int(self.refresh_ttl.total_seconds()),
        )

    def set_cookies(self, response, issued: IssuedTokens) -> None:
        set_auth_cookies(response, issued, self.cookies)

    def clear_cookies(self, response) -> None:
        clear_auth_cookies(response, self.cookies)

    # -----------------------------
    # operations
    # -----------------------------

    def login(self, email: str, password: str) -> IssuedTokens:
        """Verify credentials and mint an access/refresh pair.

        Raises InvalidCredentials for an unknown email, a user without a
        password and a wrong password alike.
        """
        user = self.users.find_by_email(email)
        if user is None or user.id is None or not user.password_hash:
            self._burn_verify(password)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials()

        roles = parse_roles(user.roles)
        raw_refresh = generate_refresh_token()
        issued = self._issue(user.id, roles, raw_refresh)
        self.tokens.create_refresh_token(raw_refresh, user.id, self._now() + self.refresh_ttl)
        logger.info("login succeeded for user %s", user.id)
        return issued

    def refresh(self, raw_refresh_token: Optional[str]) -> IssuedTokens:
        """
        Exchange a refresh token for a new pair. The presented token is
        single-use: a second presentation, sequential or concurrent, revokes
        every session of its owner and fails.
        """
        if not raw_refresh_token:
            raise MissingToken()

        stored = self.tokens.find_refresh_token(raw_refresh_token)
        if stored is None:
            logger.warning("refresh with unknown token")
            raise InvalidToken()
        if stored.is_revoked:
            logger.warning("refresh token reuse detected for user %s", stored.user_id)
            self._revoke_after_reuse(stored.user_id)
            raise InvalidToken()
        if stored.expires_at <= self._now():
            logger.info("expired refresh token presented by user %s", stored.user_id)
            self.tokens.delete_refresh_token(raw_refresh_token)
            raise InvalidToken()

        user = self.users.find_by_id(stored.user_id)
        if user is None:
            logger.warning("refresh token owner %s no longer exists", stored.user_id)
            raise InvalidToken()

        new_refresh = generate_refresh_token()
        issued = self._issue(user.id, parse_roles(user.roles), new_refresh)
        rotated = self.tokens.rotate_refresh_token(
            raw_refresh_token, new_refresh, user.id, self._now() + self.refresh_ttl
        )
        if not rotated:
            logger.warning("concurrent refresh token reuse detected for user %s", user.id)
            self._revoke_after_reuse(user.id)
            raise InvalidToken()
        return issued

    def _revoke_after_reuse(self, user_id: int) -> None:
        try:
            self.revoke_all_sessions(user_id)
        except SQLAlchemyError:
            logger.exception("failed to revoke sessions for user %s after refresh token reuse", user_id)

    def _marker_expiry(self, exp) -> datetime:
        if isinstance(exp, (int, float)) and not isinstance(exp, bool):
            try:
                return datetime.fromtimestamp(exp, timezone.utc).replace(tzinfo=None)
            except (OverflowError, OSError, ValueError):
                pass
        return self._now() + self.default_token_future

    def logout(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None) -> None:
        """Best-effort: revoke the presented access token by jti and drop the
        refresh token. Never raises for bad or missing tokens or store errors."""
        if access_token:
            claims = self.codec.decode_unsafe(access_token)
            jti = claims.get("jti") if claims else None
            if isinstance(jti, str) and jti:
                try:
                    self.tokens.revoke_jti(jti, self._marker_expiry(claims.get("exp")))
                except SQLAlchemyError as exc:
                    logger.warning("failed to revoke jti during logout: %s", exc)
        if refresh_token:
            try:
                self.tokens.delete_refresh_token(refresh_token)
            except SQLAlchemyError as exc:
                logger.warning("failed to delete refresh token during logout: %s", exc)

    def revoke_all_sessions(self, user_id: int, when: Optional[datetime] = None) -> None:
        """Log out everywhere: stamp revoked_at and delete every refresh token.

        Access tokens with iat at or before the stamp are rejected by the auth
        gate. Failure to delete refresh tokens is logged, not raised.
        """
        self.users.set_revoked_at(user_id, when or self._now())
        try:
            deleted = self.tokens.revoke_all_refresh_tokens_for_user(user_id)
        except SQLAlchemyError:
            logger.exception("failed to revoke refresh tokens for user %s", user_id)
            return
        logger.info("revoked all sessions for user %s (%d refresh tokens)", user_id, deleted)
