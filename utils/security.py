"""
security helpers:
- JWT creation/verification via PyJWT (AccessTokenCodec)
- JTI generation for token identifiers
- random refresh / password-reset token generation
- SHA-256 token hashing: stores only ever see hashes of raw tokens
"""
from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

REFRESH_TOKEN_BYTES = 48
RESET_TOKEN_BYTES = 32


class TokenError(Exception):
    """Access token could not be verified."""


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    """Bad signature, malformed token or missing registered claims."""


def hash_token(raw: str) -> str:
    """SHA-256 hex digest of a raw token or jti."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def generate_refresh_token() -> str:
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AccessTokenCodec:
    """Signs and verifies short-lived bearer tokens.

    Payload claims: userId, roles, jti (caller supplied), iat, exp.
    iat keeps the clock's sub-second precision; exp is whole seconds.
    """

    def __init__(self, secret: str, algorithm: str = "HS256",
                 clock: Optional[Callable[[], datetime]] = None):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock or _now

    def sign(self, payload: Dict[str, Any], ttl: timedelta) -> str:
        now = self._clock()
        claims = dict(payload)
        claims["iat"] = now.timestamp()
        claims["exp"] = int((now + ttl).timestamp())
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises TokenExpired or TokenInvalid.
        """
        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired("Token expired")
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc}")
        if not isinstance(decoded, dict):
            raise TokenInvalid("Invalid token: payload is not an object")
        return decoded

    @staticmethod
    def decode_unsafe(token: str) -> Optional[Dict[str, Any]]:
        """Parse claims without checking signature or expiry.

        Only for logout, where the claims select what to revoke and a forged
        token can at worst revoke something.
        """
        try:
            decoded = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
        return decoded if isinstance(decoded, dict) else None
