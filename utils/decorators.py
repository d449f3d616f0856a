"""
Per-request auth gate.

authenticate() does the work and knows nothing about Flask; jwt_required()
and roles_required() wire it into views through flask.g.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timezone
from functools import wraps
from typing import Optional, Tuple

from flask import current_app, g, request
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.http import parse_cookie

from models.schemas.auth import AccessClaimsSchema
from models.token_store import TokenStore
from models.user_store import UserStore
from services.errors import Forbidden, Unauthorized
from utils.security import AccessTokenCodec, TokenError

logger = logging.getLogger(__name__)

access_claims_schema = AccessClaimsSchema()


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: int
    roles: Tuple[str, ...]
    iat: Optional[float] = None
    exp: Optional[int] = None
    jti: Optional[str] = None


def get_access_token_from_request(req, cookie_name: str) -> Optional[str]:
    """Bearer header first, then the parsed cookie, then the raw Cookie header."""
    auth = req.headers.get("Authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    token = req.cookies.get(cookie_name)
    if token:
        return token
    raw_cookie = req.headers.get("Cookie")
    if raw_cookie:
        return parse_cookie(raw_cookie).get(cookie_name) or None
    return None


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def authenticate(token: Optional[str], codec: AccessTokenCodec, tokens: TokenStore,
                 users: UserStore) -> AuthenticatedUser:
    """
    Verify an access token and return the identity it carries.

    Revocation lookups that fail on a storage error let the request through
    (logged at warning): the revocation list is treated as best-effort.
    """
    if not token:
        raise Unauthorized("Please sign in")
    try:
        claims = codec.verify(token)
    except TokenError as exc:
        logger.warning("JWT verification failed: %s", exc)
        raise Unauthorized("Invalid token")

    jti = claims.get("jti")
    if isinstance(jti, str) and jti:
        try:
            revoked = tokens.is_jti_revoked(jti)
        except SQLAlchemyError as exc:
            logger.warning("token revocation check failed, allowing request: %s", exc)
            revoked = False
        if revoked:
            logger.warning("revoked token used by user %s", claims.get("userId"))
            raise Unauthorized("Token revoked")

    user_id = claims.get("userId")
    iat = claims.get("iat")
    if _is_int(user_id) and isinstance(iat, (int, float)) and not isinstance(iat, bool):
        try:
            user = users.find_by_id(user_id)
        except SQLAlchemyError as exc:
            logger.warning("user-level revocation check failed, allowing request: %s", exc)
            user = None
        if user is not None and user.revoked_at is not None:
            revoked_at = user.revoked_at.replace(tzinfo=timezone.utc).timestamp()
            if iat <= revoked_at:
                logger.warning("token issued before user-wide revoke for user %s", user_id)
                raise Unauthorized("Session expired")

    try:
        data = access_claims_schema.load(claims)
    except ValidationError as err:
        logger.warning("invalid JWT payload shape: %s", err.messages)
        raise Unauthorized("Invalid token payload")

    return AuthenticatedUser(
        user_id=data["userId"],
        roles=tuple(data["roles"]),
        iat=data["iat"],
        exp=data["exp"],
        jti=data["jti"],
    )


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            services = current_app.extensions["services"]
            token = get_access_token_from_request(request, services.cookies.access_name)
            identity = authenticate(token, services.codec, services.tokens, services.users)
            g.current_user = identity
            g.current_user_roles = list(identity.roles)
            g.current_token_jti = identity.jti
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the user has ANY of the required roles, as carried by the
    access token. Deny (403) only if there is NO overlap.
    """
    req = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user_roles = set(getattr(g, "current_user_roles", []))
            if not (user_roles & req):
                raise Forbidden()
            return fn(*args, **kwargs)

        return wrapper

    return decorator
