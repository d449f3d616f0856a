"""
TokenStore: persistence for the three token kinds.

- revoked access-token markers, keyed by SHA-256 of the jti
- refresh tokens, keyed by SHA-256 of the raw token
- password-reset tokens, keyed by SHA-256 of the raw token

Raw tokens never reach the database. The store is the source of truth for
revocation; nothing here trusts the access token's own claims.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.password_reset import PasswordResetToken
from models.refresh_token import RefreshToken
from models.revoked_token import RevokedToken
from utils.security import hash_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshTokenRecord:
    user_id: int
    expires_at: datetime
    is_revoked: bool
    replaced_by: Optional[str] = None
    created_at: Optional[datetime] = None
    last_used: Optional[datetime] = None


@dataclass(frozen=True)
class PasswordResetRecord:
    user_id: int
    expires_at: datetime


def _valid_user_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenStore:
    def __init__(self, storage: DBStorage, now: Callable[[], datetime] = utcnow):
        self.storage = storage
        self._now = now

    def _execute(self, statement) -> int:
        """Run a Core DML statement in its own transaction and return rowcount."""
        session = self.storage.get_session()
        try:
            result = session.execute(statement, execution_options={"synchronize_session": False})
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        return result.rowcount or 0

    # -----------------------------
    # Access-token revocation (logout)
    # -----------------------------

    def revoke_jti(self, jti: str, expires_at: datetime) -> None:
        """Idempotent upsert of a revocation marker for jti."""
        key = hash_token(jti)
        session = self.storage.get_session()
        marker = session.get(RevokedToken, key, populate_existing=True)
        if marker is not None:
            marker.expires_at = expires_at
            self.storage.save()
            return
        self.storage.new(RevokedToken(jti=key, expires_at=expires_at))
        try:
            self.storage.save()
        except IntegrityError:
            # a concurrent logout inserted the same marker first
            self._execute(
                update(RevokedToken).where(RevokedToken.jti == key).values(expires_at=expires_at)
            )

    def is_jti_revoked(self, jti: str) -> bool:
        session = self.storage.get_session()
        row = session.query(RevokedToken.jti).filter(RevokedToken.jti == hash_token(jti)).first()
        return row is not None

    def cleanup_expired_revocations(self) -> int:
        deleted = self._execute(delete(RevokedToken).where(RevokedToken.expires_at < self._now()))
        logger.info("cleanup: removed %d expired revoked_tokens rows", deleted)
        return deleted

    # -----------------------------
    # Refresh tokens
    # -----------------------------

    def create_refresh_token(self, raw_token: str, user_id: int, expires_at: datetime) -> None:
        self.storage.new(
            RefreshToken(
                token_hash=hash_token(raw_token),
                user_id=user_id,
                expires_at=expires_at,
                is_revoked=False,
                created_at=self._now(),
            )
        )
        self.storage.save()

    def find_refresh_token(self, raw_token: str) -> Optional[RefreshTokenRecord]:
        """Look up by hash. A row that does not look well-formed is reported as missing."""
        session = self.storage.get_session()
        row = session.get(RefreshToken, hash_token(raw_token), populate_existing=True)
        if row is None:
            return None
        if not _valid_user_id(row.user_id) or not isinstance(row.expires_at, datetime):
            logger.warning("refresh token row with malformed columns ignored")
            return None
        return RefreshTokenRecord(
            user_id=row.user_id,
            expires_at=row.expires_at,
            is_revoked=bool(row.is_revoked),
            replaced_by=row.replaced_by,
            created_at=row.created_at,
            last_used=row.last_used,
        )

    def _mark_revoked_statement(self, token_hash: str, replaced_by_hash: Optional[str]):
        # conditional on is_revoked = false: exactly one caller can flip it
        return (
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True, replaced_by=replaced_by_hash, last_used=self._now())
        )

    def mark_refresh_token_revoked(self, raw_token: str, replaced_by_hash: Optional[str] = None) -> int:
        """Flip is_revoked; returns 0 if the token was already revoked or is unknown."""
        return self._execute(self._mark_revoked_statement(hash_token(raw_token), replaced_by_hash))

    def rotate_refresh_token(self, old_raw: str, new_raw: str, user_id: int,
                             expires_at: datetime) -> bool:
        """
        Revoke old_raw (pointing replaced_by at the successor) and insert new_raw,
        in one transaction. Returns False, writing nothing, when old_raw was
        already revoked.
        """
        new_hash = hash_token(new_raw)
        session = self.storage.get_session()
        try:
            result = session.execute(
                self._mark_revoked_statement(hash_token(old_raw), new_hash),
                execution_options={"synchronize_session": False},
            )
            if not result.rowcount:
                session.rollback()
                return False
            session.add(
                RefreshToken(
                    token_hash=new_hash,
                    user_id=user_id,
                    expires_at=expires_at,
                    is_revoked=False,
                    created_at=self._now(),
                )
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        return True

    def delete_refresh_token(self, raw_token: str) -> int:
        return self._execute(delete(RefreshToken).where(RefreshToken.token_hash == hash_token(raw_token)))

    def revoke_all_refresh_tokens_for_user(self, user_id: int) -> int:
        return self._execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))

    def cleanup_expired_refresh_tokens(self) -> int:
        deleted = self._execute(delete(RefreshToken).where(RefreshToken.expires_at < self._now()))
        logger.info("cleanup: removed %d expired refresh_tokens rows", deleted)
        return deleted

    # -----------------------------
    # Password reset tokens
    # -----------------------------

    def create_password_reset_token(self, raw_token: str, user_id: int, expires_at: datetime) -> None:
        self.storage.new(
            PasswordResetToken(
                token_hash=hash_token(raw_token),
                user_id=user_id,
                expires_at=expires_at,
                created_at=self._now(),
            )
        )
        self.storage.save()

    def find_password_reset_token(self, raw_token: str) -> Optional[PasswordResetRecord]:
        session = self.storage.get_session()
        row = session.get(PasswordResetToken, hash_token(raw_token), populate_existing=True)
        if row is None:
            return None
        if not _valid_user_id(row.user_id) or not isinstance(row.expires_at, datetime):
            logger.warning("password reset row with malformed columns ignored")
            return None
        return PasswordResetRecord(user_id=row.user_id, expires_at=row.expires_at)

    def consume_password_reset_token(self, raw_token: str) -> int:
        return self._execute(
            delete(PasswordResetToken).where(PasswordResetToken.token_hash == hash_token(raw_token))
        )
