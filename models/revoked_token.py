from sqlalchemy import Column, DateTime, String

from models.base_model import Base


class RevokedToken(Base):
    """Logout marker for an access token, keyed by the SHA-256 of its jti.

    expires_at mirrors the access token's own exp so the row can be purged once
    the token would be rejected as expired anyway.
    """
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), primary_key=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return "<RevokedToken>"
