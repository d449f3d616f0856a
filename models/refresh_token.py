"""
RefreshToken model: stores hashed refresh tokens so we can revoke and rotate them
Fields:
- token_hash (primary key) - SHA-256 hex of the raw token, the raw value is never stored
- user_id (Integer) - FK to users.id
- is_revoked (bool) - flipped exactly once, by rotation
- replaced_by - token_hash of the successor issued at rotation
- created_at, expires_at, last_used
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from models.base_model import Base, BaseModel


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    is_revoked = Column(Boolean, default=False, nullable=False)
    replaced_by = Column(String(64), nullable=True)
    last_used = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} revoked={self.is_revoked}>"
