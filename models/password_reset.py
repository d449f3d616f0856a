from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from models.base_model import Base, BaseModel


class PasswordResetToken(BaseModel, Base):
    __tablename__ = "password_resets"

    token_hash = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<PasswordResetToken user_id={self.user_id}>"
