import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Table

from models.base_model import Base, BaseModel, utcnow


class UserRole(str, enum.Enum):
    """Closed set of role names carried in access tokens."""
    ADMIN = "Admin"
    EDITOR = "Editor"
    MEMBER = "Member"


VALID_ROLES = frozenset(r.value for r in UserRole)


def parse_roles(roles) -> list[str]:
    """Keep only recognized role strings, preserving order and dropping duplicates."""
    if not isinstance(roles, (list, tuple)):
        return []
    out: list[str] = []
    for r in roles:
        if isinstance(r, str) and r in VALID_ROLES and r not in out:
            out.append(r)
    return out


users_achievements = Table(
    "users_achievements",
    Base.metadata,
    Column("uid", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("aid", Integer, ForeignKey("achievements.id", ondelete="CASCADE"), primary_key=True),
    Column("awarded_at", DateTime, nullable=False, default=utcnow),
)


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)


class User(BaseModel, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    firstname = Column(String(255), nullable=True)
    lastname = Column(String(255), nullable=True)
    roles = Column(JSON, nullable=True, default=lambda: [UserRole.MEMBER.value])
    # access tokens with iat at or before this instant are rejected
    revoked_at = Column(DateTime, nullable=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User id={self.id}>"
