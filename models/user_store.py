from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from models.db_storage import DBStorage
from models.user import Achievement, User, UserRole, parse_roles, users_achievements


def normalize_email(email) -> str:
    return email.strip().lower() if isinstance(email, str) else ""


class UserStore:
    """User-record lookups and the few writes the auth flows need."""

    def __init__(self, storage: DBStorage):
        self.storage = storage

    def find_by_email(self, email: str) -> Optional[User]:
        email = normalize_email(email)
        if not email:
            return None
        session = self.storage.get_session()
        return session.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        session = self.storage.get_session()
        return session.get(User, user_id, populate_existing=True)

    def create_user(self, email: str, password_hash: str, firstname: str | None = None,
                    lastname: str | None = None, roles: list[str] | None = None) -> User:
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            firstname=firstname,
            lastname=lastname,
            roles=parse_roles(roles) if roles is not None else [UserRole.MEMBER.value],
        )
        self.storage.new(user)
        self.storage.save()
        return user

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        user = self.find_by_id(user_id)
        if user is None:
            return False
        user.password_hash = password_hash
        self.storage.save()
        return True

    def get_roles(self, user_id: int) -> List[str]:
        user = self.find_by_id(user_id)
        return parse_roles(user.roles) if user else []

    def set_revoked_at(self, user_id: int, when: datetime) -> None:
        user = self.find_by_id(user_id)
        if user is None:
            return
        user.revoked_at = when
        self.storage.save()

    def get_achievements(self, user_id: int) -> List[dict]:
        session = self.storage.get_session()
        rows = session.execute(
            select(Achievement.id, Achievement.title, users_achievements.c.awarded_at)
            .join(users_achievements, users_achievements.c.aid == Achievement.id)
            .where(users_achievements.c.uid == user_id)
            .order_by(users_achievements.c.awarded_at.asc())
        ).all()
        return [
            {"id": r.id, "title": r.title, "awardedAt": r.awarded_at.isoformat() if r.awarded_at else None}
            for r in rows
        ]

    def award_achievement(self, user_id: int, achievement_id: int,
                          awarded_at: datetime | None = None) -> None:
        values = {"uid": user_id, "aid": achievement_id}
        if awarded_at is not None:
            values["awarded_at"] = awarded_at
        session = self.storage.get_session()
        session.execute(users_achievements.insert().values(**values))
        self.storage.save()
