"""
Explicit wiring of the auth components.

build_services() is called once by the application factory; views reach the
result through current_app.extensions["services"].
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from models.db_storage import DBStorage
from models.token_store import TokenStore
from models.user_store import UserStore
from services.mailer import Mailer, mailer_from_config
from services.password_reset import PasswordResetFlow
from services.session_service import SessionService
from utils.cookies import CookieSettings
from utils.password_hasher import PasswordHasher
from utils.security import AccessTokenCodec


@dataclass
class ServiceContainer:
    storage: DBStorage
    users: UserStore
    tokens: TokenStore
    hasher: PasswordHasher
    codec: AccessTokenCodec
    cookies: CookieSettings
    sessions: SessionService
    password_reset: PasswordResetFlow
    mailer: Mailer


def build_services(config, storage: Optional[DBStorage] = None,
                   mailer: Optional[Mailer] = None) -> ServiceContainer:
    if storage is None:
        storage = DBStorage(config["DATABASE_URL"], echo=bool(config.get("SQL_ECHO")))
        storage.reload()
    users = UserStore(storage)
    tokens = TokenStore(storage)
    hasher = PasswordHasher(
        memory_cost=config["ARGON2_MEMORY_KB"],
        time_cost=config["ARGON2_TIME"],
        parallelism=config["ARGON2_PARALLELISM"],
    )
    codec = AccessTokenCodec(config["JWT_SECRET"], algorithm=config.get("JWT_ALGORITHM", "HS256"))
    cookies = CookieSettings.from_config(config)
    sessions = SessionService(
        users,
        tokens,
        hasher,
        codec,
        cookies,
        access_ttl=timedelta(milliseconds=config["ACCESS_EXPIRES_MS"]),
        refresh_ttl=timedelta(days=config["REFRESH_DAYS"]),
        default_token_future=timedelta(milliseconds=config["DEFAULT_TOKEN_FUTURE_MS"]),
    )
    mailer = mailer or mailer_from_config(config)
    password_reset = PasswordResetFlow(
        users,
        tokens,
        hasher,
        sessions,
        mailer,
        token_ttl=timedelta(milliseconds=config["PASSWORD_RESET_TOKEN_MS"]),
        frontend_url=config.get("FRONTEND_URL", "http://localhost:5173"),
    )
    return ServiceContainer(
        storage=storage,
        users=users,
        tokens=tokens,
        hasher=hasher,
        codec=codec,
        cookies=cookies,
        sessions=sessions,
        password_reset=password_reset,
        mailer=mailer,
    )
