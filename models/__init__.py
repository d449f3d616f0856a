from models.base_model import Base, utcnow
from models.db_storage import DBStorage
from models.password_reset import PasswordResetToken
from models.refresh_token import RefreshToken
from models.revoked_token import RevokedToken
from models.token_store import PasswordResetRecord, RefreshTokenRecord, TokenStore
from models.user import Achievement, User, UserRole, VALID_ROLES, parse_roles
from models.user_store import UserStore, normalize_email

__all__ = [
    "Achievement",
    "Base",
    "DBStorage",
    "PasswordResetRecord",
    "PasswordResetToken",
    "RefreshToken",
    "RefreshTokenRecord",
    "RevokedToken",
    "TokenStore",
    "User",
    "UserRole",
    "UserStore",
    "VALID_ROLES",
    "normalize_email",
    "parse_roles",
    "utcnow",
]
