"""
Environment-aware configuration.
Values come from the process environment, with .env loaded when present.
Durations accept "15m" style strings (see parse_duration).
"""
import os
import re
from dotenv import load_dotenv

load_dotenv()  # Read .env if present

DEV_JWT_SECRET = "dev-secret"

DEFAULT_ACCESS_EXPIRES = "15m"
DEFAULT_ACCESS_MS = 15 * 60 * 1000
DEFAULT_CRON_MS = 24 * 60 * 60 * 1000
DEFAULT_REFRESH_DAYS = 30
DEFAULT_PASSWORD_RESET_MS = 60 * 60 * 1000
DEFAULT_TOKEN_FUTURE_MS = 60 * 60 * 1000

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h|d)$", re.IGNORECASE)
_UNIT_MS = {"ms": 1, "s": 1000, "m": 60 * 1000, "h": 60 * 60 * 1000, "d": 24 * 60 * 60 * 1000}


def parse_number(value, fallback):
    """Numeric env value, or fallback when unset or not a finite number."""
    if value is None:
        return fallback
    try:
        n = float(value)
    except (TypeError, ValueError):
        return fallback
    if n != n or n in (float("inf"), float("-inf")):
        return fallback
    return int(n) if n.is_integer() else n


def parse_duration(value, fallback_ms: int) -> int:
    """
    Milliseconds for a duration string.
    - bare integer: already milliseconds
    - <number><unit> with unit ms|s|m|h|d
    - anything else: fallback_ms
    """
    if not value:
        return fallback_ms
    s = str(value).strip()
    if s.isdigit():
        return int(s)
    m = _DURATION_RE.match(s)
    if m:
        return round(float(m.group(1)) * _UNIT_MS[m.group(2).lower()])
    n = parse_number(s, None)
    return int(n) if n is not None else fallback_ms


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _first_env(*names, default=None):
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value
    return default


class BaseConfig:
    DEBUG = False
    TESTING = False
    IS_PRODUCTION = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///lodge-members.db")
    SQL_ECHO = _env_bool("SQL_ECHO", False)

    # jwt configurations
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_EXPIRES = os.getenv("ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)
    ACCESS_EXPIRES_MS = parse_duration(ACCESS_EXPIRES, DEFAULT_ACCESS_MS)
    REFRESH_DAYS = parse_number(_first_env("REFRESH_TOKEN_DAYS", "REFRESH_DAYS"), DEFAULT_REFRESH_DAYS)
    DEFAULT_TOKEN_FUTURE_MS = parse_number(os.getenv("DEFAULT_TOKEN_FUTURE_MS"), DEFAULT_TOKEN_FUTURE_MS)

    # cookies
    ACCESS_COOKIE = _first_env("ACCESS_COOKIE", "COOKIE_ACCESS", default="accessToken")
    REFRESH_COOKIE = _first_env("REFRESH_COOKIE", "COOKIE_REFRESH", default="refreshToken")

    # password reset
    PASSWORD_RESET_TOKEN_MS = parse_number(os.getenv("PASSWORD_RESET_TOKEN_MS"), DEFAULT_PASSWORD_RESET_MS)
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # argon2id cost
    ARGON2_MEMORY_KB = int(parse_number(os.getenv("ARGON2_MEMORY_KB"), 65536))
    ARGON2_TIME = int(parse_number(os.getenv("ARGON2_TIME"), 3))
    ARGON2_PARALLELISM = int(parse_number(os.getenv("ARGON2_PARALLELISM"), 1))

    # rate limits (Flask-Limiter); counters live in RATELIMIT_STORAGE_URI
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True
    LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "15 per 15 minutes")
    REGISTER_RATE_LIMIT = os.getenv("REGISTER_RATE_LIMIT", "10 per hour")

    # token cleanup job
    CRON_INTERVAL_MS = parse_number(os.getenv("CRON_INTERVAL_MS"), DEFAULT_CRON_MS)

    # mail; no SMTP_HOST means reset mails are only logged
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(parse_number(os.getenv("SMTP_PORT"), 587))
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", True)
    MAIL_FROM = os.getenv("MAIL_FROM")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    JWT_SECRET = "test-secret-key-for-testing-only-do-not-use"
    # cheap hashing keeps the suite fast
    ARGON2_MEMORY_KB = 8192
    ARGON2_TIME = 1
    # rate limit tests turn this back on
    RATELIMIT_ENABLED = False
    SMTP_HOST = None


class ProductionConfig(BaseConfig):
    DEBUG = False
    IS_PRODUCTION = True


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
