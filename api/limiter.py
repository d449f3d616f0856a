"""
Request rate limits (Flask-Limiter), keyed by client address.

The limiter is bound to the app in create_app(); limits on individual views
read their window from app config so deployments can tune them:
- LOGIN_RATE_LIMIT     brute force against the credential check
- REGISTER_RATE_LIMIT  bulk account creation
Exceeding a limit answers 429 through the common error envelope.
"""
from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

LOGIN_LIMIT_MESSAGE = "Too many login attempts, try again later"
REGISTER_LIMIT_MESSAGE = "Too many accounts created from this address, try again later"


def login_limit() -> str:
    return current_app.config["LOGIN_RATE_LIMIT"]


def register_limit() -> str:
    return current_app.config["REGISTER_RATE_LIMIT"]
