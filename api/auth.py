"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/forgot-password
- POST /auth/reset-password
- POST /auth/revoke-all
- GET  /auth/me

The implementation:
- Uses argon2id for password hashing (via utils.password_hasher)
- Issues short-lived access tokens (JWT, HS256) and opaque refresh tokens
- Tokens travel only in HttpOnly cookies, never in the JSON body
- Refresh tokens are stored hashed and rotated on every use; reusing one logs
  its owner out everywhere
- Login and register are rate limited per client address (api.limiter)
"""
from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, request

from models.schemas.auth import ForgotPasswordSchema, LoginSchema, ResetPasswordSchema
from models.schemas.user import UserCreateSchema, UserOutSchema
from models.user import parse_roles
from services.container import ServiceContainer
from utils.decorators import get_access_token_from_request, jwt_required, roles_required

from .limiter import LOGIN_LIMIT_MESSAGE, REGISTER_LIMIT_MESSAGE, limiter, login_limit, register_limit

bp = Blueprint("auth", __name__, url_prefix="/auth")

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
login_schema = LoginSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()


def _services() -> ServiceContainer:
    return current_app.extensions["services"]


@bp.post("/register")
@limiter.limit(register_limit, error_message=REGISTER_LIMIT_MESSAGE)
@roles_required(["Admin", "Editor"])
def register():
    """
    Register a new member (Admin or Editor only).
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            firstname: { type: string }
            lastname: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      401:
        description: Not signed in
      403:
        description: Caller is neither Admin nor Editor
      409:
        description: Email already registered
      429:
        description: Too many accounts created from this address
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    services = _services()
    if services.users.find_by_email(data["email"]):
        abort(409, description="Email already registered")

    user = services.users.create_user(
        email=data["email"],
        password_hash=services.hasher.hash(data["password"]),
        firstname=data["firstname"],
        lastname=data["lastname"],
    )
    return jsonify({"user": user_out_schema.dump(user), "roles": parse_roles(user.roles)}), 201


@bp.post("/login")
@limiter.limit(login_limit, error_message=LOGIN_LIMIT_MESSAGE)
def login():
    """
    Login: sets access and refresh cookies
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (tokens are in Set-Cookie)
      401:
        description: Invalid credentials
      429:
        description: Too many login attempts
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)

    sessions = _services().sessions
    issued = sessions.login(data["email"], data["password"])
    resp = jsonify({})
    sessions.set_cookies(resp, issued)
    return resp, 200


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh cookie for a new token pair (rotation)
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (new tokens are in Set-Cookie)
      401:
        description: Missing or invalid refresh token
    """
    sessions = _services().sessions
    raw = request.cookies.get(sessions.cookies.refresh_name)
    issued = sessions.refresh(raw)
    resp = jsonify({})
    sessions.set_cookies(resp, issued)
    return resp, 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the current access token and refresh token, clears cookies
    ---
    tags:
      - Auth
    responses:
      200:
        description: Always
    """
    sessions = _services().sessions
    access_token = get_access_token_from_request(request, sessions.cookies.access_name)
    refresh_token = request.cookies.get(sessions.cookies.refresh_name)
    sessions.logout(access_token, refresh_token)

    resp = jsonify({"message": "Logged out from this device"})
    sessions.clear_cookies(resp)
    return resp, 200


@bp.post("/forgot-password")
def forgot_password():
    """
    Request a password reset link. The answer does not reveal whether the
    email is registered.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      204:
        description: Always, when the body is valid
    """
    payload = request.get_json(silent=True) or {}
    data = forgot_password_schema.load(payload)
    _services().password_reset.request_reset(data["email"])
    return "", 204


@bp.post("/reset-password")
def reset_password():
    """
    Set a new password with a reset token; logs out of all devices.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             password: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: Invalid or expired token, or invalid body
    """
    payload = request.get_json(silent=True) or {}
    data = reset_password_schema.load(payload)

    services = _services()
    message = services.password_reset.reset_password(data["token"], data["password"])
    resp = jsonify({"message": message})
    services.sessions.clear_cookies(resp)
    return resp, 200


@bp.post("/revoke-all")
@jwt_required()
def revoke_all():
    """
    Log out of every device
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    _services().sessions.revoke_all_sessions(g.current_user.user_id)
    return jsonify({"message": "All sessions revoked"}), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User not found
    """
    users = _services().users
    user_id = g.current_user.user_id
    user = users.find_by_id(user_id)
    if not user:
        abort(404, description="User not found")
    return jsonify(
        {
            "user": user_out_schema.dump(user),
            "roles": users.get_roles(user_id),
            "achievements": users.get_achievements(user_id),
        }
    ), 200
