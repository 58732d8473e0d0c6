"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens (JWTs, separate secrets)
- Stores refresh token JTIs in the DB (RefreshToken model) so logout can revoke them
- Hands the refresh token out both in the body and as an http-only cookie
"""
from __future__ import annotations

from typing import Any, Optional

from flask import Blueprint, current_app, g, jsonify, request

from api.services import AuthService, AuthSession
from models.schemas.user import LoginSchema, RegisterSchema, UserOutSchema
from utils.decorators import jwt_required

REFRESH_TOKEN_COOKIE = "refreshToken"
REFRESH_TOKEN_FIELD = "refreshToken"
REFRESH_TOKEN_HEADER = "X-Refresh-Token"

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
user_out_schema = UserOutSchema()


def _service() -> AuthService:
    return current_app.extensions["auth_service"]


def refresh_token_from_request() -> Optional[Any]:
    """Cookie first, then JSON body, then header; the first one present wins."""
    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if token is None:
        payload = request.get_json(silent=True)
        if isinstance(payload, dict):
            token = payload.get(REFRESH_TOKEN_FIELD)
    if token is None:
        token = request.headers.get(REFRESH_TOKEN_HEADER)
    return token


def _session_response(session: AuthSession, status: int):
    settings = current_app.extensions["auth_settings"]
    response = jsonify(session.to_dict())
    response.status_code = status
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        session.refresh_token,
        max_age=settings.refresh_ttl.seconds,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="Lax",
    )
    return response


@bp.post("/register")
def register():
    """
    Register a new user and sign them in.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, name]
          properties:
            email: { type: string }
            password: { type: string, minLength: 6 }
            name: { type: string }
    responses:
      201:
        description: Created (returns user and tokens, sets refresh cookie)
      400:
        description: Validation error or email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = register_schema.load(payload)
    session = _service().register(data["email"], data["password"], data["name"])
    return _session_response(session, 201)


@bp.post("/login")
def login():
    """
    Login: return user, access token and refresh token
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
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, sets refresh cookie)
      400:
        description: Validation error
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)
    session = _service().login(data["email"], data["password"])
    return _session_response(session, 200)


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new access token.
    The refresh token is read from the refreshToken cookie, the
    refreshToken body field or the X-Refresh-Token header, in that order.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refreshToken: { type: string }
      -  in: header
         name: X-Refresh-Token
         type: string
         required: false
    responses:
      200:
        description: OK (returns accessToken and expiresIn)
      401:
        description: Missing, invalid, expired or revoked refresh token
    """
    return jsonify(_service().refresh(refresh_token_from_request())), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get the current user.
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
        description: User no longer exists
    """
    user = _service().get_profile(g.current_user.user_id)
    return jsonify(user_out_schema.dump(user)), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the refresh token (if one is sent) and clears the cookie.
    Always succeeds.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
    """
    _service().logout(refresh_token_from_request())
    response = jsonify({"message": "Logged out"})
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return response, 200
