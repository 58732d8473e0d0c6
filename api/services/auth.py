"""
Auth business logic: register, login, refresh, logout, me.

Each call is independent; the only durable state is the users table and the
refresh-token ledger. Refresh does not rotate the refresh token: the same
token stays usable until its ledger row expires or is deleted by logout.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.refresh_token import RefreshToken
from models.schemas.user import UserOutSchema
from models.user import User
from utils.errors import Conflict, NotFound, Unauthorized
from utils.security import (
    AccessClaims,
    AuthSettings,
    Clock,
    TokenCodec,
    TokenError,
    as_utc,
    build_password_hasher,
    hash_password,
    utc_now,
    verify_password,
)

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "Email already registered"
INVALID_CREDENTIALS = "Invalid email or password"
REFRESH_REQUIRED = "Refresh token required"
REFRESH_REJECTED = "Invalid or expired refresh token"
DUMMY_PASSWORD = "not-a-real-password"

user_out_schema = UserOutSchema()


@dataclass
class AuthSession:
    user: User
    access_token: str
    refresh_token: str
    expires_in: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": user_out_schema.dump(self.user),
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
        }


class AuthService:
    def __init__(self, settings: AuthSettings, storage, codec: Optional[TokenCodec] = None,
                 clock: Optional[Clock] = None):
        self.settings = settings
        self.storage = storage
        self.clock = clock or utc_now
        self.codec = codec or TokenCodec(settings, clock=self.clock)
        self.hasher = build_password_hasher(settings.password_time_cost, settings.password_memory_cost)
        # Verified against when the email is unknown so both login failures cost the same
        self._dummy_hash = hash_password(DUMMY_PASSWORD, self.hasher)

    def _find_user_by_email(self, email: str) -> Optional[User]:
        session = self.storage.get_session()
        return session.query(User).filter(User.email == email).first()

    def _issue_session(self, user: User) -> AuthSession:
        access_token = self.codec.sign_access_token(AccessClaims(user_id=user.id, email=user.email))
        refresh_token, jti = self.codec.sign_refresh_token(user.id)

        # Only the jti is persisted, never the token itself
        self.storage.new(RefreshToken(jti=jti, user_id=user.id, expires_at=self.codec.refresh_token_expiry()))
        self.storage.save()

        return AuthSession(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.codec.access_expires_in,
        )

    def register(self, email: str, password: str, name: str) -> AuthSession:
        """Create a user and issue a fresh token pair. Inputs are already schema-validated."""
        if self._find_user_by_email(email) is not None:
            raise Conflict({"email": [EMAIL_TAKEN]}, message=EMAIL_TAKEN)

        user = User(email=email, password_hash=hash_password(password, self.hasher), name=name)
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same email
            raise Conflict({"email": [EMAIL_TAKEN]}, message=EMAIL_TAKEN) from exc

        logger.info("user registered")
        return self._issue_session(user)

    def login(self, email: str, password: str) -> AuthSession:
        user = self._find_user_by_email(email)
        password_hash = user.password_hash if user is not None else self._dummy_hash
        password_ok = verify_password(password, password_hash, self.hasher)
        if user is None or not password_ok:
            logger.info("login rejected")
            raise Unauthorized(INVALID_CREDENTIALS)
        return self._issue_session(user)

    def refresh(self, token: Any) -> Dict[str, Any]:
        """Exchange a refresh token for a new access token."""
        if not token:
            raise Unauthorized(REFRESH_REQUIRED)

        try:
            claims = self.codec.verify_refresh_token(token)
        except TokenError:
            logger.info("refresh rejected: token did not verify")
            raise Unauthorized(REFRESH_REJECTED)

        try:
            session = self.storage.get_session()
            stored = session.query(RefreshToken).filter(RefreshToken.jti == claims.jti).first()
            user = self.storage.get(User, claims.user_id) if stored is not None else None
        except SQLAlchemyError as exc:
            self.storage.rollback()
            logger.warning("refresh rejected: ledger lookup failed (%s)", type(exc).__name__)
            raise Unauthorized(REFRESH_REJECTED)

        if stored is None or stored.user_id != claims.user_id or as_utc(stored.expires_at) < self.clock():
            logger.info("refresh rejected: no live ledger entry")
            raise Unauthorized(REFRESH_REJECTED)
        if user is None:
            raise Unauthorized(REFRESH_REJECTED)

        return {
            "accessToken": self.codec.sign_access_token(AccessClaims(user_id=user.id, email=user.email)),
            "expiresIn": self.codec.access_expires_in,
        }

    def logout(self, token: Any) -> None:
        """Revoke the refresh token if it verifies. Never raises."""
        if not token:
            return
        try:
            claims = self.codec.verify_refresh_token(token)
        except TokenError:
            logger.info("logout with an unverifiable refresh token ignored")
            return

        session = self.storage.get_session()
        try:
            session.query(RefreshToken).filter(RefreshToken.jti == claims.jti).delete(synchronize_session=False)
            self.storage.save()
        except SQLAlchemyError:
            self.storage.rollback()
            logger.warning("failed to revoke refresh token on logout", exc_info=True)

    def get_profile(self, user_id: str) -> User:
        user = self.storage.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user
