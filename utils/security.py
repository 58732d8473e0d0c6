"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (separate access and refresh secrets)
- JTI generation for token identifiers
- Duration parsing for token lifetimes
"""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(days=7)

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

ph = PasswordHasher()


def build_password_hasher(time_cost: int, memory_cost: int) -> PasswordHasher:
    return PasswordHasher(time_cost=time_cost, memory_cost=memory_cost)


def hash_password(password: str, hasher: Optional[PasswordHasher] = None) -> str:
    """Hash a plaintext password using Argon2
    """
    return (hasher or ph).hash(password)


def verify_password(password: str, password_hash: str, hasher: Optional[PasswordHasher] = None) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return (hasher or ph).verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID) from a random UUID4.
    """
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DurationSetting:
    value: timedelta
    used_fallback: bool = False

    @property
    def seconds(self) -> int:
        return int(self.value.total_seconds())


def parse_duration(raw: Any, default: timedelta) -> DurationSetting:
    """
    Parse "<integer><unit>" with unit one of s, m, h, d.
    Anything else yields `default` with used_fallback=True instead of failing,
    so a bad lifetime setting can never break token issuance.
    """
    match = _DURATION_RE.match(str(raw).strip()) if raw is not None else None
    if not match:
        return DurationSetting(default, used_fallback=True)
    amount, unit = match.groups()
    return DurationSetting(timedelta(seconds=int(amount) * _UNIT_SECONDS[unit]))


@dataclass(frozen=True)
class AuthSettings:
    """Immutable auth configuration, built once by the app factory."""

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: DurationSetting = DurationSetting(DEFAULT_ACCESS_TTL)
    refresh_ttl: DurationSetting = DurationSetting(DEFAULT_REFRESH_TTL)
    password_time_cost: int = 3
    password_memory_cost: int = 65536
    cookie_secure: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AuthSettings":
        access_ttl = parse_duration(config.get("ACCESS_TOKEN_EXPIRY"), DEFAULT_ACCESS_TTL)
        refresh_ttl = parse_duration(config.get("REFRESH_TOKEN_EXPIRY"), DEFAULT_REFRESH_TTL)
        if access_ttl.used_fallback:
            logger.warning("ACCESS_TOKEN_EXPIRY is not a valid duration, using %ss", access_ttl.seconds)
        if refresh_ttl.used_fallback:
            logger.warning("REFRESH_TOKEN_EXPIRY is not a valid duration, using %ss", refresh_ttl.seconds)
        return cls(
            access_secret=config["JWT_ACCESS_SECRET"],
            refresh_secret=config["JWT_REFRESH_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            access_ttl=access_ttl,
            refresh_ttl=refresh_ttl,
            password_time_cost=int(config.get("PASSWORD_HASH_TIME_COST", 3)),
            password_memory_cost=int(config.get("PASSWORD_HASH_MEMORY_COST", 65536)),
            cookie_secure=bool(config.get("REFRESH_COOKIE_SECURE", False)),
        )


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TokenError(Exception):
    """Base token verification error."""


class TokenInvalid(TokenError):
    """Bad signature, malformed token or missing claims."""


class TokenExpired(TokenError):
    """Signature verifies but the expiry has elapsed."""


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    email: str


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    jti: str


class TokenCodec:
    """Signs and verifies access and refresh tokens. No I/O."""

    def __init__(self, settings: AuthSettings, clock: Optional[Clock] = None):
        self._settings = settings
        self._clock = clock or utc_now

    @property
    def access_expires_in(self) -> int:
        return self._settings.access_ttl.seconds

    def _encode(self, claims: Dict[str, Any], secret: str, ttl: timedelta) -> str:
        iat = int(self._clock().timestamp())
        payload = dict(claims, iat=iat, exp=iat + int(ttl.total_seconds()))
        return jwt.encode(payload, secret, algorithm=self._settings.algorithm)

    def _decode(self, token: Any, secret: str, required: Tuple[str, ...]) -> Dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._settings.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid("invalid token") from exc

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise TokenInvalid("missing or invalid exp")
        for claim in required:
            if not isinstance(payload.get(claim), str) or not payload[claim]:
                raise TokenInvalid(f"missing {claim}")
        if int(self._clock().timestamp()) > exp:
            raise TokenExpired("token expired")
        return payload

    def sign_access_token(self, claims: AccessClaims) -> str:
        # The jti keeps two tokens minted in the same second distinct.
        return self._encode(
            {"userId": claims.user_id, "email": claims.email, "jti": generate_jti()},
            self._settings.access_secret,
            self._settings.access_ttl.value,
        )

    def sign_refresh_token(self, user_id: str) -> Tuple[str, str]:
        jti = generate_jti()
        token = self._encode(
            {"userId": user_id, "jti": jti},
            self._settings.refresh_secret,
            self._settings.refresh_ttl.value,
        )
        return token, jti

    def verify_access_token(self, token: Any) -> AccessClaims:
        payload = self._decode(token, self._settings.access_secret, ("userId", "email"))
        return AccessClaims(user_id=payload["userId"], email=payload["email"])

    def verify_refresh_token(self, token: Any) -> RefreshClaims:
        payload = self._decode(token, self._settings.refresh_secret, ("userId", "jti"))
        return RefreshClaims(user_id=payload["userId"], jti=payload["jti"])

    def refresh_token_expiry(self) -> datetime:
        return self._clock() + self._settings.refresh_ttl.value
