from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, g, request

from utils.errors import Unauthorized
from utils.security import TokenCodec, TokenError

BEARER_PREFIX = "Bearer "


def bearer_token() -> Optional[str]:
    """Return the token after an exact, case-sensitive "Bearer " prefix, else None."""
    auth = request.headers.get("Authorization", "")
    if not auth.startswith(BEARER_PREFIX):
        return None
    token = auth[len(BEARER_PREFIX):]
    return token or None


def jwt_required():
    """
    Gate a view behind a valid access token.
    On success the verified claims live in g.current_user for this request only.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if token is None:
                raise Unauthorized("Authentication required")
            codec: TokenCodec = current_app.extensions["token_codec"]
            try:
                g.current_user = codec.verify_access_token(token)
            except TokenError:
                raise Unauthorized("Invalid or expired token")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
