"""
auth/tokens.py -- Bearer JWTs for non-browser API clients.

Browsers use the session cookie (auth/sessions.py). Scripts and API clients
that cannot hold a cookie ask POST /api/v1/auth/token for a JWT and send it
as `Authorization: Bearer <token>`.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       only the user id and expiry -- same rule as the session cookie. The
       role is re-read from the store on every request so a token issued
       before the role was chosen still works afterwards.
       Verification returns None on any failure; the dependency layer turns
       that into "anonymous".

  SECRET_KEY: sourced from core.config.get_settings(), which validates it at
       startup [M6].

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("storefront.auth.tokens")

_settings = get_settings()

_ALGORITHM = "HS256"


def create_access_token(user_id: int, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for user_id.

    expire_seconds of 0 (default) uses Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload.get("user_id"), int):
        return None
    return payload
