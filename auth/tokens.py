"""
auth/tokens.py -- Session tokens (JWT) and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry user_id, iat and exp. Verification
       returns None on any failure -- the dependency layer turns that into an
       anonymous identity.

  Secret injection: TokenService receives its signing secret through the
       constructor instead of reading global settings. api/main.py builds the
       one production instance from Settings.app_secret; tests build as many
       instances with distinct secrets as they need. An empty secret is a
       construction-time ValueError -- there is no default key.

  Expiry: exp defaults to the cookie lifetime (365 days) so a stolen token
       stops working when the cookie would have. Passing expire_seconds=None
       issues tokens without exp (cookie max-age becomes the only limit).

  Cookie: SessionCookie owns the transport side. httponly=True always (JS
       cannot read the token), samesite="lax" (no cross-site POST), secure
       when SECURE_COOKIES=true, max_age kept in sync with the token exp.

Layer rule: no imports from api/, core/, or shop/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

logger = logging.getLogger("storefront.auth")

_ALGORITHM = "HS256"

COOKIE_NAME = "token"


class TokenService:
    """Issues and verifies signed session tokens.

    Usage:
        tokens = TokenService(settings.app_secret, expire_seconds=settings.cookie_max_age_seconds)
        token = tokens.issue(user.id)
        user_id = tokens.verify(token)   # int, or None if invalid
    """

    def __init__(self, secret_key: str, expire_seconds: int | None = None) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing secret.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, user_id: int) -> str:
        """Encode a signed JWT for user_id. Pure -- no cookie, no storage."""
        now = datetime.now(timezone.utc)
        payload: dict = {"user_id": user_id, "iat": now}
        if self.expire_seconds:
            payload["exp"] = now + timedelta(seconds=self.expire_seconds)
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int | None:
        """Decode and verify a JWT. Returns the user id or None on any failure.

        Returning None (rather than raising) keeps the caller simple: any
        invalid token -- bad signature, expired, malformed, missing claim --
        is treated as unauthenticated.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.debug("Session token rejected: %s", exc)
            return None
        user_id = payload.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        return user_id


class SessionCookie:
    """Attaches and clears the session cookie on a Starlette/FastAPI response."""

    def __init__(self, max_age: int, secure: bool = False, name: str = COOKIE_NAME) -> None:
        self.name = name
        self.max_age = max_age
        self.secure = secure

    def attach(self, response, token: str) -> None:
        response.set_cookie(
            self.name,
            value=token,
            httponly=True,
            samesite="lax",
            secure=self.secure,
            max_age=self.max_age,
        )

    def clear(self, response) -> None:
        response.delete_cookie(self.name, httponly=True, samesite="lax", secure=self.secure)
