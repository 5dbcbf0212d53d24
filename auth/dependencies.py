"""
auth/dependencies.py -- FastAPI Depends() helpers for request identity.

Two token sources are checked in priority order:
  1. Session cookie ("token") -- set by signup/signin/reset.
  2. Authorization: Bearer <token> header -- API clients.

get_identity() is the soft variant: it always returns an Identity, anonymous
when no token is present, the token fails verification, or the user it names
no longer exists. Routes pass that Identity explicitly into the guard
functions (auth/guard.py) rather than reading request state later.

get_current_user() wraps it and raises Unauthenticated (401) for anonymous
callers -- for routes where every caller must be signed in.

Layer rule: no imports from api/, core/, or shop/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.guard import require_user
from auth.models import Identity, User
from auth.tokens import COOKIE_NAME


def get_identity(request: Request) -> Identity:
    """Resolve the request's session token into an Identity. Never raises."""
    token: str | None = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return Identity.anonymous()

    user_id = request.app.state.tokens.verify(token)
    if user_id is None:
        return Identity.anonymous()
    user = request.app.state.user_store.get_by_id(user_id)
    if user is None:
        return Identity.anonymous()
    return Identity(user=user)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises Unauthenticated if the request is anonymous.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    return require_user(get_identity(request))
