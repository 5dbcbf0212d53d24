"""
api/routes/v1/auth.py -- Account, session, and password reset endpoints.

Routes:
  POST /api/v1/auth/signup          -- create account; sets session cookie
  POST /api/v1/auth/signin          -- password signin; sets session cookie
  POST /api/v1/auth/signout         -- clears cookie; always 200
  GET  /api/v1/auth/me              -- current user, or null when anonymous
  POST /api/v1/auth/request-reset   -- mail a one-hour reset link
  POST /api/v1/auth/reset-password  -- redeem reset token; sets session cookie

Security:
  Signin returns the same "bad_credentials" error for unknown email and wrong
  password; SessionManager.signin() equalizes timing between the two.
  Cache-Control: no-store on every response that carries a session cookie.
  request-reset is intentionally public and reports unknown emails with 404.

Handlers that run bcrypt are plain `def` so FastAPI runs them in the
threadpool instead of blocking the event loop.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.models import (
    MessageResponse,
    RequestResetRequest,
    RequestResetResponse,
    ResetPasswordRequest,
    SigninRequest,
    SignupRequest,
    UserResponse,
)
from auth.dependencies import get_identity
from auth.models import Identity
from auth.reset import PasswordResetFlow
from auth.sessions import SessionManager

# Auth policy: every route here is public. Signout needs no prior session;
# reset routes authenticate via the mailed token, not a session.
router = APIRouter()


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"


@router.post("/auth/signup", response_model=UserResponse, status_code=201)
def signup(request: Request, response: Response, body: SignupRequest) -> UserResponse:
    """Create an account with USER permission and sign it in.

    409 conflict if the (lowercased) email is already registered.
    """
    sessions: SessionManager = request.app.state.sessions
    user = sessions.signup(body.email, body.password, body.name, response)
    _no_store(response)
    return UserResponse.from_user(user)


@router.post("/auth/signin", response_model=UserResponse)
def signin(request: Request, response: Response, body: SigninRequest) -> UserResponse:
    """Authenticate with email and password; set the session cookie."""
    sessions: SessionManager = request.app.state.sessions
    user = sessions.signin(body.email, body.password, response)
    _no_store(response)
    return UserResponse.from_user(user)


@router.post("/auth/signout", response_model=MessageResponse)
async def signout(request: Request, response: Response) -> MessageResponse:
    """Clear the session cookie."""
    sessions: SessionManager = request.app.state.sessions
    return MessageResponse(message=sessions.signout(response))


@router.get("/auth/me", response_model=Optional[UserResponse])
async def me(request: Request, identity: Identity = Depends(get_identity)) -> Optional[UserResponse]:
    """Return the signed-in user, or null for anonymous callers."""
    sessions: SessionManager = request.app.state.sessions
    user = sessions.me(identity)
    return UserResponse.from_user(user) if user is not None else None


@router.post("/auth/request-reset", response_model=RequestResetResponse)
def request_reset(request: Request, body: RequestResetRequest) -> RequestResetResponse:
    """Store a reset token for the account and mail the reset link.

    delivered=false means the mail could not be sent; the token is still valid.
    """
    resets: PasswordResetFlow = request.app.state.resets
    delivered = resets.request_reset(body.email)
    message = "Check your email for a reset link." if delivered else "Reset issued, but the email could not be sent."
    return RequestResetResponse(message=message, delivered=delivered)


@router.post("/auth/reset-password", response_model=UserResponse)
def reset_password(request: Request, response: Response, body: ResetPasswordRequest) -> UserResponse:
    """Set a new password using a mailed reset token and sign the user in."""
    resets: PasswordResetFlow = request.app.state.resets
    user = resets.reset_password(body.password, body.confirm_password, body.reset_token, response)
    _no_store(response)
    return UserResponse.from_user(user)
