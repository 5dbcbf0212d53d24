"""
api/main.py -- FastAPI application entry point for the storefront backend.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for the storefront UI origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan is the composition root: it reads Settings once and builds the
stores, TokenService, SessionManager, PasswordResetFlow and Mailer, hanging
them on app.state. Nothing below this module reads configuration itself.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.cart import router as cart_router
from api.routes.v1.items import router as items_router
from api.routes.v1.users import router as users_router
from auth.errors import AuthError
from auth.reset import PasswordResetFlow
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import SessionCookie, TokenService
from core.config import Settings, get_settings
from core.mailer import Mailer, make_a_nice_email
from shop.store import ShopStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("storefront.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, settings: Settings, user_store: UserStore, shop: ShopStore, mailer) -> None:
    """Build the auth services around the given stores and attach them to app.state.

    Shared by the real lifespan and the test lifespan so both wire identical
    object graphs; only the stores and the mailer differ.
    """
    tokens = TokenService(settings.app_secret, expire_seconds=settings.cookie_max_age_seconds)
    cookie = SessionCookie(max_age=settings.cookie_max_age_seconds, secure=settings.secure_cookies)
    sessions = SessionManager(user_store, tokens, cookie, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.user_store = user_store
    app.state.shop = shop
    app.state.tokens = tokens
    app.state.sessions = sessions
    app.state.resets = PasswordResetFlow(
        sessions,
        mailer,
        frontend_url=settings.frontend_url,
        render_email=make_a_nice_email,
        ttl_seconds=settings.reset_token_ttl_seconds,
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open stores on startup, dispose of them on shutdown."""
    logger.info("Storefront API starting up")
    user_store = UserStore(db_url=_settings.database_url)
    shop = ShopStore(db_url=_settings.database_url)
    mailer = Mailer(
        smtp_host=_settings.smtp_host,
        smtp_port=_settings.smtp_port,
        smtp_user=_settings.smtp_user,
        smtp_password=_settings.smtp_password,
        smtp_use_tls=_settings.smtp_use_tls,
        from_email=_settings.mail_from,
    )
    if not mailer.is_configured:
        logger.warning("SMTP_HOST not set -- reset mails will be logged, not sent")
    wire_services(app, _settings, user_store, shop, mailer)
    logger.info("Stores and auth services initialized")

    yield

    shop.close()
    user_store.close()
    logger.info("Storefront API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storefront API",
    description="Accounts, sessions, catalog and carts for the storefront.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    # Session cookie must travel with cross-origin requests from the UI.
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(items_router, prefix="/api/v1", tags=["Items"])
app.include_router(cart_router, prefix="/api/v1", tags=["Cart"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render a typed auth/authorization failure with its own status and code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.error_code, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
