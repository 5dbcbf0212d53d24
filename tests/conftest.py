"""
tests/conftest.py -- Shared test fixtures for storefront tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + shop
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: (client, user_store, mailer) for API integration tests
  - make_user: factory that inserts a user with given permissions and returns (id, token)
  - FakeClock: settable epoch-seconds clock for reset-window tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

APP_SECRET and ALLOWED_HOSTS must be set before any api/core import so
get_settings() accepts the configuration and TrustedHostMiddleware lets the
TestClient host ("testserver") through.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

# CRITICAL: configure before importing api.main -- Settings is read at import.
os.environ.setdefault("APP_SECRET", "test-secret-that-is-definitely-32-chars-long")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, wire_services
from auth.models import Permission, User
from auth.passwords import hash_password
from auth.store import UserStore
from core.config import get_settings
from shop.store import ShopStore

TEST_PASSWORD = "correct-horse-battery"


class FakeClock:
    """Callable clock returning a settable epoch-seconds value."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, ShopStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_storefront_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), ShopStore(db_url=url)


def _patch_lifespan(user_store: UserStore, shop: ShopStore, mailer):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, get_settings(), user_store, shop, mailer)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """Plain in-memory UserStore for unit tests (single thread)."""
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def shop_store() -> Generator[ShopStore, None, None]:
    store = ShopStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mailer() -> MagicMock:
    m = MagicMock()
    m.send_mail.return_value = True
    return m


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, UserStore, MagicMock], None, None]:
    """Yield (client, user_store, mailer) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores and a mock
    mailer. TestClient keeps cookies between requests; API test modules
    clear client.cookies before each test.
    """
    user_store, shop = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    mailer = MagicMock()
    mailer.send_mail.return_value = True

    app.router.lifespan_context = _patch_lifespan(user_store, shop, mailer)
    limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store, mailer

    shop.close()
    user_store.close()


@pytest.fixture(scope="session")
def user_password() -> str:
    """Plaintext password of every user created by make_user()."""
    return TEST_PASSWORD


@pytest.fixture(scope="module")
def make_user(api_client) -> Callable[..., tuple[int, str]]:
    """Return a factory: make_user(email, permissions=None) -> (user_id, bearer token)."""
    client, user_store, _mailer = api_client

    def _make(email: str, permissions: list[Permission] | None = None) -> tuple[int, str]:
        labels = [p.value for p in (permissions or [Permission.USER])]
        uid = user_store.create_user(
            User(email=email, name=email.split("@")[0], hashed_password=hash_password(TEST_PASSWORD, 4), permissions=labels)
        )
        return uid, client.app.state.tokens.issue(uid)

    return _make
