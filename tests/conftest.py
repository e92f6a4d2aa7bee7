"""
tests/conftest.py -- Shared test fixtures for Storefront tests.

This module provides:
  - user_store / catalog: fresh in-memory stores for unit tests
  - _make_test_stores(): isolated shared-memory DBs for integration tests
  - _patch_lifespan(): wires test stores and a mocked Google client into
    app.state, bypassing real startup
  - api_client: TestClient (follow_redirects=False) for API integration tests
  - sign_in / make_user / bearer: helper fixtures that drive the Google
    callback with canned claims, seed users, and build Bearer headers

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the integration stores because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread.

Environment must be set before any app import: DEBUG lets get_settings()
auto-generate SECRET_KEY, ALLOWED_HOSTS admits TestClient's "testserver" host,
and LOGIN_RATE_LIMIT keeps the many test logins under the limiter.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Role, User
from auth.resolver import IdentityResolver
from auth.store import UserStore
from auth.tokens import create_access_token
from catalog.store import ProductStore

CALLBACK_PATH = "/api/v1/auth/google/callback"


# ---------------------------------------------------------------------------
# Unit-test stores
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def catalog() -> Generator[ProductStore, None, None]:
    store = ProductStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Integration helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, ProductStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. the test module's name).
    """
    user_store = UserStore(f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")
    catalog = ProductStore(f"sqlite:///file:test_catalog_{db_suffix}?mode=memory&cache=shared&uri=true")
    return user_store, catalog


def _patch_lifespan(user_store: UserStore, catalog: ProductStore):
    """Return an async context manager that replaces the real lifespan.

    The Google client is a MagicMock; tests set its authorize_redirect and
    authorize_access_token to AsyncMocks, so no network call is ever made.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.started_at = 0.0
        app.state.user_store = user_store
        app.state.catalog = catalog
        app.state.resolver = IdentityResolver(user_store, client=MagicMock())
        yield

    return test_lifespan


def _sign_in(client: TestClient, sub: str, email: str | None = None, name: str | None = None, verified: bool = True):
    """Complete a Google login as the given identity and return the callback response."""
    userinfo: dict = {"sub": sub, "email_verified": verified}
    if email is not None:
        userinfo["email"] = email
    if name is not None:
        userinfo["name"] = name
    google = client.app.state.resolver.client
    google.authorize_access_token = AsyncMock(return_value={"access_token": "t", "userinfo": userinfo})
    return client.get(CALLBACK_PATH)


def _make_user(store: UserStore, email: str, role: Role = Role.unset, external_id: str | None = None) -> User:
    user = store.create_user(User(display_name=email.split("@")[0], email=email, external_id=external_id))
    if role is not Role.unset:
        store.assign_role(user.id, role)
    return store.get_by_id(user.id)


def _bearer(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, expire_seconds=3600)}"}


# ---------------------------------------------------------------------------
# Module-scoped client -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, UserStore, ProductStore], None, None]:
    """Yield (client, user_store, catalog) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, dependencies, and middleware (sessions included)
    but use isolated in-memory stores.
    """
    user_store, catalog = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    app.router.lifespan_context = _patch_lifespan(user_store, catalog)
    limiter.reset()

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, user_store, catalog

    user_store.close()
    catalog.close()


# ---------------------------------------------------------------------------
# Helper fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sign_in():
    return _sign_in


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def bearer():
    return _bearer
