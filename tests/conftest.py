"""
tests/conftest.py -- Shared test fixtures for the SSO auth suite.

This module provides:
  - hasher / issuer: fast crypto collaborators (bcrypt cost 4)
  - store: in-memory CredentialStore seeded with App{id: 1, secret: "s1"}
  - service: AuthService wired to the seeded store
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

Environment variables must be set before any api/ or core/ import so
get_settings() caches test-friendly values.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import CredentialStore
from auth.tokens import TokenIssuer

TEST_TTL = timedelta(hours=1)
APP_SECRET = "s1"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer()


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    """Fresh in-memory store with one app provisioned (id=1, secret "s1")."""
    s = CredentialStore("sqlite:///:memory:")
    s.create_app("test-app", APP_SECRET)
    yield s
    s.close()


@pytest.fixture
def service(store: CredentialStore, hasher: PasswordHasher, issuer: TokenIssuer) -> AuthService:
    return AuthService(
        user_saver=store,
        user_provider=store,
        app_provider=store,
        hasher=hasher,
        issuer=issuer,
        token_ttl=TEST_TTL,
    )


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore, hasher: PasswordHasher):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so routes see an isolated
    database rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.auth_service = AuthService(
            user_saver=store,
            user_provider=store,
            app_provider=store,
            hasher=hasher,
            issuer=TokenIssuer(),
            token_ttl=TEST_TTL,
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request, hasher: PasswordHasher) -> Generator[tuple[TestClient, CredentialStore], None, None]:
    """Yield (client, store) for API integration tests.

    The store is seeded with App{id: 1, secret: "s1"} and no users. The DB
    name includes the test module name so modules never share state.
    """
    db_name = f"test_api_{request.module.__name__.replace('.', '_')}"
    store = CredentialStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    store.create_app("test-app", APP_SECRET)

    app.router.lifespan_context = _patch_lifespan(store, hasher)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, store

    store.close()
