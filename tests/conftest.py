"""
tests/conftest.py -- Shared test fixtures for YAccounting tests.

This module provides:
  - _memory_url(): a unique named shared-memory SQLite URL
  - unit fixtures: hasher, cipher, tokens, user_store, entry_store, auth_core
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: module-scoped TestClient over the real FastAPI app
  - login_as, expired_token: request helpers for authenticated API tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because AuthCore and TestClient run store calls in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
A uuid in the name keeps every fixture's database isolated.

bcrypt runs with 4 rounds (the minimum) to keep the suite fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# Set DEBUG before any app import so get_settings() can auto-generate secrets
# instead of raising if something reads the settings.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import CredentialHasher
from auth.service import AuthCore
from auth.store import UserStore
from auth.tokens import TokenService
from core.crypto import SymmetricCipher
from ledger.store import EntryStore

TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef0123456789"
TEST_ENCRYPTION_SECRET = "test-encryption-secret-0123456789abcdef"
STRONG_PASSWORD = "Passw0rd!"


def _memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(rounds=4)


@pytest.fixture
def cipher() -> SymmetricCipher:
    return SymmetricCipher.from_secret(TEST_ENCRYPTION_SECRET)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SIGNING_KEY)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(_memory_url("test_users")).open()
    yield store
    store.close()


@pytest.fixture
def entry_store(cipher: SymmetricCipher) -> Generator[EntryStore, None, None]:
    store = EntryStore(_memory_url("test_entries"), cipher).open()
    yield store
    store.close()


@pytest.fixture
def auth_core(user_store: UserStore, hasher: CredentialHasher, tokens: TokenService) -> AuthCore:
    return AuthCore(user_store, hasher, tokens)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, entry_store: EntryStore, auth: AuthCore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and AuthCore into app.state so TestClient
    routes see isolated test DBs and test secrets.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.entry_store = entry_store
        app.state.auth = auth
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, AuthCore], None, None]:
    """Yield (client, auth) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, dependencies and exception handlers.
    """
    db_url = _memory_url("test_api")
    user_store = UserStore(db_url).open()
    entry_store = EntryStore(db_url, SymmetricCipher.from_secret(TEST_ENCRYPTION_SECRET)).open()
    auth = AuthCore(user_store, CredentialHasher(rounds=4), TokenService(TEST_SIGNING_KEY))

    app.router.lifespan_context = _patch_lifespan(user_store, entry_store, auth)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, auth

    entry_store.close()
    user_store.close()


def _register_and_login(client: TestClient, username: str, password: str = STRONG_PASSWORD) -> dict[str, str]:
    resp = client.post("/api/v1/auth/register", json={"username": username, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def login_as(api_client) -> Callable[..., dict[str, str]]:
    """Return a helper that registers a user, logs in and returns the Authorization header dict."""
    client, _auth = api_client

    def _login_as(username: str, password: str = STRONG_PASSWORD) -> dict[str, str]:
        return _register_and_login(client, username, password)

    return _login_as


@pytest.fixture
def expired_token() -> str:
    """A correctly signed token for a session that ended an hour ago."""
    two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
    return TokenService(TEST_SIGNING_KEY, clock=lambda: two_hours_ago).issue(1, "old", "user")
