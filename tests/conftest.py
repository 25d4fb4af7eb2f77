"""
tests/conftest.py -- Shared test fixtures for TaskTracker integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + tasks
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient running the real app against fresh stores
  - register / login / use_token: helpers that drive the public endpoints
    and pick which session the client carries

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool, and because the
user and task stores each hold their own engine but must see one database.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Each test gets a uniquely named database.

DEBUG and LOGIN_RATE_LIMIT must be set before any app import: get_settings()
is evaluated when api.main is imported.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# Set before any auth/core import so get_settings() auto-generates SECRET_KEY
# in dev mode and the login limit does not trip across the whole suite.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from api.main import app
from auth.store import UserStore
from tasks.store import TaskStore

PASSWORD = "Abcdef1!"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores() -> tuple[UserStore, TaskStore]:
    """Create a user store and task store sharing one named shared-memory database."""
    url = f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    return UserStore(url), TaskStore(url)


def delete_user_row(user_store: UserStore, user_id: int) -> None:
    """Remove a user row directly, leaving any session token for it in circulation.

    The app has no account-deletion route; tests use this to reach the guard's
    "token names a user that no longer exists" branch.
    """
    with user_store.engine.connect() as conn:
        conn.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
        conn.commit()


def _patch_lifespan(user_store: UserStore, task_store: TaskStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.task_store = task_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[tuple[UserStore, TaskStore], None, None]:
    user_store, task_store = _make_test_stores()
    yield user_store, task_store
    task_store.close()
    user_store.close()


@pytest.fixture
def api_client(stores) -> Generator[TestClient, None, None]:
    """Yield a TestClient wired to fresh stores.

    raise_server_exceptions=True surfaces unexpected errors as test failures
    instead of opaque 500 responses.
    """
    user_store, task_store = stores
    app.router.lifespan_context = _patch_lifespan(user_store, task_store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def prefix() -> str:
    return app.state.settings.api_prefix


@pytest.fixture
def cookie_name() -> str:
    return app.state.settings.session_cookie_name


@pytest.fixture
def register(api_client: TestClient, prefix: str) -> Callable[..., dict]:
    """Return a helper that signs up a user and asserts 201."""

    def _register(username: str = "al", email: str = "a@b.com", password: str = PASSWORD) -> dict:
        resp = api_client.post(
            f"{prefix}/signup",
            json={"username": username, "email": email, "password": password},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _register


@pytest.fixture
def use_token(api_client: TestClient, cookie_name: str) -> Callable[[str | None], None]:
    """Return a helper that makes the client carry exactly one session (or none)."""

    def _use(token: str | None) -> None:
        api_client.cookies.clear()
        if token is not None:
            api_client.cookies.set(cookie_name, token)

    return _use


@pytest.fixture
def login(api_client: TestClient, prefix: str, cookie_name: str, use_token) -> Callable[..., str]:
    """Return a helper that logs in, switches the client to that session, and returns the token."""

    def _login(email: str = "a@b.com", password: str = PASSWORD) -> str:
        resp = api_client.post(f"{prefix}/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        token = resp.cookies.get(cookie_name)
        assert token, "login response did not set the session cookie"
        use_token(token)
        return token

    return _login
