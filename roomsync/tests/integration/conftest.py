"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the "testing" config: in-memory SQLite by default,
    PostgreSQL when TEST_DATABASE_URL points at one.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Tokens:
  RoomSync only verifies bearer tokens; the identity provider issues them.
  register() creates a profile through the API and mints a matching HS256
  token with PyJWT, signed with the testing JWT_SECRET_KEY.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)          → {"user": {...}, "access_token": "..."}
  - token_for(user_id, ...)        → bearer token string
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - make_group(client, token, ...) → group dict
  - join_group(client, token, code)→ HTTP response
  - backdate_memberships(app, days)→ shifts every joined_at into the past

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import text, update

from roomsync.app import create_app
from roomsync.app.extensions import db as _db
from roomsync.config import TestingConfig


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.
    Tables are created up front and dropped at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Children first: assignments and ratings reference tasks, groups and users;
    memberships reference groups and users; groups reference their owner.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM task_assignments"))
            conn.execute(text("DELETE FROM ratings"))
            conn.execute(text("DELETE FROM tasks"))
            conn.execute(text("DELETE FROM memberships"))
            conn.execute(text("DELETE FROM \"groups\""))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def token_for(user_id: int, expires_in: timedelta = timedelta(minutes=15), **claims) -> str:
    """Mints a bearer token the way the identity provider would."""
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + expires_in,
        **claims,
    }
    return jwt.encode(
        payload,
        TestingConfig.JWT_SECRET_KEY,
        algorithm=TestingConfig.JWT_ALGORITHM,
    )


def register(
    client,
    name: str = "alice",
    email: str | None = None,
    last_name: str = "Tester",
    nickname: str | None = None,
) -> dict:
    """
    Creates a profile and returns it with a valid bearer token.
    Returns: {"user": {...}, "access_token": "..."}
    """
    payload = {
        "email": email or f"{name}@test.com",
        "first_name": name.capitalize(),
        "last_name": last_name,
    }
    if nickname is not None:
        payload["nickname"] = nickname

    resp = client.post("/api/v1/users/", json=payload)
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    user = resp.get_json()["data"]
    return {"user": user, "access_token": token_for(user["id"])}


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_group(client, token: str, name: str = "Nest") -> dict:
    """
    Creates a group and returns the group data dict.
    The caller (token owner) becomes the group owner and first member.
    """
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join_group(client, token: str, code: str):
    """Joins a group by code. Returns the HTTP response."""
    return client.post(
        "/api/v1/groups/join",
        json={"groupCode": code},
        headers=auth_headers(token),
    )


def my_group(client, token: str):
    """GET /groups/mine. Returns the HTTP response."""
    return client.get("/api/v1/groups/mine", headers=auth_headers(token))


def backdate_memberships(app, days: int) -> None:
    """Moves every membership's joined_at `days` into the past."""
    from roomsync.app.models.membership import Membership

    with app.app_context():
        _db.session.execute(
            update(Membership).values(
                joined_at=datetime.now(timezone.utc) - timedelta(days=days)
            )
        )
        _db.session.commit()
