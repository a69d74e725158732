"""Tests for Supabase token verification."""

from __future__ import annotations

import jwt
import pytest
from fastapi import HTTPException

from harvester.auth import manager as auth_manager


class StubTokenLookup:
    def __init__(self, user=None) -> None:
        self.user = user
        self.tokens = []

    def get_current_user(self, access_token):
        self.tokens.append(access_token)
        return self.user


def _manager(user=None) -> auth_manager.SupabaseAuthManager:
    return auth_manager.SupabaseAuthManager(db=StubTokenLookup(user))


def test_valid_jwt_resolves_user_without_lookup() -> None:
    token = jwt.encode(
        {"sub": "auth-1", "email": "ada@example.com", "aud": "authenticated", "user_metadata": {"full_name": "Ada"}},
        "jwt-test-secret-for-unit-tests-only-0123",
        algorithm="HS256",
    )
    manager = _manager()

    user = manager.authenticate_request_token(f"Bearer {token}")

    assert user == {"id": "auth-1", "email": "ada@example.com", "metadata": {"full_name": "Ada"}}
    assert manager.db.tokens == []


def test_falls_back_to_database_token_lookup() -> None:
    manager = _manager({"id": "auth-2", "email": "grace@example.com", "user_metadata": {"plan": "pro"}})

    user = manager.authenticate_request_token("Bearer opaque-token")

    assert user == {"id": "auth-2", "email": "grace@example.com", "metadata": {"plan": "pro"}}
    assert manager.db.tokens == ["opaque-token"]


def test_rejects_missing_bearer_prefix() -> None:
    assert _manager().authenticate_request_token("Token abc") is None


def test_require_auth_raises_for_invalid_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(auth_manager, "get_auth_manager", lambda: _manager())

    with pytest.raises(HTTPException) as exc:
        auth_manager.require_auth("Bearer not-a-jwt")

    assert exc.value.status_code == 401


def test_require_auth_requires_header() -> None:
    with pytest.raises(HTTPException) as exc:
        auth_manager.require_auth(None)

    assert exc.value.status_code == 401


def test_get_auth_user_uses_admin_api(monkeypatch: pytest.MonkeyPatch) -> None:
    recorded = {}

    class DummyResponse:
        status_code = 200

        def json(self):
            return {"id": "auth-1", "email": "ada@example.com", "user_metadata": {"plan": "pro"}}

    def fake_get(url, headers, timeout):
        recorded["url"] = url
        recorded["headers"] = headers
        return DummyResponse()

    monkeypatch.setattr(auth_manager.requests, "get", fake_get)

    user = _manager().get_auth_user("auth-1")

    assert user == {"id": "auth-1", "email": "ada@example.com", "metadata": {"plan": "pro"}}
    assert recorded["url"].endswith("/auth/v1/admin/users/auth-1")
    assert recorded["headers"]["apikey"] == "service-test-key"
