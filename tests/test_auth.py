"""Tests for caller identity resolution."""
from __future__ import annotations

import pytest

from taskly import auth
from taskly.auth import AuthError, get_current_identity


@pytest.fixture
def client_ids(monkeypatch):
    monkeypatch.delenv(auth.DEV_BYPASS_ENV, raising=False)
    monkeypatch.setenv(auth.AUDIENCE_ENV, "web-client, mobile-client")
    auth._client_ids.cache_clear()
    yield
    auth._client_ids.cache_clear()


class TestDevBypass:

    @pytest.fixture(autouse=True)
    def bypass(self, monkeypatch):
        monkeypatch.setenv(auth.DEV_BYPASS_ENV, "1")

    def test_headers_become_identity(self):
        identity = get_current_identity(None, " Bob@Example.COM ", "uid-bob", "Bob")

        assert identity.id == "uid-bob"
        assert identity.email == "bob@example.com"
        assert identity.display_name == "Bob"

    def test_id_defaults_to_email(self):
        assert get_current_identity(None, "bob@example.com", None, None).id == "bob@example.com"

    def test_missing_email_rejected(self):
        with pytest.raises(AuthError):
            get_current_identity(None, None, "uid-bob", None)


class TestGoogleToken:

    def test_missing_bearer(self, client_ids):
        with pytest.raises(AuthError):
            get_current_identity("Basic abc", None, None, None)

    def test_valid_token(self, client_ids, monkeypatch):
        seen = {}

        def verify(token, request, audience):
            seen["token"] = token
            seen["audience"] = audience
            return {"sub": "google-123", "email": "Alice@Example.com", "name": "Alice"}

        monkeypatch.setattr(auth.id_token, "verify_oauth2_token", verify)

        identity = get_current_identity("Bearer tok-1", None, None, None)

        assert seen == {"token": "tok-1", "audience": ["web-client", "mobile-client"]}
        assert identity.id == "google-123"
        assert identity.email == "alice@example.com"

    def test_invalid_token(self, client_ids, monkeypatch):
        def verify(token, request, audience):
            raise ValueError("Token expired")

        monkeypatch.setattr(auth.id_token, "verify_oauth2_token", verify)

        with pytest.raises(AuthError) as excinfo:
            get_current_identity("Bearer tok-1", None, None, None)
        assert "Token expired" in excinfo.value.detail

    def test_token_without_email(self, client_ids, monkeypatch):
        monkeypatch.setattr(auth.id_token, "verify_oauth2_token", lambda *args: {"sub": "google-123"})

        with pytest.raises(AuthError):
            get_current_identity("Bearer tok-1", None, None, None)

    def test_server_without_client_id(self, monkeypatch):
        monkeypatch.delenv(auth.DEV_BYPASS_ENV, raising=False)
        monkeypatch.delenv(auth.AUDIENCE_ENV, raising=False)
        auth._client_ids.cache_clear()

        with pytest.raises(AuthError):
            get_current_identity("Bearer tok-1", None, None, None)
        auth._client_ids.cache_clear()
