"""Tests for API authentication and caller identity."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from avatar_console.api.auth import (
    _constant_time_compare,
    generate_api_key,
    get_caller_id,
    verify_api_key,
    websocket_authorized,
)
from avatar_console.config.settings import Settings


def make_request(path: str = "/conversations/conv-1", headers: dict | None = None):
    request = MagicMock()
    request.url.path = path
    request.headers = headers or {}
    request.client.host = "127.0.0.1"
    return request


def keyed_settings(**overrides) -> Settings:
    return Settings(environment="staging", api_key="secret-key", **overrides)


class TestApiKeyHelpers:
    """Tests for key generation and comparison."""

    def test_generate_api_key(self):
        key = generate_api_key()

        assert len(key) == 64
        assert key != generate_api_key()

    def test_constant_time_compare(self):
        assert _constant_time_compare("abc", "abc")
        assert not _constant_time_compare("abc", "abd")
        assert not _constant_time_compare("abc", "")


class TestVerifyApiKey:
    """Tests for verify_api_key()."""

    @pytest.mark.asyncio
    async def test_development_without_key_skips(self):
        with patch("avatar_console.api.auth.get_settings", return_value=Settings()):
            await verify_api_key(make_request(), None)

    @pytest.mark.asyncio
    async def test_health_paths_are_open(self):
        with patch("avatar_console.api.auth.get_settings", return_value=keyed_settings()):
            await verify_api_key(make_request("/readyz"), None)

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with patch("avatar_console.api.auth.get_settings", return_value=keyed_settings()):
            with pytest.raises(HTTPException) as exc_info:
                await verify_api_key(make_request(), None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Missing API key"

    @pytest.mark.asyncio
    async def test_invalid_key(self):
        with patch("avatar_console.api.auth.get_settings", return_value=keyed_settings()):
            with pytest.raises(HTTPException) as exc_info:
                await verify_api_key(make_request(), "wrong")

        assert exc_info.value.detail == "Invalid API key"

    @pytest.mark.asyncio
    async def test_valid_key(self):
        with patch("avatar_console.api.auth.get_settings", return_value=keyed_settings()):
            await verify_api_key(make_request(), "secret-key")

    @pytest.mark.asyncio
    async def test_custom_header_name(self):
        """Key is also read from the configured header."""
        settings = keyed_settings(api_key_header="X-Console-Key")
        request = make_request(headers={"X-Console-Key": "secret-key"})

        with patch("avatar_console.api.auth.get_settings", return_value=settings):
            await verify_api_key(request, None)

    @pytest.mark.asyncio
    async def test_auth_disabled(self):
        settings = keyed_settings(auth_enabled=False)
        with patch("avatar_console.api.auth.get_settings", return_value=settings):
            await verify_api_key(make_request(), None)


class TestCallerIdentity:
    """Tests for get_caller_id()."""

    @pytest.mark.asyncio
    async def test_caller_from_header(self):
        request = make_request(headers={"X-User-Id": "user-1"})
        assert await get_caller_id(request, None) == "user-1"

    @pytest.mark.asyncio
    async def test_missing_caller(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_caller_id(make_request(), None)

        assert exc_info.value.status_code == 401


class TestWebSocketAuth:
    """Tests for websocket_authorized()."""

    def make_websocket(self, headers: dict):
        websocket = MagicMock()
        websocket.headers = headers
        websocket.url.path = "/sessions/s-1/events"
        return websocket

    def test_development_without_key(self):
        with patch("avatar_console.api.auth.get_settings", return_value=Settings()):
            assert websocket_authorized(self.make_websocket({}))

    def test_valid_key(self):
        with patch("avatar_console.api.auth.get_settings", return_value=keyed_settings()):
            assert websocket_authorized(self.make_websocket({"X-API-Key": "secret-key"}))

    def test_invalid_key(self):
        with patch("avatar_console.api.auth.get_settings", return_value=keyed_settings()):
            assert not websocket_authorized(self.make_websocket({"X-API-Key": "nope"}))
            assert not websocket_authorized(self.make_websocket({}))
