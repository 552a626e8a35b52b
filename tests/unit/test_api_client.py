import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from tests.helpers import Handler, json_response
from tracker.api.client import ApiClient
from tracker.api.exceptions import ApiNetworkError, ApiResponseError, AuthenticationError
from tracker.api.token_store import TokenStore
from tracker.config.settings import Settings

ClientFactory = Callable[[Handler], ApiClient]


def _call(client: ApiClient, method: str, url: str) -> dict[str, object]:
    async def run() -> dict[str, object]:
        async with client:
            return await client.request(method, url)

    return asyncio.run(run())


class TestRequestHeaders:
    def test_attaches_bearer_token(self, make_client: ClientFactory) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response(200, {"success": True})

        _call(make_client(handler), "GET", "/me")
        assert seen[0].headers["Authorization"] == "Bearer secret-token"

    def test_uses_versioned_base_url(self, make_client: ClientFactory) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response(200, {"success": True})

        _call(make_client(handler), "GET", "/health")
        assert str(seen[0].url) == "http://api.test/api/v1/health"

    def test_no_authorization_header_when_signed_out(
        self, make_client: ClientFactory, token_store: TokenStore
    ) -> None:
        token_store.clear()
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response(200, {})

        _call(make_client(handler), "GET", "/health")
        assert "Authorization" not in seen[0].headers


class TestResponses:
    def test_returns_json_body(self, make_client: ClientFactory) -> None:
        body = _call(
            make_client(lambda r: json_response(200, {"success": True, "data": {"x": 1}})),
            "GET",
            "/x",
        )
        assert body == {"success": True, "data": {"x": 1}}

    def test_empty_body_returns_empty_dict(self, make_client: ClientFactory) -> None:
        body = _call(make_client(lambda r: httpx.Response(204)), "DELETE", "/x")
        assert body == {}

    def test_error_status_uses_server_message(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: json_response(422, {"success": False, "message": "bad input"}))
        with pytest.raises(ApiResponseError, match="bad input") as exc_info:
            _call(client, "POST", "/x")
        assert exc_info.value.status_code == 422

    def test_error_status_without_json(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(500, content=b"oops"))
        with pytest.raises(ApiResponseError, match="status 500"):
            _call(client, "GET", "/x")

    def test_non_object_json_raises(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, content=b"[1, 2]"))
        with pytest.raises(ApiResponseError, match="must be an object"):
            _call(client, "GET", "/x")


class TestUnauthorized:
    def test_401_clears_credentials_and_raises(
        self, make_client: ClientFactory, token_store: TokenStore
    ) -> None:
        client = make_client(lambda r: json_response(401, {"message": "token expired"}))
        with pytest.raises(AuthenticationError, match="token expired"):
            _call(client, "GET", "/transaction-history")
        assert token_store.get_token() is None


class TestNetworkErrors:
    def test_connect_error_raises_network_error(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ApiNetworkError, match="Network error"):
            _call(make_client(handler), "GET", "/x")

    def test_timeout_raises_network_error(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ApiNetworkError, match="timed out"):
            _call(make_client(handler), "GET", "/x")


class TestFromSettings:
    def test_builds_base_url_from_settings(self, tmp_path: Path) -> None:
        settings = Settings(
            api_base_url="http://example.test/",
            api_version="/api/v1",
            auth_token_path=f"{tmp_path}/auth.json",
        )
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response(200, {})

        client = ApiClient.from_settings(settings, transport=httpx.MockTransport(handler))
        _call(client, "GET", "/health")
        assert str(seen[0].url) == "http://example.test/api/v1/health"
