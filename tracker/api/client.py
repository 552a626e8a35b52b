from typing import Any

import httpx

from tracker.api.exceptions import ApiNetworkError, ApiResponseError, AuthenticationError
from tracker.api.token_store import TokenStore
from tracker.config.settings import Settings
from tracker.logging.logger import Log


class ApiClient:
    """Async JSON client for the transaction tracker REST API.

    Attaches the persisted bearer token to every request. A 401 response
    clears the token store (global sign-out) and raises AuthenticationError.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token_store: TokenStore,
        timeout_seconds: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token_store = token_store
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ApiClient":
        return cls(
            base_url=f"{settings.api_base_url.rstrip('/')}{settings.api_version}",
            token_store=TokenStore(settings.auth_token_path),
            timeout_seconds=settings.api_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, **kwargs: Any) -> dict[str, Any]:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> dict[str, Any]:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> dict[str, Any]:
        return await self.request("DELETE", url, **kwargs)

    async def request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiNetworkError: on connection failures and timeouts.
            AuthenticationError: on HTTP 401.
            ApiResponseError: on any other non-2xx status or a non-object body.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        token = self._token_store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        Log.debug(f"{method} {url}")
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise ApiNetworkError(f"Request to {url} timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise ApiNetworkError(f"Network error calling {url}: {exc}") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            self._token_store.clear()
            Log.warning("Received 401, signed out", url=url)
            raise AuthenticationError(
                self._error_message(response, "Authentication required"),
                status_code=response.status_code,
            )
        if response.is_error:
            raise ApiResponseError(
                self._error_message(response, f"Request failed with status {response.status_code}"),
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise ApiResponseError(
                f"Invalid JSON response from {url}", status_code=response.status_code
            ) from exc
        if not isinstance(body, dict):
            raise ApiResponseError(
                f"JSON response from {url} must be an object",
                status_code=response.status_code,
            )
        return body

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if isinstance(message, str) and message:
                return message
        return default
