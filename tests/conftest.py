from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from tests.helpers import Handler
from tracker.api.client import ApiClient
from tracker.api.token_store import TokenStore


@pytest.fixture()
def token_store(tmp_path: Path) -> TokenStore:
    store = TokenStore(tmp_path / "auth.json")
    store.save("secret-token", {"email": "user@example.com"})
    return store


@pytest.fixture()
def make_client(token_store: TokenStore) -> Callable[[Handler], ApiClient]:
    """Build an ApiClient whose requests are answered by ``handler``."""

    def factory(handler: Handler) -> ApiClient:
        return ApiClient(
            base_url="http://api.test/api/v1",
            token_store=token_store,
            transport=httpx.MockTransport(handler),
        )

    return factory
