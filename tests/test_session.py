import json

import httpx
import pytest

from tripdesk.auth.constants import REFRESH_TOKEN_KEY, TOKEN_KEY, USER_KEY
from tripdesk.auth.session import AuthService
from tripdesk.auth.storage import MemoryStore

ADMIN_URL = "https://admin.test/api/admin/v1"


def _make_service(handler, store: MemoryStore | None = None) -> tuple[AuthService, MemoryStore]:
    store = store if store is not None else MemoryStore()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AuthService(store, ADMIN_URL, client=client), store


@pytest.mark.asyncio
async def test_login_stores_token_and_user() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"token": "abc", "user": {"id": 1, "name": "Sara"}})

    service, store = _make_service(handler)

    result = await service.login("sara@example.com", "secret")

    assert result.success
    assert result.token == "abc"
    assert seen == {"url": f"{ADMIN_URL}/login", "body": {"email": "sara@example.com", "password": "secret"}}
    assert store.get(TOKEN_KEY) == "abc"
    assert service.get_user() == {"id": 1, "name": "Sara"}
    assert service.is_authenticated()


@pytest.mark.asyncio
async def test_login_failure_uses_server_description() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": {"description": "Invalid credentials"}})

    service, store = _make_service(handler)

    result = await service.login("sara@example.com", "wrong")

    assert not result.success
    assert result.error == "Invalid credentials"
    assert store.get(TOKEN_KEY) is None


@pytest.mark.asyncio
async def test_login_failure_default_message() -> None:
    service, _ = _make_service(lambda request: httpx.Response(500, json={}))

    result = await service.login("sara@example.com", "secret")

    assert result.error == "Login failed"


@pytest.mark.asyncio
async def test_login_transport_error_is_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    service, _ = _make_service(handler)

    result = await service.login("sara@example.com", "secret")

    assert not result.success
    assert "unreachable" in result.error


@pytest.mark.asyncio
async def test_get_me_requires_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    service, _ = _make_service(handler)

    result = await service.get_me()

    assert result.error == "No token found"


@pytest.mark.asyncio
async def test_get_me_sends_bearer_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == f"{ADMIN_URL}/me"
        assert request.headers["Authorization"] == "Bearer abc"
        return httpx.Response(200, json={"user": {"id": 1}})

    service, _ = _make_service(handler, MemoryStore({TOKEN_KEY: "abc"}))

    result = await service.get_me()

    assert result.success
    assert result.user == {"id": 1}


@pytest.mark.asyncio
async def test_get_me_http_error() -> None:
    service, _ = _make_service(lambda request: httpx.Response(401, json={}), MemoryStore({TOKEN_KEY: "abc"}))

    result = await service.get_me()

    assert result.error == "Failed to fetch user data"


def test_logout_clears_session() -> None:
    store = MemoryStore({TOKEN_KEY: "abc", USER_KEY: "{}", REFRESH_TOKEN_KEY: "hint"})
    service = AuthService(store, ADMIN_URL)

    service.logout()

    assert store.get(TOKEN_KEY) is None
    assert store.get(USER_KEY) is None
    assert store.get(REFRESH_TOKEN_KEY) is None
    assert not service.is_authenticated()


def test_get_user_ignores_corrupt_profile() -> None:
    service = AuthService(MemoryStore({USER_KEY: "{broken"}), ADMIN_URL)

    assert service.get_user() is None
