import json

import httpx
import pytest

from tripdesk.api.request import RequestPipeline
from tripdesk.api.resources import resource, resource_from_config
from tripdesk.auth.constants import TOKEN_KEY
from tripdesk.auth.storage import MemoryStore
from tripdesk.auth.token_cache import TokenCache
from tripdesk.config.schema import Config

BASE_URL = "https://api.test/v2/"


def _make_pipeline(requests: list[httpx.Request]) -> RequestPipeline:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": []})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    tokens = TokenCache(MemoryStore({TOKEN_KEY: "abc"}), "https://auth.test/token", client=client)
    return RequestPipeline(tokens, client=client)


@pytest.mark.asyncio
async def test_list_passes_filters_as_query() -> None:
    requests: list[httpx.Request] = []
    cities = resource(_make_pipeline(requests), "cities", BASE_URL, language="ar")

    result = await cities.list(country_id=3, search=None)

    assert result.ok
    sent = requests[0]
    assert str(sent.url) == "https://api.test/v2/admin/cities?country_id=3"
    assert sent.headers["Accept-Language"] == "ar"
    assert sent.headers["Authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_update_and_delete_target_item_url() -> None:
    requests: list[httpx.Request] = []
    orders = resource(_make_pipeline(requests), "orders", BASE_URL)

    await orders.update(12, {"status": "confirmed"})
    await orders.delete(12)

    assert [(r.method, str(r.url)) for r in requests] == [
        ("PUT", "https://api.test/v2/admin/bookings/12"),
        ("DELETE", "https://api.test/v2/admin/bookings/12"),
    ]
    assert json.loads(requests[0].content) == {"status": "confirmed"}
    assert requests[1].content == b""


@pytest.mark.asyncio
async def test_create_posts_payload() -> None:
    requests: list[httpx.Request] = []
    categories = resource(_make_pipeline(requests), "categories", BASE_URL)

    await categories.create({"name": "Desert"})

    assert requests[0].method == "POST"
    assert str(requests[0].url) == "https://api.test/v2/admin/packages/categories"


def test_unknown_resource_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown resource"):
        resource(_make_pipeline([]), "hotels", BASE_URL)


@pytest.mark.asyncio
async def test_resource_from_config_uses_configured_language() -> None:
    requests: list[httpx.Request] = []
    config = Config()
    config.api.base_url = BASE_URL
    config.http.language = "ar"
    packages = resource_from_config(_make_pipeline(requests), config, "packages")

    await packages.get(5)

    assert str(requests[0].url) == "https://api.test/v2/admin/packages/5"
    assert requests[0].headers["Accept-Language"] == "ar"
