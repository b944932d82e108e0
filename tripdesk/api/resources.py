"""Generic CRUD façade over the request pipeline."""

from __future__ import annotations

from typing import Any, Mapping

from tripdesk.api.request import RequestPipeline
from tripdesk.api.result import RequestResult
from tripdesk.config.schema import Config

# Admin resources exposed by the dashboard API, relative to the API base URL.
RESOURCE_PATHS = {
    "branches": "admin/branches",
    "categories": "admin/packages/categories",
    "cities": "admin/cities",
    "countries": "admin/countries",
    "orders": "admin/bookings",
    "packages": "admin/packages",
    "partners": "admin/partners",
    "users": "admin/users",
}


class ResourceClient:
    """CRUD calls for one REST collection; response schemas are left to the caller."""

    def __init__(self, pipeline: RequestPipeline, base_url: str, path: str, *, language: str = "en"):
        self.pipeline = pipeline
        self.url = f"{base_url.rstrip('/')}/{path.strip('/')}"
        self._headers = {"Accept": "application/json", "Accept-Language": language}

    def _item_url(self, item_id: Any) -> str:
        return f"{self.url}/{item_id}"

    async def list(self, **filters: Any) -> RequestResult:
        return await self.pipeline.request(self.url, filters, "GET", self._headers)

    async def get(self, item_id: Any) -> RequestResult:
        return await self.pipeline.request(self._item_url(item_id), None, "GET", self._headers)

    async def create(self, payload: Mapping[str, Any]) -> RequestResult:
        return await self.pipeline.request(self.url, payload, "POST", self._headers)

    async def update(self, item_id: Any, payload: Mapping[str, Any]) -> RequestResult:
        return await self.pipeline.request(self._item_url(item_id), payload, "PUT", self._headers)

    async def delete(self, item_id: Any) -> RequestResult:
        return await self.pipeline.request(self._item_url(item_id), None, "DELETE", self._headers)


def resource(pipeline: RequestPipeline, name: str, base_url: str, *, language: str = "en") -> ResourceClient:
    """Return a client for one of the known admin resources."""
    try:
        path = RESOURCE_PATHS[name]
    except KeyError:
        raise ValueError(f"Unknown resource '{name}'. Known: {', '.join(sorted(RESOURCE_PATHS))}") from None
    return ResourceClient(pipeline, base_url, path, language=language)


def resource_from_config(pipeline: RequestPipeline, config: Config, name: str) -> ResourceClient:
    """Return a resource client using the configured API base URL and language."""
    return resource(pipeline, name, config.api.base_url, language=config.http.language)
