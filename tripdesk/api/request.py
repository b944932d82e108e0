"""Authenticated request pipeline with token refresh and bounded retry."""

from __future__ import annotations

import json
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from tripdesk.api.result import Outcome, RequestResult, parse_envelope
from tripdesk.auth.constants import DEFAULT_MAX_RETRIES
from tripdesk.auth.models import RetryBudget
from tripdesk.auth.storage import JsonFileStore, KeyValueStore
from tripdesk.auth.token_cache import TokenCache
from tripdesk.config.schema import Config

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


def build_url(url: str, payload: Mapping[str, Any] | None) -> str:
    """Append the non-None entries of ``payload`` to ``url`` as a query string."""
    params = {k: _query_value(v) for k, v in (payload or {}).items() if v is not None}
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urllib.parse.urlencode(params)}"


@dataclass
class RequestDescriptor:
    """One outgoing request, built once and re-sent unchanged on retry."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    @classmethod
    def build(
        cls,
        url: str,
        payload: Mapping[str, Any] | None = None,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
    ) -> "RequestDescriptor":
        method = method.upper()
        payload = payload or {}
        body = None
        if method == "GET":
            url = build_url(url, payload)
        elif method in BODY_METHODS and payload:
            body = json.dumps(payload)
        return cls(url=url, method=method, headers=dict(headers or {}), body=body)


class RequestPipeline:
    """
    Issue API requests with the cached access token attached.

    A 401 that signals an expired session refreshes the token and re-sends
    the request, at most ``max_retries`` times per call chain. ``request``
    never raises; every failure comes back as a tagged :class:`RequestResult`.
    """

    def __init__(
        self,
        tokens: TokenCache,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_unauthorized: bool = True,
    ):
        self.tokens = tokens
        self.max_retries = max_retries
        self.retry_unauthorized = retry_unauthorized
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: Config,
        store: KeyValueStore | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "RequestPipeline":
        client = httpx.AsyncClient(timeout=config.http.timeout, transport=transport)
        if store is None:
            store = JsonFileStore(config.auth.resolved_store_path())
        tokens = TokenCache(store, config.api.token_url, client=client, timeout=config.http.timeout)
        pipeline = cls(
            tokens,
            client=client,
            max_retries=config.auth.max_retries,
            retry_unauthorized=config.auth.retry_unauthorized,
        )
        pipeline._owns_client = True
        return pipeline

    async def __aenter__(self) -> "RequestPipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        url: str,
        payload: Mapping[str, Any] | None = None,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
    ) -> RequestResult:
        method = method.upper()
        try:
            descriptor = RequestDescriptor.build(url, payload, method, headers)
        except (TypeError, ValueError) as exc:
            logger.error("Could not encode %s %s payload: %s", method, url, exc)
            return RequestResult(Outcome.INVALID_REQUEST, url, method, error=str(exc), attempts=0)

        budget = RetryBudget(limit=self.max_retries)
        try:
            return await self._dispatch(descriptor, budget)
        except httpx.TimeoutException as exc:
            logger.error("%s %s timed out: %s", method, descriptor.url, exc)
            return self._failure(Outcome.TIMED_OUT, descriptor, budget, f"timed out: {exc}")
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, descriptor.url, exc)
            return self._failure(Outcome.TRANSPORT_ERROR, descriptor, budget, str(exc))
        except Exception as exc:
            logger.exception("Error in request %s %s", method, descriptor.url)
            return self._failure(Outcome.TRANSPORT_ERROR, descriptor, budget, str(exc))

    async def get(self, url: str, params: Mapping[str, Any] | None = None, headers=None) -> RequestResult:
        return await self.request(url, params, "GET", headers)

    async def post(self, url: str, payload: Mapping[str, Any] | None = None, headers=None) -> RequestResult:
        return await self.request(url, payload, "POST", headers)

    async def put(self, url: str, payload: Mapping[str, Any] | None = None, headers=None) -> RequestResult:
        return await self.request(url, payload, "PUT", headers)

    async def patch(self, url: str, payload: Mapping[str, Any] | None = None, headers=None) -> RequestResult:
        return await self.request(url, payload, "PATCH", headers)

    async def delete(self, url: str, payload: Mapping[str, Any] | None = None, headers=None) -> RequestResult:
        return await self.request(url, payload, "DELETE", headers)

    async def _dispatch(self, descriptor: RequestDescriptor, budget: RetryBudget) -> RequestResult:
        token = await self.tokens.get_token(False)
        headers = httpx.Headers({"Content-Type": "application/json", "Authorization": f"Bearer {token}"})
        headers.update(descriptor.headers)
        budget.sent += 1
        response = await self._client.request(
            descriptor.method,
            descriptor.url,
            headers=headers,
            content=descriptor.body,
        )
        status = response.status_code

        if status == 401 and not self.retry_unauthorized:
            # Warm the cache for the next call; this response is still returned.
            logger.warning("HTTP error! Status: %s", status)
            await self.tokens.get_token(True)

        body, parse_error = _parse_body(response)
        envelope = parse_envelope(body)

        if status == 401 and (envelope.expired or self.retry_unauthorized):
            if budget.consume():
                logger.info(
                    "Session expired on %s %s, requesting new token (retry %d/%d)",
                    descriptor.method,
                    descriptor.url,
                    budget.used,
                    budget.limit,
                )
                if await self.tokens.get_token(True):
                    return await self._dispatch(descriptor, budget)
                logger.warning("Token refresh failed; giving up on %s", descriptor.url)
            else:
                logger.warning("Retry budget exhausted for %s %s", descriptor.method, descriptor.url)

        attempts = budget.sent
        if parse_error is not None:
            return RequestResult(
                Outcome.INVALID_RESPONSE,
                descriptor.url,
                descriptor.method,
                status_code=status,
                error=parse_error,
                attempts=attempts,
            )

        if response.is_success:
            outcome = Outcome.OK
        elif status == 401:
            outcome = Outcome.UNAUTHORIZED
        else:
            outcome = Outcome.HTTP_ERROR
        return RequestResult(
            outcome,
            descriptor.url,
            descriptor.method,
            status_code=status,
            body=body,
            error=None if outcome is Outcome.OK else f"HTTP {status}",
            attempts=attempts,
        )

    @staticmethod
    def _failure(outcome: Outcome, descriptor: RequestDescriptor, budget: RetryBudget, error: str) -> RequestResult:
        return RequestResult(outcome, descriptor.url, descriptor.method, error=error, attempts=budget.sent)


def _parse_body(response: httpx.Response) -> tuple[Any, str | None]:
    if not response.content:
        return {}, None
    try:
        return response.json(), None
    except ValueError as exc:
        return {}, f"invalid JSON body: {exc}"
