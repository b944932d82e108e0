"""Access token cache with transparent issuance and renewal."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tripdesk.auth.constants import REFRESH_TOKEN_KEY, TOKEN_KEY
from tripdesk.auth.storage import KeyValueStore

logger = logging.getLogger(__name__)


class TokenCache:
    """
    Single source of truth for the current access token.

    The token lives in a persistent store so it survives restarts. A missing
    token, or an explicit refresh, goes to the token-issuance endpoint. None of
    the public methods raise: failures are logged and reported as ``None``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        token_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.store = store
        self.token_url = token_url
        self._client = client
        self._timeout = timeout

    def save_token(self, token: str) -> None:
        self.store.set(TOKEN_KEY, token)

    async def request_token(self, refresh: bool = False) -> str | None:
        """Ask the issuance endpoint for a token; a renewal sends the stored old token."""
        body: dict[str, Any] = {}
        if refresh:
            old_token = self.store.get(REFRESH_TOKEN_KEY)
            if old_token:
                body["old_token"] = old_token

        try:
            response = await self._post(body)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException:
            logger.error("Token request to %s timed out", self.token_url)
            return None
        except httpx.HTTPError as exc:
            logger.error("Token request failed: %s", exc)
            return None
        except ValueError as exc:
            logger.error("Token response was not valid JSON: %s", exc)
            return None

        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            logger.error("Token response missing token field")
            return None

        self.save_token(str(token))
        if payload.get("refresh_token"):
            self.store.set(REFRESH_TOKEN_KEY, str(payload["refresh_token"]))
        logger.debug("Stored %s access token", "renewed" if refresh else "new")
        return str(token)

    async def get_token(self, refresh: bool = False) -> str | None:
        """Return the cached token, requesting one when absent or when refresh is forced."""
        try:
            token = self.store.get(TOKEN_KEY)
            if not token or refresh:
                if not token:
                    logger.info("No token found, requesting new token")
                token = await self.request_token(refresh)
            return token
        except Exception:
            logger.exception("Error retrieving token")
            return None

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._client is not None:
            return await self._client.post(self.token_url, json=body, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self.token_url, json=body, headers=headers)
