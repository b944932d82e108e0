"""Admin login and session bookkeeping."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from tripdesk.auth.constants import REFRESH_TOKEN_KEY, TOKEN_KEY, USER_KEY
from tripdesk.auth.models import LoginResult
from tripdesk.auth.storage import KeyValueStore

logger = logging.getLogger(__name__)


def _login_error(payload: Any) -> str:
    message = payload.get("message") if isinstance(payload, dict) else None
    if isinstance(message, dict) and message.get("description"):
        return str(message["description"])
    return "Login failed"


class AuthService:
    """Log an admin in against the dashboard API and keep the session in the store."""

    def __init__(
        self,
        store: KeyValueStore,
        admin_base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.store = store
        self.admin_base_url = admin_base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def login(self, email: str, password: str) -> LoginResult:
        try:
            response = await self._send(
                "POST",
                f"{self.admin_base_url}/login",
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                json={"email": email, "password": password},
            )
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Login request failed: %s", exc)
            return LoginResult(success=False, error=str(exc))

        if not response.is_success:
            return LoginResult(success=False, error=_login_error(payload))

        token = payload.get("token")
        user = payload.get("user")
        if token:
            self.store.set(TOKEN_KEY, str(token))
            self.store.set(USER_KEY, json.dumps(user))
        logger.info("Logged in as %s", email)
        return LoginResult(success=True, user=user, token=token)

    async def get_me(self) -> LoginResult:
        token = self.get_token()
        if not token:
            return LoginResult(success=False, error="No token found")
        try:
            response = await self._send(
                "GET",
                f"{self.admin_base_url}/me",
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Profile request failed: %s", exc)
            return LoginResult(success=False, error=str(exc))

        if not response.is_success:
            return LoginResult(success=False, error="Failed to fetch user data")
        return LoginResult(success=True, user=payload.get("user"))

    def logout(self) -> None:
        for key in (TOKEN_KEY, USER_KEY, REFRESH_TOKEN_KEY):
            self.store.remove(key)

    def get_token(self) -> str | None:
        return self.store.get(TOKEN_KEY)

    def get_user(self) -> dict[str, Any] | None:
        raw = self.store.get(USER_KEY)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            logger.warning("Stored user profile is not valid JSON")
            return None
        return user if isinstance(user, dict) else None

    def is_authenticated(self) -> bool:
        return bool(self.get_token())

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)
