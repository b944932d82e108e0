"""Configuration schema."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from tripdesk.auth.storage import default_store_path


class ApiConfig(BaseModel):
    """Remote endpoints."""

    base_url: str = "https://api.kashtat.co/v2"
    admin_base_url: str = "https://app.kashtat.co/api/admin/v1"
    token_url: str = "https://api.kashtat.co/v2/auth/token"


class AuthConfig(BaseModel):
    """Credential storage and token refresh policy."""

    store_path: str = ""
    max_retries: int = Field(default=3, ge=0)
    # When False, only a 401 carrying session_expired/token_expired is retried;
    # a bare 401 just refreshes the cached token for the next call.
    retry_unauthorized: bool = True

    def resolved_store_path(self) -> Path:
        if self.store_path:
            return Path(self.store_path).expanduser()
        return default_store_path()


class HttpConfig(BaseModel):
    """Transport settings."""

    timeout: float = Field(default=30.0, gt=0)
    language: str = "en"


class Config(BaseModel):
    """Root configuration for tripdesk."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
