"""Authentication: credential store, token cache and admin session."""

from tripdesk.auth.models import LoginResult, RetryBudget
from tripdesk.auth.session import AuthService
from tripdesk.auth.storage import JsonFileStore, KeyValueStore, MemoryStore
from tripdesk.auth.token_cache import TokenCache

__all__ = [
    "AuthService",
    "JsonFileStore",
    "KeyValueStore",
    "LoginResult",
    "MemoryStore",
    "RetryBudget",
    "TokenCache",
]
