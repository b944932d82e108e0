"""Auth data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class RetryBudget:
    """Refresh-and-retry allowance for one logical call chain."""

    limit: int = 3
    used: int = 0
    sent: int = 0

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def consume(self) -> bool:
        if self.exhausted:
            return False
        self.used += 1
        return True


@dataclass
class LoginResult:
    """Outcome of a login or profile lookup."""

    success: bool
    user: dict[str, Any] | None = None
    token: str | None = None
    error: str | None = None
