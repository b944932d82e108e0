"""Request outcomes and response envelope parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError


class Outcome(str, Enum):
    OK = "ok"
    HTTP_ERROR = "http_error"
    UNAUTHORIZED = "unauthorized"
    TIMED_OUT = "timed_out"
    TRANSPORT_ERROR = "transport_error"
    INVALID_RESPONSE = "invalid_response"
    INVALID_REQUEST = "invalid_request"


class ErrorCode(str, Enum):
    """Application-level error codes the pipeline reacts to."""

    SESSION_EXPIRED = "session_expired"
    TOKEN_EXPIRED = "token_expired"
    OTHER = "other"
    NONE = "none"


EXPIRY_CODES = frozenset({ErrorCode.SESSION_EXPIRED, ErrorCode.TOKEN_EXPIRED})


class ErrorEnvelope(BaseModel):
    """The ``{success, data, message, error}`` envelope most endpoints return."""

    model_config = ConfigDict(extra="allow")

    success: bool | None = None
    error: Any = None
    message: Any = None

    @property
    def code(self) -> ErrorCode:
        if self.error is None or self.error == "":
            return ErrorCode.NONE
        if not isinstance(self.error, str):
            return ErrorCode.OTHER
        try:
            return ErrorCode(self.error)
        except ValueError:
            return ErrorCode.OTHER

    @property
    def expired(self) -> bool:
        return self.code in EXPIRY_CODES


def parse_envelope(body: Any) -> ErrorEnvelope:
    if not isinstance(body, dict):
        return ErrorEnvelope()
    try:
        return ErrorEnvelope.model_validate(body)
    except ValidationError:
        return ErrorEnvelope(error=body.get("error"))


class RequestError(RuntimeError):
    """Raised by :meth:`RequestResult.raise_for_outcome` for failed requests."""

    def __init__(self, result: "RequestResult"):
        super().__init__(f"{result.method} {result.url} failed: {result.outcome.value}"
                         + (f" ({result.error})" if result.error else ""))
        self.result = result


@dataclass
class RequestResult:
    """Tagged result of one logical request, including any retries it took."""

    outcome: Outcome
    url: str
    method: str
    status_code: int | None = None
    body: Any = field(default_factory=dict)
    error: str | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def envelope(self) -> ErrorEnvelope:
        return parse_envelope(self.body)

    @property
    def data(self) -> Any:
        if isinstance(self.body, dict):
            return self.body.get("data")
        return None

    def raise_for_outcome(self) -> "RequestResult":
        if not self.ok:
            raise RequestError(self)
        return self
