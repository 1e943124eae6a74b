"""Data models for the webhook routing pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from chatwoot_relay.models import WebhookResponse


@dataclass
class RouteResult:
    """Response envelope plus the HTTP status to return it with."""

    response: WebhookResponse
    status_code: int = 200

    @classmethod
    def ok(cls, message: str, conversation_id: Any = None) -> RouteResult:
        return cls(WebhookResponse(
            success=True, message=message, conversation_id=as_id(conversation_id),
        ))

    @classmethod
    def fail(cls, error: str, status_code: int, details: str | None = None) -> RouteResult:
        return cls(
            WebhookResponse(success=False, error=error, details=details),
            status_code=status_code,
        )

    @property
    def success(self) -> bool:
        return self.response.success


def as_id(value: Any) -> int | str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return None


def dig(data: Any, *keys: str) -> Any:
    """Follow nested dict keys, returning None at the first missing level."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data
