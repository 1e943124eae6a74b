"""Shared Pydantic data models for chatwoot-relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class WebhookEventType(str, Enum):
    CONVERSATION_CREATED = "conversation_created"
    CONVERSATION_UPDATED = "conversation_updated"
    CONVERSATION_STATUS_CHANGED = "conversation_status_changed"
    MESSAGE_CREATED = "message_created"
    MESSAGE_UPDATED = "message_updated"
    WEBWIDGET_TRIGGERED = "webwidget_triggered"
    CONVERSATION_TYPING_ON = "conversation_typing_on"
    CONVERSATION_TYPING_OFF = "conversation_typing_off"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class HealthState(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


SYSTEM_EVENT = "system"
AI_CALL_EVENT = "ai_call"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


# --- AI Call Models ---


class AICallConfig(BaseModel):
    """Per-call AI configuration. Never persisted."""

    model_config = ConfigDict(frozen=True)

    api_url: str | None = None
    api_token: str | None = None
    system_prompt: str
    provider: str | None = None
    model: str | None = None
    max_tokens: int = 1000
    temperature: float = 0.7


class AICallResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    content: str | None = None
    error: str | None = None


# --- Webhook Models ---


class WebhookResponse(BaseModel):
    """Uniform response envelope returned to the webhook caller."""

    success: bool
    message: str | None = None
    conversation_id: int | str | None = None
    error: str | None = None
    details: str | None = None
    timestamp: str = Field(default_factory=_now_iso)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# --- Observability Models ---


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str = Field(default_factory=_now_iso)
    level: LogLevel
    event: str
    message: str
    data: dict[str, Any] | None = None
    duration_ms: float | None = None
    conversation_id: int | str | None = None
    user_id: int | str | None = None


class SystemMetrics(BaseModel):
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    ai_calls_count: int = 0
    ai_calls_success: int = 0
    ai_calls_failed: int = 0
    last_activity: str = Field(default_factory=_now_iso)
    uptime_ms: int = 0
    event_counts: dict[str, int] = Field(
        default_factory=lambda: {event.value: 0 for event in WebhookEventType},
    )


class HealthReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: HealthState
    checks: dict[str, bool]
    message: str
