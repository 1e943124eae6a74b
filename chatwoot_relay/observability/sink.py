"""In-memory observability sink: bounded log buffer and running counters.

One instance is created by the app factory at startup and passed to every
component that records activity. Nothing is persisted; state lives until
an operator clears it or the process exits.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections import deque
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from chatwoot_relay.models import (
    AI_CALL_EVENT,
    SYSTEM_EVENT,
    HealthReport,
    HealthState,
    LogEntry,
    LogLevel,
    SystemMetrics,
    WebhookEventType,
)
from chatwoot_relay.webhook.models import as_id, dig

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 1000
_ACTIVITY_WINDOW_SECONDS = 300
_MAX_ERROR_RATE = 0.1
_MIN_AI_SUCCESS_RATE = 0.8
_PREVIEW_CHARS = 50

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ObservabilitySink:
    """Append-only log buffer (newest first) plus request and AI-call metrics.

    All public methods are safe to call from concurrent requests.
    """

    def __init__(self, max_entries: int = MAX_LOG_ENTRIES, debug: bool = False) -> None:
        self._lock = threading.Lock()
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._debug = debug
        self._closed = False
        self._metrics = SystemMetrics()
        self._started = time.monotonic()

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen or 0

    # --- Generic entries ---

    def info(self, message: str, data: dict[str, Any] | None = None,
             event: str = SYSTEM_EVENT) -> None:
        self._append(LogLevel.INFO, message, data, event)

    def warn(self, message: str, data: dict[str, Any] | None = None,
             event: str = SYSTEM_EVENT) -> None:
        self._append(LogLevel.WARN, message, data, event)

    def error(self, message: str, data: dict[str, Any] | None = None,
              event: str = SYSTEM_EVENT) -> None:
        self._append(LogLevel.ERROR, message, data, event)

    def debug(self, message: str, data: dict[str, Any] | None = None,
              event: str = SYSTEM_EVENT) -> None:
        if self._debug:
            self._append(LogLevel.DEBUG, message, data, event)

    # --- Domain records ---

    def log_webhook_event(
        self,
        event: WebhookEventType | str,
        payload: dict[str, Any],
        level: LogLevel = LogLevel.INFO,
        duration_ms: float | None = None,
    ) -> None:
        """Count one handled webhook request and record a descriptive entry."""
        event_name = event.value if isinstance(event, WebhookEventType) else str(event)
        with self._lock:
            m = self._metrics
            m.total_requests += 1
            m.last_activity = datetime.now(UTC).isoformat()
            if event_name in m.event_counts:
                m.event_counts[event_name] += 1
            if level == LogLevel.INFO:
                m.successful_requests += 1
            else:
                m.failed_requests += 1
            if duration_ms is not None:
                total = m.average_response_time * (m.total_requests - 1) + duration_ms
                m.average_response_time = total / m.total_requests

        # Payload shapes are untrusted; only scalar ids are kept
        conversation_id = as_id(dig(payload, "conversation", "id")) or as_id(payload.get("id"))
        user_id = as_id(dig(payload, "sender", "id")) or as_id(dig(payload, "user", "id"))
        sender_name = dig(payload, "sender", "name") or dig(payload, "contact", "name")
        content = payload.get("content")

        description = f"Webhook event: {event_name}"
        if event_name == WebhookEventType.MESSAGE_CREATED.value and isinstance(content, str):
            preview = content
            if len(preview) > _PREVIEW_CHARS:
                preview = preview[:_PREVIEW_CHARS] + "..."
            description += f' | sender: {sender_name or "unknown"} | content: "{preview}"'
        elif event_name == WebhookEventType.CONVERSATION_CREATED.value:
            description += " | new conversation"
        elif event_name == WebhookEventType.CONVERSATION_STATUS_CHANGED.value:
            description += f" | status: {payload.get('status') or 'unknown'}"

        data: dict[str, Any] = {
            "event": event_name,
            "conversation_id": conversation_id,
            "user_id": user_id,
            "content": content,
            "message_type": payload.get("message_type"),
            "sender_name": sender_name,
            "status": payload.get("status"),
        }
        if duration_ms is not None:
            data["duration"] = f"{duration_ms:.0f}ms"
        if level == LogLevel.ERROR:
            data["full_data"] = payload

        self._append(
            level, description, {k: v for k, v in data.items() if v is not None},
            event_name, duration_ms=duration_ms,
            conversation_id=conversation_id, user_id=user_id,
        )

    def log_ai_call(
        self,
        success: bool,
        duration_ms: float,
        provider: str,
        model: str,
        error: str | None = None,
        message_length: int | None = None,
        response_length: int | None = None,
    ) -> None:
        """Count one completed AI dispatch (after all retries)."""
        with self._lock:
            self._metrics.ai_calls_count += 1
            if success:
                self._metrics.ai_calls_success += 1
            else:
                self._metrics.ai_calls_failed += 1

        data: dict[str, Any] = {
            "provider": provider,
            "model": model,
            "duration": f"{duration_ms:.0f}ms",
            "success": success,
            "message_length": message_length,
        }
        if success:
            message = f"AI call succeeded | {provider} {model} | {duration_ms:.0f}ms"
            if response_length:
                message += f" | response length: {response_length} chars"
            data["response_length"] = response_length
            level = LogLevel.INFO
        else:
            message = f"AI call failed | {provider} {model} | {duration_ms:.0f}ms | error: {error}"
            data["error"] = error
            level = LogLevel.ERROR
        self._append(
            level, message, {k: v for k, v in data.items() if v is not None},
            AI_CALL_EVENT, duration_ms=duration_ms,
        )

    # --- Queries ---

    def get_logs(
        self,
        limit: int | None = None,
        level: LogLevel | str | None = None,
        event: str | None = None,
    ) -> list[LogEntry]:
        with self._lock:
            entries = list(self._entries)
        if level:
            wanted = LogLevel(level)
            entries = [e for e in entries if e.level == wanted]
        if event:
            entries = [e for e in entries if e.event == event]
        if limit is not None and limit > 0:
            entries = entries[:limit]
        return entries

    def get_metrics(self) -> SystemMetrics:
        with self._lock:
            snapshot = self._metrics.model_copy(deep=True)
            snapshot.uptime_ms = int((time.monotonic() - self._started) * 1000)
        return snapshot

    def get_health_status(self) -> HealthReport:
        """Aggregate recent activity, error rate and AI success rate."""
        with self._lock:
            m = self._metrics.model_copy()
        last = datetime.fromisoformat(m.last_activity)
        idle = (datetime.now(UTC) - last).total_seconds()
        checks = {
            "has_recent_activity": idle < _ACTIVITY_WINDOW_SECONDS,
            "low_error_rate": (
                m.total_requests == 0
                or m.failed_requests / m.total_requests < _MAX_ERROR_RATE
            ),
            "ai_calls_working": (
                m.ai_calls_count == 0
                or m.ai_calls_success / m.ai_calls_count > _MIN_AI_SUCCESS_RATE
            ),
        }
        failed = [name for name, passed in checks.items() if not passed]
        if not failed:
            return HealthReport(
                status=HealthState.HEALTHY, checks=checks, message="System operating normally",
            )
        status = HealthState.ERROR if len(failed) >= 2 else HealthState.WARNING
        return HealthReport(
            status=status, checks=checks, message=f"Failed checks: {', '.join(failed)}",
        )

    # --- Operator actions ---

    def clear_logs(self) -> None:
        with self._lock:
            self._entries.clear()

    def reset_metrics(self) -> None:
        with self._lock:
            self._metrics = SystemMetrics()
            self._started = time.monotonic()

    def close(self) -> None:
        """Release buffered state at shutdown."""
        with self._lock:
            self._closed = True
            self._entries.clear()
        logger.debug("Observability sink closed")

    # --- Internals ---

    def _append(
        self,
        level: LogLevel,
        message: str,
        data: dict[str, Any] | None,
        event: str,
        duration_ms: float | None = None,
        conversation_id: int | str | None = None,
        user_id: int | str | None = None,
    ) -> None:
        try:
            entry = LogEntry(
                id=secrets.token_hex(5),
                level=level,
                event=event,
                message=message,
                data=data,
                duration_ms=duration_ms,
                conversation_id=conversation_id,
                user_id=user_id,
            )
        except ValidationError:
            # Recording must never fail the request being recorded
            logger.exception("Dropped unrecordable %s entry for event %s", level.value, event)
            return
        with self._lock:
            if self._closed:
                return
            # deque(maxlen) evicts from the right; newest entries live on the left
            self._entries.appendleft(entry)
        logger.log(_STDLIB_LEVELS[level], "[%s] %s", event, message)
