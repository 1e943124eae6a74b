"""Event router: validates the webhook envelope and dispatches by event type."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from chatwoot_relay.models import LogLevel, WebhookEventType
from chatwoot_relay.webhook.models import RouteResult, dig

if TYPE_CHECKING:
    from chatwoot_relay.observability.sink import ObservabilitySink
    from chatwoot_relay.webhook.handler import MessageCreatedHandler

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[RouteResult]]

SUPPORTED_EVENTS: tuple[str, ...] = tuple(e.value for e in WebhookEventType)

# Acknowledged without further processing: canned message and the path to
# the conversation id within that event's payload.
_ACKNOWLEDGED: dict[WebhookEventType, tuple[str, tuple[str, ...]]] = {
    WebhookEventType.CONVERSATION_CREATED: ("Conversation created event received", ("id",)),
    WebhookEventType.CONVERSATION_UPDATED: ("Conversation updated event received", ("id",)),
    WebhookEventType.CONVERSATION_STATUS_CHANGED: (
        "Conversation status change event received", ("id",),
    ),
    WebhookEventType.MESSAGE_UPDATED: (
        "Message updated event received", ("conversation", "id"),
    ),
    WebhookEventType.WEBWIDGET_TRIGGERED: (
        "Web widget triggered event received", ("current_conversation", "id"),
    ),
    WebhookEventType.CONVERSATION_TYPING_ON: (
        "Typing started event received", ("conversation", "id"),
    ),
    WebhookEventType.CONVERSATION_TYPING_OFF: (
        "Typing stopped event received", ("conversation", "id"),
    ),
}


class EventRouter:
    """Turns an untrusted JSON body into a uniform response envelope."""

    def __init__(
        self,
        message_handler: MessageCreatedHandler,
        sink: ObservabilitySink,
    ) -> None:
        self._sink = sink
        self._handlers: dict[WebhookEventType, Handler] = {
            event: self._acknowledger(event) for event in _ACKNOWLEDGED
        }
        self._handlers[WebhookEventType.MESSAGE_CREATED] = message_handler.handle_message

    @property
    def handled_events(self) -> frozenset[WebhookEventType]:
        return frozenset(self._handlers)

    async def route(self, raw_body: Any) -> RouteResult:
        started = time.monotonic()

        if not isinstance(raw_body, dict):
            return self._reject(
                "Invalid webhook payload: expected a JSON object", {},
            )
        event_name = raw_body.get("event")
        if not event_name:
            return self._reject("Invalid webhook payload: missing event field", raw_body)
        try:
            event = WebhookEventType(event_name)
        except ValueError:
            return self._reject(f"Unsupported event type: {event_name}", raw_body)

        handler = self._handlers.get(event)
        if handler is None:
            # Only reachable if the dispatch table drifts from WebhookEventType
            logger.error("No handler registered for validated event %s", event.value)
            result = RouteResult.fail(f"Unhandled event type: {event.value}", status_code=400)
        else:
            result = await handler(raw_body)

        duration_ms = (time.monotonic() - started) * 1000
        self._sink.log_webhook_event(
            event,
            raw_body,
            LogLevel.INFO if result.success else LogLevel.ERROR,
            duration_ms,
        )
        return result

    def _reject(self, error: str, payload: dict[str, Any]) -> RouteResult:
        self._sink.log_webhook_event("unknown", payload, LogLevel.WARN)
        return RouteResult.fail(error, status_code=400)

    @staticmethod
    def _acknowledger(event: WebhookEventType) -> Handler:
        message, id_path = _ACKNOWLEDGED[event]

        async def acknowledge(payload: dict[str, Any]) -> RouteResult:
            return RouteResult.ok(message, dig(payload, *id_path))

        return acknowledge
