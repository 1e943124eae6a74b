"""Handler for ``message_created`` events: AI reply plus best-effort delivery."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chatwoot_relay.models import WebhookEventType
from chatwoot_relay.webhook.models import RouteResult, as_id, dig

if TYPE_CHECKING:
    from chatwoot_relay.config import RelaySettings
    from chatwoot_relay.dispatch.dispatcher import AIDispatcher
    from chatwoot_relay.observability.sink import ObservabilitySink
    from chatwoot_relay.webhook.reply import ChatwootReplySender

logger = logging.getLogger(__name__)

INCOMING = "incoming"


class MessageCreatedHandler:
    """Answers incoming customer messages with AI-generated text.

    Reply delivery failures are logged but never change the result: the
    caller is told whether the AI produced a reply, not whether Chatwoot
    accepted it.
    """

    def __init__(
        self,
        settings: RelaySettings,
        dispatcher: AIDispatcher,
        reply_sender: ChatwootReplySender,
        sink: ObservabilitySink,
    ) -> None:
        self._settings = settings
        self._dispatcher = dispatcher
        self._reply_sender = reply_sender
        self._sink = sink

    async def handle_message(self, payload: dict[str, Any]) -> RouteResult:
        conversation_id = dig(payload, "conversation", "id")
        event = WebhookEventType.MESSAGE_CREATED.value

        # Outgoing and template messages are the bot's or an agent's own
        message_type = payload.get("message_type")
        if message_type != INCOMING:
            return RouteResult.ok(
                f"Ignored non-incoming message (message_type={message_type!r})",
                conversation_id,
            )

        content = payload.get("content")
        if not isinstance(content, str) or not content.strip():
            return RouteResult.ok("Ignored message without text content", conversation_id)

        missing = self._settings.missing_ai_settings()
        if missing:
            error = f"AI is not configured: missing {', '.join(missing)}"
            self._sink.error(error, {"conversation_id": conversation_id}, event)
            return RouteResult.fail(error, status_code=500)

        result = await self._dispatcher.dispatch(
            content,
            self._settings.to_ai_config(),
            max_attempts=self._settings.ai_max_attempts,
        )
        if not result.success:
            return RouteResult.fail("AI call failed", status_code=500, details=result.error)

        reply = result.content or ""
        await self._deliver(payload, reply)
        return RouteResult.ok(reply, conversation_id)

    async def _deliver(self, payload: dict[str, Any], reply: str) -> None:
        conversation_id = as_id(dig(payload, "conversation", "id"))
        account_id = as_id(dig(payload, "account", "id"))
        if conversation_id is None or account_id is None:
            self._sink.error(
                "Cannot deliver reply: missing conversation or account id",
                {"conversation_id": conversation_id, "account_id": account_id},
                WebhookEventType.MESSAGE_CREATED.value,
            )
            return
        delivered = await self._reply_sender.send_reply(conversation_id, reply, account_id)
        if not delivered:
            logger.warning(
                "Reply to conversation %s was not delivered", conversation_id,
            )
