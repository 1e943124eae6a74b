"""Chatwoot reply delivery: posts AI text back into the conversation."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chatwoot_relay.observability.sink import ObservabilitySink

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/api/v1/accounts/{account_id}/conversations/{conversation_id}/messages"
_TIMEOUT_SECONDS = 10.0
_BODY_SNIPPET_CHARS = 200


class ChatwootReplySender:
    """Posts outgoing messages through the Chatwoot REST API.

    Delivery is best effort: every failure is recorded and reported as
    ``False``. Nothing is retried here.
    """

    def __init__(
        self,
        base_url: str | None,
        bot_token: str | None,
        sink: ObservabilitySink,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._bot_token = bot_token or ""
        self._sink = sink
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._bot_token)

    def message_url(self, account_id: int | str, conversation_id: int | str) -> str:
        path = MESSAGES_PATH.format(account_id=account_id, conversation_id=conversation_id)
        return f"{self._base_url}{path}"

    async def send_reply(
        self,
        conversation_id: int | str,
        text: str,
        account_id: int | str,
    ) -> bool:
        ids: dict[str, Any] = {
            "account_id": account_id,
            "conversation_id": conversation_id,
        }
        if not self.configured:
            self._sink.error(
                "Chatwoot is not configured, reply not sent "
                "(set CHATWOOT_URL and CHATWOOT_BOT_TOKEN)",
                ids,
            )
            return False

        url = self.message_url(account_id, conversation_id)
        payload = {"content": text, "message_type": "outgoing", "private": False}
        headers = {
            "Content-Type": "application/json",
            "api_access_token": self._bot_token,
        }
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=_TIMEOUT_SECONDS,
            ) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except Exception as exc:  # delivery never propagates to the webhook response
            logger.exception("Chatwoot reply raised for %s", url)
            self._sink.error(
                "Chatwoot reply failed", {**ids, "url": url, "error": str(exc)},
            )
            return False

        if not resp.is_success:
            self._sink.error(
                f"Chatwoot rejected reply with status {resp.status_code}",
                {
                    **ids,
                    "url": url,
                    "status": resp.status_code,
                    "body": resp.text[:_BODY_SNIPPET_CHARS],
                },
            )
            return False

        self._sink.info(
            "Reply delivered to Chatwoot",
            {**ids, "length": len(text)},
        )
        return True
