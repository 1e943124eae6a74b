"""Shared test fixtures for chatwoot-relay."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from chatwoot_relay.config import RelaySettings
from chatwoot_relay.observability.sink import ObservabilitySink

AI_URL = "https://ai.example.test/v1/chat/completions"
CHATWOOT_URL = "https://chatwoot.example.test"


@pytest.fixture
def sink() -> ObservabilitySink:
    return ObservabilitySink()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class StubServer:
    """httpx.MockTransport wrapper that records requests and replays responses."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content)


def openai_reply(text: str) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> RelaySettings:
    """Factory for RelaySettings with AI and Chatwoot configured."""
    defaults: dict[str, Any] = {
        "ai_api_url": AI_URL,
        "ai_api_token": "ai-token",
        "chatwoot_url": CHATWOOT_URL,
        "chatwoot_bot_token": "bot-token",
    }
    defaults.update(kwargs)
    return RelaySettings(**defaults)


def make_message_payload(**kwargs: Any) -> dict[str, Any]:
    """Factory for a message_created webhook payload."""
    defaults: dict[str, Any] = {
        "event": "message_created",
        "id": 99,
        "message_type": "incoming",
        "content": "hi",
        "sender": {"id": 7, "name": "Ada", "type": "contact"},
        "conversation": {"id": 456},
        "account": {"id": 1},
    }
    defaults.update(kwargs)
    return defaults
