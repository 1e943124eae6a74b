"""AI dispatch with per-attempt timeout and capped exponential backoff.

Each attempt yields an explicit ``AttemptResult``:

- SUCCESS: reply text extracted; returned immediately.
- RETRYABLE: non-2xx status, timeout, transport error, undecodable body or
  missing reply text; retried after a backoff delay.
- TERMINAL: the call can never succeed as configured (no endpoint, invalid
  URL); the loop stops without further attempts.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from chatwoot_relay.models import AI_CALL_EVENT, AICallConfig, AICallResult
from chatwoot_relay.observability.sink import ObservabilitySink
from chatwoot_relay.providers import ProviderDescriptor, resolve

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
REQUEST_TIMEOUT_SECONDS = 30.0
_BACKOFF_BASE_MS = 1000
_BACKOFF_CAP_MS = 5000
_BODY_SNIPPET_CHARS = 200


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class AttemptResult:
    outcome: AttemptOutcome
    content: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, content: str) -> AttemptResult:
        return cls(AttemptOutcome.SUCCESS, content=content)

    @classmethod
    def retryable(cls, error: str) -> AttemptResult:
        return cls(AttemptOutcome.RETRYABLE, error=error)

    @classmethod
    def terminal(cls, error: str) -> AttemptResult:
        return cls(AttemptOutcome.TERMINAL, error=error)


def backoff_seconds(attempt: int) -> float:
    """Delay after failed ``attempt`` (1-based): 1s, 2s, 4s, then capped at 5s."""
    delay_ms = min(_BACKOFF_BASE_MS * 2 ** (attempt - 1), _BACKOFF_CAP_MS)
    return delay_ms / 1000


class AIDispatcher:
    """Sends a user message to the configured AI provider and returns its reply."""

    def __init__(
        self,
        sink: ObservabilitySink,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sink = sink
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep

    async def dispatch(
        self,
        message: str,
        config: AICallConfig,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> AICallResult:
        provider = resolve(config.provider, config.api_url)
        model = config.model or provider.default_model
        url = config.api_url or provider.base_url
        started = time.monotonic()

        self._sink.info(
            "Starting AI call",
            {"provider": provider.name, "model": model, "message_length": len(message)},
            AI_CALL_EVENT,
        )

        last_error = "unknown error"
        attempts = 0
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            for attempt in range(1, max_attempts + 1):
                attempts = attempt
                attempt_started = time.monotonic()
                result = await self._attempt(client, provider, url, message, config)

                if result.outcome == AttemptOutcome.SUCCESS:
                    content = result.content or ""
                    self._sink.log_ai_call(
                        True, _elapsed_ms(started), provider.name, model,
                        message_length=len(message), response_length=len(content),
                    )
                    return AICallResult(success=True, content=content)

                last_error = result.error or last_error
                self._sink.warn(
                    f"{provider.name} call failed (attempt {attempt}/{max_attempts})",
                    {
                        "error": last_error,
                        "attempt": attempt,
                        "duration": f"{_elapsed_ms(attempt_started):.0f}ms",
                        "provider": provider.name,
                        "model": model,
                        "outcome": result.outcome.value,
                    },
                    AI_CALL_EVENT,
                )
                if result.outcome == AttemptOutcome.TERMINAL:
                    break
                if attempt < max_attempts:
                    await self._sleep(backoff_seconds(attempt))

        error = f"{provider.name} failed after {attempts} attempts: {last_error}"
        self._sink.log_ai_call(
            False, _elapsed_ms(started), provider.name, model,
            error=error, message_length=len(message),
        )
        return AICallResult(success=False, error=error)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        provider: ProviderDescriptor,
        url: str,
        message: str,
        config: AICallConfig,
    ) -> AttemptResult:
        if not url:
            return AttemptResult.terminal(f"no endpoint configured for {provider.name}")

        body = provider.format_request(message, config)
        headers = provider.build_headers(config.api_token or "")
        try:
            async with asyncio.timeout(self._timeout):
                resp = await client.post(url, json=body, headers=headers)
                raw = resp.text
        except (TimeoutError, httpx.TimeoutException):
            return AttemptResult.retryable(f"request timed out after {self._timeout:g}s")
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            return AttemptResult.terminal(f"invalid endpoint {url!r}: {exc}")
        except httpx.HTTPError as exc:
            return AttemptResult.retryable(f"{type(exc).__name__}: {exc}")

        if not resp.is_success:
            return AttemptResult.retryable(
                f"{provider.name} API error {resp.status_code}: {resp.reason_phrase}\n"
                f"{raw[:_BODY_SNIPPET_CHARS]}"
            )

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return AttemptResult.retryable(
                f"response parsing failed: {raw[:_BODY_SNIPPET_CHARS]}"
            )

        content = provider.parse_response(data)
        if not isinstance(content, str) or not content.strip():
            return AttemptResult.retryable("AI returned an invalid response")
        return AttemptResult.ok(content.strip())


def _elapsed_ms(since: float) -> float:
    return (time.monotonic() - since) * 1000
