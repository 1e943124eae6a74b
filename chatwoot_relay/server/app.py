"""FastAPI application exposing the webhook relay."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from chatwoot_relay.config import RelaySettings
from chatwoot_relay.dispatch.dispatcher import AIDispatcher
from chatwoot_relay.models import HealthState, LogLevel, WebhookResponse
from chatwoot_relay.observability.sink import ObservabilitySink
from chatwoot_relay.providers import resolve
from chatwoot_relay.webhook.handler import MessageCreatedHandler
from chatwoot_relay.webhook.reply import MESSAGES_PATH, ChatwootReplySender
from chatwoot_relay.webhook.router import SUPPORTED_EVENTS, EventRouter

logger = logging.getLogger(__name__)

SERVICE_NAME = "chatwoot-relay"
SERVICE_VERSION = "1.0.0"

_MONITORING_GET_ACTIONS = ["metrics", "logs", "health"]
_MONITORING_DELETE_ACTIONS = ["logs", "metrics"]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = RelaySettings.from_env()
    sink = ObservabilitySink(debug=settings.log_level.upper() == "DEBUG")
    return create_app(settings, sink)


def create_app(
    settings: RelaySettings,
    sink: ObservabilitySink | None = None,
    dispatcher: AIDispatcher | None = None,
    reply_sender: ChatwootReplySender | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the relay app. ``transport`` is shared by default outbound clients."""
    sink = sink or ObservabilitySink()
    dispatcher = dispatcher or AIDispatcher(sink, transport=transport)
    reply_sender = reply_sender or ChatwootReplySender(
        settings.chatwoot_url, settings.chatwoot_bot_token, sink, transport=transport,
    )
    handler = MessageCreatedHandler(settings, dispatcher, reply_sender, sink)
    router = EventRouter(handler, sink)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        provider = resolve(settings.ai_provider, settings.ai_api_url)
        sink.info(
            "Relay started",
            {
                "provider": provider.name,
                "ai_configured": settings.ai_configured,
                "platform_configured": settings.platform_configured,
            },
        )
        try:
            yield
        finally:
            sink.info("Relay stopping")
            sink.close()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.settings = settings
    app.state.sink = sink

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }

    @app.post("/webhook")
    async def webhook(request: Request) -> JSONResponse:
        try:
            body = await request.body()
            try:
                payload = json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                result_body = WebhookResponse(
                    success=False, error="Invalid JSON body",
                ).to_json()
                sink.warn("Webhook body is not valid JSON", {"size": len(body)})
                return JSONResponse(result_body, status_code=400)
            result = await router.route(payload)
            return JSONResponse(result.response.to_json(), status_code=result.status_code)
        except Exception as exc:
            logger.exception("Unhandled error while processing webhook")
            sink.error("Webhook processing error", {"error": str(exc)})
            return JSONResponse(
                WebhookResponse(success=False, error="Internal server error").to_json(),
                status_code=500,
            )

    @app.get("/webhook")
    async def webhook_config() -> dict[str, Any]:
        provider = resolve(settings.ai_provider, settings.ai_api_url)
        return {
            "configured": settings.ai_configured,
            "platform_configured": settings.platform_configured,
            "has_url": bool(settings.ai_api_url),
            "has_token": bool(settings.ai_api_token),
            "provider": provider.name,
            "model": settings.ai_model or provider.default_model,
            "system_prompt": settings.ai_system_prompt,
            "supported_events": list(SUPPORTED_EVENTS),
            "max_tokens": settings.ai_max_tokens,
            "temperature": settings.ai_temperature,
            "max_attempts": settings.ai_max_attempts,
            "timestamp": _now_iso(),
        }

    @app.get("/monitoring")
    async def monitoring(
        action: str = "metrics",
        limit: int | None = Query(default=None, ge=1),
        level: str | None = None,
        event: str | None = None,
    ) -> JSONResponse:
        if action == "metrics":
            data: Any = sink.get_metrics().model_dump(mode="json")
            status_code = 200
        elif action == "logs":
            if level and level not in {lv.value for lv in LogLevel}:
                return JSONResponse(
                    {"success": False, "error": f"Unsupported log level: {level}"},
                    status_code=400,
                )
            entries = sink.get_logs(limit, level, event)
            data = [entry.model_dump(mode="json") for entry in entries]
            status_code = 200
        elif action == "health":
            report = sink.get_health_status()
            data = report.model_dump(mode="json")
            status_code = 500 if report.status == HealthState.ERROR else 200
        else:
            return JSONResponse(
                {
                    "success": False,
                    "error": f"Unsupported action: {action}",
                    "supported_actions": _MONITORING_GET_ACTIONS,
                },
                status_code=400,
            )
        return JSONResponse(
            {"success": True, "data": data, "timestamp": _now_iso()},
            status_code=status_code,
        )

    @app.delete("/monitoring")
    async def monitoring_clear(action: str | None = None) -> JSONResponse:
        if action == "logs":
            sink.clear_logs()
            message = "Logs cleared"
        elif action == "metrics":
            sink.reset_metrics()
            message = "Metrics reset"
        else:
            return JSONResponse(
                {
                    "success": False,
                    "error": f"Unsupported action: {action}",
                    "supported_actions": _MONITORING_DELETE_ACTIONS,
                },
                status_code=400,
            )
        return JSONResponse({"success": True, "message": message, "timestamp": _now_iso()})

    @app.get("/debug")
    async def debug_info() -> dict[str, Any]:
        provider = resolve(settings.ai_provider, settings.ai_api_url)
        return {
            "timestamp": _now_iso(),
            "environment": {
                "has_ai_url": bool(settings.ai_api_url),
                "has_ai_token": bool(settings.ai_api_token),
                "has_chatwoot_url": bool(settings.chatwoot_url),
                "has_chatwoot_token": bool(settings.chatwoot_bot_token),
                "ai_provider": settings.ai_provider or "auto-detect",
                "ai_model": settings.ai_model or "default",
            },
            "provider": provider.describe(),
            "chatwoot": {
                "api_path_format": MESSAGES_PATH,
                "note": "account_id is taken from payload.account.id of each webhook",
            },
        }

    @app.post("/debug")
    async def debug_ai_call(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        message = body.get("message") if isinstance(body, dict) else None
        if not isinstance(message, str) or not message:
            return JSONResponse(
                {"success": False, "error": "A test message is required"},
                status_code=400,
            )
        started = time.monotonic()
        result = await dispatcher.dispatch(
            message, settings.to_ai_config(), max_attempts=settings.ai_max_attempts,
        )
        return JSONResponse({
            "success": True,
            "ai_response": result.model_dump(mode="json", exclude_none=True),
            "duration_ms": round((time.monotonic() - started) * 1000),
            "config": {
                "has_url": bool(settings.ai_api_url),
                "has_token": bool(settings.ai_api_token),
                "provider": resolve(settings.ai_provider, settings.ai_api_url).name,
            },
            "timestamp": _now_iso(),
        })

    return app
