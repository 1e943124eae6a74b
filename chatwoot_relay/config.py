"""Relay configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from chatwoot_relay.models import AICallConfig

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional customer support assistant. "
    "Answer the user's question in a friendly, professional tone."
)
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_ATTEMPTS = 3


def _env_str(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key, "").strip()
    return value or None


def _env_number(environ: Mapping[str, str], key: str, default: Any, cast: type) -> Any:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Invalid value for %s: %r, using default %s", key, raw, default)
        return default


class RelaySettings(BaseModel):
    """Process configuration. Built once at startup, never mutated."""

    model_config = ConfigDict(frozen=True)

    ai_api_url: str | None = None
    ai_api_token: str | None = None
    ai_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    ai_provider: str | None = None
    ai_model: str | None = None
    ai_max_tokens: int = DEFAULT_MAX_TOKENS
    ai_temperature: float = DEFAULT_TEMPERATURE
    ai_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    chatwoot_url: str | None = None
    chatwoot_bot_token: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelaySettings:
        """Create settings from environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            ai_api_url=_env_str(env, "AI_API_URL"),
            ai_api_token=_env_str(env, "AI_API_TOKEN"),
            ai_system_prompt=_env_str(env, "AI_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
            ai_provider=_env_str(env, "AI_PROVIDER"),
            ai_model=_env_str(env, "AI_MODEL"),
            ai_max_tokens=_env_number(env, "AI_MAX_TOKENS", DEFAULT_MAX_TOKENS, int),
            ai_temperature=_env_number(env, "AI_TEMPERATURE", DEFAULT_TEMPERATURE, float),
            ai_max_attempts=max(
                1, _env_number(env, "AI_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, int),
            ),
            chatwoot_url=_env_str(env, "CHATWOOT_URL"),
            chatwoot_bot_token=_env_str(env, "CHATWOOT_BOT_TOKEN"),
            log_level=_env_str(env, "LOG_LEVEL") or "INFO",
        )

    @property
    def ai_configured(self) -> bool:
        return bool(self.ai_api_url and self.ai_api_token)

    @property
    def platform_configured(self) -> bool:
        return bool(self.chatwoot_url and self.chatwoot_bot_token)

    def missing_ai_settings(self) -> list[str]:
        missing = []
        if not self.ai_api_url:
            missing.append("AI_API_URL")
        if not self.ai_api_token:
            missing.append("AI_API_TOKEN")
        return missing

    def to_ai_config(self) -> AICallConfig:
        return AICallConfig(
            api_url=self.ai_api_url,
            api_token=self.ai_api_token,
            system_prompt=self.ai_system_prompt,
            provider=self.ai_provider,
            model=self.ai_model,
            max_tokens=self.ai_max_tokens,
            temperature=self.ai_temperature,
        )
