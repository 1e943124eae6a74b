"""Base class for AI provider descriptors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from chatwoot_relay.models import AICallConfig

USER_AGENT = "Chatwoot-AI-Webhook/2.0"


class ProviderDescriptor(ABC):
    """Static adapter for one AI vendor's completion API.

    Subclasses declare identity as class attributes and implement the three
    pure operations. Instances hold no state.
    """

    key: str
    name: str
    base_url: str
    default_model: str
    supported_models: tuple[str, ...]

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"

    def effective_model(self, config: AICallConfig) -> str:
        return config.model or self.default_model

    @abstractmethod
    def format_request(self, message: str, config: AICallConfig) -> dict[str, Any]:
        """Build the vendor request body."""
        ...

    @abstractmethod
    def parse_response(self, data: Any) -> Any:
        """Extract reply text from a decoded vendor response, or None."""
        ...

    def build_headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
            "User-Agent": USER_AGENT,
        }

    def describe(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "base_url": self.base_url,
            "default_model": self.default_model,
            "supported_models": list(self.supported_models),
        }

    @staticmethod
    def _chat_messages(message: str, config: AICallConfig) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": config.system_prompt},
            {"role": "user", "content": message},
        ]

    @staticmethod
    def _first_choice_content(data: Any) -> Any:
        """Return ``choices[0].message.content`` when present."""
        if not isinstance(data, dict):
            return None
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        message = first.get("message")
        if not isinstance(message, dict):
            return None
        return message.get("content")
