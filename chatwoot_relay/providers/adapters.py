"""Concrete provider descriptors for the supported AI vendors."""

from __future__ import annotations

from typing import Any

from chatwoot_relay.models import AICallConfig
from chatwoot_relay.providers.base import USER_AGENT, ProviderDescriptor


class OpenAIProvider(ProviderDescriptor):
    """Generic OpenAI-compatible chat completions API. Used as the fallback."""

    key = "openai"
    name = "OpenAI"
    base_url = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-3.5-turbo"
    supported_models = ("gpt-3.5-turbo", "gpt-4", "gpt-4-turbo", "gpt-4o")

    def format_request(self, message: str, config: AICallConfig) -> dict[str, Any]:
        return {
            "model": self.effective_model(config),
            "messages": self._chat_messages(message, config),
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }

    def parse_response(self, data: Any) -> Any:
        # Self-hosted OpenAI-compatible gateways often answer with a flat field
        candidates = [self._first_choice_content(data)]
        if isinstance(data, dict):
            candidates += [data.get("response"), data.get("text"), data.get("content")]
        for candidate in candidates:
            if candidate:
                return candidate
        return None


class AzureOpenAIProvider(ProviderDescriptor):
    """Azure OpenAI deployments. The endpoint must come from configuration."""

    key = "azure"
    name = "Azure OpenAI"
    base_url = ""
    default_model = "gpt-35-turbo"
    supported_models = ("gpt-35-turbo", "gpt-4", "gpt-4-32k")

    def format_request(self, message: str, config: AICallConfig) -> dict[str, Any]:
        # The deployment in the URL selects the model
        return {
            "messages": self._chat_messages(message, config),
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }

    def parse_response(self, data: Any) -> Any:
        return self._first_choice_content(data)

    def build_headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "api-key": token,
            "User-Agent": USER_AGENT,
        }


class ZhipuProvider(ProviderDescriptor):
    key = "zhipu"
    name = "Zhipu AI"
    base_url = "https://open.bigmodel.cn/api/paas/v4/chat/completions"
    default_model = "glm-4"
    supported_models = ("glm-4", "glm-3-turbo")

    def format_request(self, message: str, config: AICallConfig) -> dict[str, Any]:
        return {
            "model": self.effective_model(config),
            "messages": self._chat_messages(message, config),
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }

    def parse_response(self, data: Any) -> Any:
        return self._first_choice_content(data)


class BaiduProvider(ProviderDescriptor):
    """Baidu ERNIE Bot. No system role: the prompt is prepended to the message."""

    key = "baidu"
    name = "Baidu ERNIE Bot"
    base_url = "https://aip.baidubce.com/rpc/2.0/ai_custom/v1/wenxinworkshop/chat/completions"
    default_model = "ernie-bot"
    supported_models = ("ernie-bot", "ernie-bot-turbo")

    def format_request(self, message: str, config: AICallConfig) -> dict[str, Any]:
        return {
            "messages": [
                {"role": "user", "content": f"{config.system_prompt}\n\n{message}"},
            ],
            "max_output_tokens": config.max_tokens,
            "temperature": config.temperature,
        }

    def parse_response(self, data: Any) -> Any:
        if not isinstance(data, dict):
            return None
        return data.get("result")

    def build_headers(self, token: str) -> dict[str, str]:
        # Baidu authenticates with an access_token query parameter in the URL
        return {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }


class QwenProvider(ProviderDescriptor):
    """Alibaba DashScope text generation (Tongyi Qianwen)."""

    key = "qwen"
    name = "Tongyi Qianwen"
    base_url = "https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation"
    default_model = "qwen-turbo"
    supported_models = ("qwen-turbo", "qwen-plus", "qwen-max")

    def format_request(self, message: str, config: AICallConfig) -> dict[str, Any]:
        return {
            "model": self.effective_model(config),
            "input": {"messages": self._chat_messages(message, config)},
            "parameters": {
                "max_tokens": config.max_tokens,
                "temperature": config.temperature,
            },
        }

    def parse_response(self, data: Any) -> Any:
        if not isinstance(data, dict):
            return None
        output = data.get("output")
        if not isinstance(output, dict):
            return None
        return output.get("text") or self._first_choice_content(output)
