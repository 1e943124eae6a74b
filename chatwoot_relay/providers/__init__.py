"""AI provider descriptors and resolver."""

from chatwoot_relay.providers.adapters import (
    AzureOpenAIProvider,
    BaiduProvider,
    OpenAIProvider,
    QwenProvider,
    ZhipuProvider,
)
from chatwoot_relay.providers.base import ProviderDescriptor
from chatwoot_relay.providers.registry import DEFAULT_PROVIDER, PROVIDERS, resolve

__all__ = [
    "DEFAULT_PROVIDER",
    "PROVIDERS",
    "AzureOpenAIProvider",
    "BaiduProvider",
    "OpenAIProvider",
    "ProviderDescriptor",
    "QwenProvider",
    "ZhipuProvider",
    "resolve",
]
