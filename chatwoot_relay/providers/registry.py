"""Provider lookup: explicit name, then endpoint URL detection, then default."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from chatwoot_relay.providers.adapters import (
    AzureOpenAIProvider,
    BaiduProvider,
    OpenAIProvider,
    QwenProvider,
    ZhipuProvider,
)
from chatwoot_relay.providers.base import ProviderDescriptor

logger = logging.getLogger(__name__)

OPENAI = OpenAIProvider()
AZURE = AzureOpenAIProvider()
ZHIPU = ZhipuProvider()
BAIDU = BaiduProvider()
QWEN = QwenProvider()

DEFAULT_PROVIDER: ProviderDescriptor = OPENAI

PROVIDERS: Mapping[str, ProviderDescriptor] = MappingProxyType({
    p.key: p for p in (OPENAI, AZURE, ZHIPU, BAIDU, QWEN)
})

# Checked in order; first substring match wins.
_URL_HINTS: tuple[tuple[str, ProviderDescriptor], ...] = (
    ("openai.azure.com", AZURE),
    ("bigmodel.cn", ZHIPU),
    ("baidubce.com", BAIDU),
    ("dashscope.aliyuncs.com", QWEN),
)


def resolve(
    explicit_name: str | None = None,
    url_hint: str | None = None,
) -> ProviderDescriptor:
    """Return the descriptor for an explicit provider name or endpoint URL.

    An unknown explicit name is not an error: resolution falls through to
    URL detection and finally to the OpenAI-compatible default.
    """
    if explicit_name:
        provider = PROVIDERS.get(explicit_name.strip().lower())
        if provider is not None:
            return provider
        logger.warning(
            "Unknown AI provider %r, falling back to URL detection", explicit_name,
        )

    if url_hint:
        url = url_hint.lower()
        for fragment, provider in _URL_HINTS:
            if fragment in url:
                return provider

    return DEFAULT_PROVIDER
